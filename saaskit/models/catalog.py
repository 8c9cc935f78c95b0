from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Price(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    unit_amount: Optional[int] = None  # minor units (cents)
    currency: str = "usd"
    recurring_interval: Optional[str] = None


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    price: Optional[Price] = None

    @property
    def display_price(self) -> str:
        return format_price(self.price)


def format_price(price: Optional[Price]) -> str:
    """Minor-unit amount as "$12.00", or "Custom" when no price is attached."""
    if price is None or price.unit_amount is None:
        return "Custom"
    return f"${price.unit_amount / 100:.2f}"
