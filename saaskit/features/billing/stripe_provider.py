"""
Stripe billing provider implementation.

Implements BillingProvider protocol using the Stripe API. The secret key is
passed per call so several providers (or tests) never share module state.
"""
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from saaskit.core.errors import CustomerCreationFailed, UpstreamError
from saaskit.models.catalog import Price, Product

logger = logging.getLogger("saaskit")

DEFAULT_API_VERSION = "2024-06-20"


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str], api_version: str = DEFAULT_API_VERSION):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key
            api_version: Stripe API version pinned for every request
        """
        if not secret_key:
            raise RuntimeError("STRIPE_SECRET_KEY not configured")
        self.secret_key = secret_key
        self.api_version = api_version

    def _request_options(self) -> Dict[str, Any]:
        return {"api_key": self.secret_key, "stripe_version": self.api_version}

    def create_customer(self, external_id: str, email: str, name: Optional[str] = None) -> str:
        """Create a Stripe customer tagged with the identity id."""
        customer_data: Dict[str, Any] = {
            "email": email,
            "metadata": {"user_id": external_id},
        }
        if name:
            customer_data["name"] = name

        try:
            customer = stripe.Customer.create(
                idempotency_key=customer_idempotency_key(external_id, email, name),
                **customer_data,
                **self._request_options(),
            )
        except stripe.StripeError as e:
            raise CustomerCreationFailed(f"Stripe customer creation failed: {type(e).__name__}") from e
        return customer["id"]

    def list_active_products(self) -> List[Product]:
        """List active products, following pagination."""
        try:
            page = stripe.Product.list(
                active=True,
                expand=["data.default_price"],
                limit=100,
                **self._request_options(),
            )
            return [product_from_stripe(p) for p in page.auto_paging_iter()]
        except stripe.StripeError as e:
            raise UpstreamError(f"Stripe product listing failed: {type(e).__name__}") from e


def customer_idempotency_key(external_id: str, email: str, name: Optional[str]) -> str:
    """
    Racing first logins for one identity send identical parameters and share
    a key, so Stripe returns one customer. Changed parameters get a new key;
    Stripe rejects a reused key whose parameters differ.
    """
    digest = hashlib.sha256(f"{email}\n{name or ''}".encode("utf-8")).hexdigest()[:16]
    return f"provision-customer-{external_id}-{digest}"


def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


def parse_features(raw: Optional[str], product_id: str = "") -> List[str]:
    """Parse the JSON feature list stored in product metadata."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"[catalog] product {product_id} has malformed features metadata")
        return []
    if not isinstance(parsed, list):
        logger.warning(f"[catalog] product {product_id} features metadata is not a list")
        return []
    return [str(item) for item in parsed]


def price_from_stripe(default_price: Any) -> Optional[Price]:
    if not default_price:
        return None
    if isinstance(default_price, str):
        # Not expanded; the id alone carries no amount
        return Price(id=default_price)
    data = _as_dict(default_price)
    recurring = _as_dict(data.get("recurring"))
    return Price(
        id=data["id"],
        unit_amount=data.get("unit_amount"),
        currency=data.get("currency") or "usd",
        recurring_interval=recurring.get("interval"),
    )


def product_from_stripe(product: Any) -> Product:
    data = _as_dict(product)
    metadata = _as_dict(data.get("metadata"))
    return Product(
        id=data["id"],
        name=data.get("name") or "",
        description=data.get("description"),
        features=parse_features(metadata.get("features"), data["id"]),
        price=price_from_stripe(data.get("default_price")),
    )
