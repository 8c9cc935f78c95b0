"""
Billing provider protocol.

Defines the interface for billing providers (Stripe, etc.).
This allows swapping providers without changing business logic.
"""
from typing import List, Protocol

from saaskit.models.catalog import Product


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must handle:
    - Customer creation
    - Listing the active product catalog with default prices
    """

    def create_customer(self, external_id: str, email: str, name: str | None = None) -> str:
        """
        Create a billing customer for an identity.

        Args:
            external_id: Identity provider user ID (stored as customer metadata)
            email: User email
            name: Display name (optional)

        Returns:
            Provider customer ID (e.g., Stripe customer ID)

        Raises:
            CustomerCreationFailed: If customer creation fails
        """
        ...

    def list_active_products(self) -> List[Product]:
        """
        List every active product with its default price expanded.

        Raises:
            UpstreamError: If the catalog cannot be fetched
        """
        ...
