"""
Identity provider protocol.

Defines the interface for identity providers (Supabase Auth, etc.).
The auth callback only depends on this protocol, so providers can be
swapped (or faked in tests) without touching the callback flow.
"""
from typing import Optional, Protocol

from saaskit.models.user import AuthSession, Identity


class IdentityProvider(Protocol):
    """
    Protocol for identity providers.

    Implementations must handle:
    - Exchanging a one-time authorization code for a session
    - Resolving the authenticated identity behind a session
    """

    async def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        """
        Exchange an authorization code for a session.

        Args:
            code: Short-lived, single-use authorization code
            code_verifier: PKCE verifier stored when the flow started (optional)

        Returns:
            The established session

        Raises:
            AuthExchangeFailed: If the code is invalid/expired or the provider is unreachable
        """
        ...

    async def get_user(self, session: AuthSession) -> Optional[Identity]:
        """
        Resolve the identity for a session.

        Returns:
            Identity, or None when the provider has no user for the session
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
