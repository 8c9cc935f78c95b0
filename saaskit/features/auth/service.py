"""
OAuth callback: session exchange, provisioning and redirect resolution.

Pure helpers (safe_next_path, resolve_redirect_target) carry the redirect
policy; complete_sign_in sequences the outbound calls.
"""
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from starlette.concurrency import run_in_threadpool

from saaskit.core.errors import IdentityUnavailable, MissingAuthCode
from saaskit.features.billing.provider import BillingProvider
from saaskit.features.identity.provider import IdentityProvider
from saaskit.features.users.service import ProvisionResult, provision_user
from saaskit.features.users.store import UserStore
from saaskit.models.user import AuthSession, Identity

DEFAULT_NEXT = "/"

# host[:port] only; anything else in X-Forwarded-Host is ignored
_HOST_RE = re.compile(r"^[A-Za-z0-9.-]+(:\d{1,5})?$")


@dataclass
class SignInResult:
    session: AuthSession
    identity: Identity
    provision: ProvisionResult


def safe_next_path(next_value: Optional[str]) -> str:
    """Restrict `next` to a same-origin relative path, else "/"."""
    if not next_value:
        return DEFAULT_NEXT
    if not next_value.startswith("/") or next_value.startswith("//") or next_value.startswith("/\\"):
        return DEFAULT_NEXT
    if any(ch in next_value for ch in ("\r", "\n", "\t")):
        return DEFAULT_NEXT
    parts = urlsplit(next_value)
    if parts.scheme or parts.netloc:
        return DEFAULT_NEXT
    return next_value


def clean_forwarded_host(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    # Chained proxies append; the first entry is the client-facing host
    host = value.split(",")[0].strip()
    return host if _HOST_RE.match(host) else None


def resolve_redirect_target(
    origin: str,
    next_path: str,
    forwarded_host: Optional[str],
    *,
    local: bool,
    trust_forwarded_host: bool,
) -> str:
    """Where to send the browser after a successful sign-in."""
    if local:
        # No load balancer in between locally, X-Forwarded-Host is irrelevant
        return f"{origin}{next_path}"
    host = clean_forwarded_host(forwarded_host) if trust_forwarded_host else None
    if host:
        return f"https://{host}{next_path}"
    return f"{origin}{next_path}"


async def complete_sign_in(
    code: Optional[str],
    code_verifier: Optional[str],
    identity_provider: IdentityProvider,
    store: UserStore,
    billing: BillingProvider,
) -> SignInResult:
    """
    Exchange the code, resolve the identity and provision the user.

    Raises:
        MissingAuthCode: No code supplied (no outbound call is made)
        AuthExchangeFailed: Provider rejected the code or was unreachable
        IdentityUnavailable: Session carries no usable identity
        ProvisioningError: Billing customer or user row could not be created
    """
    if not code:
        raise MissingAuthCode("Authorization code missing")

    session = await identity_provider.exchange_code_for_session(code, code_verifier)

    identity = await identity_provider.get_user(session)
    if identity is None:
        raise IdentityUnavailable("No authenticated user for session")

    # Store and Stripe calls are blocking
    provision = await run_in_threadpool(provision_user, identity, store, billing)
    return SignInResult(session=session, identity=identity, provision=provision)
