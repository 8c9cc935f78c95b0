"""
Supabase Auth identity provider.

Implements IdentityProvider with the supabase SDK's async auth client:
- auth.exchange_code_for_session (PKCE code exchange)
- auth.get_user(jwt)             (identity behind an access token)

Only the anon (publishable) key is used; it respects RLS. The client is
shared by every request, so it never persists or refreshes a session of
its own: callers get the session back and store it in cookies.
"""
import asyncio
import logging
from typing import Any, Optional

import httpx
from supabase import AsyncClient, AsyncClientOptions, acreate_client
from supabase import AuthApiError, AuthError as SupabaseAuthError

from saaskit.core.errors import AuthExchangeFailed, IdentityUnavailable
from saaskit.models.user import AuthSession, Identity

logger = logging.getLogger("saaskit")

# get_user statuses that mean "no such user", not "provider broken"
_NO_USER_STATUSES = (401, 403, 404)


def _dump(model: Any) -> Optional[dict]:
    if model is None:
        return None
    return model.model_dump(mode="json")


class SupabaseIdentityProvider:
    """Supabase implementation of IdentityProvider protocol."""

    def __init__(
        self,
        url: Optional[str],
        anon_key: Optional[str],
        *,
        timeout: float = 10.0,
        client: Optional[AsyncClient] = None,
    ):
        """
        Args:
            url: Supabase project URL (https://<ref>.supabase.co)
            anon_key: Supabase anon/publishable key
            timeout: Per-call timeout in seconds
            client: Prebuilt client; by default one is created on first use
        """
        if not url or not anon_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()

    async def _auth(self):
        async with self._client_lock:
            if self._client is None:
                logger.info("Initializing Supabase client", extra={"supabase_url": self.url, "key_type": "publishable"})
                self._client = await acreate_client(
                    self.url,
                    self.anon_key,
                    options=AsyncClientOptions(auto_refresh_token=False, persist_session=False),
                )
        return self._client.auth

    async def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        auth = await self._auth()
        try:
            response = await asyncio.wait_for(
                auth.exchange_code_for_session({"auth_code": code, "code_verifier": code_verifier}),
                self.timeout,
            )
        except SupabaseAuthError as e:
            raise AuthExchangeFailed(f"Code exchange rejected: {getattr(e, 'code', None) or e}") from e
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            raise AuthExchangeFailed(f"Identity provider unreachable: {type(e).__name__}") from e
        except ValueError as e:
            raise AuthExchangeFailed("Code exchange returned an unreadable body") from e

        session = response.session
        if session is None or not session.access_token:
            raise AuthExchangeFailed("Code exchange returned no session")

        raw = _dump(session)
        return AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            token_type=session.token_type or "bearer",
            expires_in=session.expires_in,
            expires_at=session.expires_at,
            user=_dump(response.user) or raw.get("user"),
            raw=raw,
        )

    async def get_user(self, session: AuthSession) -> Optional[Identity]:
        auth = await self._auth()
        try:
            response = await asyncio.wait_for(auth.get_user(session.access_token), self.timeout)
        except AuthApiError as e:
            if e.status in _NO_USER_STATUSES:
                return None
            raise IdentityUnavailable(f"User lookup failed ({e.status})") from e
        except SupabaseAuthError as e:
            raise IdentityUnavailable(f"User lookup failed: {type(e).__name__}") from e
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning(f"[identity] user lookup failed: {type(e).__name__}")
            # The exchange already returned the user; fall back to it
            return Identity.from_provider_user(session.user) if session.user else None
        except ValueError as e:
            raise IdentityUnavailable("User lookup returned an unreadable body") from e

        if response is None or response.user is None:
            return None
        return Identity.from_provider_user(_dump(response.user))

    async def aclose(self) -> None:
        # Nothing is persisted or refreshed; dropping the client is enough
        self._client = None
