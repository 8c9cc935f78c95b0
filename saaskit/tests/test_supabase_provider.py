"""Tests for the Supabase identity provider over a stubbed SDK auth client."""
import json
from typing import Any, Dict, Optional

import httpx
import pytest
from pydantic import BaseModel
from supabase import AuthApiError

from saaskit.core.errors import AuthExchangeFailed, IdentityUnavailable
from saaskit.features.identity.supabase_provider import SupabaseIdentityProvider
from saaskit.models.user import AuthSession

USER_PAYLOAD = {
    "id": "idp-alice",
    "email": "alice@example.com",
    "user_metadata": {"full_name": "Alice Liddell"},
}


class StubUser(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}


class StubSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: Optional[StubUser] = None


class StubAuthResponse(BaseModel):
    session: Optional[StubSession] = None
    user: Optional[StubUser] = None


class StubAuth:
    """Records calls; each step returns a canned response or raises."""

    def __init__(self, exchange_result=None, user_result=None):
        self.exchange_result = exchange_result
        self.user_result = user_result
        self.exchange_params = []
        self.user_jwts = []

    async def exchange_code_for_session(self, params):
        self.exchange_params.append(params)
        if isinstance(self.exchange_result, Exception):
            raise self.exchange_result
        return self.exchange_result

    async def get_user(self, jwt=None):
        self.user_jwts.append(jwt)
        if isinstance(self.user_result, Exception):
            raise self.user_result
        return self.user_result


class StubClient:
    def __init__(self, auth: StubAuth):
        self.auth = auth


def _provider(auth: StubAuth) -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider("https://abcd1234.supabase.co", "anon-key", client=StubClient(auth))


def _alice_session() -> StubSession:
    return StubSession(access_token="at-1", refresh_token="rt-1", expires_in=3600, user=StubUser(**USER_PAYLOAD))


@pytest.mark.asyncio
async def test_exchange_sends_code_and_verifier():
    session = _alice_session()
    auth = StubAuth(exchange_result=StubAuthResponse(session=session, user=session.user))

    result = await _provider(auth).exchange_code_for_session("code-1", "verifier-1")

    assert auth.exchange_params == [{"auth_code": "code-1", "code_verifier": "verifier-1"}]
    assert result.access_token == "at-1"
    assert result.refresh_token == "rt-1"
    assert result.user["id"] == "idp-alice"
    # The cookie payload must be JSON serializable
    assert json.loads(json.dumps(result.raw))["user"]["email"] == "alice@example.com"


@pytest.mark.asyncio
async def test_exchange_rejected_code_raises():
    auth = StubAuth(exchange_result=AuthApiError("invalid flow state", 404, "flow_state_not_found"))

    with pytest.raises(AuthExchangeFailed, match="flow_state_not_found"):
        await _provider(auth).exchange_code_for_session("stale")


@pytest.mark.asyncio
async def test_exchange_network_error_raises():
    auth = StubAuth(exchange_result=httpx.ConnectError("connection refused"))

    with pytest.raises(AuthExchangeFailed, match="unreachable"):
        await _provider(auth).exchange_code_for_session("code-1")


@pytest.mark.asyncio
async def test_exchange_unreadable_body_raises():
    auth = StubAuth(exchange_result=json.JSONDecodeError("Expecting value", "<html>", 0))

    with pytest.raises(AuthExchangeFailed):
        await _provider(auth).exchange_code_for_session("code-1")


@pytest.mark.asyncio
async def test_exchange_without_session_raises():
    auth = StubAuth(exchange_result=StubAuthResponse(session=None, user=StubUser(**USER_PAYLOAD)))

    with pytest.raises(AuthExchangeFailed):
        await _provider(auth).exchange_code_for_session("code-1")


@pytest.mark.asyncio
async def test_get_user_maps_metadata():
    auth = StubAuth(user_result=StubAuthResponse(user=StubUser(**USER_PAYLOAD)))

    identity = await _provider(auth).get_user(AuthSession(access_token="at-1"))

    assert auth.user_jwts == ["at-1"]
    assert identity.id == "idp-alice"
    assert identity.email == "alice@example.com"
    assert identity.display_name == "Alice Liddell"


@pytest.mark.asyncio
async def test_get_user_unauthorized_returns_none():
    auth = StubAuth(user_result=AuthApiError("invalid JWT", 401, "bad_jwt"))

    assert await _provider(auth).get_user(AuthSession(access_token="bad")) is None


@pytest.mark.asyncio
async def test_get_user_server_error_raises():
    auth = StubAuth(user_result=AuthApiError("upstream down", 503, None))

    with pytest.raises(IdentityUnavailable, match="503"):
        await _provider(auth).get_user(AuthSession(access_token="at-1"))


@pytest.mark.asyncio
async def test_get_user_unreadable_body_raises():
    auth = StubAuth(user_result=json.JSONDecodeError("Expecting value", "<html>", 0))

    with pytest.raises(IdentityUnavailable):
        await _provider(auth).get_user(AuthSession(access_token="at-1"))


@pytest.mark.asyncio
async def test_get_user_falls_back_to_exchange_payload_on_network_error():
    auth = StubAuth(user_result=httpx.ReadTimeout("timed out"))

    identity = await _provider(auth).get_user(AuthSession(access_token="at-1", user=USER_PAYLOAD))

    assert identity.email == "alice@example.com"


def test_requires_url_and_key():
    with pytest.raises(RuntimeError):
        SupabaseIdentityProvider(None, "anon-key")
