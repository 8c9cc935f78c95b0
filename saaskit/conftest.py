# saaskit/conftest.py
import os
from itertools import count
from typing import Dict, List, Optional

import pytest

# Must be set before saaskit.core.config builds its Settings
os.environ.setdefault("SKIP_ENV_VALIDATION", "1")
os.environ.setdefault("ENV", "test")

from saaskit.core.config import Settings
from saaskit.core.database import create_all_tables, init_engine
from saaskit.core.errors import AuthExchangeFailed, CustomerCreationFailed, IdentityUnavailable
from saaskit.features.users.store import UserStore
from saaskit.models.catalog import Product
from saaskit.models.user import AuthSession, Identity


class FakeIdentityProvider:
    """In-memory identity provider: each known code maps to one identity."""

    def __init__(self):
        self.identities_by_code: Dict[str, Identity] = {}
        self.exchanged: List[str] = []
        self.verifiers: List[Optional[str]] = []
        self.fail_user_lookup = False
        self.closed = False

    def register(self, code: str, identity: Identity) -> None:
        self.identities_by_code[code] = identity

    async def exchange_code_for_session(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        self.exchanged.append(code)
        self.verifiers.append(code_verifier)
        identity = self.identities_by_code.get(code)
        if identity is None:
            raise AuthExchangeFailed("invalid flow state, no valid flow state found")
        return AuthSession(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            user={"id": identity.id, "email": identity.email},
            raw={"access_token": f"access-{code}", "refresh_token": f"refresh-{code}"},
        )

    async def get_user(self, session: AuthSession) -> Optional[Identity]:
        if self.fail_user_lookup:
            raise IdentityUnavailable("User lookup failed (503)")
        code = session.access_token[len("access-"):]
        return self.identities_by_code.get(code)

    async def aclose(self) -> None:
        self.closed = True


class FakeBillingProvider:
    """Records customer creations; optionally fails them."""

    def __init__(self):
        self.customers: List[Dict[str, Optional[str]]] = []
        self.products: List[Product] = []
        self.fail_customer_creation = False
        self.list_calls = 0
        self._ids = count(1)

    def create_customer(self, external_id: str, email: str, name: Optional[str] = None) -> str:
        if self.fail_customer_creation:
            raise CustomerCreationFailed("Stripe customer creation failed: APIConnectionError")
        customer_id = f"cus_test{next(self._ids)}"
        self.customers.append({"id": customer_id, "external_id": external_id, "email": email, "name": name})
        return customer_id

    def list_active_products(self) -> List[Product]:
        self.list_calls += 1
        return list(self.products)


@pytest.fixture
def engine():
    eng = init_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return UserStore(engine)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def billing_provider():
    return FakeBillingProvider()


@pytest.fixture
def app_settings():
    return Settings(
        ENV="production",
        SUPABASE_URL="https://abcd1234.supabase.co",
        SUPABASE_ANON_KEY="anon-test-key",
        STRIPE_SECRET_KEY="sk_test_123",
        TRUST_FORWARDED_HOST=True,
    )


@pytest.fixture
def test_app(app_settings, store, identity_provider, billing_provider):
    """The real app with every client swapped for an in-memory one."""
    from saaskit.api.deps import (
        get_billing_provider,
        get_catalog,
        get_identity_provider,
        get_settings,
        get_user_store,
    )
    from saaskit.features.catalog.service import CatalogService
    from saaskit.main import app

    catalog = CatalogService(billing_provider, revalidate_seconds=3600)
    app.dependency_overrides[get_settings] = lambda: app_settings
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_user_store] = lambda: store
    app.dependency_overrides[get_billing_provider] = lambda: billing_provider
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.state.user_store = store
    yield app
    app.dependency_overrides.clear()
    app.state.user_store = None
