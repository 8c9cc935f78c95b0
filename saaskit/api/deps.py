"""
FastAPI dependencies for the explicitly constructed clients.

Clients are built once in the application lifespan and kept on app.state.
Tests swap them with app.dependency_overrides.
"""
from fastapi import Request

from saaskit.core.config import Settings, settings as default_settings
from saaskit.core.errors import AppError
from saaskit.features.billing.provider import BillingProvider
from saaskit.features.catalog.service import CatalogService
from saaskit.features.identity.provider import IdentityProvider
from saaskit.features.users.store import UserStore


class ServiceUnavailable(AppError):
    code = "service_unavailable"
    status_code = 503


def _state_attr(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise ServiceUnavailable(f"{label} is not configured")
    return value


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def get_identity_provider(request: Request) -> IdentityProvider:
    return _state_attr(request, "identity_provider", "Identity provider")


def get_user_store(request: Request) -> UserStore:
    return _state_attr(request, "user_store", "User store")


def get_billing_provider(request: Request) -> BillingProvider:
    return _state_attr(request, "billing_provider", "Billing provider")


def get_catalog(request: Request) -> CatalogService:
    return _state_attr(request, "catalog", "Catalog")
