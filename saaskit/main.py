import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.datastructures import State

# Load env from the working directory .env
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from saaskit.core.config import Settings, settings, validate_config
from saaskit.core.database import create_all_tables, init_engine
from saaskit.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from saaskit.core.logging import configure_logging
from saaskit.core.middleware.request_id import RequestIdMiddleware
from saaskit.core.validation import validate_env
from saaskit.api import auth, catalog, health
from saaskit.features.billing.stripe_provider import StripeProvider
from saaskit.features.catalog.service import CatalogService
from saaskit.features.identity.supabase_provider import SupabaseIdentityProvider
from saaskit.features.users.store import UserStore

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


def build_services(state: State, cfg: Settings) -> None:
    """Construct the process-wide clients. Unconfigured ones stay None."""
    logger = logging.getLogger("saaskit")
    state.settings = cfg
    state.user_store = None
    state.identity_provider = None
    state.billing_provider = None
    state.catalog = None

    try:
        engine = init_engine(cfg.TEST_DATABASE_URL or cfg.DATABASE_URL)
        create_all_tables(engine)
        state.user_store = UserStore(engine)
    except ValueError as e:
        logger.warning(f"User store disabled: {e}")

    if cfg.SUPABASE_URL and cfg.SUPABASE_ANON_KEY:
        state.identity_provider = SupabaseIdentityProvider(
            cfg.SUPABASE_URL,
            cfg.SUPABASE_ANON_KEY,
            timeout=cfg.IDENTITY_TIMEOUT_SECONDS,
        )
    else:
        logger.warning("Identity provider disabled: SUPABASE_URL / SUPABASE_ANON_KEY not set")

    if cfg.STRIPE_SECRET_KEY:
        state.billing_provider = StripeProvider(cfg.STRIPE_SECRET_KEY, cfg.STRIPE_API_VERSION)
        state.catalog = CatalogService(state.billing_provider, cfg.CATALOG_REVALIDATE_SECONDS)
    else:
        logger.warning("Billing disabled: STRIPE_SECRET_KEY not set")


async def close_services(state: State) -> None:
    identity_provider = getattr(state, "identity_provider", None)
    if identity_provider is not None:
        await identity_provider.aclose()
    store = getattr(state, "user_store", None)
    if store is not None:
        store.engine.dispose()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("saaskit")
    logger.info("Starting SaasKit...")
    build_services(app.state, settings)
    try:
        yield
    finally:
        await close_services(app.state)
        logger.info("Stopping SaasKit...")


app = FastAPI(title="SaasKit", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(health.router)
