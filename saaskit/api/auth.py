"""
Auth routes.

- GET /auth/callback: OAuth code exchange, first-login provisioning, redirect
- GET /auth/auth-code-error: static page for failed sign-ins

The callback never returns provider error detail to the browser; every
failure ends in a redirect to the error page and is logged instead.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from saaskit.api.deps import (
    get_billing_provider,
    get_identity_provider,
    get_settings,
    get_user_store,
)
from saaskit.api.pages import render_auth_error_page
from saaskit.core.config import Settings, is_local_env
from saaskit.core.errors import AppError, AuthError, MissingAuthCode
from saaskit.core.logging import log_event
from saaskit.features.auth.service import complete_sign_in, resolve_redirect_target, safe_next_path
from saaskit.features.billing.provider import BillingProvider
from saaskit.features.identity.cookies import encode_session_cookies, read_code_verifier, storage_key_for, VERIFIER_SUFFIX
from saaskit.features.identity.provider import IdentityProvider
from saaskit.features.users.store import UserStore

logger = logging.getLogger("saaskit")

router = APIRouter(prefix="/auth", tags=["auth"])

SESSION_COOKIE_MAX_AGE = 400 * 24 * 60 * 60


def _request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _storage_key(cfg: Settings) -> str:
    return storage_key_for(cfg.SUPABASE_URL or "", cfg.SUPABASE_COOKIE_NAME)


@router.get("/callback")
async def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    next: Optional[str] = Query(None),
    cfg: Settings = Depends(get_settings),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    store: UserStore = Depends(get_user_store),
    billing: BillingProvider = Depends(get_billing_provider),
):
    origin = _request_origin(request)
    error_url = f"{origin}{cfg.AUTH_ERROR_PATH}"
    storage_key = _storage_key(cfg)

    try:
        result = await complete_sign_in(
            code,
            read_code_verifier(request.cookies, storage_key),
            identity_provider,
            store,
            billing,
        )
    except MissingAuthCode as e:
        log_event("warning", "auth.callback.missing_code", error_code=e.code)
        return RedirectResponse(error_url)
    except AuthError as e:
        log_event(
            "warning",
            "auth.callback.exchange_failed",
            error_code=e.code,
            reason=e.message,
        )
        return RedirectResponse(error_url)
    except AppError as e:
        # Provisioning failed: do not let a half-provisioned identity in
        logger.error(
            "auth.callback.provisioning_failed",
            exc_info=True,
            extra={"error_code": e.code, "error_message": e.message},
        )
        return RedirectResponse(error_url)

    next_path = safe_next_path(next)
    target = resolve_redirect_target(
        origin,
        next_path,
        request.headers.get("x-forwarded-host"),
        local=is_local_env(cfg),
        trust_forwarded_host=cfg.TRUST_FORWARDED_HOST,
    )

    log_event(
        "info",
        "auth.callback.success",
        user_id=result.provision.user.id,
        user_created=result.provision.created,
        next_path=next_path,
    )

    response = RedirectResponse(target)
    secure = target.startswith("https://")
    for name, value in encode_session_cookies(storage_key, result.session.raw or result.session.model_dump(exclude={"raw"})):
        response.set_cookie(
            name,
            value,
            max_age=SESSION_COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
            secure=secure,
        )
    if (storage_key + VERIFIER_SUFFIX) in request.cookies:
        response.delete_cookie(storage_key + VERIFIER_SUFFIX, path="/")
    return response


@router.get("/auth-code-error", response_class=HTMLResponse)
async def auth_code_error(cfg: Settings = Depends(get_settings)) -> HTMLResponse:
    """Landing page for failed sign-ins. Query parameters are not logged."""
    logger.info("auth.code_error.view")
    return HTMLResponse(content=render_auth_error_page(cfg.SITE_NAME), status_code=200)
