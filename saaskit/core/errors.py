"""
Error kinds and the JSON error envelope.

JSON endpoints answer failures with
{"error": {"code", "message", "request_id"}, "detail": message}
and an x-request-id header. The auth callback never surfaces these: it
catches every AppError and redirects to the error page.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from saaskit.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class UpstreamError(AppError):
    code = "upstream_error"
    status_code = 502


# Sign-in: the exchange or identity lookup failed

class AuthError(AppError):
    code = "auth_error"
    status_code = 401


class MissingAuthCode(AuthError):
    code = "missing_auth_code"
    status_code = 400


class AuthExchangeFailed(AuthError):
    code = "auth_exchange_failed"


class IdentityUnavailable(AuthError):
    code = "identity_unavailable"


# Provisioning: the billing customer or user row could not be settled

class ProvisioningError(AppError):
    code = "provisioning_failed"


class CustomerCreationFailed(ProvisioningError, UpstreamError):
    code = "customer_creation_failed"
    status_code = 502


class UserLookupFailed(ProvisioningError):
    code = "user_lookup_failed"


class UserInsertFailed(ProvisioningError):
    code = "user_insert_failed"


class DuplicateUser(ProvisioningError, ConflictError):
    code = "duplicate_user"
    status_code = 409


def _error_response(request: Request, status: int, code: str, message: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())
    logger.log(
        logging.ERROR if status >= 500 else logging.WARNING,
        "request.error",
        extra={"request_id": rid, "error_code": code, "status": status},
    )
    return JSONResponse(
        status_code=status,
        content={"error": {"code": code, "message": message, "request_id": rid}, "detail": message},
        headers={"x-request-id": rid},
    )


async def app_error_handler(request: Request, exc: AppError):
    return _error_response(request, exc.status_code, exc.code, exc.message)


async def http_error_handler(request: Request, exc: HTTPException):
    code = "not_found" if exc.status_code == 404 else "http_error"
    return _error_response(request, exc.status_code, code, str(exc.detail or "HTTP error"))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=exc)
    return _error_response(request, 500, "internal_error", "Unexpected error")
