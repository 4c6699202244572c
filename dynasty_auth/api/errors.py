"""Map service errors to HTTP responses. Registered on the app in main.py."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from dynasty_auth.services.errors import (
    AccountLockedError,
    AuthenticationError,
    AuthErrorKind,
    AuthServiceError,
    IdentityProviderError,
    IdentityProviderNotConfiguredError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

# Every kind must have an entry; tests assert the table is exhaustive.
ERROR_STATUS: dict[AuthErrorKind, int] = {
    AuthErrorKind.AUTHENTICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.ACCOUNT_LOCKED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}


def auth_error_response(exc: AuthServiceError) -> JSONResponse:
    body: dict[str, object] = {"detail": exc.message, "code": exc.kind.value}
    headers: dict[str, str] = {}
    if isinstance(exc, AccountLockedError):
        body["retry_after_minutes"] = exc.retry_after_minutes
        headers["Retry-After"] = str(exc.retry_after_minutes * 60)
    elif isinstance(exc, RateLimitedError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    status_code = ERROR_STATUS[exc.kind]
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def handle_auth_error(request: Request, exc: AuthServiceError) -> JSONResponse:
    if isinstance(exc, AuthenticationError):
        logger.info(
            "Authentication rejected: path=%s reason=%s", request.url.path, exc.reason
        )
    return auth_error_response(exc)


async def handle_identity_provider_error(
    request: Request, exc: IdentityProviderError
) -> JSONResponse:
    logger.error("Identity provider failure: %s", exc.message)
    if isinstance(exc, IdentityProviderNotConfiguredError):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.message, "code": "NOT_CONFIGURED"},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Identity provider unavailable.", "code": "SERVICE_UNAVAILABLE"},
    )


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthServiceError, handle_auth_error)
    app.add_exception_handler(IdentityProviderError, handle_identity_provider_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
