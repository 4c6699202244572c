"""Auth endpoints and the bearer-token dependency (get_current_user)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from dynasty_auth.core.database import get_db
from dynasty_auth.core.tokens import ACCESS_TOKEN_TYPE
from dynasty_auth.schemas.auth import (
    AuthResult,
    CurrentUser,
    GoogleAuthRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RefreshResult,
    ErrorResponse,
    RegisterRequest,
    SafeUser,
)
from dynasty_auth.services.auth import AuthService
from dynasty_auth.services.components import AuthComponents
from dynasty_auth.services.errors import UnauthorizedError

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

# Documented failure bodies; every error response has the ErrorResponse shape.
UNAUTHORIZED_RESPONSES = {401: {"model": ErrorResponse}}
CREDENTIAL_RESPONSES = {
    401: {"model": ErrorResponse},
    429: {"model": ErrorResponse, "description": "Too many attempts from this client"},
}


def get_auth_components(request: Request) -> AuthComponents:
    return request.app.state.auth


def get_auth_service(
    components: Annotated[AuthComponents, Depends(get_auth_components)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthService:
    return components.service(db)


def _client(request: Request) -> tuple[str | None, str | None]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop when behind a proxy, otherwise the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


async def enforce_auth_rate_limit(
    request: Request,
    components: Annotated[AuthComponents, Depends(get_auth_components)],
) -> None:
    """Dependency: count this request against the client's credential-endpoint budget."""
    if components.rate_limiter is not None:
        components.rate_limiter.hit(client_address(request))


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    components: Annotated[AuthComponents, Depends(get_auth_components)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token. Refresh tokens are rejected."""
    if credentials is None:
        raise UnauthorizedError("Missing or malformed Authorization header")
    claims = components.tokens.verify(credentials.credentials, expected_type=ACCESS_TOKEN_TYPE)
    return CurrentUser(id=claims.subject, email=claims.email, role=claims.role)


@router.post(
    "/register",
    response_model=AuthResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_auth_rate_limit)],
    responses={**CREDENTIAL_RESPONSES, 409: {"model": ErrorResponse}},
)
def register(
    body: RegisterRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResult:
    """Create an account with email and password; returns the profile and a token pair."""
    ip, user_agent = _client(request)
    return service.register(body, ip_address=ip, user_agent=user_agent)


@router.post(
    "/login",
    response_model=AuthResult,
    dependencies=[Depends(enforce_auth_rate_limit)],
    responses=CREDENTIAL_RESPONSES,
)
def login(
    body: LoginRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResult:
    """
    Authenticate with email and password; returns the profile and a token pair.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    ip, user_agent = _client(request)
    return service.login(body.email, body.password, ip_address=ip, user_agent=user_agent)


@router.post(
    "/google",
    response_model=AuthResult,
    dependencies=[Depends(enforce_auth_rate_limit)],
    responses={
        **CREDENTIAL_RESPONSES,
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse, "description": "Google sign-in unavailable"},
    },
)
async def login_with_google(
    body: GoogleAuthRequest,
    request: Request,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> AuthResult:
    """Sign in or sign up with a Google ID token from Google Identity Services."""
    ip, user_agent = _client(request)
    return await service.login_with_google(body.id_token, ip_address=ip, user_agent=user_agent)


@router.post("/refresh", response_model=RefreshResult, responses=UNAUTHORIZED_RESPONSES)
def refresh(
    body: RefreshRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> RefreshResult:
    """Issue a new access token. The refresh token stays valid until expiry or logout."""
    return service.refresh(body.refresh_token)


@router.post("/logout", response_model=MessageResponse, responses=UNAUTHORIZED_RESPONSES)
def logout(
    body: LogoutRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke the session behind the given refresh token."""
    service.logout(body.refresh_token)
    logger.info("User logged out: user_id=%s", current_user.id)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=MessageResponse, responses=UNAUTHORIZED_RESPONSES)
def logout_all(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke every session of the caller (all devices)."""
    count = service.logout_all(current_user.id)
    return MessageResponse(message=f"Revoked {count} session(s)")


@router.get("/me", response_model=SafeUser, responses=UNAUTHORIZED_RESPONSES)
def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> SafeUser:
    """Profile of the authenticated user."""
    return service.get_me(current_user.id)
