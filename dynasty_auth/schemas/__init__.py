"""Pydantic request/response schemas."""

from dynasty_auth.schemas.auth import (
    AuthResult,
    CurrentUser,
    ErrorResponse,
    GoogleAuthRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RefreshResult,
    RegisterRequest,
    SafeUser,
)
from dynasty_auth.schemas.health import HealthResponse

__all__ = [
    "AuthResult",
    "CurrentUser",
    "ErrorResponse",
    "GoogleAuthRequest",
    "HealthResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "RefreshRequest",
    "RefreshResult",
    "RegisterRequest",
    "SafeUser",
]
