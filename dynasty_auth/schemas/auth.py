"""Request/response schemas for auth endpoints and service results."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from dynasty_auth.core.security import (
    EMAIL_MAX_LEN,
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)

_PASSWORD_COMPLEXITY_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


class SafeUser(BaseModel):
    """User profile safe to return to clients: no hashes, secrets or tokens."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    status: str
    email_verified: bool
    email_verified_at: datetime | None = None
    last_login_at: datetime | None = None
    last_login_ip: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RegisterRequest(BaseModel):
    """New account with email and password."""

    email: EmailStr = Field(..., max_length=EMAIL_MAX_LEN, description="Email address")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password (needs a lowercase letter, an uppercase letter and a digit)",
    )
    first_name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    last_name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)

    @field_validator("password")
    @classmethod
    def validate_password_complexity(cls, v: str) -> str:
        if not _PASSWORD_COMPLEXITY_RE.match(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, and one digit"
            )
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class GoogleAuthRequest(BaseModel):
    """Google ID token obtained on the frontend via Google Identity Services."""

    id_token: str = Field(..., min_length=1, description="Google ID token")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token to revoke")


class AuthResult(BaseModel):
    """Returned by register, login and federated login."""

    user: SafeUser
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class RefreshResult(BaseModel):
    """Returned by refresh: a new access token only."""

    access_token: str = Field(..., description="JWT access token")
    user: SafeUser
    token_type: str = Field(default="bearer", description="Token type")


class CurrentUser(BaseModel):
    """Authenticated caller (from a verified access token) for dependency injection."""

    id: str
    email: str
    role: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every auth failure response."""

    detail: str
    code: str
    retry_after_minutes: int | None = None
