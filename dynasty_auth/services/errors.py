"""
Error taxonomy for the identity and session flows.

Every recoverable failure is an AuthServiceError carrying an AuthErrorKind,
so callers can branch exhaustively on ``err.kind``. Infrastructure failures
(database, identity provider connectivity) are deliberately outside this
hierarchy and must never be reported as bad credentials.
"""

from enum import Enum

# One message for every authentication failure except lockout, so responses
# never reveal whether the email exists or which check failed.
GENERIC_AUTH_MESSAGE = "Invalid credentials."


class AuthErrorKind(str, Enum):
    AUTHENTICATION_FAILED = "AUTHENTICATION_ERROR"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"


class AuthServiceError(Exception):
    """Base class; subclasses pin ``kind``."""

    kind: AuthErrorKind = AuthErrorKind.AUTHENTICATION_FAILED

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(AuthServiceError):
    """
    Bad credentials, inactive account or rejected federated assertion.

    ``reason`` is for logs only; the public message is always generic.
    """

    kind = AuthErrorKind.AUTHENTICATION_FAILED

    def __init__(self, reason: str = "invalid_credentials") -> None:
        self.reason = reason
        super().__init__(GENERIC_AUTH_MESSAGE)


class AccountLockedError(AuthenticationError):
    """Attempt rejected because the credential is inside a lock window."""

    kind = AuthErrorKind.ACCOUNT_LOCKED

    def __init__(self, message: str, retry_after_minutes: int) -> None:
        super().__init__(reason="locked")
        self.message = message
        self.retry_after_minutes = retry_after_minutes
        self.args = (message,)


class TokenExpiredError(AuthServiceError):
    kind = AuthErrorKind.TOKEN_EXPIRED


class InvalidTokenError(AuthServiceError):
    kind = AuthErrorKind.INVALID_TOKEN


class UnauthorizedError(AuthServiceError):
    """Token looks valid but its session is gone (revoked or never existed)."""

    kind = AuthErrorKind.UNAUTHORIZED


class ConflictError(AuthServiceError):
    kind = AuthErrorKind.CONFLICT


class RateLimitedError(AuthServiceError):
    """Too many authentication requests from one client inside the current window."""

    kind = AuthErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after_seconds: int) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class IdentityProviderError(Exception):
    """Raised when the external identity provider cannot be reached or answers garbage."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class IdentityProviderNotConfiguredError(IdentityProviderError):
    """Raised when federated login is attempted without a configured client id."""
