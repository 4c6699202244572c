"""Process-level collaborators of AuthService, built once from settings at startup."""

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from dynasty_auth.core.security import PasswordHasher
from dynasty_auth.core.tokens import TokenIssuer
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.services.auth import AuthService
from dynasty_auth.services.google_identity import GoogleIdentityVerifier, IdentityVerifier
from dynasty_auth.services.rate_limit import AuthRateLimiter

if TYPE_CHECKING:
    from dynasty_auth.core.config import Settings


@dataclass(frozen=True)
class AuthComponents:
    """Bundle handed to each request's AuthService. Only the rate limiter holds state."""

    hasher: PasswordHasher
    tokens: TokenIssuer
    verifier: IdentityVerifier | None
    google_client_id: str | None
    max_failed_attempts: int
    lockout_duration: timedelta
    link_by_email: bool
    rate_limiter: AuthRateLimiter | None = None

    def service(self, db: Session) -> AuthService:
        return AuthService(
            AuthRepository(db),
            hasher=self.hasher,
            tokens=self.tokens,
            verifier=self.verifier,
            google_client_id=self.google_client_id,
            max_failed_attempts=self.max_failed_attempts,
            lockout_duration=self.lockout_duration,
            link_by_email=self.link_by_email,
        )


def build_auth_components(settings: "Settings") -> AuthComponents:
    verifier = (
        GoogleIdentityVerifier(
            tokeninfo_url=settings.GOOGLE_TOKENINFO_URL,
            timeout=settings.GOOGLE_REQUEST_TIMEOUT_SEC,
        )
        if settings.GOOGLE_CLIENT_ID
        else None
    )
    rate_limiter = (
        AuthRateLimiter(
            max_requests=settings.AUTH_RATE_LIMIT_MAX_REQUESTS,
            window=timedelta(seconds=settings.AUTH_RATE_LIMIT_WINDOW_SEC),
        )
        if settings.AUTH_RATE_LIMIT_ENABLED
        else None
    )
    return AuthComponents(
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        tokens=TokenIssuer(
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=settings.JWT_EXPIRES_IN,
            refresh_ttl=settings.JWT_REFRESH_EXPIRES_IN,
        ),
        verifier=verifier,
        google_client_id=settings.GOOGLE_CLIENT_ID,
        max_failed_attempts=settings.LOGIN_MAX_FAILED_ATTEMPTS,
        lockout_duration=timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES),
        link_by_email=settings.OAUTH_LINK_BY_EMAIL,
        rate_limiter=rate_limiter,
    )
