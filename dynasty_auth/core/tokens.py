"""Signed access/refresh token minting and verification (JWT)."""

import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import jwt

from dynasty_auth.core.clock import utcnow
from dynasty_auth.services.errors import InvalidTokenError, TokenExpiredError

TokenType = Literal["access", "refresh"]

ACCESS_TOKEN_TYPE: TokenType = "access"
REFRESH_TOKEN_TYPE: TokenType = "refresh"

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}

# Claims every token issued here must carry.
REQUIRED_CLAIMS = ("sub", "email", "role", "type", "exp", "iat", "jti")


def parse_duration(value: str) -> timedelta:
    """
    Parse a lifetime string such as "15m", "7d" or "3600s" into a timedelta.

    Raises ValueError on anything else, so misconfiguration is caught at load time.
    """
    match = _DURATION_RE.match(value.strip()) if value else None
    if match is None:
        raise ValueError(
            f"Invalid duration {value!r}: expected <integer><s|m|h|d>, e.g. '30d'"
        )
    amount = int(match.group(1))
    return timedelta(**{_DURATION_UNITS[match.group(2)]: amount})


@dataclass(frozen=True)
class TokenClaims:
    """Decoded claims of a verified token."""

    subject: str
    email: str
    role: str
    type: TokenType
    issued_at: datetime
    expires_at: datetime
    jti: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Mints and verifies HS-signed JWTs for one signing secret.

    Immutable after construction; share one instance per process.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(days=7),
        refresh_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must be non-empty")
        self._secret = secret
        self._algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    def _encode(self, subject: str, email: str, role: str, token_type: TokenType) -> str:
        now = self._clock()
        ttl = self.access_ttl if token_type == ACCESS_TOKEN_TYPE else self.refresh_ttl
        payload: dict[str, Any] = {
            "sub": str(subject),
            "email": email,
            "role": role,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def create_access_token(self, subject: str, email: str, role: str) -> str:
        return self._encode(subject, email, role, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, subject: str, email: str, role: str) -> str:
        return self._encode(subject, email, role, REFRESH_TOKEN_TYPE)

    def create_token_pair(self, subject: str, email: str, role: str) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(subject, email, role),
            refresh_token=self.create_refresh_token(subject, email, role),
        )

    def refresh_expiry(self) -> datetime:
        """Expiry to persist for a refresh token minted now."""
        return self._clock() + self.refresh_ttl

    def _decode(self, token: str, *, verify_exp: bool) -> dict[str, Any]:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": list(REQUIRED_CLAIMS), "verify_exp": verify_exp},
        )

    def verify(self, token: str, expected_type: TokenType | None = None) -> TokenClaims:
        """
        Check signature, expiry and claim shape; return the decoded claims.

        Raises TokenExpiredError only for a correctly signed token of the
        expected type that is past its exp. Everything else (bad signature,
        malformed, missing claims, wrong type) raises InvalidTokenError, and
        a wrong type wins over expiry.
        """
        try:
            payload = self._decode(token, verify_exp=True)
        except jwt.ExpiredSignatureError as e:
            try:
                expired = self._decode(token, verify_exp=False)
            except jwt.PyJWTError as inner:
                raise InvalidTokenError("Invalid token") from inner
            self._check_type(expired, expected_type)
            raise TokenExpiredError("Token has expired") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError("Invalid token") from e

        token_type = self._check_type(payload, expected_type)
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise InvalidTokenError("Invalid token payload")

        return TokenClaims(
            subject=sub,
            email=str(payload["email"]),
            role=str(payload["role"]),
            type=token_type,
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            jti=str(payload["jti"]),
        )

    @staticmethod
    def _check_type(payload: dict[str, Any], expected_type: TokenType | None) -> TokenType:
        token_type = payload.get("type")
        if token_type not in (ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE):
            raise InvalidTokenError("Invalid token")
        if expected_type is not None and token_type != expected_type:
            raise InvalidTokenError(f"Expected a {expected_type} token")
        return token_type
