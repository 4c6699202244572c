"""Server-side sessions backing refresh tokens, so they can be revoked."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from dynasty_auth.core.clock import ensure_utc, utcnow
from dynasty_auth.models import UserSession
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.services.errors import TokenExpiredError, UnauthorizedError

if TYPE_CHECKING:
    from dynasty_auth.core.config import Settings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """One row per issued refresh token; consulted on every refresh."""

    def __init__(self, repo: AuthRepository, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.repo = repo
        self._clock = clock

    def create(
        self,
        user_id: str,
        token: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSession:
        return self.repo.create_session(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def find_by_token(self, token: str) -> UserSession | None:
        return self.repo.find_session_by_token(token)

    def require_live(self, token: str) -> UserSession:
        """
        Return the session for a refresh token that is still usable.

        Missing row: UnauthorizedError (revoked or never issued). Row past its
        stored expiry: the row is deleted and TokenExpiredError raised. The
        stored expiry is checked independently of the token's own exp.
        """
        row = self.repo.find_session_by_token(token)
        if row is None:
            raise UnauthorizedError("Session has been revoked")
        if ensure_utc(row.expires_at) < self._clock():
            user_id = row.user_id
            self.delete(token)
            logger.info("Expired session removed on refresh: user_id=%s", user_id)
            raise TokenExpiredError("Refresh token has expired")
        return row

    def delete(self, token: str) -> bool:
        """Idempotent delete, committed immediately."""
        deleted = self.repo.delete_session(token)
        self.repo.commit()
        return deleted

    def delete_all_for_user(self, user_id: str) -> int:
        count = self.repo.delete_user_sessions(user_id)
        self.repo.commit()
        return count

    def cleanup_expired(self) -> int:
        """Bulk delete every session whose stored expiry has passed."""
        count = self.repo.delete_expired_sessions(self._clock())
        self.repo.commit()
        return count


def run_session_cleanup(session: Session, settings: "Settings") -> int:
    """
    Delete expired sessions. Maintenance job, not part of any request path.

    Returns the number of rows deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.SESSION_CLEANUP_ENABLED:
        logger.info("Session cleanup is disabled (SESSION_CLEANUP_ENABLED=false); skipping.")
        return 0

    deleted_count = SessionRegistry(AuthRepository(session)).cleanup_expired()
    if deleted_count > 0:
        logger.info("Session cleanup run: sessions_deleted=%s", deleted_count)
    return deleted_count
