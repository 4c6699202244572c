"""Brute-force lockout: failed-attempt counting and temporary lock windows per credential."""

import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from dynasty_auth.core.clock import ensure_utc, utcnow
from dynasty_auth.models import UserCredential
from dynasty_auth.repositories.auth import AuthRepository
from dynasty_auth.services.errors import AccountLockedError, AuthenticationError

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_MINUTES = 30


class LockState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


def minutes_until(until: datetime, now: datetime) -> int:
    """Whole minutes left in a lock window, rounded up, never below 1."""
    return max(1, math.ceil((until - now).total_seconds() / 60))


class LockoutGuard:
    """
    Gates password checks for one credential at a time.

    OPEN -> LOCKED when the post-increment failure count reaches the
    threshold. LOCKED -> OPEN happens implicitly once ``locked_until`` has
    passed; a later successful login clears counter and window.
    """

    def __init__(
        self,
        repo: AuthRepository,
        *,
        max_attempts: int = MAX_FAILED_ATTEMPTS,
        lockout_duration: timedelta = timedelta(minutes=LOCKOUT_MINUTES),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self._clock = clock

    def state(self, credential: UserCredential) -> LockState:
        locked_until = ensure_utc(credential.locked_until)
        if locked_until is not None and locked_until > self._clock():
            return LockState.LOCKED
        return LockState.OPEN

    def ensure_open(self, credential: UserCredential) -> None:
        """Raise AccountLockedError while the credential's lock window is running."""
        locked_until = ensure_utc(credential.locked_until)
        if locked_until is None or locked_until <= self._clock():
            return
        raise self.locked_error(locked_until)

    def locked_error(self, locked_until: datetime | None = None) -> AccountLockedError:
        """Lock rejection for a window ending at ``locked_until`` (a full window when unknown)."""
        now = self._clock()
        until = ensure_utc(locked_until) or now + self.lockout_duration
        minutes_left = minutes_until(until, now)
        return AccountLockedError(
            f"Account is temporarily locked. Try again in {minutes_left} minute(s).",
            retry_after_minutes=minutes_left,
        )

    def register_failure(self, user_id: str) -> AuthenticationError:
        """
        Count one failed password check and decide on a lock, in one transaction.

        Returns the error the caller should raise: AccountLockedError when this
        failure reached the threshold, otherwise a generic AuthenticationError
        that does not disclose the remaining attempts.
        """
        try:
            attempts = self.repo.increment_failed_attempts(user_id)
            locked = attempts is not None and attempts >= self.max_attempts
            if locked:
                self.repo.lock_credentials(user_id, self._clock() + self.lockout_duration)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if locked:
            minutes = math.ceil(self.lockout_duration.total_seconds() / 60)
            logger.warning(
                "Account locked due to failed attempts: user_id=%s attempts=%s",
                user_id,
                attempts,
            )
            return AccountLockedError(
                f"Too many failed attempts. Account locked for {minutes} minutes.",
                retry_after_minutes=minutes,
            )
        return AuthenticationError(reason="wrong_password")

    def register_success(self, user_id: str) -> bool:
        """
        Clear counter and lock window. Not committed; part of the login transaction.

        Returns False when a lock set by a concurrent failure is now active.
        """
        return self.repo.reset_failed_attempts(user_id, self._clock())
