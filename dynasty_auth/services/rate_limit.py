"""Per-client request budget for the credential endpoints (register, login, Google)."""

import logging
import math
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from dynasty_auth.core.clock import utcnow
from dynasty_auth.services.errors import RateLimitedError

logger = logging.getLogger(__name__)

AUTH_RATE_LIMIT_MAX_REQUESTS = 10
AUTH_RATE_LIMIT_WINDOW = timedelta(minutes=15)

# Expired windows are swept once the table grows past this many clients.
_SWEEP_THRESHOLD = 10_000


class AuthRateLimiter:
    """
    Fixed-window counter keyed by client address, held in process memory.

    The first request from a client opens a window; every request inside it
    counts, successful or not. Once the count passes ``max_requests`` the
    client is rejected until the window ends. Complements the per-account
    lockout, which cannot see guesses spread over many emails.
    """

    def __init__(
        self,
        *,
        max_requests: int = AUTH_RATE_LIMIT_MAX_REQUESTS,
        window: timedelta = AUTH_RATE_LIMIT_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._windows: dict[str, tuple[datetime, int]] = {}
        self._lock = threading.Lock()

    def hit(self, client_key: str) -> None:
        """Count one request for ``client_key``; raise RateLimitedError when over budget."""
        now = self._clock()
        with self._lock:
            if len(self._windows) > _SWEEP_THRESHOLD:
                self._sweep(now)
            started, count = self._windows.get(client_key, (now, 0))
            if now - started >= self.window:
                started, count = now, 0
            count += 1
            self._windows[client_key] = (started, count)

        if count > self.max_requests:
            retry_after = max(1, math.ceil((started + self.window - now).total_seconds()))
            logger.warning(
                "Auth rate limit exceeded: client=%s requests=%s", client_key, count
            )
            raise RateLimitedError(
                "Too many authentication attempts, please try again later.",
                retry_after_seconds=retry_after,
            )

    def _sweep(self, now: datetime) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window]
        for key in expired:
            del self._windows[key]
