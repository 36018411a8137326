"""In-memory rate limiter for per-sender throttling."""

import time
from dataclasses import dataclass
from typing import Callable

import structlog

from shlyapa.services.locks import KeyedLock

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateWindow:
    """Fixed counting window for one sender."""

    count: int
    reset_at: float

    def expired(self, now: float) -> bool:
        return now > self.reset_at


class RateLimiter:
    """Fixed-window rate limiter keyed by sender id.

    A window opens on the first request, counts admitted requests and is
    replaced wholesale once its reset time has passed.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._locks = KeyedLock()

    async def admit(self, sender_id: str | int | None) -> bool:
        """Check if a request from this sender is allowed, counting it if so."""
        # Events without a sender are never throttled
        if sender_id is None or sender_id == "":
            return True

        key = str(sender_id)
        async with self._locks(key):
            now = self._clock()
            window = self._windows.get(key)

            if window is None or window.expired(now):
                self._windows[key] = RateWindow(
                    count=1, reset_at=now + self.window_seconds
                )
                return True

            if window.count >= self.max_requests:
                logger.warning(
                    "rate_limit.exceeded", sender_id=key, count=window.count
                )
                return False

            self._windows[key] = RateWindow(
                count=window.count + 1, reset_at=window.reset_at
            )
            return True

    async def sweep(self) -> int:
        """Remove expired windows to free memory. Returns the number removed."""
        removed = 0
        for key in list(self._windows):
            async with self._locks(key):
                window = self._windows.get(key)
                if window is not None and window.expired(self._clock()):
                    del self._windows[key]
                    removed += 1
        return removed

    def window_for(self, sender_id: str | int) -> RateWindow | None:
        """Current window for a sender, if any (read-only snapshot)."""
        return self._windows.get(str(sender_id))

    def __len__(self) -> int:
        return len(self._windows)
