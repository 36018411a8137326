"""Retry policies: exponential backoff and server-dictated flood wait."""

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from shlyapa.monitoring.metrics import RETRY_ATTEMPTS
from shlyapa.services.errors import flood_wait_seconds, is_transient

logger = structlog.get_logger()

Sleep = Callable[[float], Awaitable[Any]]


class RetryPolicy:
    """Run an async callable, retrying while ``next_delay`` returns a delay.

    Subclasses decide which errors are retryable and how long to wait.
    The wait is an ``await`` so no lock is held and the loop keeps running.
    """

    name = "retry"

    def __init__(self, max_retries: int = 2, sleep: Sleep = asyncio.sleep):
        self.max_retries = max_retries
        self._sleep = sleep

    def next_delay(self, error: Exception, attempt: int) -> float | None:
        """Seconds to wait before retrying, or None to re-raise ``error``."""
        raise NotImplementedError

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        attempt = 0
        while True:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                delay = self.next_delay(e, attempt)
                if delay is None:
                    raise
                RETRY_ATTEMPTS.labels(policy=self.name).inc()
                logger.warning(
                    f"{self.name}.retry",
                    func=getattr(func, "__name__", repr(func)),
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                    error_type=type(e).__name__,
                )
                await self._sleep(delay)
                attempt += 1


class BackoffRetry(RetryPolicy):
    """Exponential backoff for transient backend failures.

    Waits ``min(base_delay * 2**attempt, max_delay)`` with no jitter, so the
    delays are deterministic: 1s, 2s, 4s, ... capped at 10s by default.
    """

    name = "backoff"

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(max_retries=max_retries, sleep=sleep)
        self.base_delay = base_delay
        self.max_delay = max_delay

    def next_delay(self, error: Exception, attempt: int) -> float | None:
        if attempt >= self.max_retries or not is_transient(error):
            return None
        return min(self.base_delay * (2**attempt), self.max_delay)


class FloodWaitRetry(RetryPolicy):
    """Honour transport flood control by sleeping exactly the requested time."""

    name = "flood_wait"

    def __init__(
        self,
        max_retries: int = 2,
        max_wait_seconds: float = 300,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(max_retries=max_retries, sleep=sleep)
        self.max_wait_seconds = max_wait_seconds

    def next_delay(self, error: Exception, attempt: int) -> float | None:
        seconds = flood_wait_seconds(error)
        if seconds is None:
            return None
        if attempt >= self.max_retries or seconds > self.max_wait_seconds:
            logger.warning(
                "flood_wait.giving_up",
                seconds=seconds,
                attempt=attempt,
                max_wait_seconds=self.max_wait_seconds,
            )
            return None
        return float(seconds)
