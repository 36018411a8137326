"""Background task that reaps expired rate windows and conversations."""

import asyncio

import structlog

from shlyapa.monitoring.metrics import ACTIVE_RATE_WINDOWS, STORED_CONVERSATIONS
from shlyapa.services.memory import ConversationMemory
from shlyapa.services.rate_limiter import RateLimiter

logger = structlog.get_logger()


class Sweeper:
    """Owns the periodic sweep task; start on startup, stop on shutdown."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        memory: ConversationMemory,
        interval_seconds: float = 300.0,
    ):
        self.rate_limiter = rate_limiter
        self.memory = memory
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> tuple[int, int]:
        """Run both sweeps. Returns (rate windows removed, chats removed)."""
        windows = await self.rate_limiter.sweep()
        chats = await self.memory.sweep()
        ACTIVE_RATE_WINDOWS.set(len(self.rate_limiter))
        STORED_CONVERSATIONS.set(len(self.memory))
        logger.info(
            "sweeper.swept",
            rate_windows_removed=windows,
            conversations_removed=chats,
            rate_windows=len(self.rate_limiter),
            conversations=len(self.memory),
        )
        return windows, chats

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error("sweeper.failed", error=str(e))

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="shlyapa-sweeper")
        logger.info("sweeper.started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("sweeper.stopped")
