"""Short-lived per-chat conversation memory."""

import time
from dataclasses import dataclass
from typing import Callable

import structlog

from shlyapa.services.locks import KeyedLock

logger = structlog.get_logger()


@dataclass(frozen=True)
class ConversationTurn:
    """One role-tagged message kept for conversational context."""

    role: str  # "user" | "assistant" | "system"
    content: str
    created_at: float

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ConversationMemory:
    """Bounded, time-expiring message log per chat id.

    Turns older than ``ttl_seconds`` are never returned and at most
    ``max_messages`` turns are kept per chat, oldest dropped first.
    """

    def __init__(
        self,
        max_messages: int = 30,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_messages = max_messages
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._logs: dict[str, tuple[ConversationTurn, ...]] = {}
        self._locks = KeyedLock()

    def _fresh(
        self, turns: tuple[ConversationTurn, ...], now: float
    ) -> tuple[ConversationTurn, ...]:
        return tuple(t for t in turns if now - t.created_at < self.ttl_seconds)

    async def append(self, chat_id: str, role: str, content: str) -> None:
        """Add a turn, pruning expired turns and trimming to the length bound."""
        async with self._locks(chat_id):
            now = self._clock()
            turns = self._fresh(self._logs.get(chat_id, ()), now)
            turns += (ConversationTurn(role=role, content=content, created_at=now),)
            if len(turns) > self.max_messages:
                turns = turns[len(turns) - self.max_messages :]
            self._logs[chat_id] = turns

    async def read(self, chat_id: str) -> list[ConversationTurn]:
        """Return unexpired turns, oldest first. Does not modify the stored log."""
        async with self._locks(chat_id):
            return list(self._fresh(self._logs.get(chat_id, ()), self._clock()))

    async def sweep(self) -> int:
        """Drop expired turns everywhere. Returns the number of chats removed."""
        removed = 0
        for chat_id in list(self._logs):
            async with self._locks(chat_id):
                turns = self._logs.get(chat_id)
                if turns is None:
                    continue
                fresh = self._fresh(turns, self._clock())
                if not fresh:
                    del self._logs[chat_id]
                    removed += 1
                elif len(fresh) != len(turns):
                    self._logs[chat_id] = fresh
        return removed

    def __contains__(self, chat_id: object) -> bool:
        return chat_id in self._logs

    def __len__(self) -> int:
        return len(self._logs)
