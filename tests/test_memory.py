"""Tests for per-chat conversation memory."""

import asyncio
import dataclasses

import pytest

from shlyapa.services.memory import ConversationMemory, ConversationTurn


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _contents(turns):
    return [(t.role, t.content) for t in turns]


class TestConversationMemory:
    @pytest.mark.asyncio
    async def test_unknown_chat_reads_empty(self):
        memory = ConversationMemory()
        assert await memory.read("chat-1") == []

    @pytest.mark.asyncio
    async def test_preserves_insertion_order(self):
        memory = ConversationMemory()
        await memory.append("chat-1", "user", "привіт")
        await memory.append("chat-1", "assistant", "Привіт!")
        await memory.append("chat-1", "user", "як справи?")

        assert _contents(await memory.read("chat-1")) == [
            ("user", "привіт"),
            ("assistant", "Привіт!"),
            ("user", "як справи?"),
        ]

    @pytest.mark.asyncio
    async def test_chats_are_isolated(self):
        memory = ConversationMemory()
        await memory.append("chat-1", "user", "one")
        await memory.append("chat-2", "user", "two")
        assert _contents(await memory.read("chat-1")) == [("user", "one")]
        assert _contents(await memory.read("chat-2")) == [("user", "two")]

    @pytest.mark.asyncio
    async def test_keeps_only_most_recent_turns(self):
        memory = ConversationMemory(max_messages=3)
        for i in range(5):
            await memory.append("chat-1", "user", f"m{i}")

        assert [t.content for t in await memory.read("chat-1")] == ["m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_read_hides_expired_turns(self):
        clock = FakeClock()
        memory = ConversationMemory(ttl_seconds=60, clock=clock)
        await memory.append("chat-1", "user", "old")
        clock.advance(30)
        await memory.append("chat-1", "user", "new")

        clock.advance(30)
        assert [t.content for t in await memory.read("chat-1")] == ["new"]

    @pytest.mark.asyncio
    async def test_read_is_non_destructive(self):
        clock = FakeClock()
        memory = ConversationMemory(ttl_seconds=60, clock=clock)
        await memory.append("chat-1", "user", "old")

        clock.advance(61)
        assert await memory.read("chat-1") == []
        # Stored log is only dropped by append or sweep
        assert "chat-1" in memory

    @pytest.mark.asyncio
    async def test_append_prunes_expired_turns(self):
        clock = FakeClock()
        memory = ConversationMemory(ttl_seconds=60, clock=clock)
        await memory.append("chat-1", "user", "old")
        clock.advance(61)
        await memory.append("chat-1", "user", "new")

        # Rewind: a pruned turn does not come back
        clock.now -= 61
        assert [t.content for t in await memory.read("chat-1")] == ["new"]

    @pytest.mark.asyncio
    async def test_sweep_drops_empty_chats_and_trims_others(self):
        clock = FakeClock()
        memory = ConversationMemory(ttl_seconds=60, clock=clock)
        await memory.append("silent", "user", "bye")
        await memory.append("active", "user", "old")
        clock.advance(40)
        await memory.append("active", "user", "recent")

        clock.advance(30)
        removed = await memory.sweep()

        assert removed == 1
        assert "silent" not in memory
        assert len(memory) == 1
        assert [t.content for t in await memory.read("active")] == ["recent"]

    @pytest.mark.asyncio
    async def test_concurrent_appends_respect_bound(self):
        memory = ConversationMemory(max_messages=10)
        await asyncio.gather(
            *(memory.append("chat-1", "user", str(i)) for i in range(50))
        )
        turns = await memory.read("chat-1")
        assert len(turns) == 10

    @pytest.mark.asyncio
    async def test_zero_bound_keeps_nothing(self):
        memory = ConversationMemory(max_messages=0)
        await memory.append("chat-1", "user", "hi")
        await memory.append("chat-1", "assistant", "hello")
        assert await memory.read("chat-1") == []

    def test_turns_are_immutable(self):
        turn = ConversationTurn(role="user", content="hi", created_at=0.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            turn.content = "changed"  # type: ignore[misc]

    def test_turn_to_message(self):
        turn = ConversationTurn(role="assistant", content="hi", created_at=0.0)
        assert turn.to_message() == {"role": "assistant", "content": "hi"}
