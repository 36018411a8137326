"""Tests for the backoff and flood-wait retry policies."""

import httpx
import pytest

from shlyapa.services.errors import FloodWait
from shlyapa.services.resilience import BackoffRetry, FloodWaitRetry


def _recording_sleep():
    delays: list[float] = []

    async def sleep(delay: float) -> None:
        delays.append(delay)

    return delays, sleep


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://localhost:11434/api/chat")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("server error", request=request, response=response)


class TestBackoffRetry:
    @pytest.mark.asyncio
    async def test_succeeds_without_retry(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def success():
            nonlocal call_count
            call_count += 1
            return "ok"

        result = await BackoffRetry(sleep=sleep).call(success)
        assert result == "ok"
        assert call_count == 1
        assert delays == []

    @pytest.mark.asyncio
    async def test_two_timeouts_then_success(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise httpx.ConnectTimeout("timed out")
            return "recovered"

        result = await BackoffRetry(max_retries=2, sleep=sleep).call(flaky)
        assert result == "recovered"
        assert call_count == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_raises_last_error_after_max_retries(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def always_refused():
            nonlocal call_count
            call_count += 1
            raise httpx.ConnectError(f"refused #{call_count}")

        with pytest.raises(httpx.ConnectError, match="refused #3"):
            await BackoffRetry(max_retries=2, sleep=sleep).call(always_refused)
        assert call_count == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def wrong_error():
            nonlocal call_count
            call_count += 1
            raise ValueError("not retryable")

        with pytest.raises(ValueError):
            await BackoffRetry(sleep=sleep).call(wrong_error)
        assert call_count == 1  # No retries for ValueError
        assert delays == []

    @pytest.mark.asyncio
    async def test_retries_5xx_but_not_4xx(self):
        delays, sleep = _recording_sleep()
        errors = [_status_error(503), _status_error(404)]

        async def call():
            raise errors.pop(0)

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await BackoffRetry(sleep=sleep).call(call)
        assert exc_info.value.response.status_code == 404
        assert delays == [1.0]

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self):
        async def echo(a, b=None):
            return (a, b)

        assert await BackoffRetry().call(echo, 1, b=2) == (1, 2)

    def test_delay_is_capped(self):
        policy = BackoffRetry(max_retries=6)
        timeout = httpx.ReadTimeout("slow")
        delays = [policy.next_delay(timeout, attempt) for attempt in range(6)]
        assert delays == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]
        assert policy.next_delay(timeout, 6) is None

    def test_ignores_flood_wait(self):
        assert BackoffRetry().next_delay(FloodWait(5), 0) is None


class TestFloodWaitRetry:
    @pytest.mark.asyncio
    async def test_waits_requested_seconds_then_retries(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def send():
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise FloodWait(7)
            return "sent"

        result = await FloodWaitRetry(sleep=sleep).call(send)
        assert result == "sent"
        assert delays == [7.0]

    @pytest.mark.asyncio
    async def test_wait_above_maximum_fails_without_sleeping(self):
        delays, sleep = _recording_sleep()

        async def send():
            raise FloodWait(301)

        with pytest.raises(FloodWait):
            await FloodWaitRetry(max_wait_seconds=300, sleep=sleep).call(send)
        assert delays == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        delays, sleep = _recording_sleep()
        call_count = 0

        async def send():
            nonlocal call_count
            call_count += 1
            raise FloodWait(2)

        with pytest.raises(FloodWait):
            await FloodWaitRetry(max_retries=2, sleep=sleep).call(send)
        assert call_count == 3
        assert delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        delays, sleep = _recording_sleep()

        async def send():
            raise httpx.ConnectTimeout("timed out")

        with pytest.raises(httpx.ConnectTimeout):
            await FloodWaitRetry(sleep=sleep).call(send)
        assert delays == []

    @pytest.mark.asyncio
    async def test_understands_raw_flood_wait_messages(self):
        delays, sleep = _recording_sleep()
        errors = [RuntimeError("FLOOD_WAIT_3")]

        async def send():
            if errors:
                raise errors.pop()
            return "sent"

        assert await FloodWaitRetry(sleep=sleep).call(send) == "sent"
        assert delays == [3.0]
