"""Error types and classification for backend and transport failures."""

import asyncio

import httpx
import openai

# Seconds to wait when a flood-wait signal carries no parsable duration
DEFAULT_FLOOD_WAIT_SECONDS = 60

_FLOOD_WAIT_PREFIX = "FLOOD_WAIT_"


class FloodWait(Exception):
    """Raised by a transport that must not be called again for ``seconds``."""

    def __init__(self, seconds: int, message: str | None = None):
        self.seconds = seconds
        super().__init__(message or f"{_FLOOD_WAIT_PREFIX}{seconds}")


class BackendNotConfigured(Exception):
    """Raised when a generation backend lacks required configuration."""

    pass


def is_transient(error: BaseException) -> bool:
    """True for timeouts, refused connections and 5xx responses.

    Everything else (4xx, malformed payloads, programming errors) is treated
    as permanent.
    """
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    if isinstance(error, openai.APIStatusError):
        return error.status_code >= 500
    return isinstance(
        error,
        (
            httpx.TimeoutException,
            httpx.ConnectError,
            openai.APIConnectionError,  # includes APITimeoutError
            asyncio.TimeoutError,
            TimeoutError,
            ConnectionRefusedError,
        ),
    )


def is_timeout(error: BaseException) -> bool:
    return isinstance(
        error,
        (httpx.TimeoutException, openai.APITimeoutError, asyncio.TimeoutError, TimeoutError),
    )


def flood_wait_seconds(error: BaseException) -> int | None:
    """Return the server-dictated wait carried by ``error``, or None.

    Recognizes our own FloodWait, transport errors exposing ``seconds`` whose
    class name mentions FloodWait, and raw ``FLOOD_WAIT_<n>`` messages.
    """
    if isinstance(error, FloodWait):
        return error.seconds

    seconds = getattr(error, "seconds", None)
    if "FloodWait" in type(error).__name__ and isinstance(seconds, int):
        return seconds

    message = getattr(error, "message", None) or str(error)
    if isinstance(message, str) and message.startswith(_FLOOD_WAIT_PREFIX):
        parts = message.split("_")
        try:
            return int(parts[2]) or DEFAULT_FLOOD_WAIT_SECONDS
        except (IndexError, ValueError):
            return DEFAULT_FLOOD_WAIT_SECONDS
    return None
