"""Reply delivery over a chat transport, honouring flood control."""

from dataclasses import dataclass
from typing import Protocol

import structlog

from shlyapa.agent.triggers import CHANNEL_PREFIX
from shlyapa.config import Settings, settings
from shlyapa.services.resilience import FloodWaitRetry

logger = structlog.get_logger()


class Transport(Protocol):
    """The send half of a chat transport client."""

    async def send_message(self, target: str, text: str) -> None: ...


@dataclass
class DeliveryResult:
    success: bool
    target: str
    error: str | None = None


def fallback_target(chat_id: str | int, chat_type: str) -> str:
    """Addressable target for a chat when the resolved peer is unavailable.

    Channels (supergroups) are addressed with the ``-100`` prefix.
    """
    target = str(chat_id)
    if chat_type == "channel" and not target.startswith("-"):
        return f"{CHANNEL_PREFIX}{target}"
    return target


def build_flood_wait_retry(config: Settings) -> FloodWaitRetry:
    """Flood-wait policy bounded by the configured retries and maximum wait."""
    return FloodWaitRetry(
        max_retries=config.flood_wait_max_retries,
        max_wait_seconds=config.flood_wait_max_seconds,
    )


async def deliver(
    transport: Transport,
    target: str | int,
    text: str,
    policy: FloodWaitRetry | None = None,
) -> DeliveryResult:
    """Send ``text`` to ``target``, waiting out flood control when asked to."""
    target_str = str(target)
    policy = policy or build_flood_wait_retry(settings)
    try:
        await policy.call(transport.send_message, target_str, text)
    except Exception as e:
        logger.error(
            "delivery.failed", target=target_str, error_type=type(e).__name__
        )
        return DeliveryResult(success=False, target=target_str, error=str(e))

    logger.info("delivery.sent", target=target_str)
    return DeliveryResult(success=True, target=target_str)
