"""
Per-message dispatch pipeline.

classify -> guard (length, rate) -> extract -> generate -> remember.

Every step short-circuits to None; history is only written once a reply
has actually been produced.
"""

import structlog

from shlyapa.agent.generation import GenerationClient
from shlyapa.agent.triggers import TriggerClassifier
from shlyapa.config import Settings, settings
from shlyapa.models.api import InboundMessage
from shlyapa.monitoring.metrics import DISPATCH_OUTCOMES
from shlyapa.services.backends import build_backend
from shlyapa.services.delivery import (
    DeliveryResult,
    Transport,
    build_flood_wait_retry,
    deliver,
    fallback_target,
)
from shlyapa.services.memory import ConversationMemory
from shlyapa.services.rate_limiter import RateLimiter
from shlyapa.services.resilience import FloodWaitRetry

logger = structlog.get_logger()


class Dispatcher:
    def __init__(
        self,
        settings: Settings,
        classifier: TriggerClassifier,
        rate_limiter: RateLimiter,
        memory: ConversationMemory,
        generator: GenerationClient,
        delivery_policy: FloodWaitRetry | None = None,
    ):
        self.settings = settings
        self.classifier = classifier
        self.rate_limiter = rate_limiter
        self.memory = memory
        self.generator = generator
        self.delivery_policy = delivery_policy or build_flood_wait_retry(settings)

    async def process(
        self,
        text: str,
        chat_id: str | int,
        chat_type: str = "private",
        sender_id: str | int | None = None,
    ) -> str | None:
        """Return the reply for a message, or None to stay silent."""
        # Transports hand out ids as ints or strings; history keys must agree
        chat_key = str(chat_id)

        if not self.classifier.should_engage(text, chat_key, chat_type, sender_id):
            DISPATCH_OUTCOMES.labels(outcome="not_engaged").inc()
            return None

        if len(text) > self.settings.max_message_length:
            DISPATCH_OUTCOMES.labels(outcome="too_long").inc()
            logger.warning(
                "dispatch.message_too_long",
                message_length=len(text),
                max_length=self.settings.max_message_length,
            )
            return None

        if not await self.rate_limiter.admit(sender_id):
            DISPATCH_OUTCOMES.labels(outcome="rate_limited").inc()
            return None

        content = self.classifier.extract_content(text)
        reply = await self.generator.generate(
            content, chat_type=chat_type, chat_id=chat_key
        )
        if not reply:
            DISPATCH_OUTCOMES.labels(outcome="no_reply").inc()
            return None

        await self.memory.append(chat_key, "user", content)
        await self.memory.append(chat_key, "assistant", reply)
        DISPATCH_OUTCOMES.labels(outcome="replied").inc()
        logger.info("dispatch.replied", reply_length=len(reply))
        return reply

    async def handle(self, event: InboundMessage) -> str | None:
        """Outermost boundary for one transport event. Never raises."""
        if event.out or not event.text:
            return None

        with structlog.contextvars.bound_contextvars(
            chat_id=str(event.chat_id), chat_type=event.chat_type
        ):
            try:
                return await self.process(
                    event.text, event.chat_id, event.chat_type, event.sender_id
                )
            except Exception:
                DISPATCH_OUTCOMES.labels(outcome="error").inc()
                logger.exception("dispatch.error")
                return None

    async def respond(
        self, transport: Transport, event: InboundMessage
    ) -> DeliveryResult | None:
        """Handle an event and send the reply back to its chat.

        If the chat id cannot be addressed as given, the reply is retried
        once on the channel-prefixed fallback target.
        """
        reply = await self.handle(event)
        if reply is None:
            return None

        result = await deliver(transport, event.chat_id, reply, self.delivery_policy)
        target = fallback_target(event.chat_id, event.chat_type)
        if not result.success and target != result.target:
            logger.warning("delivery.using_fallback", target=target)
            result = await deliver(transport, target, reply, self.delivery_policy)
        return result


_dispatcher: Dispatcher | None = None


def build_dispatcher(config: Settings) -> Dispatcher:
    """Wire a dispatcher and its registries from settings."""
    memory = ConversationMemory(
        max_messages=config.history_max_messages,
        ttl_seconds=config.history_ttl_seconds,
    )
    rate_limiter = RateLimiter(
        max_requests=config.rate_limit_max,
        window_seconds=config.rate_limit_window_seconds,
    )
    generator = GenerationClient(config, build_backend(config), memory)
    return Dispatcher(
        settings=config,
        classifier=TriggerClassifier(config),
        rate_limiter=rate_limiter,
        memory=memory,
        generator=generator,
        delivery_policy=build_flood_wait_retry(config),
    )


def get_dispatcher() -> Dispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher(settings)
    return _dispatcher
