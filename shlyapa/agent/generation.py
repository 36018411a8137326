"""Reply generation: prompt assembly, backend call, result normalization."""

import time

import structlog

from shlyapa.agent.prompts import system_prompt
from shlyapa.config import Settings
from shlyapa.monitoring.metrics import LLM_CALLS, LLM_DURATION, LLM_ERRORS
from shlyapa.services.backends import Backend, OpenRouterBackend
from shlyapa.services.errors import is_timeout
from shlyapa.services.memory import ConversationMemory
from shlyapa.services.resilience import BackoffRetry

logger = structlog.get_logger()


class GenerationClient:
    """Builds the message list for a chat and asks the backend for a reply."""

    def __init__(
        self,
        settings: Settings,
        backend: Backend,
        memory: ConversationMemory,
        retry: BackoffRetry | None = None,
    ):
        self.settings = settings
        self.backend = backend
        self.memory = memory
        self.retry = retry or BackoffRetry(max_retries=settings.llm_max_retries)

    async def build_messages(
        self, content: str, chat_type: str | None, chat_id: str | None
    ) -> list[dict[str, str]]:
        """System prompt, then the chat's history, then the new user message."""
        messages = [{"role": "system", "content": system_prompt(chat_type)}]
        if chat_id:
            for turn in await self.memory.read(chat_id):
                messages.append(turn.to_message())
        messages.append({"role": "user", "content": content})
        return messages

    async def generate(
        self,
        content: str,
        chat_type: str | None = "private",
        chat_id: str | None = None,
    ) -> str | None:
        """Return the trimmed reply, or None if nothing could be generated."""
        if not self.settings.llm_enabled:
            return None

        backend = self.backend
        if isinstance(backend, OpenRouterBackend) and not backend.configured:
            logger.error(
                "generation.not_configured",
                provider=backend.name,
                reason="OpenRouter API key missing. Set OPENROUTER_API_KEY",
            )
            return None

        messages = await self.build_messages(content, chat_type, chat_id)
        LLM_CALLS.labels(provider=backend.name, model=backend.model).inc()
        start = time.perf_counter()
        try:
            text = await self.retry.call(
                backend.complete,
                messages,
                temperature=self.settings.llm_temperature,
                max_tokens=self.settings.llm_max_tokens,
            )
        except Exception as e:
            # Response bodies may echo credentials; log the type only
            LLM_ERRORS.labels(provider=backend.name, error_type=type(e).__name__).inc()
            logger.error(
                "generation.failed",
                provider=backend.name,
                error_type=type(e).__name__,
                timeout=is_timeout(e),
            )
            return None
        finally:
            LLM_DURATION.labels(provider=backend.name).observe(
                time.perf_counter() - start
            )

        reply = (text or "").strip()
        if not reply:
            LLM_ERRORS.labels(provider=backend.name, error_type="EmptyResponse").inc()
            logger.warning("generation.empty_response", provider=backend.name)
            return None

        logger.info(
            "generation.completed",
            provider=backend.name,
            history_messages=len(messages) - 2,
            reply_length=len(reply),
            duration=f"{time.perf_counter() - start:.3f}s",
        )
        return reply

    async def status(self) -> dict:
        """Read-only snapshot of the generation configuration and health."""
        healthy = await self.backend.ping()
        return {
            "enabled": self.settings.llm_enabled,
            "provider": self.backend.name,
            "healthy": healthy,
            "model": self.backend.model,
            "host": self.backend.endpoint,
            "allowed_chats_count": len(self.settings.allowed_chats_list),
            "trigger_words": self.settings.trigger_words_list,
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.llm_max_tokens,
        }
