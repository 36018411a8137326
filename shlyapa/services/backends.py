"""Generation backends: a local Ollama server or the OpenRouter API.

Both take the same role-tagged message list and sampling parameters and
return the raw reply text (or None when the response carries none).
Transport and HTTP errors propagate so the caller's retry policy can
classify them.
"""

from typing import Union

import httpx
import structlog
from openai import AsyncOpenAI

from shlyapa.config import SUPPORTED_PROVIDERS, Settings
from shlyapa.services.errors import BackendNotConfigured

logger = structlog.get_logger()

Messages = list[dict[str, str]]


class OllamaBackend:
    """Ollama ``/api/chat`` client."""

    name = "ollama"

    def __init__(self, host: str, model: str, timeout: float = 30.0):
        self.host = host.rstrip("/")
        self.model = model
        self._client = httpx.AsyncClient(base_url=self.host, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return self.host

    async def complete(
        self, messages: Messages, temperature: float, max_tokens: int
    ) -> str | None:
        response = await self._client.post(
            "/api/chat",
            json={
                "model": self.model,
                "messages": messages,
                "options": {
                    "temperature": temperature,
                    "num_predict": max_tokens,
                },
                "stream": False,
            },
        )
        response.raise_for_status()
        message = response.json().get("message") or {}
        return message.get("content")

    async def ping(self) -> bool:
        """Check the Ollama server answers its model listing."""
        try:
            response = await self._client.get("/api/tags")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        await self._client.aclose()


class OpenRouterBackend:
    """OpenRouter chat completions via the OpenAI-compatible API."""

    name = "openrouter"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        referer: str,
        title: str,
        timeout: float = 30.0,
    ):
        self.base_url = base_url
        self.model = model
        self._api_key = api_key
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                # Retries are owned by BackoffRetry
                max_retries=0,
                default_headers={"HTTP-Referer": referer, "X-Title": title},
            )

    @property
    def endpoint(self) -> str:
        return self.base_url

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(
        self, messages: Messages, temperature: float, max_tokens: int
    ) -> str | None:
        if self._client is None:
            raise BackendNotConfigured("OpenRouter API key missing. Set OPENROUTER_API_KEY")
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            temperature=temperature,
            max_tokens=max_tokens,
            stream=False,
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def ping(self) -> bool:
        """OpenRouter health is the presence of an API key."""
        return self.configured

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()


Backend = Union[OllamaBackend, OpenRouterBackend]


def build_backend(settings: Settings) -> Backend:
    """Create the backend selected by ``llm_provider``."""
    provider = settings.llm_provider
    if provider not in SUPPORTED_PROVIDERS:
        logger.warning(
            "backend.unknown_provider", provider=provider, fallback="ollama"
        )
        provider = "ollama"

    if provider == "openrouter":
        api_key = settings.openrouter_api_key.get_secret_value()
        backend: Backend = OpenRouterBackend(
            base_url=settings.openrouter_base_url,
            api_key=api_key,
            model=settings.openrouter_model,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
            timeout=settings.llm_timeout_seconds,
        )
    else:
        backend = OllamaBackend(
            host=settings.ollama_host,
            model=settings.ollama_model,
            timeout=settings.llm_timeout_seconds,
        )

    logger.info(
        "backend.initialized",
        provider=backend.name,
        model=backend.model,
        endpoint=backend.endpoint,
    )
    return backend
