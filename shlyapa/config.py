"""
Configuration management using Pydantic Settings.

All settings loaded from environment variables (.env file).
"""

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 500

SUPPORTED_PROVIDERS = ("ollama", "openrouter")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Feature switch and provider
    llm_enabled: bool = False
    llm_provider: str = "ollama"  # "ollama" | "openrouter"

    # Sampling
    llm_temperature: float = DEFAULT_TEMPERATURE
    llm_max_tokens: int = DEFAULT_MAX_TOKENS

    # Triggering
    llm_allowed_chats: str = ""  # Comma-separated chat ids
    llm_trigger_words: str = "ai,bot,help"  # Comma-separated
    llm_shlyapa_in_groups: bool = False
    bot_owner_id: int | None = None

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:1b"

    # OpenRouter
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: SecretStr = SecretStr("")
    openrouter_model: str = "google/gemini-2.0-flash-exp:free"
    openrouter_referer: str = "telegram-ai-bot"
    openrouter_title: str = "telegram-ai-bot"

    # Backend calls
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 2

    # Rate limiting (per sender)
    rate_limit_max: int = 10
    rate_limit_window_seconds: float = 60.0

    # Conversation history (per chat)
    history_max_messages: int = 30
    history_ttl_seconds: float = 3600.0

    # Message constraints
    max_message_length: int = 8000

    # Transport flood control
    flood_wait_max_retries: int = 2
    flood_wait_max_seconds: int = 300

    # Background sweep of expired rate windows and conversations
    sweep_interval_seconds: float = 300.0

    # Logging
    log_level: str = "INFO"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    # Environment
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: object) -> str:
        return str(value or "ollama").strip().lower()

    @field_validator("llm_temperature", mode="before")
    @classmethod
    def _validate_temperature(cls, value: object) -> float:
        """Out-of-range or unparsable temperatures fall back to the default."""
        try:
            temperature = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return DEFAULT_TEMPERATURE
        if not 0 <= temperature <= 2:
            return DEFAULT_TEMPERATURE
        return temperature

    @field_validator("llm_max_tokens", mode="before")
    @classmethod
    def _validate_max_tokens(cls, value: object) -> int:
        """Out-of-range or unparsable token limits fall back to the default."""
        try:
            tokens = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return DEFAULT_MAX_TOKENS
        if not 1 <= tokens <= 4000:
            return DEFAULT_MAX_TOKENS
        return tokens

    @field_validator("bot_owner_id", mode="before")
    @classmethod
    def _empty_owner_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def allowed_chats_list(self) -> list[str]:
        """Parse allowed chat ids into list."""
        return [c.strip() for c in self.llm_allowed_chats.split(",") if c.strip()]

    @property
    def trigger_words_list(self) -> list[str]:
        """Parse trigger words into a lowercase list."""
        return [
            w.strip().lower() for w in self.llm_trigger_words.split(",") if w.strip()
        ]


# Global settings instance
settings = Settings()
