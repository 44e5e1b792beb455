"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Singular configuration. All values come from environment variables."""

    # OpenAI-compatible chat provider
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="")
    chat_model: str = Field(default="gpt-4o-mini")
    chat_temperature: float = Field(default=0.8)
    chat_max_tokens: int = Field(default=3000)

    # Database
    database_path: Path = Field(default=Path("data/singular.db"))

    # Turso (hosted libSQL) — when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Context injected into the system prompt
    context_ideas_limit: int = Field(default=10)
    context_memories_limit: int = Field(default=10)
    context_conversations_limit: int = Field(default=5)

    # Conversation persistence on the chat path
    persist_conversations: bool = Field(default=False)

    # HTTP server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8000)
    cors_allow_origin: str = Field(default="*")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_openai_base_url(self) -> str | None:
        """Return the provider base URL, or None for the SDK default."""
        url = self.openai_base_url.strip()
        return url or None


settings = Settings()
