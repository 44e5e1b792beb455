"""Async chat-completions client for the OpenAI-compatible provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import openai

from src.config import settings
from src.errors import ConfigurationError, ProviderError

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

_client: AsyncOpenAI | None = None


def ensure_configured() -> None:
    """Raise ConfigurationError when no provider credential is set."""
    if not settings.openai_api_key:
        msg = "OpenAI API key not configured"
        raise ConfigurationError(msg)


def _get_client() -> AsyncOpenAI:
    """Return a lazily-initialised AsyncOpenAI singleton."""
    global _client  # noqa: PLW0603
    if _client is None:
        ensure_configured()
        # Failures are turned into a fallback reply, never retried.
        _client = openai.AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.get_openai_base_url(),
            max_retries=0,
        )
    return _client


def _reset() -> None:
    """Drop the cached client (for testing or key rotation)."""
    global _client  # noqa: PLW0603
    _client = None


def _extract_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise ProviderError("provider returned no choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content:
        raise ProviderError("provider returned an empty message")
    return content


async def complete_chat(
    messages: list[dict[str, Any]],
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
) -> str:
    """Submit *messages* and return the reply text verbatim.

    Sampling parameters default to the configured constants.

    Raises:
        ConfigurationError: no API key is configured.
        ProviderError: non-success status, transport failure or a reply
            without text content.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or settings.chat_model,
        "messages": messages,
        "temperature": settings.chat_temperature if temperature is None else temperature,
        "max_tokens": max_tokens or settings.chat_max_tokens,
    }
    logger.info("Calling %s with %d messages", kwargs["model"], len(messages))
    try:
        response = await client.chat.completions.create(**kwargs)
    except openai.APIStatusError as exc:
        raise ProviderError(
            f"OpenAI API error: {exc.status_code} - {exc.message}",
            status_code=exc.status_code,
        ) from exc
    except openai.APIError as exc:
        raise ProviderError(f"OpenAI API error: {exc}") from exc

    return _extract_text(response)
