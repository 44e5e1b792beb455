"""Tests for the chat-completions client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from src.errors import ConfigurationError, ProviderError
from src.llm import client as llm_client
from src.llm.client import complete_chat, ensure_configured

MESSAGES = [{"role": "user", "content": "hi"}]


def _response(content):
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _mock_client(**create_kwargs) -> MagicMock:
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock(**create_kwargs)
    return mock_client


async def test_complete_chat_returns_reply_verbatim() -> None:
    mock_client = _mock_client(return_value=_response("  resposta  "))

    with patch("src.llm.client._get_client", return_value=mock_client):
        result = await complete_chat(MESSAGES)

    assert result == "  resposta  "
    call_kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert call_kwargs["messages"] == MESSAGES
    assert call_kwargs["model"] == "gpt-4o-mini"
    assert call_kwargs["temperature"] == 0.8
    assert call_kwargs["max_tokens"] == 3000


async def test_complete_chat_overrides() -> None:
    mock_client = _mock_client(return_value=_response("ok"))

    with patch("src.llm.client._get_client", return_value=mock_client):
        await complete_chat(MESSAGES, model="gpt-4o", temperature=0.0, max_tokens=10)

    call_kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert call_kwargs["model"] == "gpt-4o"
    assert call_kwargs["temperature"] == 0.0
    assert call_kwargs["max_tokens"] == 10


async def test_status_error_becomes_provider_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.APIStatusError(
        "rate limited",
        response=httpx.Response(429, request=request),
        body=None,
    )
    mock_client = _mock_client(side_effect=error)

    with (
        patch("src.llm.client._get_client", return_value=mock_client),
        pytest.raises(ProviderError) as exc_info,
    ):
        await complete_chat(MESSAGES)

    assert exc_info.value.status_code == 429


async def test_connection_error_becomes_provider_error() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    mock_client = _mock_client(side_effect=openai.APIConnectionError(request=request))

    with (
        patch("src.llm.client._get_client", return_value=mock_client),
        pytest.raises(ProviderError),
    ):
        await complete_chat(MESSAGES)


@pytest.mark.parametrize("content", [None, ""])
async def test_empty_message_is_malformed(content) -> None:
    mock_client = _mock_client(return_value=_response(content))

    with (
        patch("src.llm.client._get_client", return_value=mock_client),
        pytest.raises(ProviderError),
    ):
        await complete_chat(MESSAGES)


async def test_no_choices_is_malformed() -> None:
    response = MagicMock()
    response.choices = []
    mock_client = _mock_client(return_value=response)

    with (
        patch("src.llm.client._get_client", return_value=mock_client),
        pytest.raises(ProviderError),
    ):
        await complete_chat(MESSAGES)


def test_missing_key_is_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("src.config.settings.openai_api_key", "")
    llm_client._reset()

    with pytest.raises(ConfigurationError):
        ensure_configured()
    with pytest.raises(ConfigurationError):
        llm_client._get_client()


def test_client_is_cached(api_key: str) -> None:
    first = llm_client._get_client()
    assert llm_client._get_client() is first
    assert first.max_retries == 0
