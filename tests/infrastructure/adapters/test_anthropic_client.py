from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from ankitutor.domain.errors import AuthError, LLMServiceError
from ankitutor.infrastructure.adapters.anthropic_client import AnthropicTextCompleter


def _response(*blocks):
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )


@pytest.fixture
def client():
    c = MagicMock()
    c.messages.create = AsyncMock()
    return c


def test_empty_key_is_rejected():
    with pytest.raises(AuthError):
        AnthropicTextCompleter("")


@pytest.mark.asyncio
async def test_complete_returns_first_text_block(client):
    client.messages.create.return_value = _response(
        SimpleNamespace(type="thinking", thinking="..."),
        SimpleNamespace(type="text", text="PROMPT: hi"),
    )
    completer = AnthropicTextCompleter("key", client=client)

    text = await completer.complete("hello", model="claude-haiku-4-5", max_tokens=1024, system="sys")

    assert text == "PROMPT: hi"
    client.messages.create.assert_awaited_once_with(
        model="claude-haiku-4-5",
        max_tokens=1024,
        messages=[{"role": "user", "content": "hello"}],
        system="sys",
    )


@pytest.mark.asyncio
async def test_complete_without_system(client):
    client.messages.create.return_value = _response()
    completer = AnthropicTextCompleter("key", client=client)
    assert await completer.complete("hello", model="m", max_tokens=10) == ""
    assert "system" not in client.messages.create.await_args.kwargs


@pytest.mark.asyncio
async def test_authentication_error_maps_to_auth_error(client):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client.messages.create.side_effect = anthropic.AuthenticationError(
        "invalid x-api-key", response=httpx.Response(401, request=request), body=None
    )
    completer = AnthropicTextCompleter("bad", client=client)
    with pytest.raises(AuthError):
        await completer.complete("hello", model="m", max_tokens=10)


@pytest.mark.asyncio
async def test_connection_error_maps_to_service_error(client):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
    completer = AnthropicTextCompleter("key", client=client)
    with pytest.raises(LLMServiceError):
        await completer.complete("hello", model="m", max_tokens=10)
