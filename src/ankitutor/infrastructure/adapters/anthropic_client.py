"""Anthropic text-completion adapter."""

import logging

import anthropic

from ankitutor.domain.errors import AuthError, LLMServiceError
from ankitutor.domain.interfaces import TextCompleter

logger = logging.getLogger(__name__)


class AnthropicTextCompleter(TextCompleter):
    """Single-shot wrapper around the Anthropic Messages API.

    No retry and no conversation history: every call is an independent
    request/response exchange.
    """

    def __init__(self, api_key: str, client: anthropic.AsyncAnthropic | None = None) -> None:
        if not api_key:
            # Checked before any request is attempted
            raise AuthError("Anthropic API key not configured. Please check your configuration.")
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    async def complete(
        self,
        user_message: str,
        *,
        model: str,
        max_tokens: int,
        system: str | None = None,
    ) -> str:
        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.AuthenticationError as e:
            logger.error("Anthropic rejected the API key: %s", e)
            raise AuthError(f"Anthropic API key rejected: {e}") from e
        except anthropic.APIError as e:
            logger.error("Anthropic request failed: %s", e)
            raise LLMServiceError(f"LLM request failed: {e}") from e

        logger.debug(
            "Tokens used: %d in, %d out",
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return ""
