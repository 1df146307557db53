"""
Quiz Service: application-layer orchestrator for LLM exchanges.

Each method is one stateless request/response round trip: encode the request,
call the TextCompleter, decode the reply.
"""

import logging
import random
from collections.abc import Callable, Sequence

from ankitutor.application.config import QuizSettings
from ankitutor.domain.constants import (
    CARD_BATCH_MAX_TOKENS,
    EVALUATION_MAX_TOKENS,
    QUESTION_MAX_TOKENS,
)
from ankitutor.domain.errors import AuthError, LLMParseError
from ankitutor.domain.interfaces import TextCompleter
from ankitutor.domain.models import GeneratedCard, QuizFeedback, QuizQuestion, VocabItem

from . import protocol

logger = logging.getLogger(__name__)

CompleterFactory = Callable[[str], TextCompleter]


def _default_completer_factory(api_key: str) -> TextCompleter:
    from ankitutor.infrastructure.adapters.anthropic_client import AnthropicTextCompleter

    return AnthropicTextCompleter(api_key)


class QuizService:
    """
    Generates questions, evaluates answers and proposes new cards.

    Settings are read on every call, so an updated API key or model takes
    effect on the next exchange.
    """

    def __init__(
        self,
        completer_factory: CompleterFactory | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            completer_factory: Builds a TextCompleter from an API key.
            rng: Random source for card-list shuffling.
        """
        self._completer_factory = completer_factory or _default_completer_factory
        self._rng = rng or random.Random()

    def check_credentials(self, settings: QuizSettings) -> None:
        """Raise AuthError when no API key is configured, before any request is made."""
        if not settings.anthropic_api_key:
            raise AuthError("Anthropic API key not configured. Please check your configuration.")

    def _completer(self, settings: QuizSettings) -> TextCompleter:
        self.check_credentials(settings)
        return self._completer_factory(settings.anthropic_api_key)

    async def generate_question(
        self, vocabulary: Sequence[VocabItem], settings: QuizSettings
    ) -> QuizQuestion:
        completer = self._completer(settings)
        prompts = settings.prompts_config
        message = protocol.build_question_message(
            vocabulary,
            prompts.question_instructions,
            settings.direction,
            settings.expose_one_side_only,
            rng=self._rng,
        )
        text = await completer.complete(
            message,
            model=settings.model,
            max_tokens=QUESTION_MAX_TOKENS,
            system=prompts.system_prompt,
        )
        question = protocol.parse_question(text)
        if not question.prompt:
            logger.warning("Question reply had no PROMPT: line; showing the raw reply")
        return question

    async def evaluate_answer(
        self, prompt: str, answer: str, settings: QuizSettings
    ) -> QuizFeedback:
        completer = self._completer(settings)
        prompts = settings.prompts_config
        message = protocol.build_evaluation_message(
            prompt, answer, prompts.evaluation_instructions
        )
        text = await completer.complete(
            message,
            model=settings.model,
            max_tokens=EVALUATION_MAX_TOKENS,
            system=prompts.system_prompt,
        )
        feedback = protocol.parse_evaluation(text)
        logger.debug("Evaluation verdict: %s", feedback.result.value)
        return feedback

    async def generate_cards(
        self,
        prompt: str,
        context_cards: Sequence[VocabItem],
        settings: QuizSettings,
    ) -> list[GeneratedCard]:
        completer = self._completer(settings)
        message = protocol.build_card_batch_message(prompt, context_cards)
        text = await completer.complete(
            message,
            model=settings.model,
            max_tokens=CARD_BATCH_MAX_TOKENS,
        )
        try:
            cards = protocol.parse_card_batch(text)
        except LLMParseError:
            logger.error("Failed to parse card batch reply: %r", text[:200])
            raise
        logger.info("Model proposed %d cards", len(cards))
        return cards
