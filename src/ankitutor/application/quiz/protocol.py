"""
LLM request/response protocol.

Builds the user messages for question generation, answer evaluation and card
batch generation, and decodes the model's free-text replies. Decoding is
lenient for questions and verdicts (a missing marker leaves the
field empty) and strict for card batches (anything but a JSON array of
front/back objects is an error).

This is a pure module with no I/O.
"""

import json
import random
import re
from collections.abc import Sequence

from ankitutor.domain.errors import AnswerValidationError, LLMParseError
from ankitutor.domain.models import (
    Direction,
    GeneratedCard,
    QuizFeedback,
    QuizQuestion,
    Verdict,
    VocabItem,
)

PROMPT_MARKER = "PROMPT:"
RESULT_MARKER = "RESULT:"
FEEDBACK_MARKER = "FEEDBACK:"

CARD_BATCH_INSTRUCTION = (
    'IMPORTANT: Please provide the output strictly as a JSON array of objects, where each '
    'object has "front" and "back" string fields. Do not include any other text, preamble, '
    "or markdown formatting outside the JSON structure."
)

_FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\r?\n(.*?)\r?\n?```", re.DOTALL | re.IGNORECASE)


def _format_card(item: VocabItem) -> str:
    return f"Front: {item.front} | Back: {item.back}"


# ---------- Question generation ----------


def build_question_message(
    vocabulary: Sequence[VocabItem],
    instructions: str,
    direction: Direction,
    expose_one_side_only: bool,
    rng: random.Random | None = None,
) -> str:
    """
    Compose the question-authoring message.

    With expose_one_side_only, only the side the learner is shown is listed
    (front for front → back, back for back → front), keeping the answer out
    of the message. Card order is shuffled on every call.
    """
    rng = rng or random.Random()

    if expose_one_side_only:
        if direction == Direction.FRONT_TO_BACK:
            lines = [item.front for item in vocabulary]
            heading = "Cards (front side only):"
        else:
            lines = [item.back for item in vocabulary]
            heading = "Cards (back side only):"
    else:
        lines = [_format_card(item) for item in vocabulary]
        heading = "Available cards:"

    rng.shuffle(lines)
    cards_text = "\n".join(lines)
    return f"{instructions}\n\nQuiz direction: {direction.value}\n{heading}\n{cards_text}"


def parse_question(text: str) -> QuizQuestion:
    """Extract the ``PROMPT:`` line; the last one wins, none leaves the prompt empty."""
    prompt = ""
    for line in text.splitlines():
        if line.startswith(PROMPT_MARKER):
            prompt = line[len(PROMPT_MARKER) :].strip()
    return QuizQuestion(question=text, prompt=prompt)


# ---------- Answer evaluation ----------


EMPTY_ANSWER_MESSAGE = "Please enter your answer first"


def validate_answer(answer: str) -> str:
    """Reject blank answers before any evaluation request is made."""
    if not answer.strip():
        raise AnswerValidationError(EMPTY_ANSWER_MESSAGE)
    return answer


def build_evaluation_message(prompt: str, answer: str, instructions: str) -> str:
    return (
        f'The question was:\n"{prompt}"\n\n'
        f'The student\'s answer:\n"{answer}"\n\n'
        f"{instructions}"
    )


def parse_evaluation(text: str) -> QuizFeedback:
    """
    Extract the verdict and feedback.

    Only an exact ``PASS`` or ``FAIL`` after ``RESULT:`` counts; any other value
    is ignored and the verdict stays FAIL.
    """
    result = Verdict.FAIL
    feedback = ""
    for line in text.splitlines():
        if line.startswith(RESULT_MARKER):
            value = line[len(RESULT_MARKER) :].strip()
            if value in (Verdict.PASS.value, Verdict.FAIL.value):
                result = Verdict(value)
        elif line.startswith(FEEDBACK_MARKER):
            feedback = line[len(FEEDBACK_MARKER) :].strip()
    return QuizFeedback(result=result, feedback_text=feedback, feedback_full=text)


# ---------- Card batch generation ----------


def build_card_batch_message(prompt: str, context_cards: Sequence[VocabItem] = ()) -> str:
    message = prompt
    if context_cards:
        cards_text = "\n".join(_format_card(card) for card in context_cards)
        message += f"\n\nHere is the set of existing Anki cards:\n{cards_text}"
    return f"{message}\n\n{CARD_BATCH_INSTRUCTION}"


def strip_code_fence(text: str) -> str:
    """Return the interior of the first fenced code block, or the trimmed text."""
    stripped = text.strip()
    match = _FENCED_BLOCK.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_card_batch(text: str) -> list[GeneratedCard]:
    """Decode a JSON array of ``{"front", "back"}`` objects.

    Never returns an empty list in place of a failure: every malformed reply
    raises LLMParseError with an excerpt of the raw text.
    """
    payload = strip_code_fence(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise LLMParseError(f"Failed to parse model response as JSON ({e.msg})", raw=text) from e

    if not isinstance(data, list):
        raise LLMParseError("Model response is not an array", raw=text)

    cards = []
    for index, item in enumerate(data):
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("front"), str)
            or not isinstance(item.get("back"), str)
        ):
            raise LLMParseError(
                f'Item {index} is not an object with string "front" and "back" fields', raw=text
            )
        cards.append(GeneratedCard(front=item["front"], back=item["back"]))
    return cards
