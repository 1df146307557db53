import random

import pytest

from ankitutor.application.quiz import protocol
from ankitutor.domain.errors import AnswerValidationError, LLMParseError
from ankitutor.domain.models import Direction, Verdict, VocabItem

VOCAB = [
    VocabItem(front="hund", back="dog"),
    VocabItem(front="katt", back="cat"),
    VocabItem(front="häst", back="horse"),
]


# ---------- Question message ----------


def test_question_message_back_side_only():
    msg = protocol.build_question_message(
        VOCAB, "Ask something.", Direction.BACK_TO_FRONT, True, rng=random.Random(1)
    )
    assert msg.startswith("Ask something.\n\nQuiz direction: back → front\n")
    assert "Cards (back side only):" in msg
    for item in VOCAB:
        assert item.back in msg
        assert item.front not in msg


def test_question_message_front_side_only():
    msg = protocol.build_question_message(
        VOCAB, "Ask.", Direction.FRONT_TO_BACK, True, rng=random.Random(1)
    )
    assert "Quiz direction: front → back" in msg
    assert "Cards (front side only):" in msg
    assert "dog" not in msg
    assert "hund" in msg


def test_question_message_both_sides():
    msg = protocol.build_question_message(
        VOCAB, "Ask.", Direction.FRONT_TO_BACK, False, rng=random.Random(1)
    )
    assert "Available cards:" in msg
    assert "Front: hund | Back: dog" in msg


def test_question_message_shuffle_is_seeded():
    msg = protocol.build_question_message(
        VOCAB, "Ask.", Direction.BACK_TO_FRONT, True, rng=random.Random(7)
    )
    expected = [item.back for item in VOCAB]
    random.Random(7).shuffle(expected)
    assert msg.endswith("\n".join(expected))


# ---------- Question reply ----------


def test_parse_question_extracts_prompt():
    text = "Here is a question.\nPROMPT: What is the capital?"
    question = protocol.parse_question(text)
    assert question.prompt == "What is the capital?"
    assert question.question == text


def test_parse_question_without_marker():
    question = protocol.parse_question("I forgot the format")
    assert question.prompt == ""
    assert question.question == "I forgot the format"


def test_parse_question_last_marker_wins():
    question = protocol.parse_question("PROMPT: first\nPROMPT: second")
    assert question.prompt == "second"


# ---------- Evaluation ----------


def test_evaluation_message_quotes_prompt_and_answer():
    msg = protocol.build_evaluation_message("Translate dog", "hund", "Grade it.")
    assert msg == 'The question was:\n"Translate dog"\n\nThe student\'s answer:\n"hund"\n\nGrade it.'


def test_parse_evaluation_pass():
    feedback = protocol.parse_evaluation("RESULT: PASS\nFEEDBACK: Good job")
    assert feedback.result == Verdict.PASS
    assert feedback.feedback_text == "Good job"
    assert feedback.feedback_full == "RESULT: PASS\nFEEDBACK: Good job"


def test_parse_evaluation_unknown_verdict_is_fail():
    feedback = protocol.parse_evaluation("RESULT: MAYBE\nFEEDBACK: Hmm")
    assert feedback.result == Verdict.FAIL
    assert feedback.feedback_text == "Hmm"


def test_parse_evaluation_missing_markers():
    feedback = protocol.parse_evaluation("Nice try")
    assert feedback.result == Verdict.FAIL
    assert feedback.feedback_text == ""


# ---------- Card batch ----------


def test_card_batch_message_includes_context():
    msg = protocol.build_card_batch_message("More animals", VOCAB[:1])
    assert msg.startswith("More animals\n\nHere is the set of existing Anki cards:\nFront: hund | Back: dog")
    assert msg.endswith(protocol.CARD_BATCH_INSTRUCTION)


def test_card_batch_message_without_context():
    msg = protocol.build_card_batch_message("More animals")
    assert "existing Anki cards" not in msg
    assert msg == f"More animals\n\n{protocol.CARD_BATCH_INSTRUCTION}"


def test_parse_card_batch_fenced():
    text = '```json\n[{"front": "a", "back": "b"}, {"front": "c", "back": "d"}]\n```'
    cards = protocol.parse_card_batch(text)
    assert [(c.front, c.back) for c in cards] == [("a", "b"), ("c", "d")]
    assert all(not c.saved and c.note_id is None for c in cards)


def test_parse_card_batch_plain_array():
    cards = protocol.parse_card_batch('  [{"front": "x", "back": "y"}]  ')
    assert len(cards) == 1


def test_parse_card_batch_empty_array():
    assert protocol.parse_card_batch("[]") == []


def test_parse_card_batch_object_is_rejected():
    with pytest.raises(LLMParseError) as exc:
        protocol.parse_card_batch('{"front": "a", "back": "b"}')
    assert "not an array" in str(exc.value)


def test_parse_card_batch_non_json_carries_excerpt():
    raw = "Sure! Here are some cards: " + "x" * 200
    with pytest.raises(LLMParseError) as exc:
        protocol.parse_card_batch(raw)
    assert exc.value.raw == raw
    assert exc.value.excerpt == raw[:100]
    assert raw[:100] in str(exc.value)


def test_parse_card_batch_bad_item():
    with pytest.raises(LLMParseError) as exc:
        protocol.parse_card_batch('[{"front": "a", "back": "b"}, {"front": "only"}]')
    assert "Item 1" in str(exc.value)


def test_strip_code_fence_without_fence():
    assert protocol.strip_code_fence("  [1, 2]\n") == "[1, 2]"


def test_validate_answer():
    assert protocol.validate_answer(" hund ") == " hund "
    with pytest.raises(AnswerValidationError, match="Please enter your answer first"):
        protocol.validate_answer(" \n ")
