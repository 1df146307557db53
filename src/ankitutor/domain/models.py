"""
Domain models for notes, cards and quiz exchanges.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum


@dataclass(frozen=True)
class VocabItem:
    """One front/back pair handed to the question generator."""

    front: str
    back: str


class Direction(str, Enum):
    FRONT_TO_BACK = "front → back"
    BACK_TO_FRONT = "back → front"


class Verdict(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class QuizQuestion:
    """
    Decoded question reply.

    Attributes:
        question: The full raw reply, kept for display.
        prompt: Text after the ``PROMPT:`` marker, or "" if the marker is missing.
    """

    question: str
    prompt: str


@dataclass(frozen=True)
class QuizFeedback:
    """
    Decoded evaluation reply.

    Attributes:
        result: PASS or FAIL (FAIL when the reply carries no valid verdict).
        feedback_text: Text after the ``FEEDBACK:`` marker.
        feedback_full: The full raw reply.
    """

    result: Verdict
    feedback_text: str
    feedback_full: str


@dataclass
class GeneratedCard:
    """A card proposed by the LLM, tracked while it is saved to Anki."""

    front: str
    back: str
    note_id: int | None = None
    field_names: list[str] | None = None
    saving: bool = False
    saved: bool = False
    error: str | None = None


@dataclass
class AnkiNoteInfo:
    """Subset of an AnkiConnect ``notesInfo`` entry."""

    note_id: int
    fields: dict[str, dict]  # name -> {"value": str, "order": int}
    tags: list[str] = field(default_factory=list)
    cards: list[int] = field(default_factory=list)
    model_name: str | None = None

    def ordered_fields(self) -> list[tuple[str, str]]:
        """Return (name, value) pairs sorted by the note type's field order."""
        entries = []
        for name, data in self.fields.items():
            data = data or {}
            entries.append((data.get("order", 0), name, data.get("value", "") or ""))
        entries.sort(key=lambda e: e[0])
        return [(name, value) for _, name, value in entries]

    def field_at(self, order: int) -> str:
        for data in self.fields.values():
            if data and data.get("order") == order:
                return data.get("value", "") or ""
        return ""


class CardType(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


QUEUE_NEW = 0
