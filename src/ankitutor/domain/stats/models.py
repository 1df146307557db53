"""
Domain models for note proficiency statistics.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Grade(str, Enum):
    NEW = "New"
    F = "F"
    D = "D"
    C = "C"
    B = "B"
    A = "A"
    S = "S"


GRADE_COLORS: dict[Grade, str] = {
    Grade.NEW: "blue",
    Grade.F: "red",
    Grade.D: "orange",
    Grade.C: "yellow",
    Grade.B: "lime",
    Grade.A: "green",
    Grade.S: "emerald",
}
FALLBACK_COLOR = "gray"

# Weakest first; used to sort review notes by proficiency
GRADE_ORDER: dict[Grade, int] = {
    Grade.F: 0,
    Grade.D: 1,
    Grade.C: 2,
    Grade.B: 3,
    Grade.A: 4,
    Grade.S: 5,
    Grade.NEW: 6,
}


@dataclass(frozen=True)
class RawCardStat:
    """
    Scheduling record of one physical card, as reported by AnkiConnect ``cardsInfo``.

    Numeric fields are kept as received; malformed or missing values are
    excluded by the grading aggregation rather than coerced.

    Attributes:
        card_id: Anki card id.
        interval: Current interval in days.
        factor: SM-2 ease factor (e.g., 2500 = 250%).
        reps: Total review count.
        lapses: Number of times the card was forgotten.
        type: 0=new, 1=learning, 2=review, 3=relearning.
        queue: Scheduling queue (0=new, -1=suspended, ...).
        due: Due date as day number or epoch, depending on the queue.
    """

    card_id: Any
    interval: Any = None
    factor: Any = None
    reps: Any = None
    lapses: Any = None
    type: Any = None
    queue: Any = None
    due: Any = None

    @classmethod
    def from_card_info(cls, info: dict) -> "RawCardStat":
        return cls(
            card_id=info.get("cardId"),
            interval=info.get("interval"),
            factor=info.get("factor"),
            reps=info.get("reps"),
            lapses=info.get("lapses"),
            type=info.get("type"),
            queue=info.get("queue"),
            due=info.get("due"),
        )


@dataclass(frozen=True)
class NoteStats:
    grade: Grade
    color: str
    summary: str
    details: str


@dataclass
class ReviewNote:
    """
    A logical note assembled for review, with stats aggregated over all of its cards.

    Field names are preserved so edits can be written back to the right field.
    """

    note_id: int
    front: str
    front_field_name: str
    back: str
    back_field_name: str
    stats: NoteStats
    tags: set[str] = field(default_factory=set)
