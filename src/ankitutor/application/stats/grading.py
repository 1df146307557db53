"""
Proficiency grading for notes.

Turns the per-card scheduling stats of one note into a single ordinal grade.
This is a pure computation module with no I/O.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ankitutor.domain.constants import (
    GRADE_INTERVAL_BOUNDS,
    LEECH_LAPSE_THRESHOLD,
    LOW_EASE_THRESHOLD,
)
from ankitutor.domain.models import QUEUE_NEW, CardType
from ankitutor.domain.stats.models import (
    FALLBACK_COLOR,
    GRADE_COLORS,
    Grade,
    NoteStats,
    RawCardStat,
)


def _as_number(value: Any) -> float | None:
    """Return value as a finite number, or None when it is missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _display(number: float | None) -> str:
    if number is None:
        return "0"
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


@dataclass(frozen=True)
class CardAggregate:
    """Aggregates over every numeric stat of a note's cards."""

    min_interval: float | None
    min_factor: float | None
    max_lapses: float
    sum_reviews: float
    has_new_card: bool


class GradeCalculator:
    """
    Computes NoteStats from the RawCardStat set of one note.

    Stateless and side-effect free: the same input always yields the same output.
    """

    def grade(self, cards: Sequence[RawCardStat]) -> NoteStats:
        if not cards:
            return NoteStats(
                grade=Grade.NEW,
                color=GRADE_COLORS[Grade.NEW],
                summary="New Note",
                details="No cards found",
            )

        agg = self.aggregate(cards)
        grade = self._decide_grade(agg)
        color = GRADE_COLORS.get(grade, FALLBACK_COLOR)

        summary = (
            f"Interval: {_display(agg.min_interval)} | Reviews: {_display(agg.sum_reviews)}"
        )
        details = "\n\n".join(self._describe_card(card) for card in cards)
        return NoteStats(grade=grade, color=color, summary=summary, details=details)

    def aggregate(self, cards: Sequence[RawCardStat]) -> CardAggregate:
        min_interval: float | None = None
        min_factor: float | None = None
        max_lapses = 0.0
        sum_reviews = 0.0
        has_new_card = False

        for card in cards:
            if card.queue == QUEUE_NEW or card.type == CardType.NEW:
                has_new_card = True

            interval = _as_number(card.interval)
            factor = _as_number(card.factor)
            lapses = _as_number(card.lapses)
            reps = _as_number(card.reps)

            if interval is not None and (min_interval is None or interval < min_interval):
                min_interval = interval
            if factor is not None and (min_factor is None or factor < min_factor):
                min_factor = factor
            if lapses is not None and lapses > max_lapses:
                max_lapses = lapses
            if reps is not None:
                sum_reviews += reps

        return CardAggregate(
            min_interval=min_interval,
            min_factor=min_factor,
            max_lapses=max_lapses,
            sum_reviews=sum_reviews,
            has_new_card=has_new_card,
        )

    def _decide_grade(self, agg: CardAggregate) -> Grade:
        """
        Apply the grading rules in priority order; the first match wins.

        A new card masks everything else, then leech signals (many lapses or a
        very low ease) outrank the interval ladder.
        """
        if agg.has_new_card:
            return Grade.NEW
        if agg.max_lapses > LEECH_LAPSE_THRESHOLD or (
            agg.min_factor is not None and agg.min_factor < LOW_EASE_THRESHOLD
        ):
            return Grade.F
        if agg.min_interval is not None:
            for label, upper in GRADE_INTERVAL_BOUNDS:
                if agg.min_interval < upper:
                    return Grade(label)
        return Grade.S

    @staticmethod
    def _describe_card(card: RawCardStat) -> str:
        factor = _as_number(card.factor)
        ease = f"{factor / 10:g}%" if factor is not None else "n/a"
        return (
            f"Card {card.card_id}:\n"
            f"- Interval: {card.interval}d\n"
            f"- Ease Factor: {ease}\n"
            f"- Reviews: {card.reps}\n"
            f"- Lapses: {card.lapses}"
        )
