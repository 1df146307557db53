"""
Vocabulary and review-note loading.

Assembles logical notes from the raw AnkiConnect records and, for the
review flow, grades them with the GradeCalculator.
"""

import logging
import random
from enum import Enum

from ankitutor.application.stats.grading import GradeCalculator
from ankitutor.domain.interfaces import AnkiBridge
from ankitutor.domain.models import AnkiNoteInfo, VocabItem
from ankitutor.domain.stats.models import GRADE_ORDER, Grade, RawCardStat, ReviewNote

logger = logging.getLogger(__name__)


def build_query(deck_filter: str) -> str:
    """Anki search query for a deck filter; an empty filter matches every note."""
    deck_filter = deck_filter.strip()
    if not deck_filter:
        return "*"
    return f'"deck:{deck_filter}"'


class ReviewSort(str, Enum):
    RANDOM = "random"
    FRONT = "front"
    BACK = "back"
    BAD_FIRST = "bad-first"
    GOOD_FIRST = "good-first"


def sort_review_notes(notes: list[ReviewNote], order: ReviewSort) -> list[ReviewNote]:
    """Return the notes in the requested order; RANDOM keeps the loaded order."""
    order = ReviewSort(order)
    if order == ReviewSort.FRONT:
        return sorted(notes, key=lambda n: n.front.casefold())
    if order == ReviewSort.BACK:
        return sorted(notes, key=lambda n: n.back.casefold())
    if order in (ReviewSort.BAD_FIRST, ReviewSort.GOOD_FIRST):
        return sorted(
            notes,
            key=lambda n: GRADE_ORDER.get(n.stats.grade, GRADE_ORDER[Grade.NEW]),
            reverse=order == ReviewSort.GOOD_FIRST,
        )
    return list(notes)


def _to_note_info(raw: dict) -> AnkiNoteInfo:
    return AnkiNoteInfo(
        note_id=raw.get("noteId"),
        fields=raw.get("fields") or {},
        tags=list(raw.get("tags") or []),
        cards=list(raw.get("cards") or []),
        model_name=raw.get("modelName"),
    )


class NoteLoader:
    """
    Loads notes through an AnkiBridge.

    Store failures propagate unchanged (AnkiConnectionError / AnkiProtocolError);
    nothing is retried or cached here.
    """

    def __init__(
        self,
        bridge: AnkiBridge,
        grader: GradeCalculator | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            bridge: Store client, already bound to the configured URL.
            grader: Optional custom grader; uses default if not provided.
            rng: Random source for shuffling; tests pass a seeded one.
        """
        self._bridge = bridge
        self._grader = grader or GradeCalculator()
        self._rng = rng or random.Random()

    async def load_vocabulary(self, max_count: int, deck_filter: str = "") -> list[VocabItem]:
        """
        Return up to max_count shuffled front/back pairs.

        Only notes whose first and second fields (by field order) are both
        non-empty after trimming are kept.
        """
        note_ids = await self._bridge.find_notes(build_query(deck_filter))
        if not note_ids:
            return []

        vocabulary = []
        for raw in await self._bridge.notes_info(note_ids):
            info = _to_note_info(raw)
            front = info.field_at(0).strip()
            back = info.field_at(1).strip()
            if front and back:
                vocabulary.append(VocabItem(front=front, back=back))

        self._rng.shuffle(vocabulary)
        limited = vocabulary[:max_count]
        logger.info(
            "Loaded %d vocabulary items (%d usable of %d notes)",
            len(limited),
            len(vocabulary),
            len(note_ids),
        )
        return limited

    async def load_review_notes(self, max_count: int, deck_filter: str = "") -> list[ReviewNote]:
        """
        Return up to max_count randomly chosen notes with graded stats.

        Front and back are the fields at the first two positions of the note
        type's field order; their names are kept for write-back.
        """
        note_ids = list(await self._bridge.find_notes(build_query(deck_filter)))
        if not note_ids:
            return []

        self._rng.shuffle(note_ids)
        note_ids = note_ids[:max_count]

        infos = [_to_note_info(raw) for raw in await self._bridge.notes_info(note_ids)]
        all_card_ids = [cid for info in infos for cid in info.cards]
        cards_by_id = {}
        for raw in await self._bridge.cards_info(all_card_ids):
            stat = RawCardStat.from_card_info(raw)
            cards_by_id[stat.card_id] = stat

        notes = []
        for info in infos:
            ordered = info.ordered_fields()
            front_field_name, front = ordered[0] if ordered else ("", "")
            back_field_name, back = ordered[1] if len(ordered) > 1 else ("", "")
            if not front and not back:
                continue

            stats = [cards_by_id[cid] for cid in info.cards if cid in cards_by_id]
            notes.append(
                ReviewNote(
                    note_id=info.note_id,
                    front=front,
                    front_field_name=front_field_name,
                    back=back,
                    back_field_name=back_field_name,
                    tags=set(info.tags),
                    stats=self._grader.grade(stats),
                )
            )

        logger.info("Loaded %d review notes", len(notes))
        return notes

    async def save_field(self, note_id: int, fields: dict[str, str]) -> None:
        """Push a partial field update (field name -> value) for one note."""
        await self._bridge.update_note_fields(note_id, fields)
        logger.info("Saved fields %s of note %s", list(fields), note_id)

    async def delete_note(self, note_id: int) -> None:
        await self._bridge.delete_notes([note_id])
        logger.info("Deleted note %s", note_id)
