"""
Saving LLM-generated cards to Anki.

``save_all`` dispatches one save per unsaved card concurrently. Each card
carries its own ``saving``/``saved``/``error`` state; a failed save never
affects its siblings.
"""

import asyncio
import logging
from collections.abc import Sequence

from ankitutor.domain.constants import (
    DEFAULT_NEW_CARD_DECK,
    DEFAULT_NEW_CARD_MODEL,
    FALLBACK_FIELD_NAMES,
)
from ankitutor.domain.errors import AnkiProtocolError, AnkiTutorError
from ankitutor.domain.interfaces import AnkiBridge
from ankitutor.domain.models import GeneratedCard

logger = logging.getLogger(__name__)


class CardBatchSaver:
    def __init__(
        self,
        bridge: AnkiBridge,
        deck_name: str = "",
        model_name: str = DEFAULT_NEW_CARD_MODEL,
    ):
        self._bridge = bridge
        self.deck_name = deck_name or DEFAULT_NEW_CARD_DECK
        self.model_name = model_name

    async def save_card(self, card: GeneratedCard) -> GeneratedCard:
        """
        Create or update the Anki note behind one generated card.

        Cards that already have a note id are updated in place; others are
        added with the first two fields of the note type.
        """
        if card.saving:
            return card

        card.saving = True
        card.error = None
        try:
            if card.note_id:
                names = card.field_names if card.field_names and len(card.field_names) >= 2 else None
                front_name, back_name = names[:2] if names else FALLBACK_FIELD_NAMES
                await self._bridge.update_note_fields(
                    card.note_id, {front_name: card.front, back_name: card.back}
                )
            else:
                field_names = await self._bridge.model_field_names(self.model_name)
                if len(field_names) < 2:
                    raise AnkiProtocolError(
                        f"Model {self.model_name} does not have enough fields"
                    )
                card.note_id = await self._bridge.add_note(
                    self.deck_name,
                    self.model_name,
                    {field_names[0]: card.front, field_names[1]: card.back},
                )
                card.field_names = list(field_names)
            card.saved = True
        except AnkiTutorError as e:
            logger.error(f"Failed to save card '{card.front[:40]}': {e}")
            card.saved = False
            card.error = str(e)
        finally:
            card.saving = False
        return card

    async def save_all(self, cards: Sequence[GeneratedCard]) -> list[GeneratedCard]:
        """Save every unsaved card in parallel and return the cards that were attempted."""
        pending = [card for card in cards if not card.saved]
        if not pending:
            return []
        await asyncio.gather(*(self.save_card(card) for card in pending))
        failed = sum(1 for card in pending if not card.saved)
        logger.info(f"Saved {len(pending) - failed}/{len(pending)} generated cards")
        return pending


def mark_edited(card: GeneratedCard, front: str | None = None, back: str | None = None) -> None:
    """Apply an edit to a generated card; edited cards must be saved again."""
    if front is not None:
        card.front = front
    if back is not None:
        card.back = back
    card.saved = False
