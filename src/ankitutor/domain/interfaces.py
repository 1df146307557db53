"""
Ports (interfaces) for the external collaborators.

Application services depend on these abstractions, not on concrete adapters.
"""

from abc import ABC, abstractmethod
from typing import Any


class AnkiBridge(ABC):
    """
    Port for talking to the flashcard store.

    Implementations:
        - AnkiConnectAdapter: Uses the AnkiConnect HTTP API.
    """

    url: str

    @abstractmethod
    async def is_responsive(self) -> bool:
        """True when the store answers with a supported API version."""

    @abstractmethod
    async def find_notes(self, query: str) -> list[int]:
        """Return note ids matching an Anki search query."""

    @abstractmethod
    async def notes_info(self, note_ids: list[int]) -> list[dict[str, Any]]:
        """Return raw ``notesInfo`` records (fields, tags, cards) for the given notes."""

    @abstractmethod
    async def cards_info(self, card_ids: list[int]) -> list[dict[str, Any]]:
        """Return raw ``cardsInfo`` records (scheduling stats) for the given cards."""

    @abstractmethod
    async def model_field_names(self, model_name: str) -> list[str]:
        """Return the ordered field names of a note type."""

    @abstractmethod
    async def add_note(
        self,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str] | None = None,
    ) -> int:
        """Create a note and return its id."""

    @abstractmethod
    async def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        """Apply a partial field update to an existing note."""

    @abstractmethod
    async def delete_notes(self, note_ids: list[int]) -> None:
        """Delete notes (and their cards)."""

    async def close(self) -> None:
        """Release transport resources."""


class TextCompleter(ABC):
    """
    Port for a single-shot LLM text completion.

    The completer receives an optional system instruction plus one user
    message and returns the text of the first text block of the reply.
    """

    @abstractmethod
    async def complete(
        self,
        user_message: str,
        *,
        model: str,
        max_tokens: int,
        system: str | None = None,
    ) -> str:
        pass
