import logging
from typing import Any

import httpx

from ankitutor.domain.constants import (
    ANKI_CONNECT_VERSION,
    DEFAULT_ANKI_CONNECT_URL,
    REQUEST_TIMEOUT,
    RESPONSIVENESS_TIMEOUT,
)
from ankitutor.domain.errors import AnkiConnectionError, AnkiProtocolError
from ankitutor.domain.interfaces import AnkiBridge


class AnkiConnectAdapter(AnkiBridge):
    """Adapter for communicating with Anki via the AnkiConnect add-on (HTTP API)."""

    def __init__(
        self,
        url: str = DEFAULT_ANKI_CONNECT_URL,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.url = url
        self._client = client
        self._owns_client = client is None
        self.logger.debug(f"AnkiConnectAdapter initialized with url={self.url}")

    async def __aenter__(self) -> "AnkiConnectAdapter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
            self._owns_client = True
        return self._client

    async def is_responsive(self) -> bool:
        """Check if AnkiConnect is reachable and has the expected API version."""
        try:
            self._check_url()
            payload = {"action": "version", "version": ANKI_CONNECT_VERSION}
            resp = await self._get_client().post(
                self.url, json=payload, timeout=RESPONSIVENESS_TIMEOUT
            )
            if resp.status_code == 200:
                data = resp.json()
                return int(data.get("result", 0)) >= ANKI_CONNECT_VERSION
            return False
        except (AnkiConnectionError, httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError):
            return False

    def _check_url(self) -> None:
        try:
            port = httpx.URL(self.url).port
        except httpx.InvalidURL as e:
            raise AnkiConnectionError(self.url, str(e)) from e
        if port is not None and not 0 < port < 65536:
            raise AnkiConnectionError(self.url, f"Invalid port: {port}")

    async def _invoke(self, action: str, **params) -> Any:
        self._check_url()
        payload = {"action": action, "version": ANKI_CONNECT_VERSION, "params": params}
        try:
            resp = await self._get_client().post(self.url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.error(f"AnkiConnect unreachable at {self.url}: {e}")
            raise AnkiConnectionError(self.url, str(e)) from e

        if not resp.is_success:
            self.logger.error(f"AnkiConnect call '{action}' failed: HTTP {resp.status_code}")
            raise AnkiProtocolError(f"HTTP error! status: {resp.status_code}", action=action)

        try:
            data = resp.json()
        except ValueError as e:
            raise AnkiProtocolError("response is not valid JSON", action=action) from e

        if not isinstance(data, dict):
            raise AnkiProtocolError("response has an unexpected shape", action=action)
        if "error" not in data:
            raise AnkiProtocolError("response is missing required error field", action=action)
        if "result" not in data:
            raise AnkiProtocolError("response is missing required result field", action=action)
        if data["error"] is not None:
            self.logger.error(f"AnkiConnect call '{action}' failed: {data['error']}")
            raise AnkiProtocolError(str(data["error"]), action=action)
        return data["result"]

    async def find_notes(self, query: str) -> list[int]:
        return await self._invoke("findNotes", query=query) or []

    async def notes_info(self, note_ids: list[int]) -> list[dict[str, Any]]:
        if not note_ids:
            return []
        return await self._invoke("notesInfo", notes=note_ids) or []

    async def cards_info(self, card_ids: list[int]) -> list[dict[str, Any]]:
        if not card_ids:
            return []
        return await self._invoke("cardsInfo", cards=card_ids) or []

    async def model_field_names(self, model_name: str) -> list[str]:
        return await self._invoke("modelFieldNames", modelName=model_name) or []

    async def add_note(
        self,
        deck_name: str,
        model_name: str,
        fields: dict[str, str],
        tags: list[str] | None = None,
    ) -> int:
        note = {
            "deckName": deck_name,
            "modelName": model_name,
            "fields": fields,
            "tags": tags or [],
        }
        new_id = await self._invoke("addNote", note=note)
        if not new_id:
            raise AnkiProtocolError("addNote returned null ID", action="addNote")
        self.logger.info(f"[create] deck={deck_name} model={model_name} -> nid={new_id}")
        return new_id

    async def update_note_fields(self, note_id: int, fields: dict[str, str]) -> None:
        await self._invoke("updateNoteFields", note={"id": note_id, "fields": fields})
        self.logger.debug(f"[update] nid={note_id} fields={list(fields)}")

    async def delete_notes(self, note_ids: list[int]) -> None:
        self.logger.info(f"Deleting notes: {note_ids}")
        await self._invoke("deleteNotes", notes=note_ids)

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None
