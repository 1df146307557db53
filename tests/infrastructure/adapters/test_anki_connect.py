import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from ankitutor.domain.errors import AnkiConnectionError, AnkiProtocolError
from ankitutor.infrastructure.adapters.anki_connect import AnkiConnectAdapter

URL = "http://localhost:8765"


def _adapter(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AnkiConnectAdapter(URL, client=client)


def _ok(result):
    return lambda request: httpx.Response(200, json={"result": result, "error": None})


@pytest.mark.asyncio
async def test_request_envelope():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"result": [1, 2], "error": None})

    adapter = _adapter(handler)
    assert await adapter.find_notes('"deck:Swedish"') == [1, 2]
    assert seen == {"action": "findNotes", "version": 6, "params": {"query": '"deck:Swedish"'}}


@pytest.mark.asyncio
async def test_connection_refused_names_url():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(AnkiConnectionError) as exc:
        await _adapter(handler).find_notes("*")
    assert URL in str(exc.value)
    assert "ankiConnectUrl" in str(exc.value)


@pytest.mark.asyncio
async def test_error_payload():
    adapter = _adapter(
        lambda request: httpx.Response(200, json={"result": None, "error": "model was not found"})
    )
    with pytest.raises(AnkiProtocolError) as exc:
        await adapter.model_field_names("Nope")
    assert str(exc.value) == "AnkiConnect error (modelFieldNames): model was not found"
    assert exc.value.action == "modelFieldNames"


@pytest.mark.asyncio
async def test_http_error_status():
    adapter = _adapter(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(AnkiProtocolError, match="HTTP error! status: 500"):
        await adapter.find_notes("*")


@pytest.mark.asyncio
async def test_missing_result_field():
    adapter = _adapter(lambda request: httpx.Response(200, json={"error": None}))
    with pytest.raises(AnkiProtocolError, match="missing required result field"):
        await adapter.find_notes("*")


@pytest.mark.asyncio
async def test_empty_id_lists_short_circuit():
    adapter = AnkiConnectAdapter(URL)
    setattr(adapter, "_invoke", AsyncMock())  # noqa: B010
    assert await adapter.notes_info([]) == []
    assert await adapter.cards_info([]) == []
    adapter._invoke.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_note_payload():
    adapter = AnkiConnectAdapter(URL)
    setattr(adapter, "_invoke", AsyncMock(return_value=1234))  # noqa: B010

    nid = await adapter.add_note("Default", "Basic", {"Front": "a", "Back": "b"})

    assert nid == 1234
    adapter._invoke.assert_awaited_once_with(
        "addNote",
        note={
            "deckName": "Default",
            "modelName": "Basic",
            "fields": {"Front": "a", "Back": "b"},
            "tags": [],
        },
    )


@pytest.mark.asyncio
async def test_add_note_null_id():
    adapter = _adapter(_ok(None))
    with pytest.raises(AnkiProtocolError, match="null ID"):
        await adapter.add_note("Default", "Basic", {"Front": "a", "Back": "b"})


@pytest.mark.asyncio
async def test_update_note_fields_payload():
    adapter = AnkiConnectAdapter(URL)
    setattr(adapter, "_invoke", AsyncMock(return_value=None))  # noqa: B010
    await adapter.update_note_fields(42, {"Back": "dog"})
    adapter._invoke.assert_awaited_once_with(
        "updateNoteFields", note={"id": 42, "fields": {"Back": "dog"}}
    )


@pytest.mark.asyncio
async def test_is_responsive():
    assert await _adapter(_ok(6)).is_responsive() is True
    assert await _adapter(_ok(5)).is_responsive() is False


@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(_ok([])))
    adapter = AnkiConnectAdapter(URL, client=client)
    await adapter.close()
    assert client.is_closed is False
    await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["http://localhost:87a5", "http://localhost:99999"])
async def test_malformed_url_is_a_connection_error(url):
    handler = MagicMock()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    adapter = AnkiConnectAdapter(url, client=client)

    with pytest.raises(AnkiConnectionError) as exc:
        await adapter.find_notes("*")
    assert url in str(exc.value)
    handler.assert_not_called()
    assert await adapter.is_responsive() is False

