import random
from unittest.mock import AsyncMock

import pytest

from ankitutor.application.config import QuizSettings
from ankitutor.domain.interfaces import AnkiBridge


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / "settings.json"


@pytest.fixture
def settings():
    return QuizSettings(anthropic_api_key="sk-test", max_words=50)


@pytest.fixture
def bridge():
    """AnkiBridge double; tests set return values or side effects per method."""
    b = AsyncMock(spec=AnkiBridge)
    b.url = "http://localhost:8765"
    return b


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def make_note():
    """Build a raw ``notesInfo`` record; fields is an ordered list of (name, value)."""

    def _make(note_id, fields, cards=(), tags=()):
        return {
            "noteId": note_id,
            "modelName": "Basic",
            "tags": list(tags),
            "cards": list(cards),
            "fields": {
                name: {"value": value, "order": i} for i, (name, value) in enumerate(fields)
            },
        }

    return _make


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep ANKI_TUTOR_* variables from the outer environment out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("ANKI_TUTOR_"):
            monkeypatch.delenv(key)
