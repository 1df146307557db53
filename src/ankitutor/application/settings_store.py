"""
Settings persistence.

QuizSettings are stored as one versioned JSON blob and always read and
written as a whole. Blobs written by older releases are migrated on read.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ankitutor.application.config import DEFAULT_PROMPTS, QuizSettings
from ankitutor.domain.constants import SETTINGS_VERSION
from ankitutor.domain.errors import AnkiTutorError

logger = logging.getLogger(__name__)


class SettingsError(AnkiTutorError):
    """The settings blob exists but cannot be decoded."""


def migrate_settings_blob(blob: dict[str, Any]) -> dict[str, Any]:
    """
    Upgrade a settings blob to the current layout.

    - version 1 kept a bare ``systemPrompt`` at the top level; it now lives in
      ``promptsConfig`` alongside the default instructions.
    - ``showVocabReference`` was renamed to ``showCardsReference``.
    """
    data = dict(blob)
    data.pop("version", None)

    if data.get("systemPrompt") and not data.get("promptsConfig"):
        prompts = DEFAULT_PROMPTS.model_dump(by_alias=True)
        prompts["systemPrompt"] = data["systemPrompt"]
        data["promptsConfig"] = prompts
    data.pop("systemPrompt", None)

    if "showVocabReference" in data and "showCardsReference" not in data:
        data["showCardsReference"] = data["showVocabReference"]
    data.pop("showVocabReference", None)

    return data


class SettingsStore:
    def __init__(self, path: Path):
        self.path = path

    def load(self) -> QuizSettings:
        """Read the blob, falling back to defaults when no file exists yet."""
        if not self.path.exists():
            logger.debug("No settings file at %s, using defaults", self.path)
            return QuizSettings()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Cannot read settings file {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file {self.path} does not contain an object")

        version = raw.get("version", 1)
        data = migrate_settings_blob(raw)
        try:
            settings = QuizSettings.model_validate(data)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings in {self.path}: {e}") from e

        if version != SETTINGS_VERSION:
            logger.info("Migrated settings blob from version %s to %s", version, SETTINGS_VERSION)
        return settings

    def save(self, settings: QuizSettings) -> None:
        blob = {"version": SETTINGS_VERSION, **settings.to_blob()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(blob, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Saved settings to %s", self.path)
