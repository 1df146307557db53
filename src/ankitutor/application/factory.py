"""
Wiring helpers.
Centralizes how adapters and services are built from the current settings.
"""

from ankitutor.application.config import AppConfig, QuizSettings, apply_config
from ankitutor.application.note_loader import NoteLoader
from ankitutor.application.quiz.service import QuizService
from ankitutor.application.quiz.session import QuizSession
from ankitutor.application.settings_store import SettingsStore
from ankitutor.domain.interfaces import AnkiBridge
from ankitutor.domain.models import VocabItem
from ankitutor.infrastructure.adapters.anki_connect import AnkiConnectAdapter


def get_anki_bridge(settings: QuizSettings) -> AnkiBridge:
    """Returns a store client bound to the configured AnkiConnect URL."""
    return AnkiConnectAdapter(url=settings.anki_connect_url)


def load_settings(config: AppConfig) -> QuizSettings:
    """Read the persisted settings blob and apply process-level overrides."""
    return apply_config(SettingsStore(config.settings_file).load(), config)


async def load_vocabulary(settings: QuizSettings) -> list[VocabItem]:
    bridge = get_anki_bridge(settings)
    try:
        return await NoteLoader(bridge).load_vocabulary(settings.max_words, settings.deck_filter)
    finally:
        await bridge.close()


def create_quiz_session(config: AppConfig, quiz_service: QuizService | None = None) -> QuizSession:
    """A session that re-reads the settings blob before every step."""
    return QuizSession(
        quiz_service=quiz_service or QuizService(),
        load_vocabulary=load_vocabulary,
        settings_provider=lambda: load_settings(config),
    )
