from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from ankitutor.domain.constants import (
    DEFAULT_ANKI_CONNECT_URL,
    DEFAULT_MAX_WORDS,
    DEFAULT_MODEL,
)
from ankitutor.domain.models import Direction

CONFIG_DIR = Path.home() / ".config/anki-tutor"


class _CamelModel(BaseModel):
    """Settings blobs use camelCase keys on disk and snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UiLabels(_CamelModel):
    answer_label: str = "Your Answer"
    tip: str = ""


class PromptsConfig(_CamelModel):
    name: str
    system_prompt: str
    question_instructions: str
    evaluation_instructions: str
    ui_labels: UiLabels = Field(default_factory=UiLabels)


DEFAULT_PROMPTS = PromptsConfig(
    name="Default",
    system_prompt=(
        "You help students practice with their study cards. Create questions that test "
        "their understanding of the card content. When evaluating answers, be fair and "
        "thorough."
    ),
    question_instructions=(
        "Create a practice question for the student.\n\n"
        "Please respond in this exact format:\n"
        "PROMPT: [your question here]"
    ),
    evaluation_instructions=(
        "Please evaluate their answer and respond in this exact format:\n"
        "RESULT: PASS or FAIL\n"
        "FEEDBACK: [Your concise feedback, 2-3 sentences max.]"
    ),
    ui_labels=UiLabels(answer_label="Your Answer", tip=""),
)


class QuizSettings(_CamelModel):
    """
    Per-user quiz settings, persisted as a JSON blob by SettingsStore.

    The core only reads these values; it never mutates them.
    """

    prompts_config: PromptsConfig = Field(default_factory=lambda: DEFAULT_PROMPTS.model_copy())
    direction: Direction = Direction.BACK_TO_FRONT
    max_words: int = Field(default=DEFAULT_MAX_WORDS, ge=1)
    deck_filter: str = ""
    expose_one_side_only: bool = True
    model: str = DEFAULT_MODEL
    show_cards_reference: bool = False
    text_direction: Literal["auto", "ltr", "rtl"] = "auto"
    anki_connect_url: str = DEFAULT_ANKI_CONNECT_URL
    anthropic_api_key: str = ""

    def to_blob(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class AppConfig(BaseSettings):
    """
    Process configuration for anki-tutor.
    Supports loading from:
    1. Environment variables (ANKI_TUTOR_*)
    2. Config file (~/.config/anki-tutor/config.toml)
    3. Manual overrides (CLI)

    Values here fill in blanks of the persisted QuizSettings (e.g. an API key
    supplied only through the environment).
    """

    model_config = SettingsConfigDict(
        env_prefix="ANKI_TUTOR_",
        toml_file=CONFIG_DIR / "config.toml",
        extra="ignore",
        protected_namespaces=(),
    )

    settings_file: Path = Field(default_factory=lambda: CONFIG_DIR / "settings.json")
    anki_connect_url: str | None = None
    anthropic_api_key: str | None = None
    model: str | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = CONFIG_DIR / "config.toml"
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("settings_file", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/anki-tutor/config.toml (if exists)
    3. Environment variables (ANKI_TUTOR_*)
    4. cli_overrides (non-None values passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)


def apply_config(settings: QuizSettings, config: AppConfig) -> QuizSettings:
    """Return settings with process-level overrides from config applied."""
    updates: dict[str, Any] = {}
    if config.anki_connect_url:
        updates["anki_connect_url"] = config.anki_connect_url
    if config.anthropic_api_key and not settings.anthropic_api_key:
        updates["anthropic_api_key"] = config.anthropic_api_key
    if config.model:
        updates["model"] = config.model
    return settings.model_copy(update=updates) if updates else settings
