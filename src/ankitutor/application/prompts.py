"""Prompts configuration import (JSON or YAML)."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ankitutor.application.config import PromptsConfig, UiLabels
from ankitutor.domain.errors import PromptsConfigError

logger = logging.getLogger(__name__)

# Top-level fields that must be non-empty strings
REQUIRED_FIELDS = ("name", "systemPrompt", "questionInstructions", "evaluationInstructions")


def _invalid(field: str) -> PromptsConfigError:
    return PromptsConfigError(f'Missing or invalid "{field}" field', field=field)


def validate_prompts_config(data: Any) -> PromptsConfig:
    """Validate a decoded prompts document and build a PromptsConfig.

    Raises PromptsConfigError naming the first missing or mistyped field.
    """
    if not isinstance(data, dict):
        raise PromptsConfigError("Invalid prompts structure: expected a mapping at the top level")

    for key in REQUIRED_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise _invalid(key)

    labels = data.get("uiLabels")
    if not isinstance(labels, dict):
        raise _invalid("uiLabels")
    answer_label = labels.get("answerLabel")
    if not isinstance(answer_label, str) or not answer_label.strip():
        raise _invalid("uiLabels.answerLabel")
    # An empty tip is allowed (the built-in default has none), a missing one is not
    tip = labels.get("tip")
    if not isinstance(tip, str):
        raise _invalid("uiLabels.tip")

    return PromptsConfig(
        name=data["name"],
        system_prompt=data["systemPrompt"],
        question_instructions=data["questionInstructions"],
        evaluation_instructions=data["evaluationInstructions"],
        ui_labels=UiLabels(answer_label=answer_label, tip=tip),
    )


def parse_prompts_text(text: str, filename: str | None = None) -> PromptsConfig:
    """Decode prompts text as JSON or YAML and validate it.

    The format is picked from the file extension when one is given; otherwise
    the text is read as YAML, which also accepts JSON documents.
    """
    suffix = Path(filename).suffix.lower() if filename else ""
    try:
        if suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise PromptsConfigError(f"Failed to parse prompts file: {e}") from e

    config = validate_prompts_config(data)
    logger.info("Loaded prompts configuration '%s'", config.name)
    return config


def load_prompts_file(path: Path) -> PromptsConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PromptsConfigError(f"Cannot read prompts file {path}: {e}") from e
    return parse_prompts_text(text, filename=path.name)
