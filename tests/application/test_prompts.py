import json

import pytest

from ankitutor.application.prompts import (
    load_prompts_file,
    parse_prompts_text,
    validate_prompts_config,
)
from ankitutor.domain.errors import PromptsConfigError

VALID = {
    "name": "Swedish tutor",
    "systemPrompt": "You are a patient Swedish tutor.",
    "questionInstructions": "Ask one question.\nPROMPT: [question]",
    "evaluationInstructions": "RESULT: PASS or FAIL\nFEEDBACK: [text]",
    "uiLabels": {"answerLabel": "Ditt svar", "tip": "Answer in Swedish"},
}

YAML_DOC = """
name: Swedish tutor
systemPrompt: You are a patient Swedish tutor.
questionInstructions: |
  Ask one question.
  PROMPT: [question]
evaluationInstructions: |
  RESULT: PASS or FAIL
  FEEDBACK: [text]
uiLabels:
  answerLabel: Ditt svar
  tip: Answer in Swedish
"""


def test_parse_yaml():
    config = parse_prompts_text(YAML_DOC, filename="tutor.yaml")
    assert config.name == "Swedish tutor"
    assert config.question_instructions.startswith("Ask one question.")
    assert config.ui_labels.answer_label == "Ditt svar"


def test_parse_json():
    config = parse_prompts_text(json.dumps(VALID), filename="tutor.json")
    assert config.system_prompt == VALID["systemPrompt"]
    assert config.ui_labels.tip == "Answer in Swedish"


def test_json_without_filename_is_read_as_yaml():
    assert parse_prompts_text(json.dumps(VALID)).name == "Swedish tutor"


@pytest.mark.parametrize(
    "field", ["name", "systemPrompt", "questionInstructions", "evaluationInstructions"]
)
def test_missing_top_level_field(field):
    data = {k: v for k, v in VALID.items() if k != field}
    with pytest.raises(PromptsConfigError) as exc:
        validate_prompts_config(data)
    assert str(exc.value) == f'Missing or invalid "{field}" field'
    assert exc.value.field == field


def test_blank_field_is_invalid():
    with pytest.raises(PromptsConfigError, match='"name"'):
        validate_prompts_config({**VALID, "name": "  "})


def test_missing_ui_labels():
    data = {k: v for k, v in VALID.items() if k != "uiLabels"}
    with pytest.raises(PromptsConfigError, match='"uiLabels"'):
        validate_prompts_config(data)


def test_missing_answer_label():
    with pytest.raises(PromptsConfigError, match='"uiLabels.answerLabel"'):
        validate_prompts_config({**VALID, "uiLabels": {"tip": "x"}})


def test_tip_may_be_empty_but_not_missing():
    config = validate_prompts_config({**VALID, "uiLabels": {"answerLabel": "A", "tip": ""}})
    assert config.ui_labels.tip == ""
    with pytest.raises(PromptsConfigError, match='"uiLabels.tip"'):
        validate_prompts_config({**VALID, "uiLabels": {"answerLabel": "A"}})


def test_not_a_mapping():
    with pytest.raises(PromptsConfigError, match="Invalid prompts structure"):
        parse_prompts_text("- a\n- b\n")


def test_malformed_yaml():
    with pytest.raises(PromptsConfigError, match="Failed to parse"):
        parse_prompts_text("name: [unclosed", filename="bad.yml")


def test_load_prompts_file(tmp_path):
    path = tmp_path / "tutor.yaml"
    path.write_text(YAML_DOC, encoding="utf-8")
    assert load_prompts_file(path).name == "Swedish tutor"


def test_load_missing_file(tmp_path):
    with pytest.raises(PromptsConfigError, match="Cannot read"):
        load_prompts_file(tmp_path / "nope.yaml")
