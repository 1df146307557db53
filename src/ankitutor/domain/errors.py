"""Exception hierarchy shared by every layer.

Adapters translate transport/SDK exceptions into these types at the boundary
so callers only ever need to catch ``AnkiTutorError``.
"""

from .constants import RAW_EXCERPT_LEN


class AnkiTutorError(Exception):
    """Base class for all anki-tutor failures."""


class AnkiConnectionError(AnkiTutorError):
    """AnkiConnect could not be reached at the configured URL."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = (
            f"Cannot connect to Anki-Connect at {url}. Please make sure Anki is running "
            "and check your configuration (ankiConnectUrl)."
        )
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class AnkiProtocolError(AnkiTutorError):
    """AnkiConnect answered, but with an error payload or a non-2xx status."""

    def __init__(self, message: str, action: str | None = None):
        self.action = action
        super().__init__(f"AnkiConnect error ({action}): {message}" if action else message)


class AuthError(AnkiTutorError):
    """The LLM service cannot be used: missing or rejected API key."""


class LLMServiceError(AnkiTutorError):
    """The LLM request failed (network, rate limit, server error)."""


class LLMParseError(AnkiTutorError):
    """An LLM reply could not be decoded into the expected structure."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        self.excerpt = raw[:RAW_EXCERPT_LEN]
        super().__init__(f"{message}. Response: {self.excerpt}...")


class PromptsConfigError(AnkiTutorError):
    """A prompts configuration file is malformed or misses a required field."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class AnswerValidationError(AnkiTutorError):
    """The learner's answer was rejected before evaluation."""
