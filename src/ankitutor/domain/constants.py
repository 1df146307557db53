"""Centralized constants for anki-tutor.

Thresholds, defaults and protocol values live here so every layer
imports from a single source of truth.
"""

# ---------- AnkiConnect / HTTP ----------
DEFAULT_ANKI_CONNECT_URL = "http://localhost:8765"
ANKI_CONNECT_VERSION = 6
REQUEST_TIMEOUT = 30.0
RESPONSIVENESS_TIMEOUT = 2.0

# ---------- Card generation ----------
DEFAULT_NEW_CARD_DECK = "Default"
DEFAULT_NEW_CARD_MODEL = "Basic"
FALLBACK_FIELD_NAMES = ("Front", "Back")

# ---------- Grading ----------
LEECH_LAPSE_THRESHOLD = 8  # more lapses than this grades F
LOW_EASE_THRESHOLD = 1300  # ease factor below this grades F
# Upper bounds (exclusive) of min interval in days for each grade
GRADE_INTERVAL_BOUNDS = (
    ("D", 2),
    ("C", 7),
    ("B", 21),
    ("A", 60),
)

# ---------- LLM ----------
DEFAULT_MODEL = "claude-haiku-4-5"
AVAILABLE_MODELS = ("claude-haiku-4-5", "claude-sonnet-4-5")
QUESTION_MAX_TOKENS = 1024
EVALUATION_MAX_TOKENS = 1024
CARD_BATCH_MAX_TOKENS = 4096
RAW_EXCERPT_LEN = 100

# ---------- Settings blob ----------
SETTINGS_VERSION = 2
DEFAULT_MAX_WORDS = 1000
