"""
Quiz session state machine.

    IDLE ──request──▶ VOCAB_LOADING ──▶ QUESTION_PENDING ──▶ AWAITING_ANSWER
                                              ▲                │      │
                                              │ skip ◀─────────┘      │ submit
                                              │                       ▼
                           ANSWERED ◀──────────────────────────── EVALUATING
                              │ next
                              └──────────▶ QUESTION_PENDING

Every step that calls out (vocabulary load, question, evaluation) starts from a
stable state and, on failure, returns to exactly that state with the error
message recorded; cached vocabulary is never dropped by a failure.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ankitutor.application.config import QuizSettings
from ankitutor.domain.errors import AnkiTutorError, AnswerValidationError
from ankitutor.domain.models import Verdict, VocabItem

from .protocol import validate_answer
from .service import QuizService

logger = logging.getLogger(__name__)

NO_VOCABULARY_MESSAGE = "No vocabulary found. Check your Anki connection and deck filter."

VocabularyLoader = Callable[[QuizSettings], Awaitable[list[VocabItem]]]
SettingsProvider = Callable[[], QuizSettings]


class SessionState(str, Enum):
    IDLE = "idle"
    VOCAB_LOADING = "vocab_loading"
    QUESTION_PENDING = "question_pending"
    AWAITING_ANSWER = "awaiting_answer"
    EVALUATING = "evaluating"
    ANSWERED = "answered"


# States with a network call in flight; triggers arriving now are ignored
BUSY_STATES = frozenset(
    {SessionState.VOCAB_LOADING, SessionState.QUESTION_PENDING, SessionState.EVALUATING}
)


class AdvanceAction(str, Enum):
    FIRST_QUESTION = "first_question"
    NEXT_QUESTION = "next_question"
    SUBMIT_ANSWER = "submit_answer"


# The single "advance" trigger (e.g. Ctrl+Enter) resolves to at most one action.
# AWAITING_ANSWER only advances when the typed answer is non-empty.
ADVANCE_TABLE: dict[SessionState, AdvanceAction] = {
    SessionState.IDLE: AdvanceAction.FIRST_QUESTION,
    SessionState.ANSWERED: AdvanceAction.NEXT_QUESTION,
    SessionState.AWAITING_ANSWER: AdvanceAction.SUBMIT_ANSWER,
}


class QuizSession:
    """
    Mutable quiz state threaded through question/answer rounds.

    Methods return True when the requested transition completed and False when
    it was ignored or failed; failures leave a message in ``error``.
    """

    def __init__(
        self,
        quiz_service: QuizService,
        load_vocabulary: VocabularyLoader,
        settings_provider: SettingsProvider,
    ):
        """
        Args:
            quiz_service: LLM exchanges (question, evaluation).
            load_vocabulary: Loads the vocabulary for the given settings.
            settings_provider: Returns the current settings; read on every step.
        """
        self._service = quiz_service
        self._load_vocabulary = load_vocabulary
        self._settings = settings_provider

        self.state = SessionState.IDLE
        self.vocabulary: list[VocabItem] = []
        self.question_text: str | None = None
        self.current_prompt = ""
        self.answer = ""
        self.last_verdict: Verdict | None = None
        self.feedback: str | None = None
        self.error: str | None = None

    @property
    def awaiting_answer(self) -> bool:
        return self.state == SessionState.AWAITING_ANSWER

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    def _ignore(self, trigger: str) -> bool:
        logger.debug("Ignoring '%s' in state %s", trigger, self.state.value)
        return False

    def _fail(self, origin: SessionState, exc: Exception) -> bool:
        if isinstance(exc, AnkiTutorError):
            logger.error("Quiz step failed in %s: %s", self.state.value, exc)
        else:
            logger.exception("Unexpected error in %s", self.state.value)
        self.state = origin
        self.error = str(exc)
        return False

    # ---------- Questions ----------

    async def request_question(self) -> bool:
        """Generate the first question (from IDLE) or the next one (from ANSWERED)."""
        if self.state not in (SessionState.IDLE, SessionState.ANSWERED):
            return self._ignore("request_question")
        return await self._generate(origin=self.state)

    async def skip(self) -> bool:
        """Abandon the unanswered question and generate another one."""
        if self.state != SessionState.AWAITING_ANSWER:
            return self._ignore("skip")
        return await self._generate(origin=self.state)

    async def _generate(self, origin: SessionState) -> bool:
        self.error = None
        try:
            settings = self._settings()
            self._service.check_credentials(settings)
            if not self.vocabulary:
                self.state = SessionState.VOCAB_LOADING
                vocabulary = await self._load_vocabulary(settings)
                if not vocabulary:
                    self.state = origin
                    self.error = NO_VOCABULARY_MESSAGE
                    logger.warning(NO_VOCABULARY_MESSAGE)
                    return False
                self.vocabulary = list(vocabulary)

            self.state = SessionState.QUESTION_PENDING
            question = await self._service.generate_question(self.vocabulary, settings)
        except Exception as e:
            return self._fail(origin, e)

        self.question_text = question.question
        self.current_prompt = question.prompt
        self.answer = ""
        self.last_verdict = None
        self.feedback = None
        self.state = SessionState.AWAITING_ANSWER
        return True

    async def reload_vocabulary(self) -> bool:
        """Replace the cached vocabulary. Only allowed between calls."""
        if self.busy:
            return self._ignore("reload_vocabulary")
        origin = self.state
        self.error = None
        try:
            settings = self._settings()
            self.state = SessionState.VOCAB_LOADING
            vocabulary = await self._load_vocabulary(settings)
        except Exception as e:
            return self._fail(origin, e)

        self.state = origin
        if not vocabulary:
            self.error = NO_VOCABULARY_MESSAGE
            return False
        self.vocabulary = list(vocabulary)
        return True

    # ---------- Answers ----------

    async def submit_answer(self, answer: str) -> bool:
        """Evaluate an answer to the current question."""
        if self.state != SessionState.AWAITING_ANSWER:
            return self._ignore("submit_answer")
        try:
            validate_answer(answer)
        except AnswerValidationError as e:
            self.error = str(e)
            return False

        self.answer = answer
        self.error = None
        try:
            settings = self._settings()
            self.state = SessionState.EVALUATING
            feedback = await self._service.evaluate_answer(self.current_prompt, answer, settings)
        except Exception as e:
            return self._fail(SessionState.AWAITING_ANSWER, e)

        self.last_verdict = feedback.result
        self.feedback = feedback.feedback_text
        self.state = SessionState.ANSWERED
        return True

    # ---------- Single trigger ----------

    def advance_action(self, answer: str = "") -> AdvanceAction | None:
        """Resolve what the advance trigger would do right now, if anything."""
        action = ADVANCE_TABLE.get(self.state)
        if action == AdvanceAction.SUBMIT_ANSWER and not answer.strip():
            return None
        return action

    async def advance(self, answer: str = "") -> AdvanceAction | None:
        """Run the action the advance trigger maps to; returns it, or None for a no-op."""
        action = self.advance_action(answer)
        if action is None:
            return None
        if action == AdvanceAction.SUBMIT_ANSWER:
            await self.submit_answer(answer)
        else:
            await self.request_question()
        return action

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "vocabulary_size": len(self.vocabulary),
            "question": self.question_text,
            "prompt": self.current_prompt,
            "answer": self.answer,
            "awaiting_answer": self.awaiting_answer,
            "verdict": self.last_verdict.value if self.last_verdict else None,
            "feedback": self.feedback,
            "error": self.error,
        }
