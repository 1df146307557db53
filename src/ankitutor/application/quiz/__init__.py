# Application Quiz Package
from .service import QuizService
from .session import AdvanceAction, QuizSession, SessionState

__all__ = ["QuizService", "QuizSession", "SessionState", "AdvanceAction"]
