# Domain Stats Package
from .models import FALLBACK_COLOR, GRADE_COLORS, Grade, NoteStats, RawCardStat, ReviewNote

__all__ = ["Grade", "GRADE_COLORS", "FALLBACK_COLOR", "NoteStats", "RawCardStat", "ReviewNote"]
