# SQLAlchemy models
from .analytics import AnalyticsColumns, GrammarAnalytics, VocabularyAnalytics
from .base import Base
from .content import GrammarItem, VocabularyItem
from .sessions import SessionQuestion, StudySession

__all__ = [
    # Base
    "Base",
    # Content
    "VocabularyItem",
    "GrammarItem",
    # Analytics
    "AnalyticsColumns",
    "VocabularyAnalytics",
    "GrammarAnalytics",
    # Sessions
    "StudySession",
    "SessionQuestion",
]
