"""
Study Module - the review engines.

Provides:
- Item selection (mix ratio + urgency ranking)
- Mastery updates after a completed session
- Review scheduling (SM-2 style ease factor)
- Session evaluation and learner recommendations
"""

from lexicore.study.mastery_engine import MasteryUpdateEngine
from lexicore.study.recommendation_engine import RecommendationConfig, RecommendationEngine
from lexicore.study.review_scheduler import ReviewScheduler
from lexicore.study.selection_engine import SelectionConfig, SelectionEngine
from lexicore.study.session_evaluator import SessionEvaluator
from lexicore.study.study_service import SessionResult, StudyService

__all__ = [
    "SelectionEngine",
    "SelectionConfig",
    "MasteryUpdateEngine",
    "ReviewScheduler",
    "SessionEvaluator",
    "RecommendationEngine",
    "RecommendationConfig",
    "StudyService",
    "SessionResult",
]
