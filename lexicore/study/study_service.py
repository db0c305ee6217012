"""
Study Service - session orchestration over the review engines.

Provides high-level operations for the CLI:
- Select items and open a pending session
- Record answers and complete a session (summary, mastery updates, schedule)
- Learner profile and recommendations
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from lexicore.config import Settings, get_settings
from lexicore.core.errors import SessionStateError
from lexicore.core.models import (
    CandidateRow,
    ItemType,
    MasteryAdjustment,
    NextReviewItem,
    Question,
    Recommendation,
    Session,
    SessionStatus,
)
from lexicore.core.store import MasteryStore
from lexicore.study.mastery_engine import MasteryUpdateEngine
from lexicore.study.recommendation_engine import LearningProfile, RecommendationEngine
from lexicore.study.review_scheduler import ReviewScheduler
from lexicore.study.selection_engine import ItemSelection, SelectionEngine, ranking_key
from lexicore.study.session_evaluator import SessionEvaluation, SessionEvaluator

DEFAULT_QUESTION_TYPES = {
    ItemType.VOCABULARY: "lexical_fix",
    ItemType.GRAMMAR: "grammar_transformation",
}


@dataclass
class SessionResult:
    """Everything produced by completing a session."""

    session: Session
    adjustments: list[MasteryAdjustment] = field(default_factory=list)
    review_schedule: list[NextReviewItem] = field(default_factory=list)
    evaluation: SessionEvaluation | None = None


class StudyService:
    """
    Facade wiring the store into the selection, mastery and recommendation engines.

    All collaborators are injected; use from_settings() for the default wiring.
    """

    def __init__(
        self,
        store: MasteryStore,
        selection: SelectionEngine | None = None,
        mastery: MasteryUpdateEngine | None = None,
        recommendations: RecommendationEngine | None = None,
        scheduler: ReviewScheduler | None = None,
        evaluator: SessionEvaluator | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.scheduler = scheduler or ReviewScheduler()
        self.selection = selection or SelectionEngine(store)
        self.mastery = mastery or MasteryUpdateEngine(store, self.scheduler, now=now)
        self.recommendations = recommendations or RecommendationEngine(store)
        self.evaluator = evaluator or SessionEvaluator()
        self._now = now

    @classmethod
    def from_settings(
        cls,
        store: MasteryStore,
        settings: Settings | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> StudyService:
        settings = settings or get_settings()
        scheduler = ReviewScheduler(max_interval_days=settings.max_interval_days)
        return cls(
            store,
            selection=SelectionEngine(store, settings.selection_config()),
            mastery=MasteryUpdateEngine(store, scheduler, now=now),
            recommendations=RecommendationEngine(store, settings.recommendation_config()),
            scheduler=scheduler,
            now=now,
        )

    # ========================================
    # Selection
    # ========================================

    def select_items(self, target_count: int, learner_id: str | None = None) -> ItemSelection:
        return self.selection.select_items(target_count, learner_id)

    def due_items(self, limit: int | None = None) -> list[CandidateRow]:
        """Due candidates of both categories in ranking order."""
        due = [
            c
            for item_type in ItemType
            for c in self.selection.rank_candidates(item_type)
            if c.is_due
        ]
        due.sort(key=ranking_key)
        return due[:limit] if limit is not None else due

    # ========================================
    # Session lifecycle
    # ========================================

    def create_session(self, learner_id: str, questions: list[Question]) -> Session:
        """Persist a pending session for the given questions."""
        difficulty = (
            sum(q.difficulty_level or 5 for q in questions) / len(questions) if questions else 5.0
        )
        session = Session(
            id=str(uuid.uuid4()),
            learner_id=learner_id,
            questions=questions,
            created_at=self._now(),
            difficulty_level=difficulty,
        )
        self.store.save_session(session)
        logger.info(f"Created session {session.id} for {learner_id} with {len(questions)} questions")
        return session

    def create_session_from_selection(
        self,
        learner_id: str,
        selection: ItemSelection,
        time_limit: float | None = 30.0,
    ) -> Session:
        """One question per selected item, using the item's difficulty."""
        questions = []
        for item_type, ids in (
            (ItemType.VOCABULARY, selection.vocabulary_ids),
            (ItemType.GRAMMAR, selection.grammar_ids),
        ):
            for item_id in ids:
                item = self.store.get_item(item_id, item_type)
                questions.append(Question(
                    id=str(uuid.uuid4()),
                    question_type=DEFAULT_QUESTION_TYPES[item_type],
                    difficulty_level=item.difficulty_level,
                    time_limit=time_limit,
                    vocabulary_item_ids=[item_id] if item_type == ItemType.VOCABULARY else [],
                    grammar_item_ids=[item_id] if item_type == ItemType.GRAMMAR else [],
                ))
        return self.create_session(learner_id, questions)

    def _load(self, session: Session | str) -> Session:
        if isinstance(session, Session):
            return session
        loaded = self.store.get_session(session)
        if loaded is None:
            raise SessionStateError(f"Session not found: {session}")
        return loaded

    def record_answer(
        self,
        session: Session | str,
        question_id: str,
        is_correct: bool,
        time_spent: float | None = None,
    ) -> Session:
        """Store the outcome of one question of a pending session."""
        session = self._load(session)
        if session.is_completed:
            raise SessionStateError(f"Session {session.id} is already completed")

        question = next((q for q in session.questions if q.id == question_id), None)
        if question is None:
            raise SessionStateError(f"Question {question_id} is not part of session {session.id}")
        question.is_correct = is_correct
        question.time_spent = time_spent
        self.store.save_session(session)
        return session

    def complete_session(self, session: Session | str) -> SessionResult:
        """
        Finish a pending session.

        The completed summary is saved before mastery updates run, so a
        failure part-way leaves a completed session that cannot be applied
        twice.

        Raises:
            SessionStateError: Session missing, already completed, or has
                unanswered questions
            StoreUnavailable: Store unreachable
        """
        session = self._load(session)
        if session.status != SessionStatus.PENDING:
            raise SessionStateError(f"Session {session.id} is already {session.status.value}")
        unanswered = [q.id for q in session.questions if not q.is_answered]
        if unanswered:
            raise SessionStateError(
                f"Session {session.id} has {len(unanswered)} unanswered questions"
            )

        questions = session.questions
        correct = [q for q in questions if q.is_correct]
        session.accuracy_rate = len(correct) / len(questions) if questions else 0.0
        session.total_score = sum(q.max_points for q in correct)
        session.total_time_spent = sum(q.time_spent or 0.0 for q in questions)
        session.status = SessionStatus.COMPLETED
        session.completed_at = self._now()
        self.store.save_session(session)

        adjustments = self.mastery.apply_session_outcomes(session)
        result = SessionResult(
            session=session,
            adjustments=adjustments,
            review_schedule=self.scheduler.schedule(adjustments),
            evaluation=self.evaluator.evaluate(session),
        )
        logger.info(
            f"Completed session {session.id}: accuracy {session.accuracy_rate:.0%}, "
            f"score {session.total_score}, {len(adjustments)} items updated"
        )
        return result

    # ========================================
    # Learner insight
    # ========================================

    def generate_recommendations(self, learner_id: str) -> list[Recommendation]:
        return self.recommendations.generate_recommendations(learner_id)

    def build_profile(self, learner_id: str) -> LearningProfile:
        return self.recommendations.build_profile(learner_id)
