"""
SQL-backed store accessor.

Implements the MasteryStore protocol on the SQLAlchemy tables in
lexicore.db.models. Each call runs in its own short transaction; nothing is
held open across a session-completion flow.

Connection-level failures surface as StoreUnavailable, any other database
error as StoreError.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session as OrmSession
from sqlalchemy.orm import selectinload, sessionmaker

from lexicore.core.errors import ItemNotFound, StoreError, StoreUnavailable
from lexicore.core.models import (
    AnalyticsRecord,
    CandidateRow,
    ItemType,
    LearningItem,
    Question,
    Session,
    SessionStatus,
    SessionSummary,
)
from lexicore.core.store import ORDER_DUE_FIRST
from lexicore.db.database import session_scope
from lexicore.db.models import (
    GrammarAnalytics,
    GrammarItem,
    SessionQuestion,
    StudySession,
    VocabularyAnalytics,
    VocabularyItem,
)


@dataclass(frozen=True)
class _TableSet:
    """ORM classes and column names backing one item type."""

    item: Any
    analytics: Any
    foreign_key: str
    label: str


_TABLES: dict[ItemType, _TableSet] = {
    ItemType.VOCABULARY: _TableSet(VocabularyItem, VocabularyAnalytics, "vocabulary_item_id", "word"),
    ItemType.GRAMMAR: _TableSet(GrammarItem, GrammarAnalytics, "grammar_item_id", "title"),
}


class SqlMasteryStore:
    """
    MasteryStore over a relational database.

    Args:
        session_factory: SQLAlchemy sessionmaker bound to the store's engine
        now: Clock used for due flags, staleness and history windows
    """

    def __init__(
        self,
        session_factory: sessionmaker[OrmSession],
        now: Callable[[], datetime] = datetime.now,
    ):
        self._factory = session_factory
        self._now = now

    @contextmanager
    def _scope(self) -> Generator[OrmSession, None, None]:
        try:
            with session_scope(self._factory) as session:
                yield session
        except (OperationalError, InterfaceError) as e:
            raise StoreUnavailable(f"Analytics store unreachable: {e}") from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise StoreUnavailable(f"Analytics store connection lost: {e}") from e
            raise StoreError(f"Analytics store error: {e}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Analytics store error: {e}") from e

    # ========================================
    # Items
    # ========================================

    def get_item(self, item_id: str, item_type: ItemType) -> LearningItem:
        tables = _TABLES[item_type]
        with self._scope() as session:
            row = session.get(tables.item, item_id)
            if row is None:
                raise ItemNotFound(item_id, item_type.value)
            return self._to_item(row, item_type)

    def save_item(self, item: LearningItem) -> None:
        tables = _TABLES[item.item_type]
        with self._scope() as session:
            row = session.get(tables.item, item.id)
            if row is None:
                row = tables.item(id=item.id)
                session.add(row)
            setattr(row, tables.label, item.label)
            row.difficulty_level = item.difficulty_level
            row.frequency_rank = item.frequency_rank
            row.category = item.category
            row.tags = list(item.tags)
            row.created_at = item.created_at

    def _to_item(self, row: Any, item_type: ItemType) -> LearningItem:
        return LearningItem(
            id=row.id,
            item_type=item_type,
            difficulty_level=row.difficulty_level,
            created_at=row.created_at,
            label=getattr(row, _TABLES[item_type].label) or "",
            frequency_rank=row.frequency_rank,
            category=row.category,
            tags=tuple(row.tags or ()),
        )

    # ========================================
    # Analytics
    # ========================================

    def get_analytics(self, item_id: str, item_type: ItemType) -> AnalyticsRecord | None:
        tables = _TABLES[item_type]
        fk = getattr(tables.analytics, tables.foreign_key)
        with self._scope() as session:
            row = session.execute(
                select(tables.analytics).where(fk == item_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._to_record(row, item_id, item_type)

    def upsert_analytics(self, record: AnalyticsRecord) -> None:
        tables = _TABLES[record.item_type]
        fk = getattr(tables.analytics, tables.foreign_key)
        now = self._now()
        with self._scope() as session:
            row = session.execute(
                select(tables.analytics).where(fk == record.item_id)
            ).scalar_one_or_none()
            if row is None:
                row = tables.analytics(**{tables.foreign_key: record.item_id})
                row.created_at = record.created_at or now
                session.add(row)
            row.mastery_score = record.mastery_score
            row.retention_score = record.retention_score
            row.confidence_level = record.confidence_level
            row.success_count = record.success_count
            row.failure_count = record.failure_count
            row.exposure_count = record.exposure_count
            row.last_reviewed = record.last_reviewed
            row.next_review_date = record.next_review_date
            row.updated_at = record.updated_at or now

    @staticmethod
    def _to_record(row: Any, item_id: str, item_type: ItemType) -> AnalyticsRecord:
        return AnalyticsRecord(
            item_id=item_id,
            item_type=item_type,
            mastery_score=row.mastery_score or 0.0,
            retention_score=row.retention_score if row.retention_score is not None else 0.5,
            confidence_level=row.confidence_level or 0.0,
            success_count=row.success_count or 0,
            failure_count=row.failure_count or 0,
            exposure_count=row.exposure_count or 0,
            last_reviewed=row.last_reviewed,
            next_review_date=row.next_review_date,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    # ========================================
    # Candidates
    # ========================================

    def query_candidates(
        self,
        item_type: ItemType,
        difficulty_min: int,
        difficulty_max: int,
        limit: int | None = None,
        order_hint: str = ORDER_DUE_FIRST,
    ) -> list[CandidateRow]:
        """
        Items in the difficulty window joined with their analytics.

        Missing analytics default to mastery=0, retention=0.5, confidence=0,
        exposure=0 and a due flag. The order hint only decides which rows
        survive a limit; final ranking belongs to the SelectionEngine.
        """
        tables = _TABLES[item_type]
        item, analytics = tables.item, tables.analytics
        fk = getattr(analytics, tables.foreign_key)
        now = self._now()

        query = (
            select(item, analytics)
            .outerjoin(analytics, fk == item.id)
            .where(item.difficulty_level.between(difficulty_min, difficulty_max))
        )
        if order_hint == ORDER_DUE_FIRST:
            due_flag = case(
                (or_(analytics.next_review_date.is_(None), analytics.next_review_date <= now), 1),
                else_=0,
            )
            query = query.order_by(
                due_flag.desc(),
                func.coalesce(analytics.last_reviewed, item.created_at).asc(),
                item.difficulty_level.asc(),
                item.id.asc(),
            )
        if limit is not None:
            query = query.limit(limit)

        with self._scope() as session:
            rows = session.execute(query).all()
            candidates = [self._to_candidate(i, a, item_type, now) for i, a in rows]

        logger.debug(
            f"{len(candidates)} {item_type.value} candidates in difficulty "
            f"{difficulty_min}-{difficulty_max}"
        )
        return candidates

    @staticmethod
    def _to_candidate(item: Any, analytics: Any, item_type: ItemType, now: datetime) -> CandidateRow:
        reference = item.created_at
        if analytics is not None and analytics.last_reviewed is not None:
            reference = analytics.last_reviewed
        seconds = (now - reference).total_seconds() if reference is not None else 0.0

        if analytics is None:
            return CandidateRow(
                item_id=item.id,
                item_type=item_type,
                difficulty_level=item.difficulty_level,
                seconds_since_review=seconds,
                frequency_rank=item.frequency_rank,
            )

        return CandidateRow(
            item_id=item.id,
            item_type=item_type,
            difficulty_level=item.difficulty_level,
            mastery=analytics.mastery_score or 0.0,
            retention=analytics.retention_score if analytics.retention_score is not None else 0.5,
            confidence=analytics.confidence_level or 0.0,
            exposure=analytics.exposure_count or 0,
            success_count=analytics.success_count or 0,
            failure_count=analytics.failure_count or 0,
            seconds_since_review=seconds,
            is_due=analytics.next_review_date is None or analytics.next_review_date <= now,
            frequency_rank=item.frequency_rank,
        )

    # ========================================
    # Sessions
    # ========================================

    def get_sessions(
        self,
        learner_id: str | None,
        window_days: int,
        limit: int | None = None,
    ) -> list[SessionSummary]:
        since = self._now() - timedelta(days=window_days)
        query = (
            select(StudySession)
            .options(selectinload(StudySession.questions))
            .where(
                StudySession.status == SessionStatus.COMPLETED.value,
                StudySession.completed_at.is_not(None),
                StudySession.created_at >= since,
            )
            .order_by(StudySession.created_at.desc())
        )
        if learner_id is not None:
            query = query.where(StudySession.learner_id == learner_id)
        if limit is not None:
            query = query.limit(limit)

        with self._scope() as session:
            rows = session.execute(query).scalars().all()
            return [self._to_session(row).summary() for row in rows]

    def get_session(self, session_id: str) -> Session | None:
        with self._scope() as session:
            row = session.execute(
                select(StudySession)
                .options(selectinload(StudySession.questions))
                .where(StudySession.id == session_id)
            ).scalar_one_or_none()
            return self._to_session(row) if row is not None else None

    def save_session(self, study_session: Session) -> None:
        with self._scope() as session:
            row = session.execute(
                select(StudySession)
                .options(selectinload(StudySession.questions))
                .where(StudySession.id == study_session.id)
            ).scalar_one_or_none()
            if row is None:
                row = StudySession(id=study_session.id)
                session.add(row)

            row.learner_id = study_session.learner_id
            row.status = study_session.status.value
            row.topics = list(study_session.topics)
            row.difficulty_level = study_session.difficulty_level
            row.accuracy_rate = study_session.accuracy_rate
            row.total_score = study_session.total_score
            row.total_time_spent = study_session.total_time_spent
            row.created_at = study_session.created_at
            row.completed_at = study_session.completed_at

            existing = {q.id: q for q in row.questions}
            question_rows = []
            for position, question in enumerate(study_session.questions):
                q_row = existing.get(question.id) or SessionQuestion(id=question.id)
                q_row.position = position
                q_row.question_type = question.question_type
                q_row.difficulty_level = question.difficulty_level
                q_row.time_limit = question.time_limit
                q_row.time_spent = question.time_spent
                q_row.is_correct = question.is_correct
                q_row.points = question.points
                q_row.vocabulary_item_ids = list(question.vocabulary_item_ids)
                q_row.grammar_item_ids = list(question.grammar_item_ids)
                question_rows.append(q_row)
            row.questions = question_rows

    @staticmethod
    def _to_session(row: StudySession) -> Session:
        questions = [
            Question(
                id=q.id,
                question_type=q.question_type,
                difficulty_level=q.difficulty_level,
                time_limit=q.time_limit,
                vocabulary_item_ids=list(q.vocabulary_item_ids or []),
                grammar_item_ids=list(q.grammar_item_ids or []),
                is_correct=q.is_correct,
                time_spent=q.time_spent,
                points=q.points,
            )
            for q in row.questions
        ]
        return Session(
            id=row.id,
            learner_id=row.learner_id,
            questions=questions,
            created_at=row.created_at,
            status=SessionStatus(row.status),
            completed_at=row.completed_at,
            topics=list(row.topics or []),
            difficulty_level=row.difficulty_level if row.difficulty_level is not None else 5.0,
            accuracy_rate=row.accuracy_rate,
            total_score=row.total_score,
            total_time_spent=row.total_time_spent,
        )
