"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from lexicore.core.errors import ItemNotFound, StoreError, StoreUnavailable
from lexicore.core.models import (
    AnalyticsRecord,
    CandidateRow,
    ItemType,
    LearningItem,
    Question,
    Session,
    SessionStatus,
)
from lexicore.core.store import ORDER_DUE_FIRST

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

NOW = datetime(2026, 3, 2, 9, 0, 0)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite store)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class FakeStore:
    """
    In-memory MasteryStore.

    Set `unavailable` to make every call raise StoreUnavailable, or add ids
    to `broken_writes` to make upserts for those items raise StoreError.
    """

    def __init__(self, now=lambda: NOW):
        self.now = now
        self.items: dict[tuple[ItemType, str], LearningItem] = {}
        self.analytics: dict[tuple[ItemType, str], AnalyticsRecord] = {}
        self.sessions: dict[str, Session] = {}
        self.unavailable = False
        self.unavailable_after_upserts: int | None = None
        self.broken_writes: set[str] = set()
        self.upserts: list[AnalyticsRecord] = []
        self.candidate_calls: list[dict] = []

    def _check(self):
        if self.unavailable:
            raise StoreUnavailable("store offline")

    # Items

    def get_item(self, item_id, item_type):
        self._check()
        try:
            return self.items[(item_type, item_id)]
        except KeyError:
            raise ItemNotFound(item_id, item_type.value) from None

    def save_item(self, item):
        self._check()
        self.items[(item.item_type, item.id)] = item

    def add_item(self, item_id, item_type=ItemType.VOCABULARY, difficulty=5, created_at=None, **analytics):
        """Test helper: add an item and, when fields are given, its analytics."""
        item = LearningItem(
            id=item_id,
            item_type=item_type,
            difficulty_level=difficulty,
            created_at=created_at or NOW - timedelta(days=10),
        )
        self.items[(item_type, item_id)] = item
        if analytics:
            self.analytics[(item_type, item_id)] = AnalyticsRecord(
                item_id=item_id, item_type=item_type, **analytics
            )
        return item

    # Analytics

    def get_analytics(self, item_id, item_type):
        self._check()
        return self.analytics.get((item_type, item_id))

    def upsert_analytics(self, record):
        self._check()
        if record.item_id in self.broken_writes:
            raise StoreError(f"write failed for {record.item_id}")
        self.analytics[(record.item_type, record.item_id)] = record
        self.upserts.append(record)
        if self.unavailable_after_upserts is not None and len(self.upserts) >= self.unavailable_after_upserts:
            self.unavailable = True

    def query_candidates(self, item_type, difficulty_min, difficulty_max, limit=None, order_hint=ORDER_DUE_FIRST):
        self._check()
        self.candidate_calls.append({"item_type": item_type, "limit": limit, "order_hint": order_hint})
        now = self.now()
        rows = []
        for (itype, item_id), item in self.items.items():
            if itype != item_type or not difficulty_min <= item.difficulty_level <= difficulty_max:
                continue
            record = self.analytics.get((itype, item_id))
            reference = record.last_reviewed if record and record.last_reviewed else item.created_at
            seconds = (now - reference).total_seconds()
            if record is None:
                rows.append(CandidateRow(item_id, itype, item.difficulty_level, seconds_since_review=seconds))
                continue
            rows.append(CandidateRow(
                item_id=item_id,
                item_type=itype,
                difficulty_level=item.difficulty_level,
                mastery=record.mastery_score,
                retention=record.retention_score,
                confidence=record.confidence_level,
                exposure=record.exposure_count,
                success_count=record.success_count,
                failure_count=record.failure_count,
                seconds_since_review=seconds,
                is_due=record.is_due(now),
            ))
        rows.sort(key=lambda r: (not r.is_due, -r.seconds_since_review, r.difficulty_level, r.item_id))
        return rows[:limit] if limit is not None else rows

    # Sessions

    def get_sessions(self, learner_id, window_days, limit=None):
        self._check()
        since = self.now() - timedelta(days=window_days)
        found = [
            s for s in self.sessions.values()
            if s.status == SessionStatus.COMPLETED
            and s.completed_at is not None
            and s.created_at >= since
            and (learner_id is None or s.learner_id == learner_id)
        ]
        found.sort(key=lambda s: s.created_at, reverse=True)
        if limit is not None:
            found = found[:limit]
        return [s.summary() for s in found]

    def get_session(self, session_id):
        self._check()
        return self.sessions.get(session_id)

    def save_session(self, study_session):
        self._check()
        self.sessions[study_session.id] = study_session


def make_question(
    qid="q1",
    question_type="lexical_fix",
    correct=True,
    time_spent=10.0,
    time_limit=30.0,
    difficulty=5,
    vocab=(),
    grammar=(),
):
    return Question(
        id=qid,
        question_type=question_type,
        difficulty_level=difficulty,
        time_limit=time_limit,
        vocabulary_item_ids=list(vocab),
        grammar_item_ids=list(grammar),
        is_correct=correct,
        time_spent=time_spent,
    )


def completed_session(
    sid,
    questions,
    created_at,
    learner_id="learner-1",
    total_time_spent=None,
    difficulty_level=5.0,
):
    """A completed session with accuracy derived from its questions."""
    correct = sum(1 for q in questions if q.is_correct)
    return Session(
        id=sid,
        learner_id=learner_id,
        questions=questions,
        created_at=created_at,
        status=SessionStatus.COMPLETED,
        completed_at=created_at + timedelta(minutes=15),
        difficulty_level=difficulty_level,
        accuracy_rate=correct / len(questions) if questions else 0.0,
        total_score=correct * 50,
        total_time_spent=(
            total_time_spent if total_time_spent is not None
            else sum(q.time_spent or 0 for q in questions)
        ),
    )


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def vocab_item(store):
    return store.add_item("v1", ItemType.VOCABULARY, difficulty=5)


@pytest.fixture
def grammar_item(store):
    return store.add_item("g1", ItemType.GRAMMAR, difficulty=5)
