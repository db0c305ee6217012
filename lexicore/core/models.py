"""
Domain records shared by the store accessor and the engines.

All scores are clamped when a record is constructed, so engines never need
to guard against out-of-range values read back from the store:
- mastery_score, retention_score: [0, 1]
- confidence_level: [0, 100]
- estimated_impact, confidence of a Recommendation: [0, 100]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator

from lexicore.core.errors import InvalidOutcome


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


class ItemType(str, Enum):
    """Learning item variants."""

    VOCABULARY = "vocabulary"
    GRAMMAR = "grammar"


class SessionStatus(str, Enum):
    """Session lifecycle: pending -> completed."""

    PENDING = "pending"
    COMPLETED = "completed"


class Priority(str, Enum):
    """Priority bucket for reviews and recommendations."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}[self]


class RecommendationType(str, Enum):
    """Kinds of improvement recommendations."""

    SESSION_FOCUS = "session_focus"
    PRACTICE_INTENSITY = "practice_intensity"
    QUESTION_TYPES = "question_types"
    STUDY_TIME = "study_time"
    REVIEW_SCHEDULE = "review_schedule"


# =============================================================================
# CONTENT & ANALYTICS
# =============================================================================


@dataclass(frozen=True)
class LearningItem:
    """Immutable vocabulary or grammar content record."""

    id: str
    item_type: ItemType
    difficulty_level: int
    created_at: datetime
    label: str = ""
    frequency_rank: int | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()

    def __post_init__(self):
        if not 1 <= self.difficulty_level <= 10:
            raise ValueError(
                f"difficulty_level must be within 1-10, got {self.difficulty_level}"
            )


@dataclass
class AnalyticsRecord:
    """Per-item learner analytics, created lazily on first review."""

    item_id: str
    item_type: ItemType
    mastery_score: float = 0.0
    retention_score: float = 0.5
    confidence_level: float = 0.0
    success_count: int = 0
    failure_count: int = 0
    exposure_count: int = 0
    last_reviewed: datetime | None = None
    next_review_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.mastery_score = clamp(float(self.mastery_score), 0.0, 1.0)
        self.retention_score = clamp(float(self.retention_score), 0.0, 1.0)
        self.confidence_level = clamp(float(self.confidence_level), 0.0, 100.0)
        self.success_count = max(0, int(self.success_count))
        self.failure_count = max(0, int(self.failure_count))
        self.exposure_count = max(0, int(self.exposure_count))

    @property
    def success_rate(self) -> float | None:
        """Share of successful attempts, None without history."""
        total = self.success_count + self.failure_count
        if total == 0:
            return None
        return self.success_count / total

    def is_due(self, now: datetime) -> bool:
        """An item is due when its next review is unset or has arrived."""
        return self.next_review_date is None or self.next_review_date <= now


@dataclass(frozen=True)
class CandidateRow:
    """Joined item + analytics fields needed to rank a selection candidate."""

    item_id: str
    item_type: ItemType
    difficulty_level: int
    mastery: float = 0.0
    retention: float = 0.5
    confidence: float = 0.0
    exposure: int = 0
    success_count: int = 0
    failure_count: int = 0
    seconds_since_review: float = 0.0
    is_due: bool = True
    frequency_rank: int | None = None


# =============================================================================
# SESSIONS
# =============================================================================


@dataclass
class Question:
    """A session question and, once answered, its outcome."""

    id: str
    question_type: str
    difficulty_level: int | None = 5
    time_limit: float | None = None
    vocabulary_item_ids: list[str] = field(default_factory=list)
    grammar_item_ids: list[str] = field(default_factory=list)
    is_correct: bool | None = None
    time_spent: float | None = None
    points: int | None = None

    @property
    def is_answered(self) -> bool:
        return self.is_correct is not None

    @property
    def max_points(self) -> int:
        """Points awarded for a correct answer (difficulty * 10 by default)."""
        if self.points is not None:
            return self.points
        return (self.difficulty_level or 5) * 10

    def time_ratio(self) -> float:
        """
        Ratio of time spent to time limit.

        Raises:
            InvalidOutcome: if either timing field is missing or the limit is not positive
        """
        if self.time_spent is None or self.time_limit is None:
            raise InvalidOutcome(f"question {self.id} has no timing data")
        if self.time_limit <= 0 or self.time_spent < 0:
            raise InvalidOutcome(
                f"question {self.id} has invalid timing "
                f"(spent={self.time_spent}, limit={self.time_limit})"
            )
        return self.time_spent / self.time_limit

    def item_refs(self) -> Iterator[tuple[str, ItemType]]:
        """Yield (item_id, item_type) for every referenced item, vocabulary first."""
        for item_id in self.vocabulary_item_ids:
            yield item_id, ItemType.VOCABULARY
        for item_id in self.grammar_item_ids:
            yield item_id, ItemType.GRAMMAR


def derive_topics(questions: list[Question]) -> list[str]:
    """Topics a session covers, derived from the items its questions reference."""
    topics = []
    if any(q.vocabulary_item_ids for q in questions):
        topics.append(ItemType.VOCABULARY.value)
    if any(q.grammar_item_ids for q in questions):
        topics.append(ItemType.GRAMMAR.value)
    return topics


@dataclass
class Session:
    """An ordered set of questions taken by one learner."""

    id: str
    learner_id: str
    questions: list[Question]
    created_at: datetime
    status: SessionStatus = SessionStatus.PENDING
    completed_at: datetime | None = None
    topics: list[str] = field(default_factory=list)
    difficulty_level: float = 5.0
    accuracy_rate: float | None = None
    total_score: int | None = None
    total_time_spent: float | None = None

    def __post_init__(self):
        if not self.topics:
            self.topics = derive_topics(self.questions)

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    def summary(self) -> SessionSummary:
        """Read-only view used for pattern analysis."""
        return SessionSummary(
            id=self.id,
            learner_id=self.learner_id,
            created_at=self.created_at,
            completed_at=self.completed_at,
            topics=list(self.topics),
            accuracy_rate=self.accuracy_rate or 0.0,
            total_score=self.total_score or 0,
            total_time_spent=self.total_time_spent or 0.0,
            difficulty_level=self.difficulty_level,
            questions=list(self.questions),
        )


@dataclass(frozen=True)
class SessionSummary:
    """Completed session as seen by the selection and recommendation engines."""

    id: str
    learner_id: str
    created_at: datetime
    completed_at: datetime | None = None
    topics: list[str] = field(default_factory=list)
    accuracy_rate: float = 0.0
    total_score: int = 0
    total_time_spent: float = 0.0
    difficulty_level: float = 5.0
    questions: list[Question] = field(default_factory=list)


# =============================================================================
# ENGINE OUTPUTS
# =============================================================================


@dataclass
class MasteryAdjustment:
    """Computed change for one item arising from one answered question."""

    item_id: str
    item_type: ItemType
    mastery_change: float
    mastery_score: float
    retention_score: float
    confidence_level: float
    next_review_date: datetime
    interval_days: int
    session_id: str | None = None
    question_id: str | None = None

    def __post_init__(self):
        self.mastery_score = clamp(self.mastery_score, 0.0, 1.0)
        self.retention_score = clamp(self.retention_score, 0.0, 1.0)
        self.confidence_level = clamp(self.confidence_level, 0.0, 100.0)


@dataclass(frozen=True)
class NextReviewItem:
    """Scheduled review of one item, with why and how urgent."""

    item_id: str
    item_type: ItemType
    review_date: datetime
    priority: Priority
    reason: str


@dataclass
class Recommendation:
    """Ranked, human-readable improvement recommendation."""

    type: RecommendationType
    title: str
    description: str
    priority: Priority
    action_items: list[str] = field(default_factory=list)
    estimated_impact: float = 50.0
    confidence: float = 50.0

    def __post_init__(self):
        self.estimated_impact = clamp(self.estimated_impact, 0.0, 100.0)
        self.confidence = clamp(self.confidence, 0.0, 100.0)

    @property
    def score(self) -> float:
        """Ranking score: priority weight x impact x confidence share."""
        return self.priority.weight * self.estimated_impact * (self.confidence / 100)
