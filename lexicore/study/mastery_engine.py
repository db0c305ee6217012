"""
Mastery Update Engine - per-item analytics after a completed session.

For every answered question and every item it references:

    base_change = base_rate * difficulty * time * accuracy * (consistency | complexity)
    mastery_change = +base_change                  if correct
                   = -base_change * penalty        otherwise

Vocabulary: base_rate 0.10, penalty 0.5, consistency factor from the item's
success rate. Grammar: base_rate 0.08, penalty 0.6, complexity factor 1.2 for
transformation/puzzle questions.

Retention and confidence move alongside mastery and the next review date is
set by the ReviewScheduler. Items are processed one at a time; a missing or
unwritable item is skipped without blocking the rest of the session.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from lexicore.core.errors import InvalidOutcome, ItemNotFound, StoreError, StoreUnavailable
from lexicore.core.models import (
    AnalyticsRecord,
    ItemType,
    LearningItem,
    MasteryAdjustment,
    Question,
    Session,
    clamp,
)
from lexicore.core.store import MasteryStore
from lexicore.study.review_scheduler import ReviewScheduler


@dataclass(frozen=True)
class UpdateRule:
    """Category-specific constants of the mastery delta."""

    base_rate: float
    penalty: float


UPDATE_RULES: dict[ItemType, UpdateRule] = {
    ItemType.VOCABULARY: UpdateRule(base_rate=0.10, penalty=0.5),
    ItemType.GRAMMAR: UpdateRule(base_rate=0.08, penalty=0.6),
}

COMPLEX_GRAMMAR_TYPES = frozenset({"grammar_transformation", "sentence_puzzle"})

CORRECT_FACTOR = 1.2
INCORRECT_FACTOR = 0.8
MIN_RETENTION = 0.1


def difficulty_factor(difficulty_level: int) -> float:
    """0.55 for level 1 up to 1.0 for level 10."""
    return 0.5 + (difficulty_level / 10) * 0.5


def time_factor(time_ratio: float) -> float:
    """Reward fast answers, penalise answers over the limit."""
    if time_ratio <= 0.3:
        return 1.2  # very fast
    if time_ratio <= 0.7:
        return 1.0
    if time_ratio <= 1.0:
        return 0.8
    return 0.5


def consistency_factor(record: AnalyticsRecord | None) -> float:
    """0.7 + success_rate * 0.3, or 1.0 without history."""
    if record is None or record.success_rate is None:
        return 1.0
    return 0.7 + record.success_rate * 0.3


def complexity_factor(question_type: str) -> float:
    return 1.2 if question_type in COMPLEX_GRAMMAR_TYPES else 1.0


class MasteryUpdateEngine:
    """
    Applies session outcomes to item analytics.

    Args:
        store: Analytics store accessor
        scheduler: ReviewScheduler for next review dates
        now: Clock used for last_reviewed and scheduling
    """

    def __init__(
        self,
        store: MasteryStore,
        scheduler: ReviewScheduler | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.scheduler = scheduler or ReviewScheduler()
        self._now = now

    def apply_session_outcomes(self, session: Session) -> list[MasteryAdjustment]:
        """
        Compute and persist one adjustment per (answered question, item).

        Must be called once per session completion. ItemNotFound and other
        per-item store errors are logged and skipped; StoreUnavailable
        propagates, leaving already-processed items updated.

        Returns:
            Adjustments in question order, vocabulary before grammar
        """
        adjustments: list[MasteryAdjustment] = []
        skipped = 0

        for question in session.questions:
            if not question.is_answered:
                logger.debug(f"Question {question.id} unanswered - no mastery update")
                continue

            for item_id, item_type in question.item_refs():
                try:
                    adjustment = self._process_item(session, question, item_id, item_type)
                except ItemNotFound as e:
                    skipped += 1
                    logger.warning(f"Skipping mastery update in session {session.id}: {e}")
                    continue
                except StoreUnavailable:
                    raise
                except StoreError:
                    skipped += 1
                    logger.exception(
                        f"Failed to update {item_type.value} item {item_id} in session {session.id}"
                    )
                    continue
                adjustments.append(adjustment)

        logger.info(
            f"Session {session.id}: {len(adjustments)} mastery adjustments applied"
            + (f", {skipped} items skipped" if skipped else "")
        )
        return adjustments

    def _process_item(
        self,
        session: Session,
        question: Question,
        item_id: str,
        item_type: ItemType,
    ) -> MasteryAdjustment:
        item = self.store.get_item(item_id, item_type)
        current = self.store.get_analytics(item_id, item_type)
        adjustment, updated = self.compute_adjustment(item, current, question, self._now())
        adjustment.session_id = session.id
        self.store.upsert_analytics(updated)
        return adjustment

    def compute_adjustment(
        self,
        item: LearningItem,
        current: AnalyticsRecord | None,
        question: Question,
        now: datetime,
    ) -> tuple[MasteryAdjustment, AnalyticsRecord]:
        """
        Pure update step for one item and one answered question.

        Args:
            item: Content record (difficulty fallback)
            current: Existing analytics or None for a first review
            question: Answered question referencing the item
            now: Review timestamp

        Returns:
            Tuple of (MasteryAdjustment, updated AnalyticsRecord)
        """
        if question.is_correct is None:
            raise ValueError(f"question {question.id} has no outcome")

        item_type = item.item_type
        rule = UPDATE_RULES[item_type]
        record = current or AnalyticsRecord(item_id=item.id, item_type=item_type)
        correct = question.is_correct

        level = question.difficulty_level or item.difficulty_level
        d_factor = difficulty_factor(level)

        try:
            ratio = question.time_ratio()
            t_factor = time_factor(ratio)
            time_bonus = 1.1 if ratio <= 0.7 else 0.9
        except InvalidOutcome as e:
            logger.debug(f"{e} - using neutral time factor")
            t_factor = 1.0
            time_bonus = 1.0

        accuracy = CORRECT_FACTOR if correct else INCORRECT_FACTOR
        if item_type == ItemType.VOCABULARY:
            category_factor = consistency_factor(current)
        else:
            category_factor = complexity_factor(question.question_type)

        base_change = rule.base_rate * d_factor * t_factor * accuracy * category_factor
        mastery_change = base_change if correct else -base_change * rule.penalty

        mastery = clamp(record.mastery_score + mastery_change, 0.0, 1.0)
        retention = clamp(record.retention_score * time_bonus * accuracy, MIN_RETENTION, 1.0)
        confidence_delta = base_change * 100 if correct else -base_change * 50
        confidence = clamp(record.confidence_level + confidence_delta, 0.0, 100.0)

        success_count = record.success_count + (1 if mastery_change > 0 else 0)
        failure_count = record.failure_count + (0 if mastery_change > 0 else 1)

        # Ease comes from the history before this attempt
        next_review, interval = self.scheduler.next_review_date(
            now, mastery, retention, record.success_count, record.failure_count
        )

        updated = AnalyticsRecord(
            item_id=item.id,
            item_type=item_type,
            mastery_score=mastery,
            retention_score=retention,
            confidence_level=confidence,
            success_count=success_count,
            failure_count=failure_count,
            exposure_count=record.exposure_count + 1,
            last_reviewed=now,
            next_review_date=next_review,
            created_at=record.created_at or now,
            updated_at=now,
        )
        adjustment = MasteryAdjustment(
            item_id=item.id,
            item_type=item_type,
            mastery_change=mastery_change,
            mastery_score=mastery,
            retention_score=retention,
            confidence_level=confidence,
            next_review_date=next_review,
            interval_days=interval,
            question_id=question.id,
        )
        return adjustment, updated
