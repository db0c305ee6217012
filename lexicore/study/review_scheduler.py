"""
Review Scheduler - next review dates from an SM-2 style ease factor.

    ease_factor   = 2.5 + successes * 0.1 - failures * 0.15
    interval_days = clamp(round(1 * ease * (1 + mastery) * retention), 1, 30)

Successes widen the interval, failures narrow it, and both higher mastery
and higher retention stretch it further. The upper bound keeps a long
streak from pushing an item out of rotation for months.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from lexicore.core.models import MasteryAdjustment, NextReviewItem, Priority

BASE_INTERVAL_DAYS = 1
DEFAULT_EASE_FACTOR = 2.5
SUCCESS_EASE_BONUS = 0.1
FAILURE_EASE_PENALTY = 0.15

# Review priority thresholds
SHARP_DROP = -0.2
LOW_CONFIDENCE = 30
MODERATE_CONFIDENCE = 60
POOR_RETENTION = 0.3


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class ReviewScheduler:
    """
    Spaced repetition interval calculator.

    Args:
        max_interval_days: Longest allowed gap between reviews (default 30)
        min_interval_days: Shortest allowed gap between reviews (default 1)
    """

    def __init__(self, max_interval_days: int = 30, min_interval_days: int = 1):
        if min_interval_days < 1 or max_interval_days < min_interval_days:
            raise ValueError(
                f"invalid interval bounds: min={min_interval_days}, max={max_interval_days}"
            )
        self.max_interval_days = max_interval_days
        self.min_interval_days = min_interval_days

    @staticmethod
    def ease_factor(success_count: int, failure_count: int) -> float:
        return DEFAULT_EASE_FACTOR + success_count * SUCCESS_EASE_BONUS - failure_count * FAILURE_EASE_PENALTY

    def interval_days(
        self,
        mastery_score: float,
        retention_score: float,
        success_count: int,
        failure_count: int,
    ) -> int:
        """
        Days until the next review.

        Args:
            mastery_score: Mastery after the current attempt (0-1)
            retention_score: Retention after the current attempt (0-1)
            success_count: Successes before the current attempt
            failure_count: Failures before the current attempt

        Returns:
            Interval in whole days within [min_interval_days, max_interval_days]
        """
        ease = self.ease_factor(success_count, failure_count)
        raw = BASE_INTERVAL_DAYS * ease * (1 + mastery_score) * retention_score
        return max(self.min_interval_days, min(self.max_interval_days, _round_half_up(raw)))

    def next_review_date(
        self,
        now: datetime,
        mastery_score: float,
        retention_score: float,
        success_count: int,
        failure_count: int,
    ) -> tuple[datetime, int]:
        """Return (next_review_date, interval_days)."""
        days = self.interval_days(mastery_score, retention_score, success_count, failure_count)
        return now + timedelta(days=days), days

    # ========================================
    # Review schedule
    # ========================================

    @staticmethod
    def review_priority(adjustment: MasteryAdjustment) -> Priority:
        if adjustment.mastery_change < SHARP_DROP:
            return Priority.HIGH
        if adjustment.mastery_change < 0:
            return Priority.MEDIUM
        if adjustment.confidence_level < LOW_CONFIDENCE:
            return Priority.HIGH
        if adjustment.confidence_level < MODERATE_CONFIDENCE:
            return Priority.MEDIUM
        return Priority.LOW

    @staticmethod
    def review_reason(adjustment: MasteryAdjustment) -> str:
        if adjustment.mastery_change < 0:
            return "Performance decrease detected"
        if adjustment.confidence_level < LOW_CONFIDENCE:
            return "Low confidence level"
        if adjustment.retention_score < POOR_RETENTION:
            return "Poor retention"
        return "Scheduled review"

    def review_item(self, adjustment: MasteryAdjustment) -> NextReviewItem:
        return NextReviewItem(
            item_id=adjustment.item_id,
            item_type=adjustment.item_type,
            review_date=adjustment.next_review_date,
            priority=self.review_priority(adjustment),
            reason=self.review_reason(adjustment),
        )

    def schedule(self, adjustments: list[MasteryAdjustment]) -> list[NextReviewItem]:
        """One review entry per adjustment, in adjustment order."""
        return [self.review_item(adjustment) for adjustment in adjustments]
