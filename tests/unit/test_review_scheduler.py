"""
Unit tests for ReviewScheduler intervals and review priorities.
"""

from datetime import timedelta

import pytest

from lexicore.core.models import ItemType, MasteryAdjustment, Priority
from lexicore.study.review_scheduler import ReviewScheduler

from conftest import NOW


def adjustment(change=0.1, confidence=50.0, retention=0.5):
    return MasteryAdjustment(
        item_id="v1",
        item_type=ItemType.VOCABULARY,
        mastery_change=change,
        mastery_score=0.5,
        retention_score=retention,
        confidence_level=confidence,
        next_review_date=NOW + timedelta(days=2),
        interval_days=2,
    )


class TestIntervals:
    def test_ease_factor(self):
        assert ReviewScheduler.ease_factor(0, 0) == 2.5
        assert ReviewScheduler.ease_factor(3, 2) == pytest.approx(2.5)
        assert ReviewScheduler.ease_factor(10, 0) == pytest.approx(3.5)

    def test_first_success(self):
        # 2.5 * 1.108 * 0.66 = 1.83 -> 2 days
        scheduler = ReviewScheduler()
        assert scheduler.interval_days(0.108, 0.66, 0, 0) == 2

    def test_half_rounds_up(self):
        # 2.5 * 1.0 * 1.0 = 2.5 -> 3
        assert ReviewScheduler().interval_days(0.0, 1.0, 0, 0) == 3

    def test_lower_bound(self):
        assert ReviewScheduler().interval_days(0.0, 0.1, 0, 5) == 1

    def test_upper_bound(self):
        assert ReviewScheduler().interval_days(1.0, 1.0, 200, 0) == 30

    def test_configurable_upper_bound(self):
        assert ReviewScheduler(max_interval_days=7).interval_days(1.0, 1.0, 50, 0) == 7

    def test_ease_can_go_negative_but_interval_stays_positive(self):
        assert ReviewScheduler().interval_days(0.5, 0.5, 0, 40) == 1

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ReviewScheduler(max_interval_days=0)

    def test_next_review_date(self):
        date, days = ReviewScheduler().next_review_date(NOW, 0.0, 1.0, 0, 0)
        assert days == 3
        assert date == NOW + timedelta(days=3)

    def test_more_successes_never_shrink_interval(self):
        scheduler = ReviewScheduler()
        intervals = [scheduler.interval_days(0.5, 0.8, s, 1) for s in range(0, 30)]
        assert intervals == sorted(intervals)


class TestReviewPriority:
    @pytest.mark.parametrize(
        "change,confidence,expected",
        [
            (-0.25, 80, Priority.HIGH),
            (-0.05, 80, Priority.MEDIUM),
            (0.1, 20, Priority.HIGH),
            (0.1, 45, Priority.MEDIUM),
            (0.1, 75, Priority.LOW),
        ],
    )
    def test_priority(self, change, confidence, expected):
        assert ReviewScheduler.review_priority(adjustment(change, confidence)) is expected

    def test_reasons(self):
        assert ReviewScheduler.review_reason(adjustment(-0.01)) == "Performance decrease detected"
        assert ReviewScheduler.review_reason(adjustment(0.1, 10)) == "Low confidence level"
        assert ReviewScheduler.review_reason(adjustment(0.1, 50, retention=0.2)) == "Poor retention"
        assert ReviewScheduler.review_reason(adjustment(0.1, 50)) == "Scheduled review"

    def test_schedule_keeps_adjustment_order(self):
        adjs = [adjustment(0.1), adjustment(-0.3)]
        adjs[1].item_id = "v2"
        schedule = ReviewScheduler().schedule(adjs)
        assert [r.item_id for r in schedule] == ["v1", "v2"]
        assert schedule[1].priority is Priority.HIGH
        assert schedule[0].review_date == NOW + timedelta(days=2)
