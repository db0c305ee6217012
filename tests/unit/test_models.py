"""
Unit tests for the domain records.

Covers constructor-level clamping, question timing and derived fields.
"""

from datetime import datetime

import pytest

from lexicore.core.errors import InvalidOutcome
from lexicore.core.mastery import MasteryLevel, format_progress_bar
from lexicore.core.models import (
    AnalyticsRecord,
    ItemType,
    LearningItem,
    MasteryAdjustment,
    Priority,
    Question,
    Recommendation,
    RecommendationType,
    Session,
    derive_topics,
)

from conftest import NOW, make_question


class TestClamping:
    def test_analytics_record_scores_are_clamped(self):
        record = AnalyticsRecord(
            item_id="v1",
            item_type=ItemType.VOCABULARY,
            mastery_score=1.7,
            retention_score=-0.2,
            confidence_level=140,
        )
        assert record.mastery_score == 1.0
        assert record.retention_score == 0.0
        assert record.confidence_level == 100.0

    def test_negative_counters_are_floored(self):
        record = AnalyticsRecord("v1", ItemType.VOCABULARY, success_count=-3)
        assert record.success_count == 0

    def test_mastery_adjustment_is_clamped(self):
        adj = MasteryAdjustment(
            item_id="v1",
            item_type=ItemType.VOCABULARY,
            mastery_change=-0.5,
            mastery_score=-0.1,
            retention_score=2.0,
            confidence_level=-5,
            next_review_date=NOW,
            interval_days=1,
        )
        assert adj.mastery_score == 0.0
        assert adj.retention_score == 1.0
        assert adj.confidence_level == 0.0
        # The change itself is reported as computed
        assert adj.mastery_change == -0.5

    def test_recommendation_impact_and_confidence_clamped(self):
        rec = Recommendation(
            type=RecommendationType.STUDY_TIME,
            title="t",
            description="d",
            priority=Priority.LOW,
            estimated_impact=150,
            confidence=-10,
        )
        assert rec.estimated_impact == 100
        assert rec.confidence == 0


class TestAnalyticsRecord:
    def test_defaults_for_first_review(self):
        record = AnalyticsRecord("g1", ItemType.GRAMMAR)
        assert record.mastery_score == 0.0
        assert record.retention_score == 0.5
        assert record.confidence_level == 0.0
        assert record.success_rate is None

    def test_success_rate(self):
        record = AnalyticsRecord("v1", ItemType.VOCABULARY, success_count=3, failure_count=1)
        assert record.success_rate == 0.75

    def test_due_when_never_scheduled_or_date_reached(self):
        record = AnalyticsRecord("v1", ItemType.VOCABULARY)
        assert record.is_due(NOW)
        record.next_review_date = NOW
        assert record.is_due(NOW)
        record.next_review_date = datetime(2026, 3, 3)
        assert not record.is_due(NOW)


class TestLearningItem:
    @pytest.mark.parametrize("level", [0, 11])
    def test_difficulty_outside_range_rejected(self, level):
        with pytest.raises(ValueError):
            LearningItem("v1", ItemType.VOCABULARY, difficulty_level=level, created_at=NOW)


class TestQuestion:
    def test_time_ratio(self):
        q = make_question(time_spent=15, time_limit=30)
        assert q.time_ratio() == 0.5

    @pytest.mark.parametrize(
        "spent,limit",
        [(None, 30), (10, None), (None, None), (10, 0), (-1, 30)],
    )
    def test_time_ratio_invalid_timing(self, spent, limit):
        q = make_question(time_spent=spent, time_limit=limit)
        with pytest.raises(InvalidOutcome):
            q.time_ratio()

    def test_item_refs_vocabulary_first(self):
        q = make_question(vocab=["v1", "v2"], grammar=["g1"])
        assert list(q.item_refs()) == [
            ("v1", ItemType.VOCABULARY),
            ("v2", ItemType.VOCABULARY),
            ("g1", ItemType.GRAMMAR),
        ]

    def test_max_points_defaults_to_difficulty(self):
        assert make_question(difficulty=7).max_points == 70
        q = make_question(difficulty=7)
        q.points = 25
        assert q.max_points == 25

    def test_unanswered(self):
        q = Question(id="q", question_type="gap_fill")
        assert not q.is_answered


class TestSession:
    def test_topics_derived_from_questions(self):
        questions = [make_question("q1", vocab=["v1"]), make_question("q2", grammar=["g1"])]
        assert derive_topics(questions) == ["vocabulary", "grammar"]
        session = Session("s1", "learner", questions, created_at=NOW)
        assert session.topics == ["vocabulary", "grammar"]

    def test_summary_defaults_missing_totals(self):
        session = Session("s1", "learner", [make_question(vocab=["v1"])], created_at=NOW)
        summary = session.summary()
        assert summary.accuracy_rate == 0.0
        assert summary.total_time_spent == 0.0
        assert summary.topics == ["vocabulary"]


class TestPriorityAndScore:
    def test_priority_weights(self):
        assert [p.weight for p in (Priority.HIGH, Priority.MEDIUM, Priority.LOW)] == [3, 2, 1]

    def test_recommendation_score(self):
        rec = Recommendation(
            type=RecommendationType.SESSION_FOCUS,
            title="t",
            description="d",
            priority=Priority.HIGH,
            estimated_impact=85,
            confidence=90,
        )
        assert rec.score == pytest.approx(229.5)


class TestMasteryLevel:
    @pytest.mark.parametrize(
        "score,level",
        [
            (0.0, MasteryLevel.NOT_STARTED),
            (0.2, MasteryLevel.NOVICE),
            (0.5, MasteryLevel.DEVELOPING),
            (0.75, MasteryLevel.PROFICIENT),
            (0.95, MasteryLevel.MASTERED),
        ],
    )
    def test_from_score(self, score, level):
        assert MasteryLevel.from_score(score) is level

    def test_display_name(self):
        assert MasteryLevel.NOT_STARTED.display_name == "Not Started"
        assert MasteryLevel.PROFICIENT.display_name == "Proficient"

    def test_progress_bar(self):
        assert format_progress_bar(0.8) == "########--"
        assert format_progress_bar(1.5, width=4) == "####"
