"""
Unit tests for MasteryUpdateEngine.

Runs against the in-memory FakeStore; no database required.
"""

from datetime import timedelta

import pytest

from lexicore.core.errors import StoreUnavailable
from lexicore.core.models import ItemType, Session, SessionStatus
from lexicore.study.mastery_engine import (
    MasteryUpdateEngine,
    consistency_factor,
    difficulty_factor,
    time_factor,
)
from lexicore.study.review_scheduler import ReviewScheduler

from conftest import NOW, make_question


def session_of(*questions):
    return Session(
        id="s1",
        learner_id="learner-1",
        questions=list(questions),
        created_at=NOW - timedelta(minutes=20),
        status=SessionStatus.COMPLETED,
        completed_at=NOW,
    )


@pytest.fixture
def engine(store, clock):
    return MasteryUpdateEngine(store, now=clock)


class TestFactors:
    @pytest.mark.parametrize(
        "ratio,expected",
        [(0.1, 1.2), (0.3, 1.2), (0.5, 1.0), (0.7, 1.0), (0.9, 0.8), (1.0, 0.8), (1.5, 0.5)],
    )
    def test_time_factor(self, ratio, expected):
        assert time_factor(ratio) == expected

    def test_difficulty_factor(self):
        assert difficulty_factor(1) == pytest.approx(0.55)
        assert difficulty_factor(5) == pytest.approx(0.75)
        assert difficulty_factor(10) == pytest.approx(1.0)

    def test_consistency_factor_without_history(self):
        assert consistency_factor(None) == 1.0


class TestScenarios:
    def test_fast_correct_first_review(self, engine, store, vocab_item):
        q = make_question(correct=True, time_spent=5, time_limit=30, difficulty=5, vocab=["v1"])

        [adj] = engine.apply_session_outcomes(session_of(q))

        assert adj.mastery_change == pytest.approx(0.108)
        assert adj.mastery_score == pytest.approx(0.108)
        assert adj.retention_score == pytest.approx(0.66)
        assert adj.confidence_level == pytest.approx(10.8)
        # ease 2.5 * 1.108 * 0.66 = 1.83 -> 2 days
        assert adj.interval_days == 2
        assert adj.next_review_date == NOW + timedelta(days=2)
        assert adj.session_id == "s1"
        assert adj.question_id == "q1"

        record = store.analytics[(ItemType.VOCABULARY, "v1")]
        assert record.success_count == 1
        assert record.failure_count == 0
        assert record.exposure_count == 1
        assert record.last_reviewed == NOW

    def test_interval_uses_counts_before_the_answer(self, engine, store):
        store.add_item("v2", mastery_score=0.4, retention_score=0.5)
        q = make_question(correct=True, time_spent=5, time_limit=30, difficulty=5, vocab=["v2"])

        [adj] = engine.apply_session_outcomes(session_of(q))

        assert adj.mastery_score == pytest.approx(0.508)
        assert adj.retention_score == pytest.approx(0.66)
        # ease 2.5 (no prior successes) * 1.508 * 0.66 = 2.49 -> 2 days
        assert adj.interval_days == 2
        assert store.analytics[(ItemType.VOCABULARY, "v2")].success_count == 1

    def test_slow_incorrect_first_review(self, engine, store, vocab_item):
        q = make_question(correct=False, time_spent=35, time_limit=30, difficulty=5, vocab=["v1"])

        [adj] = engine.apply_session_outcomes(session_of(q))

        assert adj.mastery_change == pytest.approx(-0.015)
        assert adj.mastery_score == 0.0
        assert adj.retention_score == pytest.approx(0.36)
        assert adj.confidence_level == 0.0
        assert adj.interval_days == 1

        record = store.analytics[(ItemType.VOCABULARY, "v1")]
        assert record.failure_count == 1
        assert record.success_count == 0

    def test_grammar_complexity_bonus(self, engine, store, grammar_item):
        q = make_question(
            question_type="grammar_transformation",
            correct=True,
            time_spent=10,
            time_limit=30,
            grammar=["g1"],
        )
        [adj] = engine.apply_session_outcomes(session_of(q))
        # 0.08 * 0.75 * 1.0 * 1.2 * 1.2
        assert adj.mastery_change == pytest.approx(0.0864)

    def test_grammar_penalty(self, engine, store, grammar_item):
        q = make_question(question_type="gap_fill", correct=False, time_spent=10, time_limit=30, grammar=["g1"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        # -(0.08 * 0.75 * 1.0 * 0.8 * 1.0) * 0.6
        assert adj.mastery_change == pytest.approx(-0.0288)

    def test_vocabulary_consistency_from_history(self, engine, store):
        store.add_item("v2", mastery_score=0.4, success_count=3, failure_count=1, exposure_count=4)
        q = make_question(correct=True, time_spent=10, time_limit=30, vocab=["v2"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        # 0.10 * 0.75 * 1.0 * 1.2 * (0.7 + 0.75 * 0.3)
        assert adj.mastery_change == pytest.approx(0.08325)
        assert adj.mastery_score == pytest.approx(0.48325)


class TestEdgeCases:
    def test_missing_timing_uses_neutral_factors(self, engine, store, vocab_item):
        q = make_question(correct=True, time_spent=None, time_limit=None, vocab=["v1"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        assert adj.mastery_change == pytest.approx(0.09)
        assert adj.retention_score == pytest.approx(0.6)

    def test_zero_time_limit_uses_neutral_factors(self, engine, store, vocab_item):
        q = make_question(correct=True, time_spent=4, time_limit=0, vocab=["v1"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        assert adj.mastery_change == pytest.approx(0.09)

    def test_difficulty_falls_back_to_item(self, engine, store):
        store.add_item("v9", difficulty=10)
        q = make_question(correct=True, time_spent=10, time_limit=30, difficulty=None, vocab=["v9"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        assert adj.mastery_change == pytest.approx(0.12)

    def test_unanswered_questions_are_skipped(self, engine, store, vocab_item):
        q = make_question(correct=None, vocab=["v1"])
        assert engine.apply_session_outcomes(session_of(q)) == []
        assert store.upserts == []

    def test_mastery_never_exceeds_one(self, engine, store):
        store.add_item("v3", difficulty=10, mastery_score=0.98, retention_score=1.0,
                       confidence_level=99, success_count=9, exposure_count=9)
        q = make_question(correct=True, time_spent=1, time_limit=30, difficulty=10, vocab=["v3"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        assert adj.mastery_score == 1.0
        assert adj.retention_score == 1.0
        assert adj.confidence_level == 100.0

    def test_retention_floor(self, engine, store):
        store.add_item("v4", retention_score=0.1, failure_count=3, exposure_count=3)
        q = make_question(correct=False, time_spent=60, time_limit=30, vocab=["v4"])
        [adj] = engine.apply_session_outcomes(session_of(q))
        assert adj.retention_score == pytest.approx(0.1)

    def test_each_question_counts_separately(self, engine, store, vocab_item):
        q1 = make_question("q1", correct=True, time_spent=5, vocab=["v1"])
        q2 = make_question("q2", correct=False, time_spent=5, vocab=["v1"])
        adjs = engine.apply_session_outcomes(session_of(q1, q2))
        assert len(adjs) == 2
        record = store.analytics[(ItemType.VOCABULARY, "v1")]
        assert record.exposure_count == 2
        assert record.success_count == 1
        assert record.failure_count == 1


class TestInvariants:
    @pytest.mark.parametrize("correct", [True, False])
    @pytest.mark.parametrize("spent", [1, 15, 25, 45, None])
    @pytest.mark.parametrize("difficulty", [1, 5, 10])
    def test_scores_clamped_and_counters_consistent(self, store, clock, correct, spent, difficulty):
        store.add_item("v1", difficulty=difficulty, mastery_score=0.95, retention_score=0.95,
                       confidence_level=95, success_count=2, failure_count=1, exposure_count=3)
        store.add_item("g1", ItemType.GRAMMAR, difficulty=difficulty)
        engine = MasteryUpdateEngine(store, now=clock)
        q = make_question(correct=correct, time_spent=spent, difficulty=difficulty,
                          vocab=["v1"], grammar=["g1"])

        engine.apply_session_outcomes(session_of(q))

        for record in store.analytics.values():
            assert 0.0 <= record.mastery_score <= 1.0
            assert 0.0 <= record.retention_score <= 1.0
            assert 0.0 <= record.confidence_level <= 100.0
            assert record.exposure_count == record.success_count + record.failure_count

    @pytest.mark.parametrize("spent", [1, 9, 21])
    def test_fast_correct_answer_never_moves_review_earlier(self, store, clock, spent):
        scheduler = ReviewScheduler()
        last = NOW - timedelta(days=3)
        previous_date, _ = scheduler.next_review_date(last, 0.5, 0.8, 4, 1)
        store.add_item("v1", mastery_score=0.5, retention_score=0.8, confidence_level=40,
                       success_count=4, failure_count=1, exposure_count=5,
                       last_reviewed=last, next_review_date=previous_date)
        engine = MasteryUpdateEngine(store, scheduler, now=clock)
        q = make_question(correct=True, time_spent=spent, time_limit=30, vocab=["v1"])

        [adj] = engine.apply_session_outcomes(session_of(q))

        assert adj.next_review_date >= previous_date


class TestFailurePolicy:
    def test_missing_item_is_skipped(self, engine, store, vocab_item):
        q = make_question(vocab=["ghost", "v1"])
        adjs = engine.apply_session_outcomes(session_of(q))
        assert [a.item_id for a in adjs] == ["v1"]
        assert (ItemType.VOCABULARY, "ghost") not in store.analytics

    def test_write_failure_is_skipped(self, engine, store, vocab_item):
        store.add_item("v2")
        store.broken_writes.add("v1")
        q = make_question(vocab=["v1", "v2"])
        adjs = engine.apply_session_outcomes(session_of(q))
        assert [a.item_id for a in adjs] == ["v2"]

    def test_store_unavailable_propagates(self, engine, store, vocab_item, grammar_item):
        store.unavailable_after_upserts = 1
        q = make_question(vocab=["v1"], grammar=["g1"])

        with pytest.raises(StoreUnavailable):
            engine.apply_session_outcomes(session_of(q))

        # Already-processed items stay updated
        assert (ItemType.VOCABULARY, "v1") in store.analytics
        assert (ItemType.GRAMMAR, "g1") not in store.analytics
