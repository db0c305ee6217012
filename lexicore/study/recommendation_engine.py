"""
Recommendation Engine - learner-level advice from completed sessions.

Pipeline:
1. Pull completed sessions (90-day window for patterns, 30-day window for
   recent performance).
2. Per question type and per difficulty level accuracy.
3. Weakness (accuracy <= 0.5, >= 2 answers) and strength (accuracy >= 0.8)
   patterns, plus consistency, improvement and engagement scores.
4. Independent rules produce Recommendations, ranked by
   priority_weight * estimated_impact * confidence / 100.

Read-only: store errors propagate to the caller.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from statistics import pvariance

from loguru import logger

from lexicore.core.models import (
    Priority,
    Recommendation,
    RecommendationType,
    SessionSummary,
)
from lexicore.core.store import MasteryStore


# =============================================================================
# QUESTION TYPE TAXONOMY
# =============================================================================

QUESTION_TYPE_CATEGORIES = {
    "lexical_fix": "vocabulary",
    "grammar_transformation": "grammar",
    "sentence_puzzle": "reading",
    "translate": "writing",
    "reverse_translation": "writing",
    "gap_fill": "writing",
    "choice_one": "reading",
    "choice_multi": "reading",
    "matching": "vocabulary",
    "true_false": "reading",
}
DEFAULT_CATEGORY = "vocabulary"

LEARNING_STYLE_TYPES = {
    "visual": ("sentence_puzzle", "matching", "true_false"),
    "auditory": ("translate", "reverse_translation", "choice_one"),
    "kinesthetic": ("gap_fill", "grammar_transformation", "lexical_fix"),
}
MIXED_STYLE = "mixed"

STUDY_TIME_BUCKETS = ("morning", "afternoon", "evening", "night")


def category_for(question_type: str) -> str:
    return QUESTION_TYPE_CATEGORIES.get(question_type, DEFAULT_CATEGORY)


def study_time_bucket(hour: int) -> str:
    """Map an hour of day to morning (5-11), afternoon (12-16), evening (17-20) or night."""
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


# =============================================================================
# PATTERNS & PROFILE
# =============================================================================


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


@dataclass
class RecommendationConfig:
    """Configuration for pattern analysis."""

    pattern_window_days: int = 90
    recent_window_days: int = 30
    engagement_baseline_seconds: int = 600
    weakness_threshold: float = 0.5
    high_severity_threshold: float = 0.4
    strength_threshold: float = 0.8
    min_observations: int = 2


@dataclass(frozen=True)
class WeaknessPattern:
    category: str
    question_type: str
    accuracy: float
    severity: Severity
    frequency: float  # share of sessions containing this question type


@dataclass(frozen=True)
class StrengthPattern:
    category: str
    question_type: str
    accuracy: float
    proficiency: str
    consistency: float


@dataclass
class PerformanceSnapshot:
    """Aggregate performance over a window of sessions."""

    accuracy_rate: float = 0.0
    avg_difficulty: float = 5.0
    avg_time_spent: float = 0.0
    total_sessions: int = 0
    total_questions: int = 0


@dataclass
class LearningPatterns:
    type_accuracy: dict[str, float] = field(default_factory=dict)
    type_counts: dict[str, int] = field(default_factory=dict)
    difficulty_accuracy: dict[int, float] = field(default_factory=dict)
    weaknesses: list[WeaknessPattern] = field(default_factory=list)
    strengths: list[StrengthPattern] = field(default_factory=list)
    consistency: float = 0.5
    improvement: float = 0.0
    engagement: float = 0.0

    @property
    def high_severity_weaknesses(self) -> list[WeaknessPattern]:
        return [w for w in self.weaknesses if w.severity == Severity.HIGH]

    @property
    def weak_categories(self) -> set[str]:
        return {w.category for w in self.weaknesses}


@dataclass
class LearningProfile:
    learner_id: str
    learning_style: str = MIXED_STYLE
    preferred_pace: str = "moderate"
    focus_areas: list[str] = field(default_factory=list)
    optimal_study_time: str = "morning"
    patterns: LearningPatterns = field(default_factory=LearningPatterns)
    recent: PerformanceSnapshot = field(default_factory=PerformanceSnapshot)


# =============================================================================
# ANALYSIS HELPERS
# =============================================================================


def _accuracy_by(sessions: list[SessionSummary], key) -> tuple[dict, dict]:
    correct: Counter = Counter()
    total: Counter = Counter()
    for session in sessions:
        for question in session.questions:
            if not question.is_answered:
                continue
            k = key(question)
            total[k] += 1
            correct[k] += 1 if question.is_correct else 0
    accuracy = {k: correct[k] / total[k] for k in total}
    return accuracy, dict(total)


def consistency_score(sessions: list[SessionSummary]) -> float:
    """1 / (1 + variance of the gaps between sessions in days), 0.5 with < 2 sessions."""
    if len(sessions) < 2:
        return 0.5
    moments = sorted(s.created_at for s in sessions)
    gaps = [(b - a).total_seconds() / 86400 for a, b in zip(moments, moments[1:])]
    return min(1.0, 1 / (1 + pvariance(gaps)))


def improvement_rate(sessions: list[SessionSummary]) -> float:
    """Accuracy of the newer half minus the older half; sessions are newest first."""
    if len(sessions) < 3:
        return 0.0
    half = len(sessions) // 2
    recent, older = sessions[:half], sessions[half:]
    recent_acc = sum(s.accuracy_rate for s in recent) / len(recent)
    older_acc = sum(s.accuracy_rate for s in older) / len(older)
    return recent_acc - older_acc


def engagement_level(sessions: list[SessionSummary], baseline_seconds: int) -> float:
    if not sessions:
        return 0.0
    avg = sum(s.total_time_spent for s in sessions) / len(sessions)
    return min(1.0, avg / baseline_seconds)


def type_consistency(sessions: list[SessionSummary], question_type: str) -> float:
    """1 / (1 + variance of per-session accuracy on one question type)."""
    accuracies = []
    for session in sessions:
        typed = [q for q in session.questions if q.question_type == question_type and q.is_answered]
        if typed:
            accuracies.append(sum(1 for q in typed if q.is_correct) / len(typed))
    if len(accuracies) < 2:
        return 0.5
    return 1 / (1 + pvariance(accuracies))


def snapshot(sessions: list[SessionSummary]) -> PerformanceSnapshot:
    if not sessions:
        return PerformanceSnapshot()
    total_questions = sum(len(s.questions) for s in sessions)
    correct = sum(1 for s in sessions for q in s.questions if q.is_correct)
    return PerformanceSnapshot(
        accuracy_rate=correct / total_questions if total_questions else 0.0,
        avg_difficulty=sum(s.difficulty_level for s in sessions) / len(sessions),
        avg_time_spent=sum(s.total_time_spent for s in sessions) / len(sessions),
        total_sessions=len(sessions),
        total_questions=total_questions,
    )


# =============================================================================
# ENGINE
# =============================================================================


class RecommendationEngine:
    """
    Builds learning profiles and ranked recommendations.

    Args:
        store: Analytics store accessor
        config: RecommendationConfig or None for defaults
    """

    def __init__(self, store: MasteryStore, config: RecommendationConfig | None = None):
        self.store = store
        self.config = config or RecommendationConfig()

    # ========================================
    # Analysis
    # ========================================

    def analyze_patterns(self, sessions: list[SessionSummary]) -> LearningPatterns:
        cfg = self.config
        type_accuracy, type_counts = _accuracy_by(sessions, lambda q: q.question_type)
        difficulty_accuracy, _ = _accuracy_by(sessions, lambda q: q.difficulty_level or 5)

        weaknesses = []
        strengths = []
        for qtype in sorted(type_accuracy, key=lambda t: (type_accuracy[t], t)):
            accuracy = type_accuracy[qtype]
            if accuracy <= cfg.weakness_threshold and type_counts[qtype] >= cfg.min_observations:
                weaknesses.append(WeaknessPattern(
                    category=category_for(qtype),
                    question_type=qtype,
                    accuracy=accuracy,
                    severity=Severity.HIGH if accuracy < cfg.high_severity_threshold else Severity.MEDIUM,
                    frequency=sum(
                        1 for s in sessions if any(q.question_type == qtype for q in s.questions)
                    ) / len(sessions),
                ))
            elif accuracy >= cfg.strength_threshold:
                strengths.append(StrengthPattern(
                    category=category_for(qtype),
                    question_type=qtype,
                    accuracy=accuracy,
                    proficiency="advanced" if accuracy > 0.9 else "intermediate",
                    consistency=type_consistency(sessions, qtype),
                ))

        return LearningPatterns(
            type_accuracy=type_accuracy,
            type_counts=type_counts,
            difficulty_accuracy=difficulty_accuracy,
            weaknesses=weaknesses,
            strengths=strengths,
            consistency=consistency_score(sessions),
            improvement=improvement_rate(sessions),
            engagement=engagement_level(sessions, cfg.engagement_baseline_seconds),
        )

    @staticmethod
    def learning_style(sessions: list[SessionSummary]) -> str:
        """Style whose question-type family has strictly the best accuracy, else mixed."""
        scores = {}
        for style, types in LEARNING_STYLE_TYPES.items():
            answers = [
                q for s in sessions for q in s.questions
                if q.question_type in types and q.is_answered
            ]
            scores[style] = sum(1 for q in answers if q.is_correct) / len(answers) if answers else 0.0

        best = max(scores, key=scores.get)
        if all(scores[best] > score for style, score in scores.items() if style != best):
            return best
        return MIXED_STYLE

    @staticmethod
    def preferred_pace(sessions: list[SessionSummary]) -> str:
        total_questions = sum(len(s.questions) for s in sessions)
        if total_questions == 0:
            return "moderate"
        per_question = sum(s.total_time_spent for s in sessions) / total_questions
        if per_question < 30:
            return "fast"
        if per_question < 60:
            return "moderate"
        return "slow"

    @staticmethod
    def focus_areas(recent: PerformanceSnapshot) -> list[str]:
        if recent.total_sessions == 0:
            return []
        areas = []
        if recent.accuracy_rate < 0.6:
            areas.append("improve_accuracy")
        if recent.avg_difficulty < 4:
            areas.append("increase_difficulty")
        if recent.avg_time_spent > 300:
            areas.append("improve_efficiency")
        return areas

    @staticmethod
    def optimal_study_time(sessions: list[SessionSummary]) -> str:
        buckets = Counter(study_time_bucket(s.created_at.hour) for s in sessions)
        if not buckets:
            return "morning"
        return max(STUDY_TIME_BUCKETS, key=lambda b: buckets[b])

    def build_profile(self, learner_id: str) -> LearningProfile:
        """Learning style, pace, focus areas and patterns for one learner."""
        sessions = self.store.get_sessions(learner_id, self.config.pattern_window_days)
        recent_sessions = self.store.get_sessions(learner_id, self.config.recent_window_days)
        recent = snapshot(recent_sessions)

        return LearningProfile(
            learner_id=learner_id,
            learning_style=self.learning_style(sessions),
            preferred_pace=self.preferred_pace(sessions),
            focus_areas=self.focus_areas(recent),
            optimal_study_time=self.optimal_study_time(sessions),
            patterns=self.analyze_patterns(sessions),
            recent=recent,
        )

    # ========================================
    # Recommendations
    # ========================================

    def generate_recommendations(self, learner_id: str) -> list[Recommendation]:
        """
        Ranked recommendations for a learner.

        Every applicable rule fires; the result is sorted by
        Recommendation.score descending (rule order breaks ties).
        """
        profile = self.build_profile(learner_id)
        patterns = profile.patterns

        recommendations: list[Recommendation] = []
        recommendations += self._focus_recommendations(patterns)
        recommendations += self._intensity_recommendations(patterns)
        recommendations += self._question_type_recommendations(profile)
        recommendations += self._study_time_recommendations(profile)
        recommendations += self._review_recommendations(patterns)

        ranked = sorted(recommendations, key=lambda r: r.score, reverse=True)
        logger.info(
            f"Generated {len(ranked)} recommendations for learner {learner_id} "
            f"({len(patterns.weaknesses)} weaknesses, consistency {patterns.consistency:.2f})"
        )
        return ranked

    def _focus_recommendations(self, patterns: LearningPatterns) -> list[Recommendation]:
        recs = []
        high = patterns.high_severity_weaknesses
        if high:
            top = high[0]
            recs.append(Recommendation(
                type=RecommendationType.SESSION_FOCUS,
                title=f"Focus on {top.category}",
                description=(
                    f"You are struggling with {top.category}. "
                    f"Spend 60% of your study time on this area."
                ),
                priority=Priority.HIGH,
                action_items=[
                    f"Practice {top.category} for at least 15 minutes every day",
                    f"Concentrate on {top.question_type} exercises",
                    "Review the mistakes you make most often in this area",
                ],
                estimated_impact=85,
                confidence=90,
            ))

        if len(patterns.weak_categories) >= 3:
            recs.append(Recommendation(
                type=RecommendationType.SESSION_FOCUS,
                title="Balance your study",
                description="Several areas need work. Split your study time across them.",
                priority=Priority.MEDIUM,
                action_items=[
                    "Spend 40% on your weakest area, 30% on the second, 30% on review",
                    "Plan a weekly schedule with varied topics",
                    "Check your progress every week",
                ],
                estimated_impact=70,
                confidence=80,
            ))
        return recs

    def _intensity_recommendations(self, patterns: LearningPatterns) -> list[Recommendation]:
        recs = []
        if patterns.consistency < 0.6:
            recs.append(Recommendation(
                type=RecommendationType.PRACTICE_INTENSITY,
                title="Build a daily habit",
                description="Your study sessions are irregular. Set up a daily routine.",
                priority=Priority.HIGH,
                action_items=[
                    "Study at least 20 minutes every day",
                    "Pick a fixed time of day for studying",
                    "Turn on study reminders",
                ],
                estimated_impact=75,
                confidence=85,
            ))

        if patterns.improvement < 0.1:
            recs.append(Recommendation(
                type=RecommendationType.PRACTICE_INTENSITY,
                title="Increase intensity",
                description="Your accuracy is improving slowly. Practice longer and harder.",
                priority=Priority.MEDIUM,
                action_items=[
                    "Raise study time to 30-45 minutes a day",
                    "Attempt harder exercises",
                    "Revisit material 24 hours after learning it",
                ],
                estimated_impact=65,
                confidence=75,
            ))
        return recs

    def _question_type_recommendations(self, profile: LearningProfile) -> list[Recommendation]:
        if profile.learning_style == MIXED_STYLE:
            return []
        types = LEARNING_STYLE_TYPES[profile.learning_style]
        return [Recommendation(
            type=RecommendationType.QUESTION_TYPES,
            title=f"Question types for a {profile.learning_style} learner",
            description=f"{', '.join(types)} questions suit your learning style best.",
            priority=Priority.MEDIUM,
            action_items=[
                f"Prefer {' and '.join(types)} exercises",
                "Still mix question types in every session",
                "Track how well each question type works for you",
            ],
            estimated_impact=60,
            confidence=70,
        )]

    def _study_time_recommendations(self, profile: LearningProfile) -> list[Recommendation]:
        if profile.patterns.engagement >= 0.5:
            return []
        slot = profile.optimal_study_time
        when = "at night" if slot == "night" else f"in the {slot}"
        return [Recommendation(
            type=RecommendationType.STUDY_TIME,
            title="Optimize study time",
            description="Short sessions suggest low engagement. Choose a better time to study.",
            priority=Priority.MEDIUM,
            action_items=[
                f"Keep your sessions {when}, your most regular study time",
                "Split study time into 25-minute blocks",
                "Take a 5-minute break after each block",
            ],
            estimated_impact=55,
            confidence=65,
        )]

    def _review_recommendations(self, patterns: LearningPatterns) -> list[Recommendation]:
        return [
            Recommendation(
                type=RecommendationType.REVIEW_SCHEDULE,
                title=f"Schedule reviews for {weakness.category}",
                description=f"Regular review will consolidate {weakness.question_type}.",
                priority=Priority.HIGH,
                action_items=[
                    f"Review {weakness.category} after 1, 3 and 7 days",
                    "Use spaced repetition for missed items",
                    "Note down recurring mistakes",
                ],
                estimated_impact=80,
                confidence=85,
            )
            for weakness in patterns.high_severity_weaknesses
        ]
