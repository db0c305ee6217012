"""
Session Evaluator - score a completed session and explain it.

    overall_score = round((accuracy * 0.6 + time_efficiency * 0.4) * 100)

Time efficiency per answer: 1.0 within 70% of the limit, 0.7 within the
limit, 0.3 over it. Answers without timing count as 0.7.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lexicore.core.errors import InvalidOutcome
from lexicore.core.models import Question, Session

ACCURACY_WEIGHT = 0.6
EFFICIENCY_WEIGHT = 0.4

OPTIMAL_TIME_SHARE = 0.7
EFFICIENCY_OPTIMAL = 1.0
EFFICIENCY_WITHIN_LIMIT = 0.7
EFFICIENCY_OVER_LIMIT = 0.3


@dataclass
class BreakdownStats:
    """Answer tally for one question type or difficulty level."""

    total: int = 0
    correct: int = 0
    time_spent: float = 0.0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass
class SessionEvaluation:
    """Result of evaluating one session."""

    session_id: str
    overall_score: int
    accuracy_rate: float
    time_efficiency: float
    by_question_type: dict[str, BreakdownStats] = field(default_factory=dict)
    by_difficulty: dict[int, BreakdownStats] = field(default_factory=dict)
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def answer_efficiency(question: Question) -> float:
    try:
        ratio = question.time_ratio()
    except InvalidOutcome:
        return EFFICIENCY_WITHIN_LIMIT
    if ratio <= OPTIMAL_TIME_SHARE:
        return EFFICIENCY_OPTIMAL
    if ratio <= 1.0:
        return EFFICIENCY_WITHIN_LIMIT
    return EFFICIENCY_OVER_LIMIT


class SessionEvaluator:
    """Computes accuracy, efficiency and strength/weakness notes for a session."""

    def evaluate(self, session: Session) -> SessionEvaluation:
        questions = session.questions
        answered = [q for q in questions if q.is_answered]

        correct = sum(1 for q in answered if q.is_correct)
        accuracy = correct / len(questions) if questions else 0.0
        efficiency = (
            sum(answer_efficiency(q) for q in answered) / len(answered) if answered else 0.0
        )

        by_type = self._breakdown(answered, lambda q: q.question_type)
        by_difficulty = self._breakdown(answered, lambda q: q.difficulty_level or 5)

        return SessionEvaluation(
            session_id=session.id,
            overall_score=int(round(
                (accuracy * ACCURACY_WEIGHT + efficiency * EFFICIENCY_WEIGHT) * 100
            )),
            accuracy_rate=accuracy,
            time_efficiency=efficiency,
            by_question_type=by_type,
            by_difficulty=by_difficulty,
            strengths=self.strengths(by_type, by_difficulty),
            weaknesses=self.weaknesses(by_type, by_difficulty),
            suggestions=self.suggestions(by_type, by_difficulty),
        )

    @staticmethod
    def _breakdown(questions: list[Question], key) -> dict:
        stats: dict = {}
        for question in questions:
            entry = stats.setdefault(key(question), BreakdownStats())
            entry.total += 1
            entry.correct += 1 if question.is_correct else 0
            entry.time_spent += question.time_spent or 0.0
        return stats

    @staticmethod
    def strengths(by_type: dict[str, BreakdownStats], by_difficulty: dict[int, BreakdownStats]) -> list[str]:
        notes = [
            f"High accuracy in {qtype} questions"
            for qtype, stats in by_type.items()
            if stats.accuracy >= 0.8
        ]
        notes += [
            f"Good performance on high difficulty (level {level})"
            for level, stats in sorted(by_difficulty.items())
            if level >= 7 and stats.accuracy >= 0.7
        ]
        return notes

    @staticmethod
    def weaknesses(by_type: dict[str, BreakdownStats], by_difficulty: dict[int, BreakdownStats]) -> list[str]:
        notes = [
            f"Low accuracy in {qtype} questions"
            for qtype, stats in by_type.items()
            if stats.total >= 2 and stats.accuracy <= 0.5
        ]
        notes += [
            f"Struggling with difficulty level {level}"
            for level, stats in sorted(by_difficulty.items())
            if stats.total >= 2 and stats.accuracy <= 0.4
        ]
        return notes

    @staticmethod
    def suggestions(by_type: dict[str, BreakdownStats], by_difficulty: dict[int, BreakdownStats]) -> list[str]:
        notes = [
            f"Practice more {qtype} questions to improve accuracy"
            for qtype, stats in by_type.items()
            if stats.accuracy <= 0.6
        ]
        if by_difficulty and max(by_difficulty) - min(by_difficulty) >= 3:
            notes.append("Focus on medium difficulty questions to build a solid foundation")
        return notes
