"""
Mastery level categorisation.

Maps the 0-1 mastery score of an AnalyticsRecord onto display buckets used
by the CLI and by the recommendation profile.
"""

from __future__ import annotations

from enum import Enum


class MasteryLevel(str, Enum):
    """Mastery level categorization."""

    NOT_STARTED = "not_started"  # 0%
    NOVICE = "novice"  # 1-39%
    DEVELOPING = "developing"  # 40-69%
    PROFICIENT = "proficient"  # 70-89%
    MASTERED = "mastered"  # 90-100%

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-1 mastery score to a level.

        Args:
            score: Mastery score between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if score <= 0:
            return cls.NOT_STARTED
        elif score < 0.4:
            return cls.NOVICE
        elif score < 0.7:
            return cls.DEVELOPING
        elif score < 0.9:
            return cls.PROFICIENT
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


def format_progress_bar(score: float, width: int = 10) -> str:
    """
    Format a text-based progress bar.

    Args:
        score: Score 0-1
        width: Character width of bar

    Returns:
        String like "########--" (80%)
    """
    filled = int(max(0.0, min(1.0, score)) * width)
    return "#" * filled + "-" * (width - filled)
