"""
Per-item analytics tables.

One row per item, created on the first review. Both tables share the same
mutable columns through AnalyticsColumns.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Float, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class AnalyticsColumns:
    """Mutable analytics columns shared by the vocabulary and grammar tables."""

    mastery_score: Mapped[float] = mapped_column(Float, default=0.0)
    retention_score: Mapped[float] = mapped_column(Float, default=0.5)
    confidence_level: Mapped[float] = mapped_column(Float, default=0.0)
    success_count: Mapped[int] = mapped_column(Integer, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, default=0)
    exposure_count: Mapped[int] = mapped_column(Integer, default=0)
    last_reviewed: Mapped[datetime | None] = mapped_column()
    next_review_date: Mapped[datetime | None] = mapped_column(index=True)
    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())


class VocabularyAnalytics(AnalyticsColumns, Base):
    __tablename__ = "vocabulary_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vocabulary_item_id: Mapped[str] = mapped_column(
        Text, ForeignKey("vocabulary_items.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<VocabularyAnalytics item={self.vocabulary_item_id} mastery={self.mastery_score}>"


class GrammarAnalytics(AnalyticsColumns, Base):
    __tablename__ = "grammar_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    grammar_item_id: Mapped[str] = mapped_column(
        Text, ForeignKey("grammar_items.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<GrammarAnalytics item={self.grammar_item_id} mastery={self.mastery_score}>"
