"""
Content tables: vocabulary and grammar items.

Items are authored elsewhere and never mutated by the scheduler.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class VocabularyItem(Base):
    """A word or phrase to learn."""

    __tablename__ = "vocabulary_items"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    word: Mapped[str] = mapped_column(Text, default="")
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    frequency_rank: Mapped[int | None] = mapped_column(Integer)
    category: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<VocabularyItem {self.id} '{self.word}' level={self.difficulty_level}>"


class GrammarItem(Base):
    """A grammar point to learn."""

    __tablename__ = "grammar_items"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, default="")
    difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    frequency_rank: Mapped[int | None] = mapped_column(Integer)
    category: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<GrammarItem {self.id} '{self.title}' level={self.difficulty_level}>"
