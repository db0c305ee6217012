"""
Study session tables.

A session row carries the summary computed once at completion; its questions
carry the per-question outcome fields.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class StudySession(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    status: Mapped[str] = mapped_column(Text, default="pending")  # 'pending', 'completed'
    topics: Mapped[list] = mapped_column(JSON, default=list)
    difficulty_level: Mapped[float] = mapped_column(Float, default=5.0)
    accuracy_rate: Mapped[float | None] = mapped_column(Float)
    total_score: Mapped[int | None] = mapped_column(Integer)
    total_time_spent: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column()

    questions: Mapped[list[SessionQuestion]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionQuestion.position",
    )

    __table_args__ = (Index("idx_sessions_learner_completed", "learner_id", "completed_at"),)

    def __repr__(self) -> str:
        return f"<StudySession {self.id} learner={self.learner_id} status={self.status}>"


class SessionQuestion(Base):
    __tablename__ = "session_questions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    session_id: Mapped[str] = mapped_column(
        Text, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    question_type: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty_level: Mapped[int | None] = mapped_column(Integer)
    time_limit: Mapped[float | None] = mapped_column(Float)
    time_spent: Mapped[float | None] = mapped_column(Float)
    is_correct: Mapped[bool | None] = mapped_column(Boolean)
    points: Mapped[int | None] = mapped_column(Integer)
    vocabulary_item_ids: Mapped[list] = mapped_column(JSON, default=list)
    grammar_item_ids: Mapped[list] = mapped_column(JSON, default=list)

    session: Mapped[StudySession] = relationship(back_populates="questions")
