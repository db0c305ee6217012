"""
Store accessor interface consumed by the engines.

The engines only see this Protocol; SqlMasteryStore in lexicore.db is the
production implementation and tests supply an in-memory one.
"""

from __future__ import annotations

from typing import Protocol

from lexicore.core.models import (
    AnalyticsRecord,
    CandidateRow,
    ItemType,
    LearningItem,
    Session,
    SessionSummary,
)

ORDER_DUE_FIRST = "due_first"


class MasteryStore(Protocol):
    """Durable record store for items, analytics and sessions."""

    def get_item(self, item_id: str, item_type: ItemType) -> LearningItem:
        """Return the content record, raising ItemNotFound if absent."""
        ...

    def save_item(self, item: LearningItem) -> None:
        ...

    def get_analytics(self, item_id: str, item_type: ItemType) -> AnalyticsRecord | None:
        ...

    def upsert_analytics(self, record: AnalyticsRecord) -> None:
        """Create the record if absent, else overwrite all mutable fields."""
        ...

    def query_candidates(
        self,
        item_type: ItemType,
        difficulty_min: int,
        difficulty_max: int,
        limit: int | None = None,
        order_hint: str = ORDER_DUE_FIRST,
    ) -> list[CandidateRow]:
        ...

    def get_sessions(
        self,
        learner_id: str | None,
        window_days: int,
        limit: int | None = None,
    ) -> list[SessionSummary]:
        """Completed sessions inside the window, newest first."""
        ...

    def get_session(self, session_id: str) -> Session | None:
        ...

    def save_session(self, study_session: Session) -> None:
        ...
