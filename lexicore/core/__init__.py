"""
Core Module - Shared domain records and interfaces.

Components:
- models: Items, analytics records, sessions and engine outputs
- mastery: MasteryLevel display buckets
- store: MasteryStore protocol consumed by every engine
- errors: Error taxonomy (StoreUnavailable, ItemNotFound, InvalidOutcome)
"""

from lexicore.core.errors import (
    InvalidOutcome,
    ItemNotFound,
    LexicoreError,
    SessionStateError,
    StoreError,
    StoreUnavailable,
)
from lexicore.core.mastery import MasteryLevel
from lexicore.core.models import (
    AnalyticsRecord,
    CandidateRow,
    ItemType,
    LearningItem,
    MasteryAdjustment,
    NextReviewItem,
    Priority,
    Question,
    Recommendation,
    RecommendationType,
    Session,
    SessionStatus,
    SessionSummary,
)
from lexicore.core.store import MasteryStore

__all__ = [
    # Errors
    "LexicoreError",
    "StoreError",
    "StoreUnavailable",
    "ItemNotFound",
    "InvalidOutcome",
    "SessionStateError",
    # Records
    "ItemType",
    "LearningItem",
    "AnalyticsRecord",
    "CandidateRow",
    "Question",
    "Session",
    "SessionStatus",
    "SessionSummary",
    "MasteryAdjustment",
    "NextReviewItem",
    "Priority",
    "Recommendation",
    "RecommendationType",
    "MasteryLevel",
    # Interfaces
    "MasteryStore",
]
