"""
Error taxonomy for the review engines.

StoreUnavailable is always propagated to the caller. ItemNotFound and other
StoreErrors raised while applying mastery updates are logged and the item is
skipped. InvalidOutcome never escapes the mastery engine: it only signals
that neutral timing factors must be used.
"""

from __future__ import annotations


class LexicoreError(Exception):
    """Base class for all engine errors."""


class StoreError(LexicoreError):
    """Raised when the analytics store fails to read or write."""


class StoreUnavailable(StoreError):
    """Raised when the analytics store cannot be reached."""


class ItemNotFound(StoreError):
    """Raised when a referenced item has no content record."""

    def __init__(self, item_id: str, item_type: str):
        super().__init__(f"{item_type} item not found: {item_id}")
        self.item_id = item_id
        self.item_type = item_type


class InvalidOutcome(LexicoreError):
    """Raised when a question outcome lacks usable timing data."""


class SessionStateError(LexicoreError):
    """Raised when a session cannot move to the requested lifecycle state."""
