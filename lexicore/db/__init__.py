"""
Database layer: engine helpers, ORM tables and the SQL store accessor.
"""

from lexicore.db.database import create_db_engine, create_session_factory, init_db, session_scope
from lexicore.db.store import SqlMasteryStore

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    "SqlMasteryStore",
]
