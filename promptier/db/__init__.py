"""Database models and session management."""

from promptier.db.models import HandleRecord
from promptier.db.session import (
    AsyncSession,
    close_engine,
    create_all_tables,
    create_engine,
    create_session_maker,
    drop_all_tables,
    session_scope,
)

__all__ = [
    # Models
    "HandleRecord",
    # Session
    "AsyncSession",
    "close_engine",
    "create_all_tables",
    "create_engine",
    "create_session_maker",
    "drop_all_tables",
    "session_scope",
]
