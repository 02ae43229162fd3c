"""Database layer - engine, base classes, and column types."""

from budget_kernel.db.base import Base, TimestampedBase, UUIDString, utcnow
from budget_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)

__all__ = [
    "init_engine_from_url",
    "get_session",
    "get_session_factory",
    "create_tables",
    "reset_engine",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "utcnow",
]
