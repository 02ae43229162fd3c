"""
Module: budget_kernel.db.base
Responsibility: Declarative base for the budget tables and the shared column
    conventions (UUID keys, money precision, aware timestamps).
Architecture position: Kernel > DB.  Model modules import from here; this
    module imports nothing from models/ or storage/.

Invariants enforced:
    - Primary keys are uuid4 values stored as 36-character strings, so the
      same schema runs on PostgreSQL and SQLite.
    - Money columns are Numeric(38, 9).  Amounts never pass through float.
    - Timestamps are timezone-aware and defaulted on the Python side, so a
      marker read back compares equal to the value the claim UPDATE expects.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDString(TypeDecorator):
    """UUID in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 ``id`` plus the column type map."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """
    Abstract base carrying the row creation time.

    ``created_at`` doubles as the last-resort recurrence anchor for fixed
    costs and incomes that were never processed.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False,
    )
