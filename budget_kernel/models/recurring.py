"""
ORM models for recurring cash-flow definitions (incomes and fixed costs).

Contract:
    RecurringIncomeModel and FixedCostModel persist user-defined recurring
    items.  Each has ``to_dto()`` / ``from_dto()`` round-trip methods.

Invariants enforced:
    - ``last_processed_on`` / ``last_processed_at`` are written only by the
      recurring run, through a conditional UPDATE (see storage/sql.py).
    - ``received_on`` and ``updated_at`` belong to the user and are never
      used as processing markers.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TimestampedBase, UUIDString
from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import FixedCost, RecurringIncome


def _opt_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class RecurringIncomeModel(TimestampedBase):
    """Recurring income source (salary, allowance, ...)."""

    __tablename__ = "recurring_incomes"

    __table_args__ = (
        Index("ix_recurring_incomes_owner", "owner_id"),
        Index("ix_recurring_incomes_recurring", "recurring"),
    )

    owner_id: Mapped[str] = mapped_column(String(200), nullable=False)
    source_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    frequency: Mapped[str] = mapped_column(String(50), nullable=False)
    recurring: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    received_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_processed_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self) -> RecurringIncome:
        return RecurringIncome(
            income_id=self.id,
            owner_id=self.owner_id,
            source_name=self.source_name,
            amount=self.amount,
            frequency=self.frequency,
            recurring=self.recurring,
            received_on=self.received_on,
            created_at=as_utc(self.created_at),
            last_processed_on=self.last_processed_on,
        )

    @classmethod
    def from_dto(cls, dto: RecurringIncome) -> RecurringIncomeModel:
        return cls(
            id=dto.income_id,
            owner_id=dto.owner_id,
            source_name=dto.source_name,
            amount=dto.amount,
            frequency=dto.frequency,
            recurring=dto.recurring,
            received_on=dto.received_on,
            created_at=as_utc(dto.created_at),
            last_processed_on=dto.last_processed_on,
        )


class FixedCostModel(TimestampedBase):
    """Recurring fixed cost (rent, subscriptions, ...)."""

    __tablename__ = "fixed_costs"

    __table_args__ = (
        Index("ix_fixed_costs_owner", "owner_id"),
        Index("ix_fixed_costs_window", "start_date", "end_date"),
    )

    owner_id: Mapped[str] = mapped_column(String(200), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    frequency: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    category_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("budget_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dto(self) -> FixedCost:
        return FixedCost(
            fixed_cost_id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            amount=self.amount,
            frequency=self.frequency,
            created_at=as_utc(self.created_at),
            start_date=self.start_date,
            end_date=self.end_date,
            category_id=self.category_id,
            updated_at=_opt_utc(self.updated_at),
            last_processed_at=_opt_utc(self.last_processed_at),
        )

    @classmethod
    def from_dto(cls, dto: FixedCost) -> FixedCostModel:
        return cls(
            id=dto.fixed_cost_id,
            owner_id=dto.owner_id,
            name=dto.name,
            amount=dto.amount,
            frequency=dto.frequency,
            created_at=as_utc(dto.created_at),
            start_date=dto.start_date,
            end_date=dto.end_date,
            category_id=dto.category_id,
            updated_at=_opt_utc(dto.updated_at),
            last_processed_at=_opt_utc(dto.last_processed_at),
        )
