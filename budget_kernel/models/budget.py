"""
ORM model for budget categories.

Contract:
    BudgetCategoryModel persists a budget bucket.  ``to_dto()`` /
    ``from_dto()`` convert to and from the frozen ``BudgetCategory`` snapshot.

Invariants enforced:
    - ``last_reset`` is NOT NULL; a new category is anchored at creation.
    - ``balance`` may exceed or undercut ``budget``; the reset overwrites it.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TimestampedBase, utcnow
from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import BudgetCategory


class BudgetCategoryModel(TimestampedBase):
    """Persistent budget bucket (weekly, monthly or savings)."""

    __tablename__ = "budget_categories"

    __table_args__ = (
        Index("ix_budget_categories_owner", "owner_id"),
        Index("ix_budget_categories_period_reset", "period", "last_reset"),
    )

    owner_id: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(200), nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    period: Mapped[str] = mapped_column(String(50), nullable=False)
    last_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False,
    )

    def to_dto(self) -> BudgetCategory:
        return BudgetCategory(
            budget_id=self.id,
            owner_id=self.owner_id,
            category=self.category,
            budget=self.budget,
            balance=self.balance,
            period=self.period,
            created_at=as_utc(self.created_at),
            last_reset=as_utc(self.last_reset),
        )

    @classmethod
    def from_dto(cls, dto: BudgetCategory) -> BudgetCategoryModel:
        return cls(
            id=dto.budget_id,
            owner_id=dto.owner_id,
            category=dto.category,
            budget=dto.budget,
            balance=dto.balance,
            period=dto.period,
            created_at=as_utc(dto.created_at),
            last_reset=as_utc(dto.last_reset),
        )
