"""
ORM model for ledger transactions.

Append-only: the recurring run inserts rows and never updates or deletes
them.  ``category_id`` is deliberately not a foreign key; a transaction
outlives the category it was booked against.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import Base, UUIDString
from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import LedgerTransaction, TransactionType


class LedgerTransactionModel(Base):
    """Persistent ledger transaction."""

    __tablename__ = "ledger_transactions"

    __table_args__ = (
        Index("ix_ledger_transactions_owner_created", "owner_id", "created_at"),
        Index("ix_ledger_transactions_category", "category_id"),
    )

    owner_id: Mapped[str] = mapped_column(String(200), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    category_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    category_name: Mapped[str] = mapped_column(String(200), nullable=False)

    def to_dto(self) -> LedgerTransaction:
        return LedgerTransaction(
            transaction_id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            amount=self.amount,
            type=TransactionType(self.type),
            created_at=as_utc(self.created_at),
            category_name=self.category_name,
            category_id=self.category_id,
        )

    @classmethod
    def from_dto(cls, dto: LedgerTransaction) -> LedgerTransactionModel:
        return cls(
            id=dto.transaction_id,
            owner_id=dto.owner_id,
            name=dto.name,
            category_id=dto.category_id,
            amount=dto.amount,
            type=dto.type.value,
            created_at=as_utc(dto.created_at),
            category_name=dto.category_name,
        )
