"""
Abstract storage interface for the recurring run.

The recurring engine depends only on this protocol.  ``SqlLedgerStore`` is
the shipped implementation; anything with the same methods (a remote API
client, a fake in a test) can stand in.

Claim operations (``reset_budget_balance``, ``advance_income_anchor``,
``advance_fixed_cost_anchor``) are single conditional writes: they take the
anchor value the caller observed and succeed only if the stored anchor is
still that value.  They return ``False`` when another run got there first.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

from budget_kernel.domain.types import (
    BudgetCategory,
    FixedCost,
    LedgerTransaction,
    RecurringIncome,
)


@runtime_checkable
class LedgerStore(Protocol):
    """Storage operations consumed by the recurring run."""

    def ping(self) -> None:
        """Raise StorageUnavailableError if storage cannot be reached."""
        ...

    def list_resettable_budgets(self) -> tuple[BudgetCategory, ...]:
        """Weekly and monthly budget categories, oldest reset first."""
        ...

    def list_recurring_incomes(self) -> tuple[RecurringIncome, ...]:
        """Incomes flagged as recurring."""
        ...

    def list_active_fixed_costs(self, today: date) -> tuple[FixedCost, ...]:
        """Fixed costs whose activity window contains ``today``."""
        ...

    def get_budget_category(self, budget_id: UUID) -> BudgetCategory | None:
        ...

    def reset_budget_balance(
        self,
        budget_id: UUID,
        new_balance: Decimal,
        reset_at: datetime,
        expected_last_reset: datetime,
    ) -> bool:
        """Overwrite balance and advance ``last_reset`` if unclaimed."""
        ...

    def apply_budget_delta(self, budget_id: UUID, delta: Decimal) -> None:
        """Add ``delta`` (usually negative) to the stored balance."""
        ...

    def insert_ledger_transaction(
        self, record: LedgerTransaction,
    ) -> LedgerTransaction:
        ...

    def advance_income_anchor(
        self,
        income_id: UUID,
        processed_on: date,
        expected: date | None,
    ) -> bool:
        ...

    def advance_fixed_cost_anchor(
        self,
        fixed_cost_id: UUID,
        processed_at: datetime,
        expected: datetime | None,
    ) -> bool:
        ...
