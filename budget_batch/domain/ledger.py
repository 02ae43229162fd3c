"""
Pure ledger builders: the records and balance changes a due item produces.

Nothing here touches storage.  Tasks call these to decide WHAT to write,
then write it through ``LedgerStore``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import (
    BudgetCategory,
    FixedCost,
    LedgerTransaction,
    RecurringIncome,
    TransactionType,
)

FIXED_COST_PLACEHOLDER_CATEGORY = "Fixed Cost"
INCOME_NAME_PREFIX = "Recurring: "
FIXED_COST_NAME_PREFIX = "Fixed Cost: "


@dataclass(frozen=True)
class ResetDetail:
    """Before/after view of one budget reset."""

    budget_id: UUID
    category: str
    period: str
    previous_balance: Decimal
    new_balance: Decimal
    reset_at: datetime


def reset_balance(budget: BudgetCategory) -> Decimal:
    """The balance a budget holds after reset: its full nominal amount."""
    return budget.budget


def build_reset_detail(budget: BudgetCategory, reset_at: datetime) -> ResetDetail:
    return ResetDetail(
        budget_id=budget.budget_id,
        category=budget.category,
        period=budget.period,
        previous_balance=budget.balance,
        new_balance=reset_balance(budget),
        reset_at=as_utc(reset_at),
    )


def build_income_transaction(
    income: RecurringIncome,
    as_of: datetime,
    transaction_id: UUID | None = None,
) -> LedgerTransaction:
    """Income transaction: no category, named after the source."""
    return LedgerTransaction(
        transaction_id=transaction_id or uuid4(),
        owner_id=income.owner_id,
        name=f"{INCOME_NAME_PREFIX}{income.source_name}",
        amount=income.amount,
        type=TransactionType.INCOME,
        created_at=as_utc(as_of),
        category_name=income.source_name,
        category_id=None,
    )


def build_fixed_cost_transaction(
    fixed_cost: FixedCost,
    as_of: datetime,
    category: BudgetCategory | None = None,
    transaction_id: UUID | None = None,
) -> LedgerTransaction:
    """Expense transaction for a fixed cost.

    ``category`` is the resolved linked budget; when it could not be
    resolved the placeholder category name is used.
    """
    return LedgerTransaction(
        transaction_id=transaction_id or uuid4(),
        owner_id=fixed_cost.owner_id,
        name=f"{FIXED_COST_NAME_PREFIX}{fixed_cost.name}",
        amount=fixed_cost.amount,
        type=TransactionType.EXPENSE,
        created_at=as_utc(as_of),
        category_name=(
            category.category if category is not None
            else FIXED_COST_PLACEHOLDER_CATEGORY
        ),
        category_id=fixed_cost.category_id,
    )


def fixed_cost_delta(fixed_cost: FixedCost) -> Decimal:
    """Balance change applied to the linked category (a decrement)."""
    return -fixed_cost.amount
