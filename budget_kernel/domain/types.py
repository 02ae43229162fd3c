"""
budget_kernel.domain.types -- Pure frozen dataclasses for ledger entities.

ZERO I/O.  These are the snapshots the storage layer hands to the
recurring run and the records the run hands back.

Frequency fields are kept as the raw stored string.  ``Frequency`` and
``BudgetPeriod`` are ``str`` enums, so ``Frequency.WEEKLY == "weekly"``
holds and an unrecognized value still round-trips untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


# =============================================================================
# Enums
# =============================================================================


class Frequency(str, Enum):
    """Recurrence frequency shared by every recurring entity."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class BudgetPeriod(str, Enum):
    """Period type of a budget category."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SAVINGS = "savings"  # Never reset automatically


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


RESETTABLE_PERIODS: frozenset[str] = frozenset(
    {BudgetPeriod.WEEKLY.value, BudgetPeriod.MONTHLY.value}
)


# =============================================================================
# Entity snapshots
# =============================================================================


@dataclass(frozen=True)
class BudgetCategory:
    """A budget bucket.  ``last_reset`` is its reset anchor."""

    budget_id: UUID
    owner_id: str
    category: str  # Display name
    budget: Decimal  # Nominal amount restored on reset
    balance: Decimal
    period: str
    created_at: datetime
    last_reset: datetime


@dataclass(frozen=True)
class RecurringIncome:
    """A recurring income definition.

    ``received_on`` is user-facing history and is never written by the
    recurring run; ``last_processed_on`` is the run's own marker.
    """

    income_id: UUID
    owner_id: str
    source_name: str
    amount: Decimal
    frequency: str
    recurring: bool
    received_on: date | None
    created_at: datetime
    last_processed_on: date | None = None


@dataclass(frozen=True)
class FixedCost:
    """A recurring fixed cost, optionally tied to a budget category.

    Active only within ``[start_date, end_date]`` (open ended when null).
    ``updated_at`` tracks user edits; ``last_processed_at`` is the run's
    own marker.
    """

    fixed_cost_id: UUID
    owner_id: str
    name: str
    amount: Decimal
    frequency: str
    created_at: datetime
    start_date: date | None = None
    end_date: date | None = None
    category_id: UUID | None = None
    updated_at: datetime | None = None
    last_processed_at: datetime | None = None


@dataclass(frozen=True)
class LedgerTransaction:
    """Append-only ledger record."""

    transaction_id: UUID
    owner_id: str
    name: str
    amount: Decimal
    type: TransactionType
    created_at: datetime
    category_name: str
    category_id: UUID | None = None
