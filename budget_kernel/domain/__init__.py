"""
budget_kernel.domain -- Pure types and the injectable clock.

ZERO I/O (SystemClock aside).
"""

from budget_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
    as_utc,
)
from budget_kernel.domain.types import (
    RESETTABLE_PERIODS,
    BudgetCategory,
    BudgetPeriod,
    FixedCost,
    Frequency,
    LedgerTransaction,
    RecurringIncome,
    TransactionType,
)

__all__ = [
    "RESETTABLE_PERIODS",
    "BudgetCategory",
    "BudgetPeriod",
    "Clock",
    "DeterministicClock",
    "FixedCost",
    "Frequency",
    "LedgerTransaction",
    "RecurringIncome",
    "SystemClock",
    "TransactionType",
    "as_utc",
]
