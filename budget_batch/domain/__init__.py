"""
budget_batch.domain -- Pure recurrence rules, due filtering, ledger builders.

ZERO I/O.  All types are frozen dataclasses.
"""

from budget_batch.domain.due import (
    due_budgets,
    due_fixed_costs,
    due_incomes,
    fixed_cost_anchor,
    income_anchor,
    is_fixed_cost_active,
)
from budget_batch.domain.recurrence import (
    days_until_due,
    describe_next_due,
    is_due,
    next_due_at,
)
from budget_batch.domain.types import (
    ExecutionSummary,
    RunItemKind,
    RunItemResult,
    RunItemStatus,
    RunStatus,
)

__all__ = [
    "ExecutionSummary",
    "RunItemKind",
    "RunItemResult",
    "RunItemStatus",
    "RunStatus",
    "days_until_due",
    "describe_next_due",
    "due_budgets",
    "due_fixed_costs",
    "due_incomes",
    "fixed_cost_anchor",
    "income_anchor",
    "is_due",
    "is_fixed_cost_active",
    "next_due_at",
]
