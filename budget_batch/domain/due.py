"""
Due-item filter: which candidates need work in this run.

Contract:
    Every function here is PURE.  Candidates come in, the due subset comes
    out in the same order; nothing is mutated.  The storage layer already
    narrows candidates, but these functions apply the full rules on their
    own so they can be tested without a database.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import (
    RESETTABLE_PERIODS,
    BudgetCategory,
    BudgetPeriod,
    FixedCost,
    RecurringIncome,
)
from budget_kernel.logging_config import get_logger

from budget_batch.domain.recurrence import is_due

logger = get_logger("batch.due")


# =============================================================================
# Anchors
# =============================================================================


def income_anchor(income: RecurringIncome) -> date | datetime:
    """Last processed date, else the received-on date, else creation time."""
    if income.last_processed_on is not None:
        return income.last_processed_on
    if income.received_on is not None:
        return income.received_on
    return income.created_at


def fixed_cost_anchor(fixed_cost: FixedCost) -> date | datetime:
    """Last processed time, else the start date, else creation time."""
    if fixed_cost.last_processed_at is not None:
        return fixed_cost.last_processed_at
    if fixed_cost.start_date is not None:
        return fixed_cost.start_date
    return fixed_cost.created_at


# =============================================================================
# Activity window
# =============================================================================


def is_fixed_cost_active(fixed_cost: FixedCost, today: date) -> bool:
    """Date-only check of ``start_date <= today <= end_date`` (open ends allowed)."""
    if fixed_cost.start_date is not None and fixed_cost.start_date > today:
        return False
    if fixed_cost.end_date is not None and fixed_cost.end_date < today:
        return False
    return True


# =============================================================================
# Filters
# =============================================================================


def is_budget_due(budget: BudgetCategory, now: datetime) -> bool:
    if budget.period not in RESETTABLE_PERIODS:
        if budget.period != BudgetPeriod.SAVINGS.value:
            logger.warning(
                "unknown_budget_period",
                extra={"budget_id": str(budget.budget_id), "period": budget.period},
            )
        return False
    return is_due(budget.last_reset, budget.period, now)


def due_budgets(
    budgets: Iterable[BudgetCategory], now: datetime,
) -> tuple[BudgetCategory, ...]:
    """Weekly/monthly budgets whose reset period has elapsed."""
    return tuple(b for b in budgets if is_budget_due(b, now))


def due_incomes(
    incomes: Iterable[RecurringIncome], now: datetime,
) -> tuple[RecurringIncome, ...]:
    """Recurring incomes whose frequency window has elapsed."""
    return tuple(
        i for i in incomes
        if i.recurring and is_due(income_anchor(i), i.frequency, now)
    )


def due_fixed_costs(
    fixed_costs: Iterable[FixedCost], now: datetime,
) -> tuple[FixedCost, ...]:
    """Active fixed costs whose frequency window has elapsed."""
    today = as_utc(now).date()
    return tuple(
        fc for fc in fixed_costs
        if is_fixed_cost_active(fc, today)
        and is_due(fixed_cost_anchor(fc), fc.frequency, now)
    )
