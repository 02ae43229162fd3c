"""
Budget reset task.

Weekly and monthly budget categories get their balance overwritten with
the nominal budget amount once their period rolls over.  The reset is the
claim: a single conditional write that also advances ``last_reset``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from budget_kernel.domain.types import BudgetCategory
from budget_kernel.logging_config import get_logger
from budget_kernel.storage.interface import LedgerStore

from budget_batch.domain.due import due_budgets
from budget_batch.domain.ledger import build_reset_detail
from budget_batch.domain.recurrence import describe_next_due
from budget_batch.domain.types import RunItemKind, RunItemStatus
from budget_batch.tasks.base import RecurringItemInput, RecurringTaskResult

logger = get_logger("batch.tasks.budget")


class BudgetResetTask:
    """Reset weekly/monthly budget balances to their nominal amount."""

    @property
    def task_type(self) -> str:
        return "budget.reset"

    @property
    def kind(self) -> RunItemKind:
        return RunItemKind.BUDGET_RESET

    @property
    def description(self) -> str:
        return "Reset periodic budget balances"

    def fetch_candidates(
        self, store: LedgerStore, as_of: datetime,
    ) -> tuple[BudgetCategory, ...]:
        return store.list_resettable_budgets()

    def prepare_items(
        self, candidates: tuple[Any, ...], as_of: datetime, start_index: int = 0,
    ) -> tuple[RecurringItemInput, ...]:
        return tuple(
            RecurringItemInput(
                item_index=start_index + i,
                item_key=str(budget.budget_id),
                kind=self.kind,
                frequency=budget.period,
                owner_id=budget.owner_id,
                lane_key=f"budget:{budget.budget_id}",
                record=budget,
            )
            for i, budget in enumerate(due_budgets(candidates, as_of))
        )

    def execute_item(
        self, item: RecurringItemInput, store: LedgerStore, as_of: datetime,
    ) -> RecurringTaskResult:
        budget: BudgetCategory = item.record
        detail = build_reset_detail(budget, as_of)

        claimed = store.reset_budget_balance(
            budget.budget_id,
            new_balance=detail.new_balance,
            reset_at=as_of,
            expected_last_reset=budget.last_reset,
        )
        if not claimed:
            logger.info(
                "claim_lost",
                extra={"kind": self.kind.value, "item_key": item.item_key},
            )
            return RecurringTaskResult(status=RunItemStatus.SKIPPED)

        logger.info(
            "budget_reset",
            extra={
                "budget_id": item.item_key,
                "period": budget.period,
                "previous_balance": detail.previous_balance,
                "new_balance": detail.new_balance,
            },
        )
        return RecurringTaskResult(
            status=RunItemStatus.SUCCEEDED,
            result_data={
                "category": detail.category,
                "previous_balance": str(detail.previous_balance),
                "new_balance": str(detail.new_balance),
                "reset_at": detail.reset_at.isoformat(),
                "next_due": describe_next_due(as_of, budget.period),
            },
        )
