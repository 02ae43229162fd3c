"""
Fixed cost materialization task.

Per due fixed cost: claim (advance ``last_processed_at``), resolve the
linked budget category, book an expense transaction, and decrement the
category balance by the fixed cost amount when the category exists.
A category that cannot be resolved (unlinked, deleted, or a failed lookup)
is not an error; the transaction is booked under the placeholder category
name and no balance is touched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import BudgetCategory, FixedCost
from budget_kernel.exceptions import StorageError
from budget_kernel.logging_config import get_logger
from budget_kernel.storage.interface import LedgerStore

from budget_batch.domain.due import due_fixed_costs
from budget_batch.domain.ledger import build_fixed_cost_transaction, fixed_cost_delta
from budget_batch.domain.recurrence import describe_next_due
from budget_batch.domain.types import RunItemKind, RunItemStatus
from budget_batch.tasks.base import RecurringItemInput, RecurringTaskResult

logger = get_logger("batch.tasks.fixed_cost")


class FixedCostMaterializationTask:
    """Turn due fixed costs into expense transactions."""

    @property
    def task_type(self) -> str:
        return "fixed_cost.materialize"

    @property
    def kind(self) -> RunItemKind:
        return RunItemKind.FIXED_COST

    @property
    def description(self) -> str:
        return "Book fixed costs against their budget categories"

    def fetch_candidates(
        self, store: LedgerStore, as_of: datetime,
    ) -> tuple[FixedCost, ...]:
        return store.list_active_fixed_costs(as_utc(as_of).date())

    def prepare_items(
        self, candidates: tuple[Any, ...], as_of: datetime, start_index: int = 0,
    ) -> tuple[RecurringItemInput, ...]:
        return tuple(
            RecurringItemInput(
                item_index=start_index + i,
                item_key=str(fc.fixed_cost_id),
                kind=self.kind,
                frequency=fc.frequency,
                owner_id=fc.owner_id,
                # Fixed costs sharing a category contend on its balance
                lane_key=(
                    f"budget:{fc.category_id}" if fc.category_id is not None
                    else f"fixed_cost:{fc.fixed_cost_id}"
                ),
                record=fc,
            )
            for i, fc in enumerate(due_fixed_costs(candidates, as_of))
        )

    def _resolve_category(
        self, store: LedgerStore, fixed_cost: FixedCost, item_key: str,
    ) -> BudgetCategory | None:
        """Linked category, or None when unlinked, missing or unreadable."""
        if fixed_cost.category_id is None:
            return None
        try:
            category = store.get_budget_category(fixed_cost.category_id)
        except StorageError:
            logger.warning(
                "linked_category_lookup_failed",
                extra={
                    "fixed_cost_id": item_key,
                    "category_id": str(fixed_cost.category_id),
                },
                exc_info=True,
            )
            return None
        if category is None:
            logger.warning(
                "linked_category_missing",
                extra={
                    "fixed_cost_id": item_key,
                    "category_id": str(fixed_cost.category_id),
                },
            )
        return category

    def execute_item(
        self, item: RecurringItemInput, store: LedgerStore, as_of: datetime,
    ) -> RecurringTaskResult:
        fixed_cost: FixedCost = item.record

        claimed = store.advance_fixed_cost_anchor(
            fixed_cost.fixed_cost_id,
            processed_at=as_of,
            expected=fixed_cost.last_processed_at,
        )
        if not claimed:
            logger.info(
                "claim_lost",
                extra={"kind": self.kind.value, "item_key": item.item_key},
            )
            return RecurringTaskResult(status=RunItemStatus.SKIPPED)

        category = self._resolve_category(store, fixed_cost, item.item_key)

        transaction = store.insert_ledger_transaction(
            build_fixed_cost_transaction(fixed_cost, as_of, category)
        )

        if category is not None:
            store.apply_budget_delta(category.budget_id, fixed_cost_delta(fixed_cost))

        logger.info(
            "fixed_cost_materialized",
            extra={
                "fixed_cost_id": item.item_key,
                "fixed_cost_name": fixed_cost.name,
                "amount": fixed_cost.amount,
                "category_name": transaction.category_name,
                "budget_updated": category is not None,
                "transaction_id": str(transaction.transaction_id),
            },
        )
        return RecurringTaskResult(
            status=RunItemStatus.SUCCEEDED,
            result_data={
                "name": fixed_cost.name,
                "amount": str(fixed_cost.amount),
                "category_id": (
                    str(fixed_cost.category_id) if fixed_cost.category_id else None
                ),
                "category_name": transaction.category_name,
                "budget_updated": category is not None,
                "transaction_id": str(transaction.transaction_id),
                "next_due": describe_next_due(as_of, fixed_cost.frequency),
            },
        )
