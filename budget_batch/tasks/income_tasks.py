"""
Recurring income materialization task.

Claim first (advance ``last_processed_on`` to the run date, conditional on
the value read when filtering), then book the income transaction.  Both
writes share the item's storage transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import RecurringIncome
from budget_kernel.logging_config import get_logger
from budget_kernel.storage.interface import LedgerStore

from budget_batch.domain.due import due_incomes
from budget_batch.domain.ledger import build_income_transaction
from budget_batch.domain.recurrence import describe_next_due
from budget_batch.domain.types import RunItemKind, RunItemStatus
from budget_batch.tasks.base import RecurringItemInput, RecurringTaskResult

logger = get_logger("batch.tasks.income")


class IncomeMaterializationTask:
    """Turn due recurring incomes into income transactions."""

    @property
    def task_type(self) -> str:
        return "income.materialize"

    @property
    def kind(self) -> RunItemKind:
        return RunItemKind.INCOME

    @property
    def description(self) -> str:
        return "Book recurring incomes"

    def fetch_candidates(
        self, store: LedgerStore, as_of: datetime,
    ) -> tuple[RecurringIncome, ...]:
        return store.list_recurring_incomes()

    def prepare_items(
        self, candidates: tuple[Any, ...], as_of: datetime, start_index: int = 0,
    ) -> tuple[RecurringItemInput, ...]:
        return tuple(
            RecurringItemInput(
                item_index=start_index + i,
                item_key=str(income.income_id),
                kind=self.kind,
                frequency=income.frequency,
                owner_id=income.owner_id,
                lane_key=f"income:{income.income_id}",
                record=income,
            )
            for i, income in enumerate(due_incomes(candidates, as_of))
        )

    def execute_item(
        self, item: RecurringItemInput, store: LedgerStore, as_of: datetime,
    ) -> RecurringTaskResult:
        income: RecurringIncome = item.record

        processed_on = as_utc(as_of).date()
        claimed = store.advance_income_anchor(
            income.income_id,
            processed_on=processed_on,
            expected=income.last_processed_on,
        )
        if not claimed:
            logger.info(
                "claim_lost",
                extra={"kind": self.kind.value, "item_key": item.item_key},
            )
            return RecurringTaskResult(status=RunItemStatus.SKIPPED)

        transaction = store.insert_ledger_transaction(
            build_income_transaction(income, as_of)
        )

        logger.info(
            "income_materialized",
            extra={
                "income_id": item.item_key,
                "source_name": income.source_name,
                "amount": income.amount,
                "transaction_id": str(transaction.transaction_id),
            },
        )
        return RecurringTaskResult(
            status=RunItemStatus.SUCCEEDED,
            result_data={
                "name": income.source_name,
                "amount": str(income.amount),
                "transaction_id": str(transaction.transaction_id),
                "next_due": describe_next_due(processed_on, income.frequency),
            },
        )
