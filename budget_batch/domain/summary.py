"""
Pure aggregation of per-item results into an ``ExecutionSummary``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from budget_kernel.domain.types import Frequency

from budget_batch.domain.types import (
    ExecutionSummary,
    RunItemKind,
    RunItemResult,
    RunItemStatus,
    RunStatus,
)

_MATERIALIZED_KINDS = (RunItemKind.INCOME, RunItemKind.FIXED_COST)


def run_status(results: tuple[RunItemResult, ...]) -> RunStatus:
    failed = sum(1 for r in results if r.status == RunItemStatus.FAILED)
    if failed == 0:
        return RunStatus.COMPLETED
    if failed == len(results):
        return RunStatus.FAILED
    return RunStatus.PARTIALLY_COMPLETED


def summarize(
    run_at: datetime,
    total_candidates: int,
    item_results: Iterable[RunItemResult],
    execution_time_ms: int,
) -> ExecutionSummary:
    results = tuple(sorted(item_results, key=lambda r: r.item_index))

    def count(kind: RunItemKind, status: RunItemStatus | None = None,
              frequency: str | None = None) -> int:
        return sum(
            1 for r in results
            if r.kind == kind
            and (status is None or r.status == status)
            and (frequency is None or r.frequency == frequency)
        )

    ok = RunItemStatus.SUCCEEDED
    materialized = [
        r for r in results
        if r.kind in _MATERIALIZED_KINDS and r.status == ok
    ]

    return ExecutionSummary(
        status=run_status(results),
        run_at=run_at,
        total_processed=total_candidates,
        budget_resets=count(RunItemKind.BUDGET_RESET, ok),
        weekly_resets=count(RunItemKind.BUDGET_RESET, ok, Frequency.WEEKLY.value),
        monthly_resets=count(RunItemKind.BUDGET_RESET, ok, Frequency.MONTHLY.value),
        total_incomes_processed=count(RunItemKind.INCOME),
        total_fixed_costs_processed=count(RunItemKind.FIXED_COST),
        total_transactions_created=len(materialized),
        total_budget_updates=sum(
            1 for r in materialized
            if r.result_data and r.result_data.get("budget_updated")
        ),
        weekly_items=sum(1 for r in materialized if r.frequency == Frequency.WEEKLY.value),
        biweekly_items=sum(1 for r in materialized if r.frequency == Frequency.BIWEEKLY.value),
        monthly_items=sum(1 for r in materialized if r.frequency == Frequency.MONTHLY.value),
        not_due=total_candidates - len(results),
        skipped=sum(1 for r in results if r.status == RunItemStatus.SKIPPED),
        errors=sum(1 for r in results if r.status == RunItemStatus.FAILED),
        item_results=results,
        execution_time_ms=execution_time_ms,
    )
