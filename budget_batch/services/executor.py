"""
RecurringRunExecutor -- transaction-per-item recurring run engine.

Contract:
    ``execute()`` runs one recurring pass: ping storage, fetch candidates
    for every task, filter to the due items, then process each item in its
    own storage transaction and return an ``ExecutionSummary``.

Architecture: budget_batch/services.  Imports from budget_batch.domain,
    budget_batch.tasks, and the kernel (clock, logging, storage protocol).

Invariants enforced:
    - One failing item never aborts the run; it is recorded as FAILED.
    - Storage failure before any item work is fatal and reported as a
      failed summary carrying ``error_message``.
    - All timestamps come from the injected Clock or the caller.
    - With ``max_workers > 1`` items sharing a ``lane_key`` run
      sequentially on one worker; tasks still run one after another.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractContextManager
from contextvars import copy_context
from datetime import datetime
from typing import Callable
from uuid import uuid4

from budget_kernel.domain.clock import Clock, SystemClock, as_utc
from budget_kernel.exceptions import BudgetKernelError
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.storage.interface import LedgerStore

from budget_batch.domain.summary import summarize
from budget_batch.domain.types import (
    ExecutionSummary,
    RunItemResult,
    RunItemStatus,
    RunStatus,
)
from budget_batch.tasks.base import RecurringItemInput, RecurringTask, TaskRegistry

logger = get_logger("batch.executor")

StoreFactory = Callable[[], AbstractContextManager[LedgerStore]]


def partition_lanes(
    items: tuple[RecurringItemInput, ...],
) -> tuple[tuple[RecurringItemInput, ...], ...]:
    """Group items by ``lane_key``, keeping first-seen lane order and item order."""
    lanes: dict[str, list[RecurringItemInput]] = {}
    for item in items:
        lanes.setdefault(item.lane_key, []).append(item)
    return tuple(tuple(lane) for lane in lanes.values())


class RecurringRunExecutor:
    """Recurring run engine with per-item error isolation.

    Contract:
        - ``execute()`` never raises for item failures or storage outages.
        - Each item gets a fresh store from ``store_factory``; the store's
          context manager commits on success and rolls back on error.

    Non-goals:
        - Does NOT retry failed items -- the next scheduled run re-evaluates them.
        - Does NOT schedule itself -- an external trigger invokes it.
    """

    def __init__(
        self,
        store_factory: StoreFactory,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        max_workers: int = 1,
        enabled_tasks: tuple[str, ...] | None = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._store_factory = store_factory
        self._clock = clock or SystemClock()
        self._max_workers = max_workers
        # Raises TaskNotRegisteredError for unknown task types
        self._tasks: tuple[RecurringTask, ...] = task_registry.tasks(enabled_tasks)

    @property
    def task_types(self) -> tuple[str, ...]:
        return tuple(t.task_type for t in self._tasks)

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def execute(
        self,
        as_of: datetime | None = None,
        correlation_id: str | None = None,
    ) -> ExecutionSummary:
        """Run every enabled task once at ``as_of`` (default: clock now)."""
        start_time = time.monotonic()
        run_at = as_utc(as_of if as_of is not None else self._clock.now())
        run_id = str(uuid4())

        with LogContext.bind(run_id=run_id, correlation_id=correlation_id):
            logger.info(
                "run_started",
                extra={
                    "run_at": run_at,
                    "task_types": list(self.task_types),
                    "max_workers": self._max_workers,
                },
            )

            try:
                fetched = self._fetch_candidates(run_at)
            except Exception as exc:
                return self._fail_run(run_at, exc, start_time)

            total_candidates = 0
            next_index = 0
            phases: list[tuple[RecurringTask, tuple[RecurringItemInput, ...]]] = []
            for task, candidates in fetched:
                items = task.prepare_items(candidates, run_at, start_index=next_index)
                total_candidates += len(candidates)
                next_index += len(items)
                phases.append((task, items))
                logger.info(
                    "due_items_selected",
                    extra={
                        "task_type": task.task_type,
                        "candidates": len(candidates),
                        "due": len(items),
                    },
                )

            results: list[RunItemResult] = []
            for task, items in phases:
                results.extend(self._run_phase(task, items, run_at))

            summary = summarize(
                run_at=run_at,
                total_candidates=total_candidates,
                item_results=results,
                execution_time_ms=int((time.monotonic() - start_time) * 1000),
            )

            logger.info(
                "run_completed",
                extra={
                    "status": summary.status.value,
                    "total_processed": summary.total_processed,
                    "budget_resets": summary.budget_resets,
                    "transactions_created": summary.total_transactions_created,
                    "budget_updates": summary.total_budget_updates,
                    "not_due": summary.not_due,
                    "skipped": summary.skipped,
                    "errors": summary.errors,
                    "execution_time_ms": summary.execution_time_ms,
                },
            )
            return summary

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _fetch_candidates(
        self, run_at: datetime,
    ) -> list[tuple[RecurringTask, tuple]]:
        with self._store_factory() as store:
            store.ping()
            return [
                (task, tuple(task.fetch_candidates(store, run_at)))
                for task in self._tasks
            ]

    def _run_phase(
        self,
        task: RecurringTask,
        items: tuple[RecurringItemInput, ...],
        run_at: datetime,
    ) -> list[RunItemResult]:
        if self._max_workers == 1 or len(items) <= 1:
            return self._run_lane(task, items, run_at)

        lanes = partition_lanes(items)
        workers = min(self._max_workers, len(lanes))
        results: list[RunItemResult] = []
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="recurring-run",
        ) as pool:
            # pool threads start with an empty context
            futures = [
                pool.submit(copy_context().run, self._run_lane, task, lane, run_at)
                for lane in lanes
            ]
            for future in futures:
                results.extend(future.result())
        return results

    def _run_lane(
        self,
        task: RecurringTask,
        lane: tuple[RecurringItemInput, ...],
        run_at: datetime,
    ) -> list[RunItemResult]:
        return [self._execute_item(task, item, run_at) for item in lane]

    def _execute_item(
        self,
        task: RecurringTask,
        item: RecurringItemInput,
        run_at: datetime,
    ) -> RunItemResult:
        item_start = time.monotonic()

        with LogContext.bind(item_key=item.item_key, owner_id=item.owner_id):
            try:
                with self._store_factory() as store:
                    outcome = task.execute_item(item, store, run_at)
            except Exception as exc:
                error_code = (
                    exc.code if isinstance(exc, BudgetKernelError)
                    else "UNHANDLED_EXCEPTION"
                )
                logger.exception(
                    "item_failed",
                    extra={
                        "task_type": task.task_type,
                        "kind": item.kind.value,
                        "error_code": error_code,
                    },
                )
                return RunItemResult(
                    item_index=item.item_index,
                    item_key=item.item_key,
                    kind=item.kind,
                    status=RunItemStatus.FAILED,
                    frequency=item.frequency,
                    owner_id=item.owner_id,
                    error_code=error_code,
                    error_message=str(exc),
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )

        return RunItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            kind=item.kind,
            status=outcome.status,
            frequency=item.frequency,
            owner_id=item.owner_id,
            result_data=outcome.result_data,
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )

    def _fail_run(
        self,
        run_at: datetime,
        exc: Exception,
        start_time: float,
    ) -> ExecutionSummary:
        """Build the summary for a run that died before item processing."""
        total_duration = int((time.monotonic() - start_time) * 1000)
        logger.error(
            "run_failed",
            exc_info=exc,
            extra={"execution_time_ms": total_duration},
        )
        return ExecutionSummary(
            status=RunStatus.FAILED,
            run_at=run_at,
            execution_time_ms=total_duration,
            error_message=str(exc),
        )
