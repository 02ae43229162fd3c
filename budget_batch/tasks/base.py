"""
RecurringTask protocol, supporting types, and TaskRegistry.

Contract:
    ``RecurringTask`` defines the interface every recurring task implements.
    ``TaskRegistry`` stores registered tasks keyed by ``task_type`` and
    keeps registration order, which is the order the run executes them in.

Architecture:
    budget_batch/tasks.  Talks to storage only through ``LedgerStore``.

Invariants enforced:
    - One task per ``task_type`` string.
    - ``prepare_items()`` is pure; all I/O lives in ``fetch_candidates()``
      and ``execute_item()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from budget_kernel.exceptions import TaskNotRegisteredError
from budget_kernel.storage.interface import LedgerStore

from budget_batch.domain.types import RunItemKind, RunItemStatus


# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class RecurringItemInput:
    """One due record, as selected by ``RecurringTask.prepare_items()``.

    ``lane_key`` names the record the item writes to most contentiously;
    items sharing a lane are never processed concurrently.
    """

    item_index: int
    item_key: str
    kind: RunItemKind
    frequency: str
    owner_id: str
    lane_key: str
    record: Any  # BudgetCategory | RecurringIncome | FixedCost snapshot


@dataclass(frozen=True)
class RecurringTaskResult:
    """Result returned by ``RecurringTask.execute_item()``.

    Tasks report success or a lost claim; failures are raised.
    """

    status: RunItemStatus
    result_data: dict[str, Any] | None = None


# =============================================================================
# RecurringTask Protocol
# =============================================================================


@runtime_checkable
class RecurringTask(Protocol):
    """Protocol for one kind of recurring work (resets, incomes, fixed costs).

    Contract:
        - ``fetch_candidates()``: reads candidate snapshots from storage.
        - ``prepare_items()``: pure due filter over those candidates.
        - ``execute_item()``: claims and processes ONE item inside the
          item's own storage transaction.

    Non-goals:
        - Does NOT manage transactions -- the executor owns them.
        - Does NOT retry; a failed item is re-evaluated on the next run.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def kind(self) -> RunItemKind: ...

    @property
    def description(self) -> str: ...

    def fetch_candidates(
        self, store: LedgerStore, as_of: datetime,
    ) -> tuple[Any, ...]:
        ...

    def prepare_items(
        self, candidates: tuple[Any, ...], as_of: datetime, start_index: int = 0,
    ) -> tuple[RecurringItemInput, ...]:
        ...

    def execute_item(
        self, item: RecurringItemInput, store: LedgerStore, as_of: datetime,
    ) -> RecurringTaskResult:
        ...


# =============================================================================
# TaskRegistry
# =============================================================================


class TaskRegistry:
    """Registry mapping task_type strings to RecurringTask implementations.

    Contract:
        - ``register()`` adds a task; raises ValueError on duplicate.
        - ``get()`` retrieves by task_type; raises TaskNotRegisteredError.
        - ``tasks()`` returns tasks in registration order.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, RecurringTask] = {}

    def register(self, task: RecurringTask) -> None:
        """
        Raises:
            ValueError: If a task with the same task_type is already registered.
        """
        if task.task_type in self._tasks:
            raise ValueError(
                f"Task type '{task.task_type}' is already registered"
            )
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> RecurringTask:
        try:
            return self._tasks[task_type]
        except KeyError:
            raise TaskNotRegisteredError(task_type, self.list_tasks()) from None

    def tasks(self, only: tuple[str, ...] | None = None) -> tuple[RecurringTask, ...]:
        """Registered tasks in run order, optionally restricted to ``only``.

        Raises:
            TaskNotRegisteredError: If ``only`` names an unknown task type.
        """
        if only is None:
            return tuple(self._tasks.values())
        for task_type in only:
            if task_type not in self._tasks:
                raise TaskNotRegisteredError(task_type, self.list_tasks())
        return tuple(t for t in self._tasks.values() if t.task_type in only)

    def list_tasks(self) -> tuple[str, ...]:
        """Return all registered task_type strings, sorted."""
        return tuple(sorted(self._tasks.keys()))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks
