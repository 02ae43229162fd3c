"""
budget_batch.tasks -- Task protocol, registry, and the three recurring tasks.
"""

from budget_batch.tasks.base import (
    RecurringItemInput,
    RecurringTask,
    RecurringTaskResult,
    TaskRegistry,
)
from budget_batch.tasks.budget_tasks import BudgetResetTask
from budget_batch.tasks.fixed_cost_tasks import FixedCostMaterializationTask
from budget_batch.tasks.income_tasks import IncomeMaterializationTask


def default_task_registry() -> TaskRegistry:
    """Registry with all recurring tasks, in run order.

    Resets run before fixed costs so a fixed cost due on the same day a
    category resets is deducted from the fresh balance.
    """
    registry = TaskRegistry()
    registry.register(BudgetResetTask())
    registry.register(IncomeMaterializationTask())
    registry.register(FixedCostMaterializationTask())
    return registry


__all__ = [
    "BudgetResetTask",
    "FixedCostMaterializationTask",
    "IncomeMaterializationTask",
    "RecurringItemInput",
    "RecurringTask",
    "RecurringTaskResult",
    "TaskRegistry",
    "default_task_registry",
]
