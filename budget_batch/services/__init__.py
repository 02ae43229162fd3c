"""budget_batch.services -- Run execution."""

from budget_batch.services.executor import RecurringRunExecutor, partition_lanes

__all__ = ["RecurringRunExecutor", "partition_lanes"]
