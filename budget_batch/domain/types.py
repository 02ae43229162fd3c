"""
budget_batch.domain.types -- Pure frozen dataclasses for the recurring run.

ZERO I/O.  Follows the kernel pattern: frozen dataclasses with ``str``
enum status fields and tuples for immutable collections.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any


# =============================================================================
# Status enums
# =============================================================================


class RunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # No item errored
    PARTIALLY_COMPLETED = "partially_completed"  # Some items errored
    FAILED = "failed"  # Fatal setup failure, or every item errored


class RunItemStatus(str, Enum):
    """Per-item outcome within a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Claim lost to an overlapping run


class RunItemKind(str, Enum):
    BUDGET_RESET = "budget_reset"
    INCOME = "income"
    FIXED_COST = "fixed_cost"


# =============================================================================
# Result DTOs
# =============================================================================


@dataclass(frozen=True)
class RunItemResult:
    """Immutable result of processing one due item.

    Each item runs in its own storage transaction; failure of one item
    does not abort the run.
    """

    item_index: int  # 0-indexed position in the run
    item_key: str  # Record identifier
    kind: RunItemKind
    status: RunItemStatus
    frequency: str
    owner_id: str
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class ExecutionSummary:
    """Transient report of one recurring run.

    Returned by ``RecurringRunExecutor.execute()``; logged, never persisted.
    """

    status: RunStatus
    run_at: datetime
    total_processed: int = 0  # Candidates examined
    budget_resets: int = 0
    weekly_resets: int = 0
    monthly_resets: int = 0
    total_incomes_processed: int = 0  # Due incomes attempted
    total_fixed_costs_processed: int = 0  # Due fixed costs attempted
    total_transactions_created: int = 0
    total_budget_updates: int = 0
    weekly_items: int = 0
    biweekly_items: int = 0
    monthly_items: int = 0
    not_due: int = 0  # Candidates examined but not yet due
    skipped: int = 0  # Due items whose claim another run won
    errors: int = 0
    item_results: tuple[RunItemResult, ...] = ()
    execution_time_ms: int = 0
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status != RunStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping (enums as values, datetimes as ISO strings)."""
        data = asdict(self)
        data["status"] = self.status.value
        data["run_at"] = self.run_at.isoformat()
        data["item_results"] = [
            {
                **asdict(r),
                "kind": r.kind.value,
                "status": r.status.value,
            }
            for r in self.item_results
        ]
        return data
