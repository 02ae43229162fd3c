"""
Typed exception hierarchy for the budget kernel and recurring run.

Every error carries a machine-readable ``code`` class attribute and its
structured data as attributes, so callers catch by type and log by field
instead of parsing messages.

    BudgetKernelError (base)
    |
    +-- StorageError
    |   +-- StorageUnavailableError
    |
    +-- RecordNotFoundError
    |   +-- BudgetCategoryNotFoundError
    |
    +-- RunError
    |   +-- TaskNotRegisteredError
    |
    +-- ConfigError

Handling at the run boundary:
    - StorageUnavailableError before item processing -> the whole run fails.
    - Any error inside one item -> recorded on that item, run continues.
"""


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Storage


class StorageError(BudgetKernelError):
    """A storage operation failed."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage operation '{operation}' failed: {detail}")


class StorageUnavailableError(StorageError):
    """Storage could not be reached at all."""

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, detail: str):
        super().__init__("connect", detail)


# Lookups


class RecordNotFoundError(BudgetKernelError):
    """Base exception for missing records."""

    code: str = "RECORD_NOT_FOUND"


class BudgetCategoryNotFoundError(RecordNotFoundError):
    """Budget category with given ID does not exist."""

    code: str = "BUDGET_CATEGORY_NOT_FOUND"

    def __init__(self, budget_id: str):
        self.budget_id = budget_id
        super().__init__(f"Budget category not found: {budget_id}")


# Run


class RunError(BudgetKernelError):
    """Base exception for recurring run errors."""

    code: str = "RUN_ERROR"


class TaskNotRegisteredError(RunError):
    """A run was configured with a task type nobody registered."""

    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: tuple[str, ...]):
        self.task_type = task_type
        self.available = available
        super().__init__(
            f"No task registered for type '{task_type}'. "
            f"Available: {list(available)}"
        )


# Configuration


class ConfigError(BudgetKernelError):
    """Run configuration is missing or malformed."""

    code: str = "CONFIG_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for '{setting}': {reason}")
