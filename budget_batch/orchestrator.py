"""
RecurringOrchestrator -- DI container for the recurring run.

Contract:
    Wires the task registry, a per-item store factory over a SQLAlchemy
    session factory, and the clock into a ``RecurringRunExecutor``.  Single
    place where all run dependencies are composed.

Architecture: budget_batch (top-level).  Canonical entry point for the
    scheduled handler and the CLI.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from budget_kernel.db.engine import get_session_factory, init_engine_from_url
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.exceptions import StorageError
from budget_kernel.logging_config import get_logger
from budget_kernel.storage import LedgerStore, store_scope

from budget_batch.domain.types import ExecutionSummary
from budget_batch.services.executor import RecurringRunExecutor
from budget_batch.tasks import TaskRegistry, default_task_registry
from budget_config.schema import RunConfig

logger = get_logger("batch.orchestrator")


class RecurringOrchestrator:
    """DI container for the recurring run.

    Contract:
        - ``from_config()`` initializes the engine from a ``RunConfig``.
        - ``from_session_factory()`` wires an existing session factory.
        - ``run()`` executes one pass and returns the summary.

    Non-goals:
        - Does NOT create tables -- the CLI does that on request.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        max_workers: int = 1,
        enabled_tasks: tuple[str, ...] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._task_registry = task_registry
        self._clock = clock or SystemClock()
        self._max_workers = max_workers
        self._enabled_tasks = enabled_tasks

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_session_factory(
        cls,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        task_registry: TaskRegistry | None = None,
        max_workers: int = 1,
        enabled_tasks: tuple[str, ...] | None = None,
    ) -> RecurringOrchestrator:
        """Create a fully wired orchestrator.

        Args:
            session_factory: Callable returning a new session per call.
            clock: Optional clock for deterministic testing.
            task_registry: Optional pre-configured registry.  If None,
                uses the default registry with all recurring tasks.
        """
        registry = task_registry if task_registry is not None else default_task_registry()
        return cls(
            session_factory=session_factory,
            task_registry=registry,
            clock=clock,
            max_workers=max_workers,
            enabled_tasks=enabled_tasks,
        )

    @classmethod
    def from_config(
        cls,
        config: RunConfig,
        clock: Clock | None = None,
        task_registry: TaskRegistry | None = None,
    ) -> RecurringOrchestrator:
        """Initialize the engine from ``config`` and wire an orchestrator.

        Raises:
            ConfigError: If ``config`` carries no database URL.
        """
        init_engine_from_url(config.require_database_url(), echo=config.echo_sql)
        logger.info(
            "orchestrator_configured",
            extra={
                "max_workers": config.max_workers,
                "enabled_tasks": (
                    list(config.enabled_tasks) if config.enabled_tasks else None
                ),
            },
        )
        return cls.from_session_factory(
            get_session_factory(),
            clock=clock,
            task_registry=task_registry,
            max_workers=config.max_workers,
            enabled_tasks=config.enabled_tasks,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def store_factory(self) -> AbstractContextManager[LedgerStore]:
        """One storage transaction; the executor opens one per item."""
        return store_scope(self._session_factory)

    def create_executor(self) -> RecurringRunExecutor:
        return RecurringRunExecutor(
            store_factory=self.store_factory,
            task_registry=self._task_registry,
            clock=self._clock,
            max_workers=self._max_workers,
            enabled_tasks=self._enabled_tasks,
        )

    def check_connection(self) -> bool:
        """Ping storage; False (and a logged error) when it is unreachable."""
        try:
            with self.store_factory() as store:
                store.ping()
        except StorageError as exc:
            logger.error(
                "connection_check_failed",
                extra={"error_code": exc.code, "detail": exc.detail},
            )
            return False
        return True

    def run(
        self,
        as_of: datetime | None = None,
        correlation_id: str | None = None,
    ) -> ExecutionSummary:
        """Execute one recurring pass at ``as_of`` (default: clock now)."""
        return self.create_executor().execute(as_of=as_of, correlation_id=correlation_id)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    @property
    def clock(self) -> Clock:
        return self._clock
