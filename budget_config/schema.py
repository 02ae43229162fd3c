"""
RunConfig schema.

The resolved settings for one recurring run.  Built by
``budget_config.loader`` from defaults, an optional YAML file, and the
process environment; consumed by ``RecurringOrchestrator.from_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from budget_kernel.exceptions import ConfigError

DEFAULT_MAX_WORKERS = 1
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class RunConfig:
    """Frozen run settings."""

    database_url: str | None = None
    max_workers: int = DEFAULT_MAX_WORKERS
    log_level: str = DEFAULT_LOG_LEVEL
    enabled_tasks: tuple[str, ...] | None = None  # None = every registered task
    echo_sql: bool = False

    def require_database_url(self) -> str:
        """Return ``database_url`` or raise ConfigError when it is unset."""
        if not self.database_url:
            raise ConfigError(
                "database_url",
                "not set; provide DATABASE_URL or database.url in the config file",
            )
        return self.database_url
