"""
Run configuration loader (``budget_config.loader``).

Responsibility
--------------
Reads the optional YAML run file and the process environment and merges
them over the defaults into a ``RunConfig``.  Callers go through
``budget_config.get_run_config()``.

Precedence (lowest to highest)
------------------------------
defaults -> YAML file -> environment variables.

YAML layout::

    database:
      url: postgresql+psycopg://budget@localhost/budget
      echo: false
    run:
      max_workers: 4
      tasks: [budget.reset, income.materialize, fixed_cost.materialize]
    logging:
      level: INFO

Failure modes
-------------
* Missing YAML file -> ``ConfigError``.
* Malformed YAML or wrong value types -> ``ConfigError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from budget_kernel.exceptions import ConfigError

from budget_config.schema import DEFAULT_LOG_LEVEL, DEFAULT_MAX_WORKERS, RunConfig

ENV_CONFIG_PATH = "BUDGET_CONFIG_PATH"
ENV_DATABASE_URL = "DATABASE_URL"
ENV_MAX_WORKERS = "BUDGET_MAX_WORKERS"
ENV_LOG_LEVEL = "BUDGET_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML run file into a mapping (empty file -> empty mapping)."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise ConfigError("config_path", f"file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError("config_path", f"malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config_path", f"top level of {path} must be a mapping")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(name, "must be a mapping")
    return section


def parse_max_workers(value: Any, setting: str = "max_workers") -> int:
    if isinstance(value, bool):
        raise ConfigError(setting, f"expected an integer, got {value!r}")
    try:
        workers = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(setting, f"expected an integer, got {value!r}") from exc
    if workers < 1:
        raise ConfigError(setting, f"must be >= 1, got {workers}")
    return workers


def parse_log_level(value: Any, setting: str = "log_level") -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(setting, f"unknown level {value!r}; expected one of {_LOG_LEVELS}")
    return level


def _parse_tasks(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError("run.tasks", "must be a list of task types")
    return tuple(str(t) for t in value)


def build_run_config(
    data: Mapping[str, Any],
    environ: Mapping[str, str],
) -> RunConfig:
    """Merge parsed YAML ``data`` and ``environ`` over the defaults."""
    database = _section(data, "database")
    run = _section(data, "run")
    log = _section(data, "logging")

    database_url = database.get("url")
    max_workers = parse_max_workers(
        run.get("max_workers", DEFAULT_MAX_WORKERS), "run.max_workers",
    )
    log_level = parse_log_level(log.get("level", DEFAULT_LOG_LEVEL), "logging.level")

    if environ.get(ENV_DATABASE_URL):
        database_url = environ[ENV_DATABASE_URL]
    if environ.get(ENV_MAX_WORKERS):
        max_workers = parse_max_workers(environ[ENV_MAX_WORKERS], ENV_MAX_WORKERS)
    if environ.get(ENV_LOG_LEVEL):
        log_level = parse_log_level(environ[ENV_LOG_LEVEL], ENV_LOG_LEVEL)

    return RunConfig(
        database_url=str(database_url) if database_url else None,
        max_workers=max_workers,
        log_level=log_level,
        enabled_tasks=_parse_tasks(run.get("tasks")),
        echo_sql=bool(database.get("echo", False)),
    )
