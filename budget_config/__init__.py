"""
budget_config -- single public entrypoint for run configuration.

``get_run_config()`` is the only way the recurring run obtains its
settings.  Nothing else reads the config file or the environment.

Architecture position:
    Sits above ``budget_kernel`` and beside ``budget_batch``.  The kernel
    never imports from ``budget_config``.

Failure modes:
    - ``ConfigError`` -- missing file, malformed YAML, or invalid values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from budget_kernel.logging_config import get_logger

from budget_config.loader import ENV_CONFIG_PATH, build_run_config, load_yaml_file
from budget_config.schema import RunConfig

logger = get_logger("config")


def get_run_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> RunConfig:
    """Resolve the run configuration.

    Args:
        config_path: YAML file to read.  Defaults to ``$BUDGET_CONFIG_PATH``;
            no file at all is fine (defaults + environment).
        environ: Environment mapping.  Defaults to ``os.environ``.
    """
    env = os.environ if environ is None else environ
    path = config_path or env.get(ENV_CONFIG_PATH)

    data = load_yaml_file(Path(path)) if path else {}
    config = build_run_config(data, env)

    logger.debug(
        "run_config_resolved",
        extra={
            "config_path": str(path) if path else None,
            "has_database_url": config.database_url is not None,
            "max_workers": config.max_workers,
            "log_level": config.log_level,
            "enabled_tasks": list(config.enabled_tasks) if config.enabled_tasks else None,
        },
    )
    return config


__all__ = ["RunConfig", "get_run_config"]
