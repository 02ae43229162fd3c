"""
Run one recurring pass from the command line.

Usage:
    python -m budget_batch                                  # run now, config from env
    python -m budget_batch --config run.yaml --max-workers 4
    python -m budget_batch --now 2024-02-01T00:30:00+00:00
    python -m budget_batch --database-url sqlite:///budget.db --create-tables
    python -m budget_batch --check-connection

Prints the execution summary as JSON on stdout.  Exit status is 0 for a
completed run, 1 for a partially completed or failed run or a database
that cannot be set up, 2 for bad configuration.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from budget_kernel.db.engine import create_tables
from budget_kernel.domain.clock import as_utc
from budget_kernel.exceptions import ConfigError, TaskNotRegisteredError
from budget_kernel.logging_config import configure_logging

from budget_batch.domain.types import RunStatus
from budget_batch.orchestrator import RecurringOrchestrator
from budget_config import get_run_config
from budget_config.loader import parse_max_workers


def _parse_now(value: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget_batch",
        description="Reset periodic budgets and book due recurring incomes and fixed costs",
    )
    parser.add_argument("--now", type=_parse_now, help="Run time (ISO-8601, default: wall clock)")
    parser.add_argument("--config", help="YAML run config (default: $BUDGET_CONFIG_PATH)")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument("--max-workers", help="Override the configured worker count")
    parser.add_argument(
        "--task", action="append", dest="tasks",
        help="Run only this task type (repeatable)",
    )
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    parser.add_argument(
        "--check-connection", action="store_true",
        help="Only check that the database is reachable",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = get_run_config(config_path=args.config)
        overrides: dict = {}
        if args.database_url:
            overrides["database_url"] = args.database_url
        if args.max_workers:
            overrides["max_workers"] = parse_max_workers(args.max_workers, "--max-workers")
        if args.tasks:
            overrides["enabled_tasks"] = tuple(args.tasks)
        config = dataclasses.replace(config, **overrides)

        configure_logging(level=config.log_level)
        orchestrator = RecurringOrchestrator.from_config(config)
        executor = orchestrator.create_executor()
    except (ConfigError, TaskNotRegisteredError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    if args.check_connection:
        reachable = orchestrator.check_connection()
        print("Connection OK" if reachable else "Connection FAILED")
        return 0 if reachable else 1

    if args.create_tables:
        try:
            create_tables()
        except SQLAlchemyError as exc:
            print(f"ERROR: could not create tables: {exc}", file=sys.stderr)
            return 1

    summary = executor.execute(as_of=args.now)
    print(json.dumps(summary.to_dict(), indent=2, default=str))
    return 0 if summary.status == RunStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
