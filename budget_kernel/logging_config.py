"""
Structured JSON logging for the budget kernel and the recurring run.

Every record is rendered as one JSON object per line. Run-scoped fields
(run id, correlation id, owner, item key) live in a context variable so
that worker threads started from a bound context carry them into every
record they emit.

Usage:
    from budget_kernel.logging_config import LogContext, get_logger

    logger = get_logger("batch.executor")
    with LogContext.bind(run_id=run_id):
        logger.info("run_started", extra={"run_at": now})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

LOGGER_NAMESPACE = "budget_kernel"

_CONTEXT_FIELDS = frozenset({"run_id", "correlation_id", "owner_id", "item_key"})

_context: ContextVar[Mapping[str, str]] = ContextVar("budget_log_context", default={})


class LogContext:
    """Run-scoped fields stamped onto every structured record."""

    @staticmethod
    def _merged(fields: Mapping[str, str | None]) -> dict[str, str]:
        unknown = set(fields) - _CONTEXT_FIELDS
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update the current context. None values leave a field untouched."""
        _context.set(cls._merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a block, then restore the outer context."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    return repr(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # BudgetKernelError subclasses keep their context as public attributes
    for attr, value in vars(exc).items():
        if attr != "code" and not attr.startswith("_"):
            fields[f"exc_{attr}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        for attr, value in vars(record).items():
            if attr not in _RESERVED_ATTRS:
                payload.setdefault(attr, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Return ``budget_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_configure_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``budget_kernel`` logger tree.

    Only the first call has an effect until reset_logging() is called, so
    the CLI and the scheduled handler can both call it unconditionally.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
        namespace_logger.setLevel(level.upper() if isinstance(level, str) else level)
        namespace_logger.propagate = False
        namespace_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers and allow configure_logging() to run again. Test use only."""
    global _configured
    with _configure_lock:
        _configured = False
        namespace_logger = logging.getLogger(LOGGER_NAMESPACE)
        namespace_logger.handlers.clear()
        namespace_logger.setLevel(logging.WARNING)
        namespace_logger.propagate = True
