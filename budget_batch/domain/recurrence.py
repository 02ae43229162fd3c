"""
Pure recurrence evaluation: is a recurring item due again?

Contract:
    ``is_due(anchor, frequency, now)`` is PURE -- no I/O, no side effects,
    no clock reads.  All timestamps come from the caller.

Rules:
    weekly    -- due once 7 days have elapsed since the anchor.
    biweekly  -- due once 14 days have elapsed since the anchor.
    monthly   -- due once the calendar month (UTC) has rolled over, however
                 little time has passed: anchored Jan 31 23:00, due Feb 1
                 00:30; anchored Jan 1, not due on Jan 30.
    anything else -- never due; a warning is logged.

The monthly rule intentionally ignores the day of month.  Elapsed-duration
and calendar-rollover windows are kept as two separate rules.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

from budget_kernel.domain.clock import as_utc
from budget_kernel.domain.types import Frequency
from budget_kernel.logging_config import get_logger

logger = get_logger("batch.recurrence")

_ELAPSED_WINDOWS: dict[Frequency, timedelta] = {
    Frequency.WEEKLY: timedelta(days=7),
    Frequency.BIWEEKLY: timedelta(days=14),
}


def parse_frequency(value: str | Frequency) -> Frequency | None:
    """Return the Frequency for ``value``, or None if it is not one."""
    try:
        return Frequency(value)
    except ValueError:
        return None


def _resolve(frequency: str | Frequency) -> Frequency | None:
    freq = parse_frequency(frequency)
    if freq is None:
        logger.warning("unknown_frequency", extra={"frequency": str(frequency)})
    return freq


def _month_key(value: datetime) -> tuple[int, int]:
    return (value.year, value.month)


def is_due(
    anchor: datetime | date,
    frequency: str | Frequency,
    now: datetime,
) -> bool:
    """Has a new period started for an item anchored at ``anchor``?"""
    freq = _resolve(frequency)
    if freq is None:
        return False

    anchor_utc = as_utc(anchor)
    now_utc = as_utc(now)

    if freq == Frequency.MONTHLY:
        return _month_key(now_utc) > _month_key(anchor_utc)

    return now_utc - anchor_utc >= _ELAPSED_WINDOWS[freq]


def next_due_at(
    anchor: datetime | date,
    frequency: str | Frequency,
) -> datetime | None:
    """Earliest instant at which ``is_due`` becomes true, or None if never."""
    freq = _resolve(frequency)
    if freq is None:
        return None

    anchor_utc = as_utc(anchor)
    if freq == Frequency.MONTHLY:
        year, month = anchor_utc.year, anchor_utc.month + 1
        if month > 12:
            year, month = year + 1, 1
        return datetime(year, month, 1, tzinfo=timezone.utc)

    return anchor_utc + _ELAPSED_WINDOWS[freq]


def days_until_due(
    anchor: datetime | date,
    frequency: str | Frequency,
    now: datetime,
) -> int | None:
    """Whole days (rounded up) until the item is due; <= 0 when already due."""
    due_at = next_due_at(anchor, frequency)
    if due_at is None:
        return None
    remaining = (due_at - as_utc(now)).total_seconds()
    return math.ceil(remaining / 86400)


def describe_next_due(
    anchor: datetime | date,
    frequency: str | Frequency,
) -> str:
    """Human-readable next processing date, e.g. for a run report."""
    due_at = next_due_at(anchor, frequency)
    if due_at is None:
        return "Unknown frequency"
    return f"Next {Frequency(frequency).value} processing: {due_at.date().isoformat()}"
