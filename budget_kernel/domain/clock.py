"""
Injectable time source for the recurring run.

Due checks, claim markers and ledger timestamps all derive from a single
``Clock.now()`` read at the start of a run, so a run is reproducible given
its ``as_of`` instant. Only SystemClock touches the real clock.

``as_utc`` is the one place naive values are interpreted: they are taken to
already be UTC, which is what SQLite hands back for aware columns.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone


def as_utc(value: datetime | date) -> datetime:
    """Return ``value`` as an aware UTC datetime; a date becomes its UTC midnight."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


class Clock(ABC):
    """Source of the current instant, injected into executors and orchestrators."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def today(self) -> date:
        """UTC calendar date of ``now()``."""
        return as_utc(self.now()).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a chosen instant until moved explicitly.

    Tests use it to replay consecutive runs: run, ``advance_days(7)``, run
    again.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or self.DEFAULT_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current += timedelta(days=days)
