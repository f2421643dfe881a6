"""
Injectable time source.

The state machine and services stamp ``submitted_date``, ``approved_date``,
``payment_date`` and audit ``occurred_at`` from a ``Clock`` handed to them,
never from ``datetime.now()``.  ``SystemClock`` is the only place the real
time enters the kernel.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    Starts at 2024-01-01 12:00 UTC unless told otherwise and only moves when
    ``advance`` is called.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
