"""
Injectable time source.

Services receive a Clock instead of calling datetime.now() so that
transition timestamps and dwell times are reproducible in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Abstract clock returning timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock with controlled time for tests.

    now() returns the same value until advance() or set_time() is called.
    """

    def __init__(self, fixed_time: datetime | None = None) -> None:
        self._fixed_time = fixed_time or datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
        self._offset = timedelta(0)

    def advance(self, seconds: float = 0, *, minutes: float = 0, hours: float = 0) -> datetime:
        """Move the clock forward; with no arguments, by one second."""
        step = timedelta(seconds=seconds, minutes=minutes, hours=hours)
        self._offset += step if step else timedelta(seconds=1)
        return self.now()
