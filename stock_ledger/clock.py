"""
Clock -- injectable time source.

Services that stamp rows (last supply time) receive a Clock instead of
calling ``datetime.now()`` so tests can pin the time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Abstract clock interface. ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...


class SystemClock(Clock):
    """Production clock returning actual UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Time only moves when ``advance()`` or ``set()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        """Move time forward."""
        self._current = self._current + timedelta(seconds=seconds)

    def set(self, time: datetime) -> None:
        """Set time to a specific value."""
        self._current = time
