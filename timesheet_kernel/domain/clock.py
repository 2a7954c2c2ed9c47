"""
Clock -- injectable time source.

Responsibility:
    The only place the system reads the wall clock.  Services stamp
    ``submission_date``, ``approval_date`` and ``payment_date`` from
    ``Clock.today()`` and name stored invoice files with
    ``Clock.epoch_millis()``; engines never read time at all.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the single I/O boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Time source handed to services through their constructor.

    Guarantees:
        - ``now()`` is timezone-aware (UTC).
        - ``today()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()

    def epoch_millis(self) -> int:
        """Milliseconds since the Unix epoch, as used in stored file names."""
        return int(self.now().timestamp() * 1000)


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock for tests: time only moves when the test moves it.

    Starts at 2024-01-01 12:00 UTC unless given a start time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: float | timedelta = 1) -> None:
        """Move forward by ``seconds`` (or a timedelta); one day is 86400."""
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=seconds)
        self._current += step

    def tick(self) -> datetime:
        """Advance by one second and return the new time."""
        self.advance(1)
        return self._current
