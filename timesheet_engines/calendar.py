"""
Work Calendar Engine (``timesheet_engines.calendar``).

Responsibility
--------------
Generate the day-by-day calendar of a month, tagging each day as weekend,
holiday or workday.  Holidays come from a pluggable ``HolidayProvider``;
the default ``FixedDateHolidayProvider`` knows the fixed-date public
holidays only (no Easter-derived or other movable holidays).

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.

Invariants enforced
-------------------
* One ``CalendarDay`` per day of the month, in date order.
* ``is_workday`` iff neither weekend nor holiday.  A holiday falling on a
  weekend is both; it is still counted once as a non-workday.

Failure modes
-------------
* ``InvalidPeriodError`` for a month outside 1-12 or year outside 1-9999.
"""

from __future__ import annotations

import calendar as _stdlib_calendar
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol, runtime_checkable

from timesheet_kernel.domain.values import validate_period

# Month/day -> name; dates are fixed every year.
DEFAULT_FIXED_HOLIDAYS: Mapping[tuple[int, int], str] = {
    (1, 1): "New Year's Day",
    (1, 6): "Epiphany",
    (5, 1): "Labor Day",
    (6, 6): "National Day of Sweden",
    (12, 24): "Christmas Eve",
    (12, 25): "Christmas Day",
    (12, 26): "Boxing Day",
    (12, 31): "New Year's Eve",
}

DEFAULT_HOLIDAY_NAME = "Public Holiday"

_DAY_NAMES = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)


@runtime_checkable
class HolidayProvider(Protocol):
    """Source of recognized public holidays."""

    def holidays_in_month(self, year: int, month: int) -> Mapping[date, str]:
        """Return holiday dates in the month mapped to their display names."""
        ...


class FixedDateHolidayProvider:
    """Holidays that fall on the same month/day every year."""

    def __init__(self, table: Mapping[tuple[int, int], str] | None = None) -> None:
        self._table: dict[tuple[int, int], str] = dict(
            DEFAULT_FIXED_HOLIDAYS if table is None else table
        )

    def holidays_in_month(self, year: int, month: int) -> Mapping[date, str]:
        last_day = _stdlib_calendar.monthrange(year, month)[1]
        return {
            date(year, m, d): name or DEFAULT_HOLIDAY_NAME
            for (m, d), name in sorted(self._table.items())
            if m == month and d <= last_day
        }


class CompositeHolidayProvider:
    """Union of several providers; the first provider to name a date wins."""

    def __init__(self, *providers: HolidayProvider) -> None:
        self._providers = providers

    def holidays_in_month(self, year: int, month: int) -> Mapping[date, str]:
        merged: dict[date, str] = {}
        for provider in self._providers:
            for day, name in provider.holidays_in_month(year, month).items():
                merged.setdefault(day, name)
        return merged


@dataclass(frozen=True)
class CalendarDay:
    """One tagged day of a month."""

    date: date
    day_of_week: str
    is_weekend: bool
    is_holiday: bool
    holiday_name: str | None = None

    @property
    def is_workday(self) -> bool:
        return not self.is_weekend and not self.is_holiday

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "date": self.date.isoformat(),
            "dayOfWeek": self.day_of_week,
            "isWorkday": self.is_workday,
            "isWeekend": self.is_weekend,
            "isHoliday": self.is_holiday,
        }
        if self.is_holiday:
            payload["holidayName"] = self.holiday_name
        return payload


@dataclass(frozen=True)
class WorkCalendar:
    """Every day of one month, in order."""

    year: int
    month: int
    days: tuple[CalendarDay, ...]

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def workdays_count(self) -> int:
        return sum(1 for d in self.days if d.is_workday)

    @property
    def weekend_count(self) -> int:
        return sum(1 for d in self.days if d.is_weekend)

    @property
    def holiday_count(self) -> int:
        return sum(1 for d in self.days if d.is_holiday)

    def workdays(self) -> tuple[date, ...]:
        return tuple(d.date for d in self.days if d.is_workday)

    def to_payload(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "totalDays": self.total_days,
            "workdaysCount": self.workdays_count,
            "days": [d.to_payload() for d in self.days],
        }


def build_work_calendar(
    year: int,
    month: int,
    holiday_provider: HolidayProvider | None = None,
) -> WorkCalendar:
    """Build the tagged calendar for ``year``/``month``.

    Args:
        year: Calendar year, 1-9999.
        month: Calendar month, 1-12.
        holiday_provider: Defaults to the fixed-date table.

    Raises:
        InvalidPeriodError: year or month out of range.
    """
    validate_period(year, month)
    provider = holiday_provider or FixedDateHolidayProvider()
    holidays = provider.holidays_in_month(year, month)

    last_day = _stdlib_calendar.monthrange(year, month)[1]
    days = []
    for day_number in range(1, last_day + 1):
        current = date(year, month, day_number)
        name = holidays.get(current)
        days.append(
            CalendarDay(
                date=current,
                day_of_week=_DAY_NAMES[current.weekday()],
                is_weekend=current.weekday() >= 5,
                is_holiday=name is not None,
                holiday_name=name,
            )
        )
    return WorkCalendar(year=year, month=month, days=tuple(days))
