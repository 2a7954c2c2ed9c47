"""
Completion Calculator (``timesheet_engines.completion``).

Responsibility
--------------
Measure how much of a month's workday calendar has been filled in.  Only
set membership matters: a workday counts as filled when any record exists
for it, whatever the hours.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.

Invariants enforced
-------------------
* ``filled_workdays <= total_workdays``.
* ``is_complete`` iff every workday is filled (vacuously true when the
  month has no workdays).
* Percentage is a ``Decimal`` quantized to two places, and ``0`` when
  there are no workdays.
* Adding dates never lowers the percentage.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from timesheet_engines.calendar import WorkCalendar

_PERCENT_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class CompletionReport:
    """How much of a month's workdays carry a record."""

    year: int
    month: int
    total_workdays: int
    filled_workdays: int
    completion_percentage: Decimal
    is_complete: bool
    missing_workdays: tuple[date, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "totalWorkdays": self.total_workdays,
            "filledWorkdays": self.filled_workdays,
            "completionPercentage": str(self.completion_percentage),
            "isComplete": self.is_complete,
        }


def completion_percentage(filled: int, total: int) -> Decimal:
    """100 * filled / total, two places, half up; 0 when total is 0."""
    if total <= 0:
        return Decimal("0")
    return (Decimal(100) * filled / Decimal(total)).quantize(
        _PERCENT_QUANTUM, rounding=ROUND_HALF_UP
    )


def calculate_completion(
    calendar: WorkCalendar,
    filled_dates: Iterable[date],
) -> CompletionReport:
    """Compare the dates that carry records against the month's workdays.

    Dates outside the calendar, and dates on weekends or holidays, are
    ignored.
    """
    workdays = calendar.workdays()
    present = set(filled_dates)
    filled = sum(1 for d in workdays if d in present)
    total = len(workdays)

    return CompletionReport(
        year=calendar.year,
        month=calendar.month,
        total_workdays=total,
        filled_workdays=filled,
        completion_percentage=completion_percentage(filled, total),
        is_complete=filled == total,
        missing_workdays=tuple(d for d in workdays if d not in present),
    )
