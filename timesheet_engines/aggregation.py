"""
Hour Aggregator (``timesheet_engines.aggregation``).

Responsibility
--------------
Derive a monthly summary's totals from its attached daily records:

* a day with no holiday category contributes its hours to regular hours;
* a day with a holiday category contributes its hours to holiday hours;
* support hours are summed for every day regardless of category.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.  Works on any object
exposing ``hours_worked``, ``support_hours`` and ``holiday_category_id``
(ORM rows and DTOs alike).

Invariants enforced
-------------------
* Decimal-only arithmetic.
* The externally reported total is never touched here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from timesheet_kernel.domain.values import ZERO_HOURS, round_hours


class AggregatableRecord(Protocol):
    hours_worked: Decimal
    support_hours: Decimal
    holiday_category_id: UUID | None


@dataclass(frozen=True)
class HourTotals:
    regular_hours: Decimal = ZERO_HOURS
    holiday_hours: Decimal = ZERO_HOURS
    support_hours: Decimal = ZERO_HOURS

    @property
    def total_hours(self) -> Decimal:
        """Regular plus holiday hours; support hours are tracked separately."""
        return self.regular_hours + self.holiday_hours

    def to_payload(self) -> dict[str, Any]:
        return {
            "regularHours": str(self.regular_hours),
            "holidayHours": str(self.holiday_hours),
            "supportHours": str(self.support_hours),
            "totalHoursWorked": str(self.total_hours),
        }


def aggregate_records(records: Iterable[AggregatableRecord]) -> HourTotals:
    """Sum hours into regular/holiday/support buckets."""
    regular = Decimal(0)
    holiday = Decimal(0)
    support = Decimal(0)

    for record in records:
        hours = record.hours_worked or Decimal(0)
        if record.holiday_category_id is None:
            regular += hours
        else:
            holiday += hours
        support += record.support_hours or Decimal(0)

    return HourTotals(
        regular_hours=round_hours(regular),
        holiday_hours=round_hours(holiday),
        support_hours=round_hours(support),
    )
