"""
Record Reconciler (``timesheet_engines.reconciliation``).

Responsibility
--------------
Merge a client-submitted batch of daily entries against the records already
stored for the same user and month.  The batch is authoritative for the
month:

* a date with no stored record is **created**;
* a stored record whose date is in the batch is **updated** in place (and
  re-attached to the summary if it had been detached);
* a stored, attached record whose date is absent from the batch is
  **detached** -- its owner reference is cleared, the row is kept.

The engine only plans; the timesheet service applies the plan to ORM rows
inside its transaction.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.  Works on snapshots,
never on ORM instances.

Invariants enforced
-------------------
* At most one entry per date in a batch.
* Every entry date falls inside the target month.
* Stored records are matched by date only, so the (user, date) uniqueness
  of stored records carries over to the plan: each record id appears in at
  most one bucket.
* Applying the same batch twice yields an empty (no-op) plan the second
  time.

Failure modes
-------------
* ``InvalidEntryError`` naming the offending ``entries[i].date`` for a
  duplicate date or a date outside the month.  Validation happens before
  any plan is produced.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from timesheet_kernel.domain.values import ZERO_HOURS, month_bounds
from timesheet_kernel.exceptions import InvalidEntryError


@dataclass(frozen=True)
class DailyEntry:
    """One incoming day of an itemized submission (hours already normalized)."""

    work_date: date
    hours_worked: Decimal
    support_hours: Decimal = ZERO_HOURS
    holiday_category_id: UUID | None = None
    note: str | None = None


@dataclass(frozen=True)
class RecordSnapshot:
    """The mutable fields of a stored daily record."""

    record_id: UUID
    work_date: date
    hours_worked: Decimal
    support_hours: Decimal
    holiday_category_id: UUID | None
    note: str | None
    attached: bool

    def matches(self, entry: DailyEntry) -> bool:
        return (
            self.hours_worked == entry.hours_worked
            and self.support_hours == entry.support_hours
            and self.holiday_category_id == entry.holiday_category_id
            and (self.note or None) == (entry.note or None)
        )


@dataclass(frozen=True)
class RecordUpdate:
    record_id: UUID
    entry: DailyEntry


@dataclass(frozen=True)
class ReconciliationPlan:
    creates: tuple[DailyEntry, ...] = ()
    updates: tuple[RecordUpdate, ...] = ()
    unchanged: tuple[UUID, ...] = ()
    detaches: tuple[UUID, ...] = ()

    @property
    def is_noop(self) -> bool:
        return not (self.creates or self.updates or self.detaches)

    @property
    def retained_count(self) -> int:
        """Records attached to the summary once the plan is applied."""
        return len(self.creates) + len(self.updates) + len(self.unchanged)


def validate_batch(year: int, month: int, entries: Sequence[DailyEntry]) -> None:
    """Reject duplicate dates and dates outside ``year``/``month``."""
    first, last = month_bounds(year, month)
    seen: dict[date, int] = {}
    for index, entry in enumerate(entries):
        field = f"entries[{index}].date"
        if not first <= entry.work_date <= last:
            raise InvalidEntryError(
                field,
                f"Date {entry.work_date.isoformat()} is outside "
                f"{year:04d}-{month:02d}",
            )
        if entry.work_date in seen:
            raise InvalidEntryError(
                field,
                f"Duplicate date {entry.work_date.isoformat()} "
                f"(also at entries[{seen[entry.work_date]}])",
            )
        seen[entry.work_date] = index


def plan_reconciliation(
    year: int,
    month: int,
    existing: Mapping[date, RecordSnapshot],
    incoming: Sequence[DailyEntry],
) -> ReconciliationPlan:
    """Plan the create/update/detach merge of ``incoming`` over ``existing``.

    Args:
        year, month: Target month; every incoming date must fall inside it.
        existing: Stored records for the user in the month keyed by date,
            attached or detached.
        incoming: The submitted batch, in client order.
    """
    validate_batch(year, month, incoming)

    creates: list[DailyEntry] = []
    updates: list[RecordUpdate] = []
    unchanged: list[UUID] = []

    for entry in incoming:
        current = existing.get(entry.work_date)
        if current is None:
            creates.append(entry)
        elif current.attached and current.matches(entry):
            unchanged.append(current.record_id)
        else:
            updates.append(RecordUpdate(record_id=current.record_id, entry=entry))

    submitted_dates = {e.work_date for e in incoming}
    detaches = tuple(
        snapshot.record_id
        for day, snapshot in sorted(existing.items())
        if day not in submitted_dates and snapshot.attached
    )

    return ReconciliationPlan(
        creates=tuple(creates),
        updates=tuple(updates),
        unchanged=tuple(unchanged),
        detaches=detaches,
    )
