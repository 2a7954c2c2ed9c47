"""
Monthly Timesheet Domain Types (``timesheet_modules.timesheet.models``).

Responsibility
--------------
Frozen DTOs for the monthly summary, its daily records, and the two
submission request shapes (itemized entries, document report).  The
``from_payload`` constructors accept the camelCase wire shapes and raise
typed validation errors naming the offending field.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* Hours are two-place ``Decimal``; request constructors normalize them.
* Request periods are validated on construction.
* Summary ``status`` values are the ``SummaryStatus`` enum.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from timesheet_engines.document_report import UploadedFile
from timesheet_engines.reconciliation import DailyEntry
from timesheet_kernel.domain.values import ZERO_HOURS, parse_hours, validate_period
from timesheet_kernel.exceptions import InvalidEntryError, InvalidStatusError


class SummaryStatus(str, Enum):
    """Lifecycle of a monthly summary."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class RecordStatus(str, Enum):
    """Daily record status.

    Summary transitions overwrite it with the mirrored value; between
    transitions an administrator may set a single record's status.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: object) -> RecordStatus:
        """Accept ``APPROVED``, ``approved`` or the enum itself."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidStatusError(value, [s.value.upper() for s in cls])


_RECORD_STATUS_BY_SUMMARY: dict[SummaryStatus, RecordStatus] = {
    SummaryStatus.DRAFT: RecordStatus.PENDING,
    SummaryStatus.SUBMITTED: RecordStatus.PENDING,
    SummaryStatus.APPROVED: RecordStatus.APPROVED,
    SummaryStatus.REJECTED: RecordStatus.REJECTED,
    SummaryStatus.PAID: RecordStatus.APPROVED,
}


def record_status_for(summary_status: SummaryStatus | str) -> RecordStatus:
    return _RECORD_STATUS_BY_SUMMARY[SummaryStatus(summary_status)]


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DailyRecord:
    """One stored day of reported time."""

    record_id: UUID
    user_id: UUID
    record_date: date
    hours_worked: Decimal
    support_hours: Decimal
    holiday_category_id: UUID | None
    note: str | None
    status: RecordStatus
    summary_id: UUID | None

    @property
    def is_detached(self) -> bool:
        return self.summary_id is None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.record_id),
            "date": self.record_date.isoformat(),
            "hoursWorked": str(self.hours_worked),
            "supportHours": str(self.support_hours),
            "holidayTypeId": (
                str(self.holiday_category_id) if self.holiday_category_id else None
            ),
            "notes": self.note,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class MonthlySummary:
    """A user's month: derived totals, workflow status, attached records."""

    summary_id: UUID
    user_id: UUID
    year: int
    month: int
    status: SummaryStatus
    regular_hours: Decimal
    holiday_hours: Decimal
    support_hours: Decimal
    total_hours_reported: Decimal | None = None
    submission_date: date | None = None
    approval_date: date | None = None
    payment_date: date | None = None
    comments: str | None = None
    document_path: str | None = None
    records: tuple[DailyRecord, ...] = ()

    @property
    def total_hours_worked(self) -> Decimal:
        """The reported total when present, else regular plus holiday hours."""
        if self.total_hours_reported is not None:
            return self.total_hours_reported
        return self.regular_hours + self.holiday_hours

    @property
    def is_document_report(self) -> bool:
        return self.total_hours_reported is not None

    def to_payload(self) -> dict[str, Any]:
        def _iso(d: date | None) -> str | None:
            return d.isoformat() if d else None

        return {
            "id": str(self.summary_id),
            "userId": str(self.user_id),
            "year": self.year,
            "month": self.month,
            "status": self.status.value.upper(),
            "regularHours": str(self.regular_hours),
            "holidayHours": str(self.holiday_hours),
            "supportHours": str(self.support_hours),
            "totalHoursWorked": str(self.total_hours_worked),
            "totalHoursReported": (
                str(self.total_hours_reported)
                if self.total_hours_reported is not None else None
            ),
            "submissionDate": _iso(self.submission_date),
            "approvalDate": _iso(self.approval_date),
            "paymentDate": _iso(self.payment_date),
            "comments": self.comments,
            "entries": [r.to_payload() for r in self.records],
        }


@dataclass(frozen=True)
class MonthOverview:
    """One row of the administrator's monthly overview."""

    summary_id: UUID
    user_id: UUID
    year: int
    month: int
    status: SummaryStatus
    total_hours_worked: Decimal
    total_workdays: int
    filled_workdays: int
    completion_percentage: Decimal
    is_complete: bool
    submission_date: date | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.summary_id),
            "userId": str(self.user_id),
            "year": self.year,
            "month": self.month,
            "status": self.status.value.upper(),
            "totalHoursWorked": str(self.total_hours_worked),
            "totalWorkdays": self.total_workdays,
            "filledWorkdays": self.filled_workdays,
            "completionPercentage": str(self.completion_percentage),
            "isComplete": self.is_complete,
            "submissionDate": (
                self.submission_date.isoformat() if self.submission_date else None
            ),
        }


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidEntryError(field, f"Expected an ISO date (YYYY-MM-DD), got {value!r}")


def _parse_uuid(value: Any, field: str) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidEntryError(field, f"Expected an id, got {value!r}") from None


def _parse_period(payload: Mapping[str, Any]) -> tuple[int, int]:
    return validate_period(payload.get("year"), payload.get("month"))


def _normalize_entry(entry: DailyEntry, index: int) -> DailyEntry:
    prefix = f"entries[{index}]"
    if not isinstance(entry.work_date, date):
        raise InvalidEntryError(f"{prefix}.date", f"Expected a date, got {entry.work_date!r}")
    if entry.note is not None and not isinstance(entry.note, str):
        raise InvalidEntryError(f"{prefix}.notes", f"Expected text, got {entry.note!r}")
    note = entry.note.strip() if entry.note is not None else None
    return DailyEntry(
        work_date=entry.work_date,
        hours_worked=parse_hours(entry.hours_worked, f"{prefix}.hoursWorked"),
        support_hours=parse_hours(
            ZERO_HOURS if entry.support_hours is None else entry.support_hours,
            f"{prefix}.supportHours",
        ),
        holiday_category_id=entry.holiday_category_id,
        note=note or None,
    )


@dataclass(frozen=True)
class SubmitEntriesRequest:
    """Itemized submission: the authoritative set of days for one month."""

    year: int
    month: int
    entries: tuple[DailyEntry, ...] = ()
    submit: bool = False

    def __post_init__(self) -> None:
        validate_period(self.year, self.month)
        normalized = tuple(
            _normalize_entry(entry, index) for index, entry in enumerate(self.entries)
        )
        object.__setattr__(self, "entries", normalized)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SubmitEntriesRequest:
        """Build from ``{year, month, entries: [...], submit}``."""
        year, month = _parse_period(payload)
        raw_entries = payload.get("entries") or []
        if not isinstance(raw_entries, list):
            raise InvalidEntryError("entries", "Expected a list of entries")
        submit = payload.get("submit", False)
        if not isinstance(submit, bool):
            raise InvalidEntryError("submit", f"Expected true or false, got {submit!r}")

        entries = []
        for index, raw in enumerate(raw_entries):
            prefix = f"entries[{index}]"
            if not isinstance(raw, Mapping):
                raise InvalidEntryError(prefix, "Expected an object")
            support = raw.get("supportHours")
            entries.append(
                DailyEntry(
                    work_date=_parse_date(raw.get("date"), f"{prefix}.date"),
                    hours_worked=parse_hours(raw.get("hoursWorked"), f"{prefix}.hoursWorked"),
                    support_hours=parse_hours(
                        0 if support is None else support, f"{prefix}.supportHours"
                    ),
                    holiday_category_id=_parse_uuid(
                        raw.get("holidayTypeId"), f"{prefix}.holidayTypeId"
                    ),
                    note=raw.get("notes"),
                )
            )
        return cls(
            year=year,
            month=month,
            entries=tuple(entries),
            submit=submit,
        )


@dataclass(frozen=True)
class UploadDocumentRequest:
    """Document-backed submission: one verified monthly total plus a file."""

    year: int
    month: int
    total_hours_reported: Decimal
    file: UploadedFile | None

    def __post_init__(self) -> None:
        validate_period(self.year, self.month)
        object.__setattr__(
            self,
            "total_hours_reported",
            parse_hours(self.total_hours_reported, "totalHoursReported"),
        )

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], file: UploadedFile | None
    ) -> UploadDocumentRequest:
        year, month = _parse_period(payload)
        return cls(
            year=year,
            month=month,
            total_hours_reported=payload.get("totalHoursReported"),
            file=file,
        )
