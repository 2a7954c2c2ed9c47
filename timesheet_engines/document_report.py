"""
Document Report Validator (``timesheet_engines.document_report``).

Responsibility
--------------
Rules for the document reporting path, where a user submits one monthly
total backed by an uploaded file instead of itemized days:

* the file must be present, non-empty and of an accepted content type;
* the reported total must equal workdays x standard daily hours within a
  small tolerance.

Also derives the storage name for accepted documents.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.  The service performs
the file writes, persistence and rollback around these checks.

Failure modes
-------------
* ``DocumentValidationError`` (field ``file``).
* ``ReportedHoursMismatchError`` (field ``total_hours_reported``) carrying
  reported hours, expected hours and the workday count.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from dataclasses import dataclass
from decimal import Decimal

from timesheet_engines.calendar import WorkCalendar
from timesheet_kernel.domain.values import round_hours
from timesheet_kernel.exceptions import (
    DocumentValidationError,
    ReportedHoursMismatchError,
)

DEFAULT_STANDARD_DAILY_HOURS = Decimal("8")
DEFAULT_TOLERANCE = Decimal("0.01")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


@dataclass(frozen=True)
class UploadedFile:
    """A file received from the client."""

    filename: str
    content_type: str | None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def validate_document(
    file: UploadedFile | None,
    accepted_content_types: Collection[str],
) -> UploadedFile:
    """Check presence, size and content type; return the file on success."""
    if file is None:
        raise DocumentValidationError("No file was uploaded.")
    if not file.content:
        raise DocumentValidationError("File is empty.")
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in {c.lower() for c in accepted_content_types}:
        raise DocumentValidationError(
            f"Content type {file.content_type!r} is not accepted; expected "
            f"{', '.join(sorted(accepted_content_types))}."
        )
    return file


def expected_report_hours(
    calendar: WorkCalendar,
    standard_daily_hours: Decimal = DEFAULT_STANDARD_DAILY_HOURS,
) -> Decimal:
    """Workdays in the month times the standard working day."""
    return round_hours(calendar.workdays_count * standard_daily_hours)


def check_reported_total(
    reported: Decimal,
    calendar: WorkCalendar,
    standard_daily_hours: Decimal = DEFAULT_STANDARD_DAILY_HOURS,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> Decimal:
    """Accept ``reported`` iff it is within ``tolerance`` of the expected hours.

    Returns:
        The expected hours.
    """
    expected = expected_report_hours(calendar, standard_daily_hours)
    if abs(reported - expected) > tolerance:
        raise ReportedHoursMismatchError(
            reported=reported,
            expected=expected,
            workdays=calendar.workdays_count,
        )
    return expected


def sanitize_username(username: str) -> str:
    """Replace every character outside [A-Za-z0-9_.-] with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", username)


def report_document_name(username: str, year: int, month: int) -> str:
    """Storage name of a monthly report: ``<user>_<YYYY>-<MM>.pdf``."""
    return f"{sanitize_username(username)}_{year:04d}-{month:02d}.pdf"
