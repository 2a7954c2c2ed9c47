"""
Module: timesheet_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for higher
    layers (timesheet_services, timesheet_modules).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import timesheet_kernel domain values and exceptions (and
    sibling engine modules).  MUST NOT import timesheet_services or
    timesheet_modules.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in as explicit parameters.
    - Decimal-only arithmetic for hours.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from timesheet_engines.calendar import build_work_calendar
    from timesheet_engines.completion import calculate_completion
    from timesheet_engines.reconciliation import plan_reconciliation
"""

from timesheet_engines.aggregation import HourTotals, aggregate_records
from timesheet_engines.calendar import (
    CalendarDay,
    CompositeHolidayProvider,
    FixedDateHolidayProvider,
    HolidayProvider,
    WorkCalendar,
    build_work_calendar,
)
from timesheet_engines.completion import CompletionReport, calculate_completion
from timesheet_engines.document_report import (
    UploadedFile,
    check_reported_total,
    expected_report_hours,
    report_document_name,
    sanitize_username,
    validate_document,
)
from timesheet_engines.reconciliation import (
    DailyEntry,
    ReconciliationPlan,
    RecordSnapshot,
    RecordUpdate,
    plan_reconciliation,
    validate_batch,
)

__all__ = [
    "HourTotals",
    "aggregate_records",
    "CalendarDay",
    "CompositeHolidayProvider",
    "FixedDateHolidayProvider",
    "HolidayProvider",
    "WorkCalendar",
    "build_work_calendar",
    "CompletionReport",
    "calculate_completion",
    "UploadedFile",
    "check_reported_total",
    "expected_report_hours",
    "report_document_name",
    "sanitize_username",
    "validate_document",
    "DailyEntry",
    "ReconciliationPlan",
    "RecordSnapshot",
    "RecordUpdate",
    "plan_reconciliation",
    "validate_batch",
]
