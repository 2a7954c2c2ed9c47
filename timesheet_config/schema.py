"""
Timesheet configuration schema.

Frozen dataclasses that the loader parses YAML into.  Services receive a
``TimesheetConfig`` (or one of its sections) through their constructor and
never read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from timesheet_engines.calendar import (
    DEFAULT_FIXED_HOLIDAYS,
    FixedDateHolidayProvider,
    HolidayProvider,
)


@dataclass(frozen=True)
class HolidayDef:
    """A public holiday on a fixed month/day."""

    month: int
    day: int
    name: str


@dataclass(frozen=True)
class WorkingTimeConfig:
    standard_daily_hours: Decimal = Decimal("8")
    report_tolerance_hours: Decimal = Decimal("0.01")
    hours_decimal_places: int = 2


@dataclass(frozen=True)
class DocumentConfig:
    upload_dir: Path = Path("uploads")
    invoice_upload_dir: Path = Path("uploads/invoices")
    accepted_report_content_types: tuple[str, ...] = ("application/pdf",)
    accepted_invoice_content_types: tuple[str, ...] = (
        "application/pdf",
        "image/png",
        "image/jpeg",
    )


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///timesheet.db"
    echo: bool = False


@dataclass(frozen=True)
class TimesheetConfig:
    """Complete runtime configuration."""

    working_time: WorkingTimeConfig = field(default_factory=WorkingTimeConfig)
    documents: DocumentConfig = field(default_factory=DocumentConfig)
    holidays: tuple[HolidayDef, ...] = tuple(
        HolidayDef(month=m, day=d, name=n)
        for (m, d), n in DEFAULT_FIXED_HOLIDAYS.items()
    )
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging_level: str = "INFO"
    checksum: str = ""

    def holiday_provider(self) -> HolidayProvider:
        return FixedDateHolidayProvider(
            {(h.month, h.day): h.name for h in self.holidays}
        )
