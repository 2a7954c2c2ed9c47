"""
Configuration Loader (``timesheet_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``timesheet_config.schema`` dataclasses.  The single public entry point for
runtime config is ``timesheet_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Hours are parsed from strings into ``Decimal``; floats never survive.
* All validation problems are collected and reported together in one
  ``ConfigurationError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigurationError`` listing every problem.
"""

from __future__ import annotations

import calendar
import hashlib
import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from timesheet_config.schema import (
    DatabaseConfig,
    DocumentConfig,
    HolidayDef,
    TimesheetConfig,
    WorkingTimeConfig,
)
from timesheet_kernel.exceptions import ConfigurationError

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _decimal(value: Any, name: str, errors: list[str]) -> Decimal | None:
    if isinstance(value, bool):
        errors.append(f"{name} must be a number, got {value!r}")
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        errors.append(f"{name} must be a number, got {value!r}")
        return None
    if not result.is_finite() or result < 0:
        errors.append(f"{name} must be a finite non-negative number, got {value!r}")
        return None
    return result


def _string_tuple(value: Any, name: str, errors: list[str]) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        errors.append(f"{name} must be a list of strings")
        return ()
    if not value:
        errors.append(f"{name} must not be empty")
    return tuple(value)


def parse_working_time(data: dict[str, Any], errors: list[str]) -> WorkingTimeConfig:
    defaults = WorkingTimeConfig()
    daily = _decimal(
        data.get("standard_daily_hours", defaults.standard_daily_hours),
        "working_time.standard_daily_hours",
        errors,
    )
    tolerance = _decimal(
        data.get("report_tolerance_hours", defaults.report_tolerance_hours),
        "working_time.report_tolerance_hours",
        errors,
    )
    places = data.get("hours_decimal_places", defaults.hours_decimal_places)
    if not isinstance(places, int) or isinstance(places, bool) or places != 2:
        # Hours columns are Numeric(10, 2)
        errors.append("working_time.hours_decimal_places must be 2")
        places = defaults.hours_decimal_places
    if daily is not None and daily == 0:
        errors.append("working_time.standard_daily_hours must be positive")
    return WorkingTimeConfig(
        standard_daily_hours=daily if daily is not None else defaults.standard_daily_hours,
        report_tolerance_hours=(
            tolerance if tolerance is not None else defaults.report_tolerance_hours
        ),
        hours_decimal_places=places,
    )


def parse_documents(data: dict[str, Any], errors: list[str]) -> DocumentConfig:
    defaults = DocumentConfig()
    return DocumentConfig(
        upload_dir=Path(data.get("upload_dir", defaults.upload_dir)),
        invoice_upload_dir=Path(
            data.get("invoice_upload_dir", defaults.invoice_upload_dir)
        ),
        accepted_report_content_types=_string_tuple(
            data.get(
                "accepted_report_content_types",
                list(defaults.accepted_report_content_types),
            ),
            "documents.accepted_report_content_types",
            errors,
        ),
        accepted_invoice_content_types=_string_tuple(
            data.get(
                "accepted_invoice_content_types",
                list(defaults.accepted_invoice_content_types),
            ),
            "documents.accepted_invoice_content_types",
            errors,
        ),
    )


def parse_holidays(data: list[Any], errors: list[str]) -> tuple[HolidayDef, ...]:
    holidays: list[HolidayDef] = []
    seen: set[tuple[int, int]] = set()
    for index, item in enumerate(data):
        name = f"holidays[{index}]"
        if not isinstance(item, dict):
            errors.append(f"{name} must be a mapping with month, day and name")
            continue
        month, day, label = item.get("month"), item.get("day"), item.get("name")
        if not isinstance(month, int) or not 1 <= month <= 12:
            errors.append(f"{name}.month must be between 1 and 12, got {month!r}")
            continue
        # Feb 29 is allowed; it simply does not occur in common years
        max_day = calendar.monthrange(2024, month)[1]
        if not isinstance(day, int) or not 1 <= day <= max_day:
            errors.append(f"{name}.day must be between 1 and {max_day}, got {day!r}")
            continue
        if not isinstance(label, str) or not label.strip():
            errors.append(f"{name}.name must be a non-empty string")
            continue
        if (month, day) in seen:
            errors.append(f"{name} duplicates {month:02d}-{day:02d}")
            continue
        seen.add((month, day))
        holidays.append(HolidayDef(month=month, day=day, name=label.strip()))
    return tuple(holidays)


def parse_database(data: dict[str, Any], errors: list[str]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    url = data.get("url", defaults.url)
    if not isinstance(url, str) or not url:
        errors.append("database.url must be a non-empty string")
        url = defaults.url
    return DatabaseConfig(url=url, echo=bool(data.get("echo", defaults.echo)))


def parse_config(data: dict[str, Any]) -> TimesheetConfig:
    """Parse a configuration mapping; raise ConfigurationError on any problem."""
    errors: list[str] = []

    sections = {}
    for key in ("working_time", "documents", "database", "logging"):
        section = data.get(key) or {}
        if not isinstance(section, dict):
            errors.append(f"{key} must be a mapping")
            section = {}
        sections[key] = section

    holidays_data = data.get("holidays", [])
    if not isinstance(holidays_data, list):
        errors.append("holidays must be a list")
        holidays_data = []

    level = str(sections["logging"].get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        errors.append(f"logging.level is not a logging level: {level}")

    config = TimesheetConfig(
        working_time=parse_working_time(sections["working_time"], errors),
        documents=parse_documents(sections["documents"], errors),
        holidays=parse_holidays(holidays_data, errors),
        database=parse_database(sections["database"], errors),
        logging_level=level,
        checksum=compute_checksum(data),
    )

    if errors:
        raise ConfigurationError(errors)
    return config
