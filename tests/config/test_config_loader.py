"""
Tests for configuration loading and validation.

Covers:
- Packaged defaults agree with the schema defaults
- Overrides from a YAML file
- Every validation problem reported together
- Deterministic checksums and the load event
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from timesheet_config import (
    DEFAULT_CONFIG_PATH,
    TimesheetConfig,
    apply_runtime_config,
    get_active_config,
)
from timesheet_config.loader import compute_checksum, load_yaml_file, parse_config
from timesheet_engines.calendar import build_work_calendar
from timesheet_kernel.db.engine import get_engine, reset_engine
from timesheet_kernel.exceptions import ConfigurationError


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "timesheet.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults_match_schema(self):
        loaded = get_active_config()

        assert loaded.checksum
        assert replace(loaded, checksum="") == TimesheetConfig()

    def test_hours_are_decimals(self):
        working_time = get_active_config().working_time

        assert working_time.standard_daily_hours == Decimal("8")
        assert working_time.report_tolerance_hours == Decimal("0.01")

    def test_load_event(self, captured_logs):
        config = get_active_config()

        events = [r for r in captured_logs() if r["message"] == "timesheet_config_loaded"]
        assert events[-1]["checksum"] == config.checksum
        assert events[-1]["config_path"] == str(DEFAULT_CONFIG_PATH)
        assert events[-1]["holiday_count"] == 8


class TestOverrides:
    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = _write(tmp_path, {"working_time": {"standard_daily_hours": "7.5"}})

        config = get_active_config(path)

        assert config.working_time.standard_daily_hours == Decimal("7.5")
        assert config.working_time.report_tolerance_hours == Decimal("0.01")
        assert config.documents.accepted_report_content_types == ("application/pdf",)
        assert config.holidays == ()

    def test_custom_holidays_drive_calendar(self, tmp_path):
        path = _write(tmp_path, {"holidays": [{"month": 5, "day": 2, "name": "Company day"}]})

        config = get_active_config(path)
        calendar = build_work_calendar(2024, 5, config.holiday_provider())

        assert calendar.workdays_count == 22
        assert date(2024, 5, 1) in calendar.workdays()
        assert date(2024, 5, 2) not in calendar.workdays()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml_file(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")


class TestValidation:
    def test_all_problems_reported(self):
        data = {
            "working_time": {"standard_daily_hours": "eight", "report_tolerance_hours": "-1"},
            "documents": {"accepted_report_content_types": []},
            "holidays": [
                {"month": 13, "day": 1, "name": "x"},
                {"month": 2, "day": 30, "name": "y"},
                {"month": 1, "day": 1, "name": "New Year"},
                {"month": 1, "day": 1, "name": "Again"},
            ],
            "logging": {"level": "LOUD"},
        }

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(data)

        errors = exc_info.value.errors
        assert any("standard_daily_hours" in e for e in errors)
        assert any("report_tolerance_hours" in e for e in errors)
        assert any("accepted_report_content_types" in e for e in errors)
        assert any(e.startswith("holidays[0].month") for e in errors)
        assert any(e.startswith("holidays[1].day") for e in errors)
        assert any("duplicates 01-01" in e for e in errors)
        assert any("logging.level" in e for e in errors)

    def test_zero_daily_hours(self):
        with pytest.raises(ConfigurationError):
            parse_config({"working_time": {"standard_daily_hours": 0}})

    def test_decimal_places_fixed(self):
        with pytest.raises(ConfigurationError):
            parse_config({"working_time": {"hours_decimal_places": 3}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"documents": ["a"]})

        assert "documents must be a mapping" in exc_info.value.errors

    def test_leap_day_holiday_allowed(self):
        config = parse_config({"holidays": [{"month": 2, "day": 29, "name": "Leap"}]})

        assert len(config.holidays) == 1


def test_checksum_is_order_independent():
    assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
    assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


def test_apply_runtime_config_initializes_engine(tmp_path):
    config = get_active_config(_write(tmp_path, {"database": {"url": "sqlite://"}}))
    try:
        engine = apply_runtime_config(config)

        assert get_engine() is engine
        assert engine.dialect.name == "sqlite"
    finally:
        reset_engine()
