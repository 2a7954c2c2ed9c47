"""
timesheet_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.  Returns a frozen
    ``TimesheetConfig``.

Architecture position:
    Configuration -- sits above ``timesheet_kernel`` and
    ``timesheet_engines`` and below ``timesheet_services`` /
    ``timesheet_modules``.  The kernel MUST NEVER import from here.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- one or more values failed validation.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``timesheet_config_loaded`` log entry with the source path and the
    SHA-256 checksum of the parsed document, tying every decision (expected
    hours, tolerance, holidays) to the exact configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine

from timesheet_config.loader import load_yaml_file, parse_config
from timesheet_config.schema import (
    DatabaseConfig,
    DocumentConfig,
    HolidayDef,
    TimesheetConfig,
    WorkingTimeConfig,
)
from timesheet_kernel.db.engine import init_engine_from_url
from timesheet_kernel.logging_config import configure_logging, get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> TimesheetConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        A validated, frozen ``TimesheetConfig``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "timesheet_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "standard_daily_hours": config.working_time.standard_daily_hours,
            "holiday_count": len(config.holidays),
        },
    )
    return config


def apply_runtime_config(config: TimesheetConfig) -> Engine:
    """Configure logging and the process-wide engine from ``config``.

    Entrypoints call this once at startup; tests build their own engines.
    """
    configure_logging(level=config.logging_level)
    return init_engine_from_url(config.database.url, echo=config.database.echo)


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "DocumentConfig",
    "HolidayDef",
    "TimesheetConfig",
    "WorkingTimeConfig",
    "apply_runtime_config",
    "get_active_config",
]
