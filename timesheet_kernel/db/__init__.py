"""Database layer - engine, base classes, types."""

from timesheet_kernel.db.base import Base, TrackedBase, UUIDString
from timesheet_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from timesheet_kernel.db.types import HoursType, MoneyType

__all__ = [
    "build_engine",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "HoursType",
    "MoneyType",
]
