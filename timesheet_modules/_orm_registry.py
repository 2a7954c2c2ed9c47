"""
Module ORM Registry (``timesheet_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling ``timesheet_modules``
packages and from ``timesheet_kernel.db.engine`` (allowed: modules -> kernel).
MUST NOT be imported by ``timesheet_kernel`` or ``timesheet_services``.

Usage
-----
Entrypoints and ``tests/conftest.py`` call ``create_all_tables()``.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine


def import_all_orm_models() -> None:
    """Import every ``timesheet_modules.*.orm`` module to register ORM models.

    Holiday categories come first: daily records reference them.
    This function is idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import timesheet_modules.holidays.orm  # noqa: F401
    import timesheet_modules.timesheet.orm  # noqa: F401
    import timesheet_modules.invoice.orm  # noqa: F401
    # fmt: on


def create_all_tables(engine: Engine | None = None) -> None:
    """Register all module ORM models, then create every table."""
    from timesheet_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables(engine)
