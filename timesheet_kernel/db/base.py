"""
Module: timesheet_kernel.db.base
Responsibility: Declarative base shared by the summary, daily record,
    holiday category and invoice tables.
Architecture position: Kernel > DB.  ORM modules import from here; this
    module imports nothing from the rest of the project.

Column conventions:
    - Primary keys and every user/actor reference are UUIDs kept as
      String(36), so SQLite and PostgreSQL hold the same text.
    - ``Mapped[date]`` is a calendar ``Date``.  A daily record's
      ``record_date`` and a summary's submission/approval/payment dates
      carry no time of day and no zone.
    - ``Mapped[Decimal]`` defaults to the hours column type,
      Numeric(10, 2).  Invoice amounts name ``MoneyType`` explicitly.
    - Every table records who created it and who last touched it.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from timesheet_kernel.db.types import HoursType


class UUIDString(TypeDecorator):
    """A UUID written as its 36-character text form and read back as ``UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Root of every timesheet table; ``id`` is a fresh uuid4 per row."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        date: Date,
        datetime: DateTime(timezone=True),
        Decimal: HoursType,
        int: Integer,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds the audit columns to a table.

    ``created_by_id`` is the caller whose action inserted the row (the
    submitting user, or the admin who seeded a holiday category).
    ``updated_by_id`` stays NULL until a later action changes the row,
    for instance a status transition or a per-record review.  Both
    timestamps come from the database clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[UUID] = mapped_column(UUIDString())
    updated_by_id: Mapped[UUID | None] = mapped_column(UUIDString())
