"""
Monthly Timesheet ORM Models (``timesheet_modules.timesheet.orm``).

Responsibility
--------------
SQLAlchemy ORM models persisting ``MonthlySummary`` and ``DailyRecord``.
Each ORM class provides ``to_dto()``.

Architecture position
---------------------
**Modules layer** -- persistence companions to the pure DTO models.
Inherits from ``TrackedBase`` (kernel DB base) which provides:
id (UUID PK), created_at, updated_at, created_by_id, updated_by_id.

Invariants enforced
-------------------
* One summary per (user_id, year, month).
* One daily record per (user_id, record_date), attached or not.
* ``DailyRecordModel.summary_id`` is the nullable owner reference:
  detaching clears it, the row survives.  Deleting a summary deletes the
  records still attached to it.
* ``MonthlySummaryModel.version`` is SQLAlchemy's optimistic version
  counter; an UPDATE against a stale version raises ``StaleDataError``.
* Hours columns are Numeric(10, 2) -- NEVER float.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timesheet_kernel.db.base import TrackedBase
from timesheet_kernel.db.types import FilePathType, HoursType, StatusType


# ---------------------------------------------------------------------------
# MonthlySummaryModel
# ---------------------------------------------------------------------------


class MonthlySummaryModel(TrackedBase):
    """ORM model for ``MonthlySummary``."""

    __tablename__ = "timesheet_monthly_summaries"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "year", "month",
            name="uq_timesheet_summary_user_month",
        ),
        Index("idx_timesheet_summary_status", "status"),
        Index("idx_timesheet_summary_period", "year", "month"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(StatusType, nullable=False, default="draft")
    regular_hours: Mapped[Decimal] = mapped_column(HoursType, nullable=False, default=Decimal("0"))
    holiday_hours: Mapped[Decimal] = mapped_column(HoursType, nullable=False, default=Decimal("0"))
    support_hours: Mapped[Decimal] = mapped_column(HoursType, nullable=False, default=Decimal("0"))
    total_hours_reported: Mapped[Decimal | None] = mapped_column(HoursType, nullable=True)
    submission_date: Mapped[date | None] = mapped_column(nullable=True)
    approval_date: Mapped[date | None] = mapped_column(nullable=True)
    payment_date: Mapped[date | None] = mapped_column(nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_path: Mapped[str | None] = mapped_column(FilePathType, nullable=True)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    records: Mapped[list["DailyRecordModel"]] = relationship(
        "DailyRecordModel",
        back_populates="summary",
        cascade="save-update, merge, delete",
        order_by="DailyRecordModel.record_date",
        lazy="selectin",
    )

    def to_dto(self):
        from timesheet_modules.timesheet.models import MonthlySummary, SummaryStatus

        return MonthlySummary(
            summary_id=self.id,
            user_id=self.user_id,
            year=self.year,
            month=self.month,
            status=SummaryStatus(self.status),
            regular_hours=self.regular_hours,
            holiday_hours=self.holiday_hours,
            support_hours=self.support_hours,
            total_hours_reported=self.total_hours_reported,
            submission_date=self.submission_date,
            approval_date=self.approval_date,
            payment_date=self.payment_date,
            comments=self.comments,
            document_path=self.document_path,
            records=tuple(
                r.to_dto() for r in sorted(self.records, key=lambda r: r.record_date)
            ),
        )


# ---------------------------------------------------------------------------
# DailyRecordModel
# ---------------------------------------------------------------------------


class DailyRecordModel(TrackedBase):
    """ORM model for ``DailyRecord``."""

    __tablename__ = "timesheet_daily_records"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "record_date",
            name="uq_timesheet_record_user_date",
        ),
        Index("idx_timesheet_record_summary", "summary_id"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    record_date: Mapped[date] = mapped_column(nullable=False)
    summary_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("timesheet_monthly_summaries.id", ondelete="CASCADE"),
        nullable=True,
    )
    hours_worked: Mapped[Decimal] = mapped_column(HoursType, nullable=False)
    support_hours: Mapped[Decimal] = mapped_column(HoursType, nullable=False, default=Decimal("0"))
    holiday_category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("timesheet_holiday_categories.id"),
        nullable=True,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(StatusType, nullable=False, default="pending")

    summary: Mapped[MonthlySummaryModel | None] = relationship(
        "MonthlySummaryModel",
        back_populates="records",
    )

    def to_dto(self):
        from timesheet_modules.timesheet.models import DailyRecord, RecordStatus

        return DailyRecord(
            record_id=self.id,
            user_id=self.user_id,
            record_date=self.record_date,
            hours_worked=self.hours_worked,
            support_hours=self.support_hours,
            holiday_category_id=self.holiday_category_id,
            note=self.note,
            status=RecordStatus(self.status),
            summary_id=self.summary_id,
        )
