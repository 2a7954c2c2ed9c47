"""
Subcontractor Invoice ORM Model (``timesheet_modules.invoice.orm``).

One row per invoice a subcontractor submits for a month, with the stored
file's location relative to the invoice document store.  At most one
invoice per (user, year, month) is a service rule; the table only indexes
the triple.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import TrackedBase
from timesheet_kernel.db.types import FilePathType, HoursType, MoneyType, StatusType


class SubcontractorInvoiceModel(TrackedBase):
    """ORM model for ``SubcontractorInvoice``."""

    __tablename__ = "timesheet_subcontractor_invoices"

    __table_args__ = (
        Index("idx_timesheet_invoice_user_period", "user_id", "year", "month"),
        Index("idx_timesheet_invoice_status", "status"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    hours_claimed: Mapped[Decimal] = mapped_column(HoursType, nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(StatusType, nullable=False, default="submitted")
    submission_date: Mapped[date] = mapped_column(nullable=False)
    approval_date: Mapped[date | None] = mapped_column(nullable=True)
    payment_date: Mapped[date | None] = mapped_column(nullable=True)
    file_path: Mapped[str] = mapped_column(FilePathType, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from timesheet_modules.invoice.models import InvoiceStatus, SubcontractorInvoice

        return SubcontractorInvoice(
            invoice_id=self.id,
            user_id=self.user_id,
            year=self.year,
            month=self.month,
            invoice_amount=self.invoice_amount,
            hours_claimed=self.hours_claimed,
            invoice_number=self.invoice_number,
            status=InvoiceStatus(self.status),
            submission_date=self.submission_date,
            file_path=self.file_path,
            file_name=self.file_name,
            content_type=self.content_type,
            approval_date=self.approval_date,
            payment_date=self.payment_date,
            comments=self.comments,
        )
