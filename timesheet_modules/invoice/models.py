"""
Subcontractor Invoice Domain Types (``timesheet_modules.invoice.models``).

Frozen DTOs for a subcontractor's monthly invoice, the submission request
that carries the invoice file, and the administrator's per-month roll-up.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from timesheet_engines.document_report import UploadedFile
from timesheet_kernel.domain.values import ZERO_HOURS, parse_hours, validate_period
from timesheet_kernel.exceptions import InvalidEntryError, InvalidStatusError


class InvoiceStatus(str, Enum):
    """Lifecycle of a subcontractor invoice (no draft state)."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"

    @classmethod
    def parse(cls, value: object) -> InvoiceStatus:
        """Accept ``APPROVED``, ``approved`` or the enum itself."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidStatusError(value, [s.value.upper() for s in cls])


def parse_amount(value: object, field: str) -> Decimal:
    """Parse a non-negative, finite monetary amount."""
    if value is None or isinstance(value, bool):
        raise InvalidEntryError(field, f"Expected an amount, got {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidEntryError(field, f"Expected an amount, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidEntryError(field, f"Expected a finite amount, got {value!r}")
    if amount < 0:
        raise InvalidEntryError(field, "Amount must not be negative")
    return amount


@dataclass(frozen=True)
class SubcontractorInvoice:
    invoice_id: UUID
    user_id: UUID
    year: int
    month: int
    invoice_amount: Decimal
    hours_claimed: Decimal
    invoice_number: str
    status: InvoiceStatus
    submission_date: date
    file_path: str
    file_name: str
    content_type: str
    approval_date: date | None = None
    payment_date: date | None = None
    comments: str | None = None

    def to_payload(self) -> dict[str, Any]:
        def _iso(d: date | None) -> str | None:
            return d.isoformat() if d else None

        return {
            "id": str(self.invoice_id),
            "userId": str(self.user_id),
            "year": self.year,
            "month": self.month,
            "invoiceAmount": str(self.invoice_amount),
            "hoursWorked": str(self.hours_claimed),
            "invoiceNumber": self.invoice_number,
            "status": self.status.value.upper(),
            "submissionDate": _iso(self.submission_date),
            "approvalDate": _iso(self.approval_date),
            "paymentDate": _iso(self.payment_date),
            "invoiceFileName": self.file_name,
            "invoiceFileContentType": self.content_type,
            "comments": self.comments,
        }


@dataclass(frozen=True)
class InvoiceMonthSummary:
    """Totals and per-status counts of every invoice for one month."""

    year: int
    month: int
    total_invoices: int
    total_amount: Decimal
    total_hours: Decimal
    submitted_count: int
    approved_count: int
    rejected_count: int
    paid_count: int

    @classmethod
    def of(
        cls, year: int, month: int, invoices: Iterable[SubcontractorInvoice]
    ) -> InvoiceMonthSummary:
        items = list(invoices)
        counts = {status: 0 for status in InvoiceStatus}
        total_amount = Decimal(0)
        total_hours = ZERO_HOURS
        for invoice in items:
            counts[invoice.status] += 1
            total_amount += invoice.invoice_amount
            total_hours += invoice.hours_claimed
        return cls(
            year=year,
            month=month,
            total_invoices=len(items),
            total_amount=total_amount,
            total_hours=total_hours,
            submitted_count=counts[InvoiceStatus.SUBMITTED],
            approved_count=counts[InvoiceStatus.APPROVED],
            rejected_count=counts[InvoiceStatus.REJECTED],
            paid_count=counts[InvoiceStatus.PAID],
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "totalInvoices": self.total_invoices,
            "totalAmount": str(self.total_amount),
            "totalHours": str(self.total_hours),
            "submittedCount": self.submitted_count,
            "approvedCount": self.approved_count,
            "rejectedCount": self.rejected_count,
            "paidCount": self.paid_count,
        }


@dataclass(frozen=True)
class SubmitInvoiceRequest:
    """A monthly invoice plus the uploaded invoice file."""

    year: int
    month: int
    invoice_amount: Decimal
    hours_claimed: Decimal
    invoice_number: str
    file: UploadedFile | None

    def __post_init__(self) -> None:
        validate_period(self.year, self.month)
        object.__setattr__(
            self, "invoice_amount", parse_amount(self.invoice_amount, "invoiceAmount")
        )
        object.__setattr__(
            self, "hours_claimed", parse_hours(self.hours_claimed, "hoursWorked")
        )
        number = self.invoice_number.strip() if isinstance(self.invoice_number, str) else ""
        if not number:
            raise InvalidEntryError("invoiceNumber", "Invoice number must not be blank")
        object.__setattr__(self, "invoice_number", number)

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], file: UploadedFile | None
    ) -> SubmitInvoiceRequest:
        """Build from ``{year, month, invoiceAmount, hoursWorked, invoiceNumber}``."""
        year, month = validate_period(payload.get("year"), payload.get("month"))
        return cls(
            year=year,
            month=month,
            invoice_amount=payload.get("invoiceAmount"),
            hours_claimed=payload.get("hoursWorked"),
            invoice_number=payload.get("invoiceNumber"),
            file=file,
        )
