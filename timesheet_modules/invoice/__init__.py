"""
Subcontractor Invoice Module (``timesheet_modules.invoice``).

Monthly invoices submitted by subcontractors with the invoice file, and
their review lifecycle (approve, reject, mark paid).
"""

from timesheet_modules.invoice.models import (
    InvoiceMonthSummary,
    InvoiceStatus,
    SubcontractorInvoice,
    SubmitInvoiceRequest,
)
from timesheet_modules.invoice.service import InvoiceService
from timesheet_modules.invoice.workflows import INVOICE_POLICY, INVOICE_WORKFLOW

__all__ = [
    "InvoiceMonthSummary",
    "InvoiceStatus",
    "SubcontractorInvoice",
    "SubmitInvoiceRequest",
    "InvoiceService",
    "INVOICE_POLICY",
    "INVOICE_WORKFLOW",
]
