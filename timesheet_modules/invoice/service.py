"""
Subcontractor Invoice Service (``timesheet_modules.invoice.service``).

Responsibility
--------------
Subcontractors submit one invoice per month together with the invoice
file; administrators approve, reject and mark invoices paid, and read the
per-month roll-up.  Status changes are driven by a target status and run
through the shared ``WorkflowExecutor`` with the invoice policy.

Invariants enforced
-------------------
* At most one invoice per (user, year, month), checked under the month
  lock.
* A failed submission leaves no stored file.
* Each public write owns its transaction.

Storage layout
--------------
``<YYYY>/<M>/<user>_<YYYY>_<M>_<epoch-ms><ext>`` under the invoice store
root.
"""

from __future__ import annotations

from pathlib import PurePath
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from timesheet_config import TimesheetConfig, get_active_config
from timesheet_engines.document_report import sanitize_username, validate_document
from timesheet_kernel.domain.caller import Caller
from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.values import validate_period
from timesheet_kernel.exceptions import (
    DuplicateInvoiceError,
    InvalidTransitionError,
    InvoiceNotFoundError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_modules._transaction_helpers import require_role, service_transaction
from timesheet_modules.invoice.models import (
    InvoiceMonthSummary,
    InvoiceStatus,
    SubcontractorInvoice,
    SubmitInvoiceRequest,
)
from timesheet_modules.invoice.orm import SubcontractorInvoiceModel
from timesheet_modules.invoice.workflows import (
    ADMIN_ROLES,
    INVOICE_POLICY,
    INVOICE_WORKFLOW,
    SUBMIT_ROLES,
    action_for_target,
)
from timesheet_services.document_store import DocumentStore, LocalDocumentStore
from timesheet_services.key_lock import DEFAULT_LOCK_REGISTRY, KeyedLockRegistry, month_key
from timesheet_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.invoice.service")

ENTITY_TYPE = "subcontractor_invoice"
LOCK_KIND = "invoice"


def invoice_storage_path(username: str, year: int, month: int, millis: int, filename: str) -> str:
    """Relative storage path of an invoice file; keeps the original extension."""
    ext = PurePath(filename or "").suffix
    return f"{year}/{month}/{sanitize_username(username)}_{year}_{month}_{millis}{ext}"


class InvoiceService:
    """Subcontractor invoice submission, review and reporting."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TimesheetConfig | None = None,
        document_store: DocumentStore | None = None,
        lock_registry: KeyedLockRegistry | None = None,
        workflow_executor: WorkflowExecutor | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._store = document_store or LocalDocumentStore(
            self._config.documents.invoice_upload_dir
        )
        self._locks = lock_registry or DEFAULT_LOCK_REGISTRY
        self._executor = workflow_executor or WorkflowExecutor(clock=self._clock)

    def _month_invoices(self, year: int, month: int, user_id: UUID | None = None):
        stmt = select(SubcontractorInvoiceModel).where(
            SubcontractorInvoiceModel.year == year,
            SubcontractorInvoiceModel.month == month,
        )
        if user_id is not None:
            stmt = stmt.where(SubcontractorInvoiceModel.user_id == user_id)
        return list(
            self._session.execute(
                stmt.order_by(SubcontractorInvoiceModel.submission_date)
            ).scalars()
        )

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_invoice(self, caller: Caller, request: SubmitInvoiceRequest) -> SubcontractorInvoice:
        """Store the invoice file and record the invoice as submitted.

        Raises:
            DuplicateInvoiceError: the caller already has an invoice for
                the month, whatever its status.
        """
        require_role(caller, "submit_invoice", SUBMIT_ROLES)
        upload = validate_document(
            request.file, self._config.documents.accepted_invoice_content_types
        )
        key = month_key(LOCK_KIND, caller.user_id, request.year, request.month)

        with LogContext.bind(actor_id=caller.user_id, user_id=caller.user_id):
            stored_path: str | None = None
            try:
                with service_transaction(
                    self._session, "submit_invoice", ENTITY_TYPE, self._locks, key
                ):
                    if self._month_invoices(request.year, request.month, caller.user_id):
                        raise DuplicateInvoiceError(
                            str(caller.user_id), request.year, request.month
                        )

                    path = invoice_storage_path(
                        caller.username,
                        request.year,
                        request.month,
                        self._clock.epoch_millis(),
                        upload.filename,
                    )
                    stored_path = self._store.write(path, upload.content)

                    model = SubcontractorInvoiceModel(
                        user_id=caller.user_id,
                        year=request.year,
                        month=request.month,
                        invoice_amount=request.invoice_amount,
                        hours_claimed=request.hours_claimed,
                        invoice_number=request.invoice_number,
                        status=InvoiceStatus.SUBMITTED.value,
                        submission_date=self._clock.today(),
                        file_path=stored_path,
                        file_name=upload.filename,
                        content_type=upload.content_type or "",
                        created_by_id=caller.user_id,
                    )
                    self._session.add(model)
                    self._session.flush()
                    result = model.to_dto()
            except Exception:
                if stored_path is not None:
                    self._store.delete(stored_path)
                logger.warning(
                    "invoice_submission_failed",
                    extra={"year": request.year, "month": request.month},
                )
                raise

        logger.info(
            "invoice_submitted",
            extra={
                "invoice_id": str(result.invoice_id),
                "year": result.year,
                "month": result.month,
                "invoice_amount": result.invoice_amount,
                "hours_claimed": result.hours_claimed,
                "path": result.file_path,
            },
        )
        return result

    # =========================================================================
    # Review
    # =========================================================================

    def update_invoice_status(
        self,
        caller: Caller,
        invoice_id: UUID,
        status: str | InvoiceStatus,
        comments: str | None = None,
    ) -> SubcontractorInvoice:
        """Admin: move an invoice to ``status`` along the invoice workflow.

        Non-blank ``comments`` replace the stored comments.
        """
        target = InvoiceStatus.parse(status)
        current = self._session.get(SubcontractorInvoiceModel, invoice_id)
        if current is None:
            raise InvoiceNotFoundError(str(invoice_id))
        key = month_key(LOCK_KIND, current.user_id, current.year, current.month)

        with LogContext.bind(actor_id=caller.user_id, invoice_id=invoice_id):
            with service_transaction(
                self._session, "update_invoice_status", ENTITY_TYPE, self._locks, key
            ):
                invoice = self._session.execute(
                    select(SubcontractorInvoiceModel)
                    .where(SubcontractorInvoiceModel.id == invoice_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalars().one()

                action = action_for_target(target.value)
                if action is None:
                    raise InvalidTransitionError(
                        ENTITY_TYPE,
                        str(invoice_id),
                        f"set_{target.value}",
                        invoice.status,
                        (),
                    )
                from_state = invoice.status
                result = self._executor.execute_or_raise(
                    INVOICE_WORKFLOW,
                    INVOICE_POLICY,
                    ENTITY_TYPE,
                    invoice.id,
                    invoice.status,
                    action,
                    caller,
                    context={"comments": comments},
                )
                invoice.status = result.new_state
                if result.stamp_field:
                    setattr(invoice, result.stamp_field, self._clock.today())
                if comments is not None and comments.strip():
                    invoice.comments = comments.strip()
                invoice.updated_by_id = caller.user_id
                self._session.flush()
                dto = invoice.to_dto()

        logger.info(
            "invoice_status_updated",
            extra={
                "invoice_id": str(invoice_id),
                "from_state": from_state,
                "to_state": dto.status.value,
            },
        )
        return dto

    # =========================================================================
    # Queries
    # =========================================================================

    def list_my_invoices(self, caller: Caller) -> list[SubcontractorInvoice]:
        require_role(caller, "list_my_invoices", SUBMIT_ROLES)
        stmt = (
            select(SubcontractorInvoiceModel)
            .where(SubcontractorInvoiceModel.user_id == caller.user_id)
            .order_by(
                SubcontractorInvoiceModel.year.desc(),
                SubcontractorInvoiceModel.month.desc(),
            )
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def get_my_invoice(self, caller: Caller, year: int, month: int) -> SubcontractorInvoice:
        require_role(caller, "get_my_invoice", SUBMIT_ROLES)
        validate_period(year, month)
        found = self._month_invoices(year, month, caller.user_id)
        if not found:
            raise InvoiceNotFoundError(f"{caller.user_id}/{year:04d}-{month:02d}")
        return found[0].to_dto()

    def list_invoices(
        self,
        caller: Caller,
        year: int | None = None,
        month: int | None = None,
    ) -> list[SubcontractorInvoice]:
        """Admin: every invoice, or those of one month when both are given."""
        require_role(caller, "list_invoices", ADMIN_ROLES)
        if year is not None or month is not None:
            validate_period(year, month)
            return [m.to_dto() for m in self._month_invoices(year, month)]
        stmt = select(SubcontractorInvoiceModel).order_by(
            SubcontractorInvoiceModel.year.desc(),
            SubcontractorInvoiceModel.month.desc(),
            SubcontractorInvoiceModel.submission_date,
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def invoice_month_summary(self, caller: Caller, year: int, month: int) -> InvoiceMonthSummary:
        require_role(caller, "invoice_month_summary", ADMIN_ROLES)
        validate_period(year, month)
        invoices = [m.to_dto() for m in self._month_invoices(year, month)]
        return InvoiceMonthSummary.of(year, month, invoices)

    def read_invoice_file(self, caller: Caller, invoice_id: UUID) -> bytes:
        """The stored invoice file; owners and admins only."""
        model = self._session.get(SubcontractorInvoiceModel, invoice_id)
        if model is None:
            raise InvoiceNotFoundError(str(invoice_id))
        if model.user_id != caller.user_id:
            require_role(caller, "read_invoice_file", ADMIN_ROLES)
        return self._store.read(model.file_path)
