"""
Monthly Timesheet Service (``timesheet_modules.timesheet.service``).

Responsibility
--------------
Orchestrates the monthly timesheet lifecycle -- itemized reconciliation,
document-backed reporting, approval transitions, and the read queries used
by employees and administrators -- by delegating pure computation to
``timesheet_engines`` and the approval decision to
``timesheet_services.workflow_executor``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``TimesheetService`` is the sole public
entry point for monthly summaries and daily records.

Invariants enforced
-------------------
* Each public write owns the transaction boundary (``commit`` on success,
  ``rollback`` on any exception) and holds the (user, year, month) lock for
  the whole read-merge-write.
* Entries can only change while the summary is ``draft``.  Re-sending an
  identical batch to a non-draft summary is a no-op.
* Summary totals always equal the aggregate of the records attached to it,
  except on the document path where the reported total is authoritative.
* Daily record statuses mirror the summary status after every transition.
* A rejected document upload leaves no file behind.

Failure modes
-------------
* ``ValidationError`` subclasses before any mutation.
* ``SummaryNotEditableError`` / ``InvalidTransitionError`` for illegal
  edits and transitions.
* ``UnauthorizedActorError`` / ``NotOwnerError`` for role and ownership
  failures.
* ``ReconciliationConflictError`` when another writer won a race.

Audit relevance
---------------
Every write emits a structured event (``entries_reconciled``,
``document_report_accepted``, ``summary_transitioned``, ...) and every
transition attempt emits a ``workflow_transition`` trace.

Usage::

    service = TimesheetService(session, clock=clock, document_store=store)
    summary = service.submit_entries(caller, SubmitEntriesRequest.from_payload(body))
    service.approve(admin, summary.summary_id, comments="OK")
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from timesheet_config import TimesheetConfig, get_active_config
from timesheet_engines.aggregation import aggregate_records
from timesheet_engines.calendar import (
    HolidayProvider,
    WorkCalendar,
    build_work_calendar,
)
from timesheet_engines.completion import CompletionReport, calculate_completion
from timesheet_engines.document_report import (
    check_reported_total,
    report_document_name,
    validate_document,
)
from timesheet_engines.reconciliation import (
    RecordSnapshot,
    plan_reconciliation,
    validate_batch,
)
from timesheet_kernel.domain.caller import Caller
from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.values import ZERO_HOURS, month_bounds, validate_period
from timesheet_kernel.exceptions import (
    DailyRecordNotFoundError,
    HolidayCategoryNotFoundError,
    NotOwnerError,
    SummaryNotEditableError,
    SummaryNotFoundError,
    ValidationError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_modules._transaction_helpers import require_role, service_transaction
from timesheet_modules.holidays.orm import HolidayCategoryModel
from timesheet_modules.timesheet.models import (
    DailyRecord,
    MonthlySummary,
    MonthOverview,
    RecordStatus,
    SubmitEntriesRequest,
    SummaryStatus,
    UploadDocumentRequest,
    record_status_for,
)
from timesheet_modules.timesheet.orm import DailyRecordModel, MonthlySummaryModel
from timesheet_modules.timesheet.workflows import (
    ADMIN_ROLES,
    DOCUMENT_ROLES,
    ENTRY_ROLES,
    SUMMARY_POLICY,
    SUMMARY_WORKFLOW,
)
from timesheet_services.document_store import DocumentStore, LocalDocumentStore
from timesheet_services.key_lock import DEFAULT_LOCK_REGISTRY, KeyedLockRegistry, month_key
from timesheet_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.timesheet.service")

ENTITY_TYPE = "monthly_summary"
LOCK_KIND = "timesheet"
DOCUMENT_NOTE_PREFIX = "Uploaded document report: "


class TimesheetService:
    """Monthly summaries, daily records and their approval lifecycle."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: TimesheetConfig | None = None,
        document_store: DocumentStore | None = None,
        lock_registry: KeyedLockRegistry | None = None,
        workflow_executor: WorkflowExecutor | None = None,
        holiday_provider: HolidayProvider | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._store = document_store or LocalDocumentStore(
            self._config.documents.upload_dir
        )
        self._locks = lock_registry or DEFAULT_LOCK_REGISTRY
        self._executor = workflow_executor or WorkflowExecutor(clock=self._clock)
        self._holidays = holiday_provider or self._config.holiday_provider()

    # =========================================================================
    # Loading helpers
    # =========================================================================

    def _lock_summary(self, user_id: UUID, year: int, month: int) -> MonthlySummaryModel | None:
        stmt = (
            select(MonthlySummaryModel)
            .where(
                MonthlySummaryModel.user_id == user_id,
                MonthlySummaryModel.year == year,
                MonthlySummaryModel.month == month,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalars().first()

    def _month_records(self, user_id: UUID, year: int, month: int) -> list[DailyRecordModel]:
        """Every stored record of the user in the month, attached or not."""
        first, last = month_bounds(year, month)
        stmt = (
            select(DailyRecordModel)
            .where(
                DailyRecordModel.user_id == user_id,
                DailyRecordModel.record_date >= first,
                DailyRecordModel.record_date <= last,
            )
            .order_by(DailyRecordModel.record_date)
            .execution_options(populate_existing=True)
        )
        return list(self._session.execute(stmt).scalars())

    def _new_summary(self, caller: Caller, year: int, month: int) -> MonthlySummaryModel:
        summary = MonthlySummaryModel(
            user_id=caller.user_id,
            year=year,
            month=month,
            status=SummaryStatus.DRAFT.value,
            regular_hours=ZERO_HOURS,
            holiday_hours=ZERO_HOURS,
            support_hours=ZERO_HOURS,
            created_by_id=caller.user_id,
        )
        self._session.add(summary)
        logger.info(
            "summary_created",
            extra={"user_id": str(caller.user_id), "year": year, "month": month},
        )
        return summary

    def _check_holiday_categories(self, request: SubmitEntriesRequest) -> None:
        wanted = {
            e.holiday_category_id
            for e in request.entries
            if e.holiday_category_id is not None
        }
        if not wanted:
            return
        found = set(
            self._session.execute(
                select(HolidayCategoryModel.id).where(HolidayCategoryModel.id.in_(wanted))
            ).scalars()
        )
        missing = sorted(str(c) for c in wanted - found)
        if missing:
            raise HolidayCategoryNotFoundError(missing[0])

    def _calendar(self, year: int, month: int) -> WorkCalendar:
        return build_work_calendar(year, month, self._holidays)

    @staticmethod
    def _attach(summary: MonthlySummaryModel, row: DailyRecordModel) -> None:
        if row not in summary.records:
            summary.records.append(row)
        row.status = record_status_for(summary.status).value

    @staticmethod
    def _detach(summary: MonthlySummaryModel, row: DailyRecordModel) -> None:
        if row in summary.records:
            summary.records.remove(row)

    # =========================================================================
    # Itemized entries
    # =========================================================================

    def submit_entries(self, caller: Caller, request: SubmitEntriesRequest) -> MonthlySummary:
        """Reconcile the month's records against ``request.entries``.

        The batch is authoritative: dates not in it are detached from the
        summary.  With ``request.submit`` the summary is submitted for
        approval in the same transaction.
        """
        require_role(caller, "submit_entries", ENTRY_ROLES)
        validate_batch(request.year, request.month, request.entries)
        self._check_holiday_categories(request)

        key = month_key(LOCK_KIND, caller.user_id, request.year, request.month)
        with LogContext.bind(actor_id=caller.user_id, user_id=caller.user_id):
            with service_transaction(
                self._session, "submit_entries", ENTITY_TYPE, self._locks, key
            ):
                summary = self._lock_summary(caller.user_id, request.year, request.month)
                rows = self._month_records(caller.user_id, request.year, request.month)
                summary_id = summary.id if summary is not None else None
                snapshots = {
                    row.record_date: RecordSnapshot(
                        record_id=row.id,
                        work_date=row.record_date,
                        hours_worked=row.hours_worked,
                        support_hours=row.support_hours,
                        holiday_category_id=row.holiday_category_id,
                        note=row.note,
                        attached=summary_id is not None and row.summary_id == summary_id,
                    )
                    for row in rows
                }
                plan = plan_reconciliation(
                    request.year, request.month, snapshots, request.entries
                )

                if summary is not None and summary.status != SummaryStatus.DRAFT.value:
                    if plan.is_noop and summary.total_hours_reported is None:
                        logger.info(
                            "entries_unchanged",
                            extra={"summary_id": str(summary.id), "status": summary.status},
                        )
                        return summary.to_dto()
                    required = (
                        "reopen" if summary.status == SummaryStatus.REJECTED.value else None
                    )
                    raise SummaryNotEditableError(str(summary.id), summary.status, required)

                if summary is None:
                    summary = self._new_summary(caller, request.year, request.month)

                by_id = {row.id: row for row in rows}
                retained: list[DailyRecordModel] = [by_id[rid] for rid in plan.unchanged]

                for update in plan.updates:
                    row = by_id[update.record_id]
                    entry = update.entry
                    row.hours_worked = entry.hours_worked
                    row.support_hours = entry.support_hours
                    row.holiday_category_id = entry.holiday_category_id
                    row.note = entry.note
                    row.updated_by_id = caller.user_id
                    self._attach(summary, row)
                    retained.append(row)

                for entry in plan.creates:
                    row = DailyRecordModel(
                        user_id=caller.user_id,
                        record_date=entry.work_date,
                        hours_worked=entry.hours_worked,
                        support_hours=entry.support_hours,
                        holiday_category_id=entry.holiday_category_id,
                        note=entry.note,
                        created_by_id=caller.user_id,
                    )
                    self._session.add(row)
                    self._attach(summary, row)
                    retained.append(row)

                for record_id in plan.detaches:
                    row = by_id[record_id]
                    self._detach(summary, row)
                    row.updated_by_id = caller.user_id

                totals = aggregate_records(retained)
                summary.regular_hours = totals.regular_hours
                summary.holiday_hours = totals.holiday_hours
                summary.support_hours = totals.support_hours
                summary.total_hours_reported = None
                summary.updated_by_id = caller.user_id
                self._session.flush()

                logger.info(
                    "entries_reconciled",
                    extra={
                        "summary_id": str(summary.id),
                        "year": request.year,
                        "month": request.month,
                        "created_count": len(plan.creates),
                        "updated_count": len(plan.updates),
                        "unchanged_count": len(plan.unchanged),
                        "detached_count": len(plan.detaches),
                        "regular_hours": totals.regular_hours,
                        "holiday_hours": totals.holiday_hours,
                        "support_hours": totals.support_hours,
                    },
                )

                if request.submit:
                    self._apply_transition(summary, "submit", caller)
                    self._session.flush()

                result = summary.to_dto()
        return result

    # =========================================================================
    # Document report
    # =========================================================================

    def upload_document(self, caller: Caller, request: UploadDocumentRequest) -> MonthlySummary:
        """Replace the month's itemized records with one verified total.

        The file is staged first and only promoted to its final name once
        the hours check passed and the summary was flushed.  Any failure
        removes the staged file, and a promoted file that did not replace
        an earlier one.
        """
        require_role(caller, "upload_document", DOCUMENT_ROLES)
        upload = validate_document(
            request.file, self._config.documents.accepted_report_content_types
        )
        calendar = self._calendar(request.year, request.month)
        final_path = report_document_name(caller.username, request.year, request.month)
        reported = request.total_hours_reported
        working_time = self._config.working_time

        key = month_key(LOCK_KIND, caller.user_id, request.year, request.month)
        with LogContext.bind(actor_id=caller.user_id, user_id=caller.user_id):
            staged = self._store.stage(upload.content, suffix=".pdf")
            promoted = False
            had_previous = False
            try:
                try:
                    expected = check_reported_total(
                        reported,
                        calendar,
                        working_time.standard_daily_hours,
                        working_time.report_tolerance_hours,
                    )
                except ValidationError:
                    logger.warning(
                        "document_report_rejected",
                        extra={
                            "year": request.year,
                            "month": request.month,
                            "reported_hours": reported,
                            "workdays": calendar.workdays_count,
                        },
                    )
                    raise

                with service_transaction(
                    self._session, "upload_document", ENTITY_TYPE, self._locks, key
                ):
                    summary = self._lock_summary(caller.user_id, request.year, request.month)
                    if summary is not None and summary.status != SummaryStatus.DRAFT.value:
                        required = (
                            "reopen"
                            if summary.status == SummaryStatus.REJECTED.value else None
                        )
                        raise SummaryNotEditableError(
                            str(summary.id), summary.status, required
                        )
                    if summary is None:
                        summary = self._new_summary(caller, request.year, request.month)

                    self._collapse_records(summary, caller, request, upload.filename)

                    summary.regular_hours = reported
                    summary.holiday_hours = ZERO_HOURS
                    summary.total_hours_reported = reported
                    summary.document_path = final_path
                    summary.updated_by_id = caller.user_id
                    self._session.flush()

                    had_previous = self._store.exists(final_path)
                    self._store.promote(staged, final_path)
                    promoted = True
                    result = summary.to_dto()
            except Exception:
                self._store.delete(staged)
                if promoted and not had_previous:
                    self._store.delete(final_path)
                raise

        logger.info(
            "document_report_accepted",
            extra={
                "summary_id": str(result.summary_id),
                "year": request.year,
                "month": request.month,
                "reported_hours": reported,
                "expected_hours": expected,
                "path": final_path,
                "size_bytes": upload.size,
            },
        )
        return result

    def _collapse_records(
        self,
        summary: MonthlySummaryModel,
        caller: Caller,
        request: UploadDocumentRequest,
        filename: str,
    ) -> None:
        """Keep a single placeholder record on day 1; detach the rest."""
        first_day, _ = month_bounds(request.year, request.month)
        rows = self._month_records(caller.user_id, request.year, request.month)
        placeholder = next((r for r in rows if r.record_date == first_day), None)
        if placeholder is None:
            placeholder = DailyRecordModel(
                user_id=caller.user_id,
                record_date=first_day,
                hours_worked=request.total_hours_reported,
                support_hours=ZERO_HOURS,
                created_by_id=caller.user_id,
            )
            self._session.add(placeholder)

        for row in rows:
            if row is not placeholder:
                self._detach(summary, row)
                row.updated_by_id = caller.user_id

        placeholder.hours_worked = request.total_hours_reported
        placeholder.support_hours = ZERO_HOURS
        placeholder.holiday_category_id = None
        placeholder.note = f"{DOCUMENT_NOTE_PREFIX}{filename}"
        placeholder.updated_by_id = caller.user_id
        self._attach(summary, placeholder)

    # =========================================================================
    # Approval transitions
    # =========================================================================

    def _apply_transition(
        self,
        summary: MonthlySummaryModel,
        action: str,
        caller: Caller,
        comments: str | None = None,
    ) -> None:
        from_state = summary.status
        result = self._executor.execute_or_raise(
            SUMMARY_WORKFLOW,
            SUMMARY_POLICY,
            ENTITY_TYPE,
            summary.id,
            summary.status,
            action,
            caller,
            context={"owner_id": summary.user_id, "comments": comments},
        )
        summary.status = result.new_state
        if result.stamp_field:
            setattr(summary, result.stamp_field, self._clock.today())
        if comments is not None and comments.strip():
            summary.comments = comments.strip()
        summary.updated_by_id = caller.user_id

        record_status = record_status_for(result.new_state).value
        for row in summary.records:
            row.status = record_status

        logger.info(
            "summary_transitioned",
            extra={
                "summary_id": str(summary.id),
                "action": action,
                "from_state": from_state,
                "to_state": result.new_state,
                "record_count": len(summary.records),
            },
        )

    def _transition(
        self,
        caller: Caller,
        summary_id: UUID,
        action: str,
        comments: str | None = None,
    ) -> MonthlySummary:
        current = self._session.get(MonthlySummaryModel, summary_id)
        if current is None:
            raise SummaryNotFoundError(str(summary_id))
        key = month_key(LOCK_KIND, current.user_id, current.year, current.month)

        with LogContext.bind(actor_id=caller.user_id, summary_id=summary_id):
            with service_transaction(
                self._session, action, ENTITY_TYPE, self._locks, key
            ):
                summary = self._lock_summary(current.user_id, current.year, current.month)
                if summary is None:
                    raise SummaryNotFoundError(str(summary_id))
                self._apply_transition(summary, action, caller, comments)
                self._session.flush()
                result = summary.to_dto()
        return result

    def submit(self, caller: Caller, summary_id: UUID) -> MonthlySummary:
        """Owner sends a draft month for approval."""
        return self._transition(caller, summary_id, "submit")

    def approve(
        self, caller: Caller, summary_id: UUID, comments: str | None = None
    ) -> MonthlySummary:
        return self._transition(caller, summary_id, "approve", comments)

    def reject(self, caller: Caller, summary_id: UUID, comments: str | None) -> MonthlySummary:
        """Admin rejects a submitted month; ``comments`` must not be blank."""
        return self._transition(caller, summary_id, "reject", comments)

    def mark_paid(self, caller: Caller, summary_id: UUID) -> MonthlySummary:
        return self._transition(caller, summary_id, "mark_paid")

    def reopen(self, caller: Caller, summary_id: UUID) -> MonthlySummary:
        """Owner returns a rejected month to draft so entries can change again."""
        return self._transition(caller, summary_id, "reopen")

    # =========================================================================
    # Per-record review
    # =========================================================================

    def set_record_status(
        self,
        caller: Caller,
        record_id: UUID,
        status: str | RecordStatus,
    ) -> DailyRecord:
        """Admin: set one record's status without moving its summary.

        The next summary transition overwrites it with the mirrored value.
        """
        require_role(caller, "set_record_status", ADMIN_ROLES)
        target = RecordStatus.parse(status)
        current = self._session.get(DailyRecordModel, record_id)
        if current is None:
            raise DailyRecordNotFoundError(str(record_id))
        year, month = current.record_date.year, current.record_date.month
        key = month_key(LOCK_KIND, current.user_id, year, month)

        with LogContext.bind(actor_id=caller.user_id, user_id=current.user_id):
            with service_transaction(
                self._session, "set_record_status", ENTITY_TYPE, self._locks, key
            ):
                row = self._session.execute(
                    select(DailyRecordModel)
                    .where(DailyRecordModel.id == record_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalars().first()
                if row is None:
                    raise DailyRecordNotFoundError(str(record_id))
                from_status = row.status
                row.status = target.value
                row.updated_by_id = caller.user_id
                self._session.flush()
                result = row.to_dto()

        logger.info(
            "record_status_set",
            extra={
                "record_id": str(record_id),
                "record_date": result.record_date,
                "from_status": from_status,
                "to_status": target.value,
            },
        )
        return result

    # =========================================================================
    # Queries
    # =========================================================================

    def _resolve_subject(self, caller: Caller, user_id: UUID | None, action: str) -> UUID:
        if user_id is None or user_id == caller.user_id:
            return caller.user_id
        require_role(caller, action, ADMIN_ROLES)
        return user_id

    def _find_summary(self, user_id: UUID, year: int, month: int) -> MonthlySummaryModel | None:
        stmt = select(MonthlySummaryModel).where(
            MonthlySummaryModel.user_id == user_id,
            MonthlySummaryModel.year == year,
            MonthlySummaryModel.month == month,
        )
        return self._session.execute(stmt).scalars().first()

    def get_summary(
        self,
        caller: Caller,
        year: int,
        month: int,
        user_id: UUID | None = None,
    ) -> MonthlySummary:
        """The caller's summary for the month; admins may name another user."""
        validate_period(year, month)
        subject = self._resolve_subject(caller, user_id, "get_summary")
        model = self._find_summary(subject, year, month)
        if model is None:
            raise SummaryNotFoundError(f"{subject}/{year:04d}-{month:02d}")
        return model.to_dto()

    def get_summary_by_id(self, caller: Caller, summary_id: UUID) -> MonthlySummary:
        model = self._session.get(MonthlySummaryModel, summary_id)
        if model is None:
            raise SummaryNotFoundError(str(summary_id))
        if model.user_id != caller.user_id and not caller.is_admin:
            raise NotOwnerError(str(caller.user_id), ENTITY_TYPE, str(summary_id))
        return model.to_dto()

    def list_summaries(self, caller: Caller) -> list[MonthlySummary]:
        stmt = (
            select(MonthlySummaryModel)
            .where(MonthlySummaryModel.user_id == caller.user_id)
            .order_by(MonthlySummaryModel.year.desc(), MonthlySummaryModel.month.desc())
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def list_pending(self, caller: Caller) -> list[MonthlySummary]:
        """Admin: every summary waiting for a decision, oldest submission first."""
        require_role(caller, "list_pending", ADMIN_ROLES)
        stmt = (
            select(MonthlySummaryModel)
            .where(MonthlySummaryModel.status == SummaryStatus.SUBMITTED.value)
            .order_by(
                MonthlySummaryModel.submission_date,
                MonthlySummaryModel.year,
                MonthlySummaryModel.month,
            )
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def list_records(
        self,
        caller: Caller,
        start: date,
        end: date,
        user_id: UUID | None = None,
    ) -> list[DailyRecord]:
        """Stored records in ``[start, end]``, attached or not.

        Defaults to the caller's own records; admins may name another user.
        """
        if start > end:
            raise ValidationError("start", "Start date must not be after end date")
        subject = self._resolve_subject(caller, user_id, "list_records")
        stmt = (
            select(DailyRecordModel)
            .where(
                DailyRecordModel.user_id == subject,
                DailyRecordModel.record_date >= start,
                DailyRecordModel.record_date <= end,
            )
            .order_by(DailyRecordModel.record_date)
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def get_workdays(self, year: int, month: int) -> WorkCalendar:
        return self._calendar(year, month)

    def get_completion(
        self,
        caller: Caller,
        year: int,
        month: int,
        user_id: UUID | None = None,
    ) -> CompletionReport:
        """How many of the month's workdays have a stored record, attached or not."""
        validate_period(year, month)
        subject = self._resolve_subject(caller, user_id, "get_completion")
        filled = {r.record_date for r in self._month_records(subject, year, month)}
        return calculate_completion(self._calendar(year, month), filled)

    def monthly_overview(self, caller: Caller) -> list[MonthOverview]:
        """Admin: one row per (user, month), newest month first."""
        require_role(caller, "monthly_overview", ADMIN_ROLES)
        stmt = select(MonthlySummaryModel).order_by(
            MonthlySummaryModel.year.desc(),
            MonthlySummaryModel.month.desc(),
            MonthlySummaryModel.user_id,
        )
        calendars: dict[tuple[int, int], WorkCalendar] = {}
        rows: list[MonthOverview] = []
        for model in self._session.execute(stmt).scalars().all():
            period = (model.year, model.month)
            if period not in calendars:
                calendars[period] = self._calendar(*period)
            report = calculate_completion(
                calendars[period],
                {r.record_date for r in self._month_records(model.user_id, *period)},
            )
            summary = model.to_dto()
            rows.append(
                MonthOverview(
                    summary_id=summary.summary_id,
                    user_id=summary.user_id,
                    year=summary.year,
                    month=summary.month,
                    status=summary.status,
                    total_hours_worked=summary.total_hours_worked,
                    total_workdays=report.total_workdays,
                    filled_workdays=report.filled_workdays,
                    completion_percentage=report.completion_percentage,
                    is_complete=report.is_complete,
                    submission_date=summary.submission_date,
                )
            )
        logger.info("monthly_overview_built", extra={"row_count": len(rows)})
        return rows

