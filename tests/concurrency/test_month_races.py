"""
Concurrent writers on the same and on different months.

Each worker thread gets its own Session on a file-backed SQLite database
and its own service instance; all of them share one KeyedLockRegistry, as
request handlers in one process do.

Also covers the database-level conflict translation for writers that do
not share a lock registry (separate processes).
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timesheet_engines.aggregation import aggregate_records
from timesheet_engines.document_report import UploadedFile
from timesheet_engines.reconciliation import DailyEntry
from timesheet_kernel.db.engine import build_engine
from timesheet_kernel.domain.caller import Caller, Role
from timesheet_kernel.exceptions import DuplicateInvoiceError, ReconciliationConflictError
from timesheet_modules._orm_registry import create_all_tables
from timesheet_modules._transaction_helpers import service_transaction
from timesheet_modules.invoice.models import SubmitInvoiceRequest
from timesheet_modules.invoice.orm import SubcontractorInvoiceModel
from timesheet_modules.invoice.service import InvoiceService
from timesheet_modules.timesheet.models import SubmitEntriesRequest
from timesheet_modules.timesheet.orm import MonthlySummaryModel
from timesheet_modules.timesheet.service import TimesheetService

pytestmark = pytest.mark.slow_locks

WORKERS = 6


@pytest.fixture
def file_engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def service_factory(
    file_engine, deterministic_clock, config, document_store, lock_registry, workflow_executor
):
    """Build a TimesheetService on its own session; all share one lock registry."""
    sessions = []

    def _make():
        session = Session(bind=file_engine, expire_on_commit=False)
        sessions.append(session)
        return TimesheetService(
            session,
            clock=deterministic_clock,
            config=config,
            document_store=document_store,
            lock_registry=lock_registry,
            workflow_executor=workflow_executor,
        )

    yield _make
    for session in sessions:
        session.close()


def _batch(days, hours="8"):
    return SubmitEntriesRequest(
        year=2024,
        month=5,
        entries=tuple(
            DailyEntry(work_date=date(2024, 5, d), hours_worked=Decimal(hours)) for d in days
        ),
    )


class TestSameMonth:
    def test_racing_batches_leave_consistent_summary(self, service_factory, file_engine, employee):
        batches = [_batch(range(2, 2 + n), hours=str(n)) for n in range(1, WORKERS + 1)]
        barrier = Barrier(WORKERS)

        def worker(request):
            service = service_factory()
            barrier.wait()
            return service.submit_entries(employee, request)

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(worker, batches))

        assert len({r.summary_id for r in results}) == 1

        with Session(bind=file_engine) as check:
            summaries = check.execute(select(MonthlySummaryModel)).scalars().all()
            assert len(summaries) == 1
            summary = summaries[0]
            totals = aggregate_records(summary.records)
            assert summary.regular_hours == totals.regular_hours
            assert summary.support_hours == totals.support_hours
            # Whichever writer ran last owns the stored batch
            assert summary.regular_hours in {r.regular_hours for r in results}
            assert len(summary.records) ** 2 == summary.regular_hours

    def test_identical_first_submissions_create_one_summary(
        self, service_factory, file_engine, employee
    ):
        barrier = Barrier(WORKERS)

        def worker(_):
            service = service_factory()
            barrier.wait()
            return service.submit_entries(employee, _batch([2, 3, 6]))

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(worker, range(WORKERS)))

        assert all(r.regular_hours == Decimal("24.00") for r in results)
        with Session(bind=file_engine) as check:
            count = check.execute(select(func.count(MonthlySummaryModel.id))).scalar_one()
            assert count == 1


class TestDifferentUsers:
    def test_parallel_users_do_not_interfere(self, service_factory, file_engine):
        callers = [Caller.of(uuid4(), f"user{i}", Role.EMPLOYEE) for i in range(WORKERS)]
        barrier = Barrier(WORKERS)

        def worker(caller):
            service = service_factory()
            barrier.wait()
            return service.submit_entries(caller, _batch([2, 3]))

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(worker, callers))

        assert {r.user_id for r in results} == {c.user_id for c in callers}
        assert all(r.regular_hours == Decimal("16.00") for r in results)


class TestInvoiceRace:
    def test_only_one_invoice_per_month(
        self, file_engine, deterministic_clock, config, invoice_store, lock_registry,
        workflow_executor, subcontractor,
    ):
        barrier = Barrier(WORKERS)

        def worker(index):
            with Session(bind=file_engine, expire_on_commit=False) as session:
                service = InvoiceService(
                    session,
                    clock=deterministic_clock,
                    config=config,
                    document_store=invoice_store,
                    lock_registry=lock_registry,
                    workflow_executor=workflow_executor,
                )
                request = SubmitInvoiceRequest(
                    year=2024,
                    month=5,
                    invoice_amount="100",
                    hours_claimed="10",
                    invoice_number=f"INV-{index}",
                    file=UploadedFile("invoice.pdf", "application/pdf", b"%PDF"),
                )
                barrier.wait()
                try:
                    service.submit_invoice(subcontractor, request)
                    return "ok"
                except DuplicateInvoiceError:
                    return "duplicate"

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            outcomes = list(pool.map(worker, range(WORKERS)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("duplicate") == WORKERS - 1
        with Session(bind=file_engine) as check:
            count = check.execute(select(func.count(SubcontractorInvoiceModel.id))).scalar_one()
            assert count == 1
        assert len([p for p in invoice_store.root.rglob("*") if p.is_file()]) == 1


class TestDatabaseConflicts:
    """Writers without a shared lock registry are caught by the database."""

    def test_stale_version_becomes_conflict(self, service_factory, file_engine, employee):
        created = service_factory().submit_entries(employee, _batch([2]))

        first = Session(bind=file_engine, expire_on_commit=False)
        second = Session(bind=file_engine, expire_on_commit=False)
        try:
            mine = first.get(MonthlySummaryModel, created.summary_id)
            theirs = second.get(MonthlySummaryModel, created.summary_id)

            with service_transaction(first, "edit", "monthly_summary"):
                mine.comments = "first"

            with pytest.raises(ReconciliationConflictError) as exc_info:
                with service_transaction(second, "edit", "monthly_summary"):
                    theirs.comments = "second"
                    second.flush()

            assert exc_info.value.retryable
        finally:
            first.close()
            second.close()

        with Session(bind=file_engine) as check:
            assert check.get(MonthlySummaryModel, created.summary_id).comments == "first"

    def test_duplicate_month_insert_becomes_conflict(self, file_engine, employee):
        def _summary():
            return MonthlySummaryModel(
                user_id=employee.user_id,
                year=2024,
                month=5,
                status="draft",
                regular_hours=Decimal("0"),
                holiday_hours=Decimal("0"),
                support_hours=Decimal("0"),
                created_by_id=employee.user_id,
            )

        with Session(bind=file_engine) as first:
            with service_transaction(first, "create", "monthly_summary"):
                first.add(_summary())

        with Session(bind=file_engine) as second:
            with pytest.raises(ReconciliationConflictError):
                with service_transaction(
                    second, "create", "monthly_summary", key=("timesheet", employee.user_id, 2024, 5)
                ):
                    second.add(_summary())
