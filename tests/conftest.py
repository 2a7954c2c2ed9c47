"""
Pytest fixtures for the timesheet kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (StaticPool, foreign keys on)
- A deterministic clock
- Callers for every role
- Temporary document stores and a private lock registry
- Service factories wired to all of the above
- Captured structured logs
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from timesheet_config import TimesheetConfig
from timesheet_kernel.db.engine import build_engine
from timesheet_kernel.domain.caller import Caller, Role
from timesheet_kernel.domain.clock import DeterministicClock
from timesheet_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from timesheet_modules._orm_registry import create_all_tables
from timesheet_modules.holidays.service import HolidayCategoryService
from timesheet_modules.invoice.service import InvoiceService
from timesheet_modules.timesheet.service import TimesheetService
from timesheet_services.document_store import LocalDocumentStore
from timesheet_services.key_lock import KeyedLockRegistry
from timesheet_services.workflow_executor import WorkflowExecutor

# Test actor ID for seeding reference data
TEST_ACTOR_ID = uuid4()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as running real threads against a file database"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture timesheet_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, timesheet_service):
            timesheet_service.submit_entries(...)
            logs = captured_logs()
            assert any(r["message"] == "entries_reconciled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("timesheet_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """In-memory database with the full schema, discarded after the test."""
    eng = build_engine("sqlite:///:memory:")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    sess = Session(bind=engine, expire_on_commit=False)
    yield sess
    sess.close()


# =============================================================================
# Time, identity, storage
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Fixed at 2024-06-03 09:00 UTC (a Monday)."""
    return DeterministicClock(datetime(2024, 6, 3, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def employee() -> Caller:
    return Caller.of(uuid4(), "anna.berg", Role.EMPLOYEE)


@pytest.fixture
def other_employee() -> Caller:
    return Caller.of(uuid4(), "erik", Role.EMPLOYEE)


@pytest.fixture
def payment_handler() -> Caller:
    return Caller.of(uuid4(), "lisa@payroll", Role.PAYMENT_HANDLER)


@pytest.fixture
def subcontractor() -> Caller:
    return Caller.of(uuid4(), "sub contractor", Role.SUBCONTRACTOR)


@pytest.fixture
def admin() -> Caller:
    return Caller.of(uuid4(), "admin", Role.ADMIN)


@pytest.fixture
def config() -> TimesheetConfig:
    return TimesheetConfig()


@pytest.fixture
def document_store(tmp_path) -> LocalDocumentStore:
    return LocalDocumentStore(tmp_path / "uploads")


@pytest.fixture
def invoice_store(tmp_path) -> LocalDocumentStore:
    return LocalDocumentStore(tmp_path / "invoices")


@pytest.fixture
def lock_registry() -> KeyedLockRegistry:
    return KeyedLockRegistry()


@pytest.fixture
def workflow_executor(deterministic_clock) -> WorkflowExecutor:
    return WorkflowExecutor(clock=deterministic_clock)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def timesheet_service(
    session, deterministic_clock, config, document_store, lock_registry, workflow_executor
) -> TimesheetService:
    return TimesheetService(
        session,
        clock=deterministic_clock,
        config=config,
        document_store=document_store,
        lock_registry=lock_registry,
        workflow_executor=workflow_executor,
    )


@pytest.fixture
def invoice_service(
    session, deterministic_clock, config, invoice_store, lock_registry, workflow_executor
) -> InvoiceService:
    return InvoiceService(
        session,
        clock=deterministic_clock,
        config=config,
        document_store=invoice_store,
        lock_registry=lock_registry,
        workflow_executor=workflow_executor,
    )


@pytest.fixture
def holiday_service(session) -> HolidayCategoryService:
    return HolidayCategoryService(session)


@pytest.fixture
def holiday_categories(holiday_service, test_actor_id) -> dict:
    """Seeded default categories keyed by description."""
    holiday_service.seed_defaults(test_actor_id)
    return {c.description: c for c in holiday_service.list_categories()}
