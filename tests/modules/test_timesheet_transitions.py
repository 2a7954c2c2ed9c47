"""
Approval lifecycle of monthly summaries.

Covers:
- submit / approve / reject / mark_paid / reopen
- Date stamping from the injected clock
- Record status mirroring
- Role and ownership enforcement
- Failed transitions leave the summary untouched
- Per-record status set by an administrator
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from timesheet_engines.reconciliation import DailyEntry
from timesheet_kernel.exceptions import (
    DailyRecordNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotOwnerError,
    SummaryNotFoundError,
    UnauthorizedActorError,
)
from timesheet_modules.timesheet.models import RecordStatus, SubmitEntriesRequest, SummaryStatus


@pytest.fixture
def draft(timesheet_service, employee):
    request = SubmitEntriesRequest(
        year=2024,
        month=5,
        entries=(
            DailyEntry(work_date=date(2024, 5, 2), hours_worked=Decimal("8")),
            DailyEntry(work_date=date(2024, 5, 3), hours_worked=Decimal("8")),
        ),
    )
    return timesheet_service.submit_entries(employee, request)


@pytest.fixture
def submitted(timesheet_service, employee, draft):
    return timesheet_service.submit(employee, draft.summary_id)


class TestHappyPath:
    def test_submit_stamps_submission_date(self, submitted):
        assert submitted.status == SummaryStatus.SUBMITTED
        assert submitted.submission_date == date(2024, 6, 3)
        assert submitted.approval_date is None

    def test_full_lifecycle(self, timesheet_service, admin, submitted, deterministic_clock):
        deterministic_clock.advance(86400)
        approved = timesheet_service.approve(admin, submitted.summary_id, comments="Looks good")
        deterministic_clock.advance(86400)
        paid = timesheet_service.mark_paid(admin, submitted.summary_id)

        assert approved.status == SummaryStatus.APPROVED
        assert approved.approval_date == date(2024, 6, 4)
        assert approved.comments == "Looks good"
        assert all(r.status == RecordStatus.APPROVED for r in approved.records)
        assert paid.status == SummaryStatus.PAID
        assert paid.payment_date == date(2024, 6, 5)
        assert paid.submission_date == date(2024, 6, 3)
        assert all(r.status == RecordStatus.APPROVED for r in paid.records)

    def test_approve_without_comments_keeps_none(self, timesheet_service, admin, submitted):
        approved = timesheet_service.approve(admin, submitted.summary_id)

        assert approved.comments is None

    def test_reject_marks_records_rejected(self, timesheet_service, admin, submitted):
        rejected = timesheet_service.reject(admin, submitted.summary_id, "  Wrong hours  ")

        assert rejected.status == SummaryStatus.REJECTED
        assert rejected.comments == "Wrong hours"
        assert all(r.status == RecordStatus.REJECTED for r in rejected.records)

    def test_reopen_returns_to_draft_with_pending_records(
        self, timesheet_service, employee, admin, submitted
    ):
        timesheet_service.reject(admin, submitted.summary_id, "Wrong hours")

        reopened = timesheet_service.reopen(employee, submitted.summary_id)

        assert reopened.status == SummaryStatus.DRAFT
        assert all(r.status == RecordStatus.PENDING for r in reopened.records)

    def test_transition_event(self, timesheet_service, admin, submitted, captured_logs):
        timesheet_service.approve(admin, submitted.summary_id)

        events = [r for r in captured_logs() if r["message"] == "summary_transitioned"]
        assert events[-1]["from_state"] == "submitted"
        assert events[-1]["to_state"] == "approved"
        assert events[-1]["record_count"] == 2
        assert events[-1]["summary_id"] == str(submitted.summary_id)


class TestRefusals:
    def test_reject_requires_comments(self, timesheet_service, admin, submitted):
        with pytest.raises(MissingRequiredFieldError):
            timesheet_service.reject(admin, submitted.summary_id, "   ")

        assert timesheet_service.get_summary_by_id(admin, submitted.summary_id).status == (
            SummaryStatus.SUBMITTED
        )

    def test_employee_cannot_approve(self, timesheet_service, employee, submitted):
        with pytest.raises(UnauthorizedActorError):
            timesheet_service.approve(employee, submitted.summary_id)

    def test_other_user_cannot_submit(self, timesheet_service, other_employee, draft):
        with pytest.raises(NotOwnerError):
            timesheet_service.submit(other_employee, draft.summary_id)

    def test_admin_cannot_submit_for_owner(self, timesheet_service, admin, draft):
        with pytest.raises(NotOwnerError):
            timesheet_service.submit(admin, draft.summary_id)

    def test_cannot_approve_draft(self, timesheet_service, admin, draft):
        with pytest.raises(InvalidTransitionError) as exc_info:
            timesheet_service.approve(admin, draft.summary_id)

        assert exc_info.value.current_state == "draft"
        assert exc_info.value.required_states == ("submitted",)

    def test_cannot_pay_unapproved(self, timesheet_service, admin, submitted):
        with pytest.raises(InvalidTransitionError):
            timesheet_service.mark_paid(admin, submitted.summary_id)

    def test_cannot_submit_twice(self, timesheet_service, employee, submitted):
        with pytest.raises(InvalidTransitionError):
            timesheet_service.submit(employee, submitted.summary_id)

    def test_paid_is_final(self, timesheet_service, employee, admin, submitted):
        timesheet_service.approve(admin, submitted.summary_id)
        timesheet_service.mark_paid(admin, submitted.summary_id)

        for action in (
            lambda: timesheet_service.reject(admin, submitted.summary_id, "late"),
            lambda: timesheet_service.approve(admin, submitted.summary_id),
            lambda: timesheet_service.reopen(employee, submitted.summary_id),
        ):
            with pytest.raises(InvalidTransitionError):
                action()

    def test_unknown_summary(self, timesheet_service, admin):
        with pytest.raises(SummaryNotFoundError):
            timesheet_service.approve(admin, uuid4())

    def test_failed_transition_does_not_stamp(self, timesheet_service, employee, admin, draft):
        with pytest.raises(InvalidTransitionError):
            timesheet_service.mark_paid(admin, draft.summary_id)

        summary = timesheet_service.get_summary(employee, 2024, 5)
        assert summary.payment_date is None
        assert summary.status == SummaryStatus.DRAFT


class TestRecordReview:
    def test_admin_sets_single_record_status(self, timesheet_service, admin, employee, submitted):
        first, second = submitted.records

        updated = timesheet_service.set_record_status(admin, first.record_id, "APPROVED")
        summary = timesheet_service.get_summary(employee, 2024, 5)

        assert updated.status == RecordStatus.APPROVED
        assert summary.status == SummaryStatus.SUBMITTED
        statuses = {r.record_id: r.status for r in summary.records}
        assert statuses == {
            first.record_id: RecordStatus.APPROVED,
            second.record_id: RecordStatus.PENDING,
        }

    def test_next_transition_mirrors_again(self, timesheet_service, admin, submitted):
        first, _ = submitted.records
        timesheet_service.set_record_status(admin, first.record_id, RecordStatus.REJECTED)

        approved = timesheet_service.approve(admin, submitted.summary_id)

        assert {r.status for r in approved.records} == {RecordStatus.APPROVED}

    def test_unknown_status(self, timesheet_service, admin, draft):
        with pytest.raises(InvalidStatusError) as exc_info:
            timesheet_service.set_record_status(admin, draft.records[0].record_id, "paid")

        assert exc_info.value.allowed == ("PENDING", "APPROVED", "REJECTED")

    def test_admin_only(self, timesheet_service, employee, draft):
        with pytest.raises(UnauthorizedActorError):
            timesheet_service.set_record_status(
                employee, draft.records[0].record_id, "approved"
            )

    def test_missing_record(self, timesheet_service, admin):
        with pytest.raises(DailyRecordNotFoundError):
            timesheet_service.set_record_status(admin, uuid4(), "approved")

    def test_emits_event(self, timesheet_service, admin, draft, captured_logs):
        timesheet_service.set_record_status(admin, draft.records[0].record_id, "approved")

        events = [r for r in captured_logs() if r["message"] == "record_status_set"]
        assert events[0]["from_status"] == "pending"
        assert events[0]["to_status"] == "approved"
