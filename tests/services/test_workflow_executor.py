"""
Tests for WorkflowExecutor against the monthly summary and invoice machines.

Covers:
- Legal transitions and stamp fields
- Evaluation order: transition, role, guard, required fields
- Typed exceptions from raise_for_failure()
- workflow_transition trace records
"""

from uuid import uuid4

import pytest

from timesheet_kernel.domain.caller import Caller, Role
from timesheet_kernel.domain.workflow import Guard, Transition, TransitionPolicy, Workflow
from timesheet_kernel.exceptions import (
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotOwnerError,
    StateGuardError,
    UnauthorizedActorError,
)
from timesheet_modules.invoice.workflows import INVOICE_POLICY, INVOICE_WORKFLOW
from timesheet_modules.timesheet.workflows import SUMMARY_POLICY, SUMMARY_WORKFLOW
from timesheet_services.workflow_executor import (
    OUTCOME_GUARD_FAILED,
    OUTCOME_MISSING_FIELD,
    OUTCOME_NO_TRANSITION,
    OUTCOME_ROLE_DENIED,
    OUTCOME_SUCCESS,
    GuardExecutor,
    WorkflowExecutor,
)


def _run(executor, caller, state, action, owner_id=None, **context):
    return executor.execute_transition(
        SUMMARY_WORKFLOW,
        SUMMARY_POLICY,
        "monthly_summary",
        uuid4(),
        state,
        action,
        caller,
        context={"owner_id": owner_id, **context},
    )


class TestSummaryMachine:
    def test_owner_submits_draft(self, workflow_executor, employee):
        result = _run(workflow_executor, employee, "draft", "submit", owner_id=employee.user_id)

        assert result.success
        assert result.outcome == OUTCOME_SUCCESS
        assert result.new_state == "submitted"
        assert result.stamp_field == "submission_date"

    def test_non_owner_cannot_submit(self, workflow_executor, employee, admin):
        result = _run(workflow_executor, admin, "draft", "submit", owner_id=employee.user_id)

        assert result.outcome == OUTCOME_GUARD_FAILED
        with pytest.raises(NotOwnerError):
            result.raise_for_failure()

    def test_admin_approves_without_comments(self, workflow_executor, admin):
        result = _run(workflow_executor, admin, "submitted", "approve")

        assert result.new_state == "approved"
        assert result.stamp_field == "approval_date"

    def test_employee_cannot_approve(self, workflow_executor, employee):
        result = _run(workflow_executor, employee, "submitted", "approve")

        assert result.outcome == OUTCOME_ROLE_DENIED
        assert result.required_roles == (Role.ADMIN.value,)
        with pytest.raises(UnauthorizedActorError):
            result.raise_for_failure()

    @pytest.mark.parametrize("comments", [None, "", "   "])
    def test_reject_requires_comments(self, workflow_executor, admin, comments):
        result = _run(workflow_executor, admin, "submitted", "reject", comments=comments)

        assert result.outcome == OUTCOME_MISSING_FIELD
        assert result.missing_field == "comments"
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value.field == "comments"

    def test_reject_with_comments(self, workflow_executor, admin):
        result = _run(workflow_executor, admin, "submitted", "reject", comments="Missing days")

        assert result.new_state == "rejected"
        assert result.stamp_field is None

    def test_reject_from_draft_fails_on_state(self, workflow_executor, admin):
        result = _run(workflow_executor, admin, "draft", "reject", comments="x")

        assert result.outcome == OUTCOME_NO_TRANSITION
        with pytest.raises(InvalidTransitionError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value.current_state == "draft"
        assert exc_info.value.required_states == ("submitted",)

    @pytest.mark.parametrize("state", ["draft", "submitted", "rejected", "paid"])
    def test_mark_paid_only_from_approved(self, workflow_executor, admin, state):
        result = _run(workflow_executor, admin, state, "mark_paid")

        assert result.outcome == OUTCOME_NO_TRANSITION
        assert result.required_states == ("approved",)

    def test_mark_paid_from_approved(self, workflow_executor, admin):
        result = _run(workflow_executor, admin, "approved", "mark_paid")

        assert result.new_state == "paid"
        assert result.stamp_field == "payment_date"

    def test_owner_reopens_rejected(self, workflow_executor, employee):
        result = _run(workflow_executor, employee, "rejected", "reopen", owner_id=employee.user_id)

        assert result.new_state == "draft"

    def test_paid_is_terminal(self):
        assert SUMMARY_WORKFLOW.available_actions("paid") == ()

    def test_state_is_checked_before_role(self, workflow_executor, employee):
        """An employee approving a draft hears about the state, not the role."""
        result = _run(workflow_executor, employee, "draft", "approve")

        assert result.outcome == OUTCOME_NO_TRANSITION

    def test_role_is_checked_before_required_fields(self, workflow_executor, employee):
        result = _run(workflow_executor, employee, "submitted", "reject")

        assert result.outcome == OUTCOME_ROLE_DENIED


class TestInvoiceMachine:
    def _run(self, executor, caller, state, action):
        return executor.execute_transition(
            INVOICE_WORKFLOW, INVOICE_POLICY, "subcontractor_invoice",
            uuid4(), state, action, caller,
        )

    def test_reject_needs_no_comments(self, workflow_executor, admin):
        result = self._run(workflow_executor, admin, "submitted", "reject")

        assert result.success
        assert result.new_state == "rejected"

    def test_subcontractor_cannot_approve_own_invoice(self, workflow_executor, subcontractor):
        result = self._run(workflow_executor, subcontractor, "submitted", "approve")

        assert result.outcome == OUTCOME_ROLE_DENIED

    def test_no_draft_state(self):
        assert INVOICE_WORKFLOW.initial_state == "submitted"
        assert "draft" not in INVOICE_WORKFLOW.states


class TestGuards:
    def test_unknown_guard_fails_closed(self, deterministic_clock):
        workflow = Workflow(
            name="custom",
            description="",
            initial_state="a",
            states=("a", "b"),
            transitions=(Transition("a", "b", action="go", guard=Guard("mystery", "")),),
        )
        executor = WorkflowExecutor(clock=deterministic_clock, guard_executor=GuardExecutor())
        caller = Caller.of(uuid4(), "u", Role.EMPLOYEE)

        result = executor.execute_transition(
            workflow, TransitionPolicy("p"), "thing", uuid4(), "a", "go", caller
        )

        assert result.outcome == OUTCOME_GUARD_FAILED
        with pytest.raises(StateGuardError):
            result.raise_for_failure()

    def test_registered_guard_is_used(self, deterministic_clock):
        guards = GuardExecutor()
        guards.register("always", lambda ctx: True)
        workflow = Workflow(
            name="custom",
            description="",
            initial_state="a",
            states=("a", "b"),
            transitions=(Transition("a", "b", action="go", guard=Guard("always", "")),),
        )
        executor = WorkflowExecutor(clock=deterministic_clock, guard_executor=guards)
        caller = Caller.of(uuid4(), "u", Role.EMPLOYEE)

        result = executor.execute_or_raise(
            workflow, TransitionPolicy("p"), "thing", uuid4(), "a", "go", caller
        )

        assert result.new_state == "b"


class TestTraces:
    def test_every_outcome_emits_trace(self, workflow_executor, employee, captured_logs):
        _run(workflow_executor, employee, "draft", "submit", owner_id=employee.user_id)
        _run(workflow_executor, employee, "submitted", "approve")

        traces = [r for r in captured_logs() if r["message"] == "workflow_transition"]
        assert [t["outcome"] for t in traces] == [OUTCOME_SUCCESS, OUTCOME_ROLE_DENIED]
        assert traces[0]["to_state"] == "submitted"
        assert traces[0]["workflow"] == "monthly_summary"

    def test_outcome_sink_receives_record(self, workflow_executor, admin):
        seen = []

        workflow_executor.execute_transition(
            SUMMARY_WORKFLOW, SUMMARY_POLICY, "monthly_summary", uuid4(),
            "submitted", "approve", admin, outcome_sink=seen.append,
        )

        assert len(seen) == 1
        assert seen[0]["outcome"] == OUTCOME_SUCCESS
        assert seen[0]["trace_type"] == "WORKFLOW_TRANSITION"
