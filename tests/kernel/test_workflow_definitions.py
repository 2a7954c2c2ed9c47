"""
Tests for workflow value objects and the two registered machines.

Covers:
- Workflow construction invariants
- TransitionPolicy coverage check
- Lookup helpers
"""

import pytest

from timesheet_kernel.domain.workflow import (
    Transition,
    TransitionPolicy,
    TransitionRule,
    Workflow,
)
from timesheet_modules.invoice.workflows import INVOICE_POLICY, INVOICE_WORKFLOW, action_for_target
from timesheet_modules.timesheet.workflows import SUMMARY_POLICY, SUMMARY_WORKFLOW


class TestWorkflowInvariants:
    def test_initial_state_must_be_declared(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(name="w", description="", initial_state="x", states=("a",), transitions=())

    def test_transition_states_must_be_declared(self):
        with pytest.raises(ValueError, match="undeclared state"):
            Workflow(
                name="w",
                description="",
                initial_state="a",
                states=("a",),
                transitions=(Transition("a", "b", action="go"),),
            )

    def test_duplicate_transition_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            Workflow(
                name="w",
                description="",
                initial_state="a",
                states=("a", "b"),
                transitions=(
                    Transition("a", "b", action="go"),
                    Transition("a", "a", action="go"),
                ),
            )

    def test_policy_must_cover_only_known_actions(self):
        policy = TransitionPolicy("p", rules=(TransitionRule("teleport"),))

        with pytest.raises(ValueError, match="teleport"):
            policy.check_covers(SUMMARY_WORKFLOW)

    def test_unknown_rule_defaults_to_open(self):
        rule = TransitionPolicy("p").rule_for("anything")

        assert rule.allowed_roles == ()
        assert rule.required_fields == ()


class TestRegisteredMachines:
    def test_policies_cover_their_workflows(self):
        SUMMARY_POLICY.check_covers(SUMMARY_WORKFLOW)
        INVOICE_POLICY.check_covers(INVOICE_WORKFLOW)

    def test_summary_states(self):
        assert SUMMARY_WORKFLOW.initial_state == "draft"
        assert set(SUMMARY_WORKFLOW.states) == {"draft", "submitted", "approved", "rejected", "paid"}

    def test_summary_actions_from_submitted(self):
        assert set(SUMMARY_WORKFLOW.available_actions("submitted")) == {"approve", "reject"}

    def test_reject_source_states(self):
        assert SUMMARY_WORKFLOW.source_states("reject") == ("submitted",)

    def test_find_by_target(self):
        transition = SUMMARY_WORKFLOW.find_by_target("approved", "paid")

        assert transition is not None
        assert transition.action == "mark_paid"

    def test_invoice_terminal_states_have_no_actions(self):
        for state in INVOICE_WORKFLOW.terminal_states:
            assert INVOICE_WORKFLOW.available_actions(state) == ()

    @pytest.mark.parametrize(
        "target, action",
        [("approved", "approve"), ("rejected", "reject"), ("paid", "mark_paid")],
    )
    def test_action_for_target(self, target, action):
        assert action_for_target(target) == action
