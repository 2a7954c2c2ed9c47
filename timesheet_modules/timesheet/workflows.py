"""Monthly Timesheet Workflow.

State machine and transition policy for monthly summaries:

    draft --submit--> submitted --approve--> approved --mark_paid--> paid
                         |
                         +--reject--> rejected --reopen--> draft
"""

from timesheet_kernel.domain.caller import ALL_ROLES, Role
from timesheet_kernel.domain.workflow import (
    Guard,
    Transition,
    TransitionPolicy,
    TransitionRule,
    Workflow,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_services.workflow_executor import GUARD_CALLER_OWNS_ENTITY

logger = get_logger("modules.timesheet.workflows")


# -----------------------------------------------------------------------------
# Role gates for non-transition operations
# -----------------------------------------------------------------------------

ENTRY_ROLES: tuple[str, ...] = ALL_ROLES
DOCUMENT_ROLES: tuple[str, ...] = (
    Role.PAYMENT_HANDLER.value,
    Role.SUBCONTRACTOR.value,
    Role.ADMIN.value,
)
ADMIN_ROLES: tuple[str, ...] = (Role.ADMIN.value,)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

CALLER_OWNS_SUMMARY = Guard(
    name=GUARD_CALLER_OWNS_ENTITY,
    description="Caller is the user the monthly summary belongs to",
)


# -----------------------------------------------------------------------------
# Monthly Summary Workflow
# -----------------------------------------------------------------------------

SUMMARY_STATES = ("draft", "submitted", "approved", "rejected", "paid")

SUMMARY_WORKFLOW = Workflow(
    name="monthly_summary",
    description="Monthly timesheet approval lifecycle",
    initial_state="draft",
    states=SUMMARY_STATES,
    transitions=(
        Transition("draft", "submitted", action="submit", guard=CALLER_OWNS_SUMMARY),
        Transition("submitted", "approved", action="approve"),
        Transition("submitted", "rejected", action="reject"),
        Transition("approved", "paid", action="mark_paid"),
        Transition("rejected", "draft", action="reopen", guard=CALLER_OWNS_SUMMARY),
    ),
    terminal_states=("paid",),
)

SUMMARY_POLICY = TransitionPolicy(
    name="monthly_summary_policy",
    rules=(
        TransitionRule("submit", allowed_roles=ENTRY_ROLES, stamp_field="submission_date"),
        TransitionRule("approve", allowed_roles=ADMIN_ROLES, stamp_field="approval_date"),
        TransitionRule("reject", required_fields=("comments",), allowed_roles=ADMIN_ROLES),
        TransitionRule("mark_paid", allowed_roles=ADMIN_ROLES, stamp_field="payment_date"),
        TransitionRule("reopen", allowed_roles=ENTRY_ROLES),
    ),
)
SUMMARY_POLICY.check_covers(SUMMARY_WORKFLOW)

logger.info(
    "timesheet_workflow_registered",
    extra={
        "workflow": SUMMARY_WORKFLOW.name,
        "actions": list(SUMMARY_WORKFLOW.actions),
    },
)
