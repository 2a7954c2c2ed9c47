"""Subcontractor Invoice Workflow.

Invoices start out submitted; there is no draft:

    submitted --approve--> approved --mark_paid--> paid
        |
        +--reject--> rejected

Rejection needs no comments here, unlike monthly summaries.
"""

from timesheet_kernel.domain.caller import Role
from timesheet_kernel.domain.workflow import (
    Transition,
    TransitionPolicy,
    TransitionRule,
    Workflow,
)
from timesheet_kernel.logging_config import get_logger

logger = get_logger("modules.invoice.workflows")

SUBMIT_ROLES: tuple[str, ...] = (Role.SUBCONTRACTOR.value,)
ADMIN_ROLES: tuple[str, ...] = (Role.ADMIN.value,)

INVOICE_WORKFLOW = Workflow(
    name="subcontractor_invoice",
    description="Subcontractor monthly invoice lifecycle",
    initial_state="submitted",
    states=("submitted", "approved", "rejected", "paid"),
    transitions=(
        Transition("submitted", "approved", action="approve"),
        Transition("submitted", "rejected", action="reject"),
        Transition("approved", "paid", action="mark_paid"),
    ),
    terminal_states=("rejected", "paid"),
)

INVOICE_POLICY = TransitionPolicy(
    name="subcontractor_invoice_policy",
    rules=(
        TransitionRule("approve", allowed_roles=ADMIN_ROLES, stamp_field="approval_date"),
        TransitionRule("reject", allowed_roles=ADMIN_ROLES),
        TransitionRule("mark_paid", allowed_roles=ADMIN_ROLES, stamp_field="payment_date"),
    ),
)
INVOICE_POLICY.check_covers(INVOICE_WORKFLOW)


def action_for_target(target_state: str) -> str | None:
    """The action whose transition ends in ``target_state``."""
    for t in INVOICE_WORKFLOW.transitions:
        if t.to_state == target_state:
            return t.action
    return None


logger.info(
    "invoice_workflow_registered",
    extra={
        "workflow": INVOICE_WORKFLOW.name,
        "actions": list(INVOICE_WORKFLOW.actions),
    },
)
