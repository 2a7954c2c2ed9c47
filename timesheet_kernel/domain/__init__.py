"""Kernel domain layer -- pure value objects, zero I/O."""

from timesheet_kernel.domain.caller import ALL_ROLES, Caller, Role
from timesheet_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timesheet_kernel.domain.workflow import (
    Guard,
    Transition,
    TransitionPolicy,
    TransitionRule,
    Workflow,
)

__all__ = [
    "ALL_ROLES",
    "Caller",
    "Role",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Guard",
    "Transition",
    "TransitionPolicy",
    "TransitionRule",
    "Workflow",
]
