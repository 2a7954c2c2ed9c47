"""
timesheet_services.workflow_executor -- Approval state machine execution.

Responsibility:
    Executes state transitions for any ``Workflow`` parametrized by a
    ``TransitionPolicy``.  The monthly summary machine and the subcontractor
    invoice machine share this executor; only their workflow and policy
    objects differ.

    Evaluation order for a requested action:
      1. Find the transition from the current state.
      2. Role gate from the policy rule.
      3. Guard (e.g. ownership) via GuardExecutor.
      4. Required fields from the policy rule.

Architecture position:
    Services layer.  May import from timesheet_kernel (domain, exceptions,
    logging).  Performs no persistence -- the owning module service applies
    the new state and commits.

Invariants enforced:
    - A transition fires only if every check passes; a failure leaves the
      entity untouched.
    - Every outcome, success or failure, emits one ``workflow_transition``
      trace record.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable
from uuid import UUID

from timesheet_kernel.domain.caller import Caller
from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.workflow import Guard, TransitionPolicy, Workflow
from timesheet_kernel.exceptions import (
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotOwnerError,
    StateGuardError,
    UnauthorizedActorError,
)
from timesheet_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_ROLE_DENIED = "role_denied"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_MISSING_FIELD = "missing_field"

GUARD_CALLER_OWNS_ENTITY = "caller_owns_entity"


def _emit_workflow_trace(
    timestamp: str,
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: UUID,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": timestamp,
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    record.update(LogContext.get_all())
    logger.info("workflow_transition", extra=record)
    if outcome_sink is not None:
        outcome_sink(dict(record, message="workflow_transition"))


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _get_attr(context: Any, key: str, default: Any = None) -> Any:
    """Get attribute from context (object or dict)."""
    if context is None:
        return default
    if hasattr(context, "get") and callable(getattr(context, "get")):
        return context.get(key, default)
    return getattr(context, key, default)


def _caller_owns_entity(context: Any) -> bool:
    owner_id = _get_attr(context, "owner_id")
    return owner_id is not None and owner_id == _get_attr(context, "actor_id")


class GuardExecutor:
    """Evaluates workflow guards against context.

    Guards are declared on transitions (name + description). This executor
    holds the actual evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        """Evaluate a guard against context. Unknown guards fail closed."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning(
                "guard_no_evaluator",
                extra={"guard_name": guard.name},
            )
            return False
        return bool(fn(context))


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with built-in evaluators registered."""
    ex = GuardExecutor()
    ex.register(GUARD_CALLER_OWNS_ENTITY, _caller_owns_entity)
    return ex


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransitionResult:
    """Result of executing a workflow transition."""

    success: bool
    outcome: str
    workflow: str
    entity_type: str
    entity_id: UUID
    action: str
    from_state: str
    actor_id: UUID
    new_state: str | None = None
    stamp_field: str | None = None
    reason: str = ""
    required_states: tuple[str, ...] = ()
    required_roles: tuple[str, ...] = ()
    guard_name: str | None = None
    missing_field: str | None = None

    def raise_for_failure(self) -> None:
        """Raise the typed exception matching a failed outcome."""
        if self.success:
            return
        if self.outcome == OUTCOME_NO_TRANSITION:
            raise InvalidTransitionError(
                self.entity_type,
                str(self.entity_id),
                self.action,
                self.from_state,
                self.required_states,
            )
        if self.outcome == OUTCOME_ROLE_DENIED:
            raise UnauthorizedActorError(
                str(self.actor_id), self.action, self.required_roles
            )
        if self.outcome == OUTCOME_GUARD_FAILED:
            if self.guard_name == GUARD_CALLER_OWNS_ENTITY:
                raise NotOwnerError(
                    str(self.actor_id), self.entity_type, str(self.entity_id)
                )
            raise StateGuardError(self.reason)
        if self.outcome == OUTCOME_MISSING_FIELD:
            raise MissingRequiredFieldError(self.action, self.missing_field or "")
        raise StateGuardError(self.reason)


# ---------------------------------------------------------------------------
# WorkflowExecutor
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class WorkflowExecutor:
    """Executes workflow transitions with role, guard and required-field checks."""

    def __init__(
        self,
        clock: Clock | None = None,
        guard_executor: GuardExecutor | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._guard_executor = guard_executor or default_guard_executor()

    def execute_transition(
        self,
        workflow: Workflow,
        policy: TransitionPolicy,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        caller: Caller,
        context: Mapping[str, Any] | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> TransitionResult:
        """Decide whether ``action`` may move the entity out of ``current_state``.

        ``context`` carries the guard inputs (``owner_id``) and the values
        of any policy-required fields (e.g. ``comments``).  The caller's id
        is added as ``actor_id``.

        Returns a TransitionResult; ``raise_for_failure()`` converts a failed
        result into the matching typed exception.
        """
        t0 = time.monotonic()
        ctx: dict[str, Any] = dict(context or {})
        ctx["actor_id"] = caller.user_id

        base = {
            "workflow": workflow.name,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "from_state": current_state,
            "actor_id": caller.user_id,
        }

        def _finish(result: TransitionResult) -> TransitionResult:
            _emit_workflow_trace(
                timestamp=self._clock.now().isoformat(),
                workflow_name=workflow.name,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                from_state=current_state,
                outcome=result.outcome,
                reason=result.reason,
                duration_ms=(time.monotonic() - t0) * 1000,
                to_state=result.new_state,
                outcome_sink=outcome_sink,
            )
            return result

        # 1. Find the matching transition
        transition = workflow.find(current_state, action)
        if transition is None:
            return _finish(TransitionResult(
                success=False,
                outcome=OUTCOME_NO_TRANSITION,
                reason=f"No transition from '{current_state}' via action "
                       f"'{action}' in workflow '{workflow.name}'",
                required_states=workflow.source_states(action),
                **base,
            ))

        rule = policy.rule_for(action)

        # 2. Role gate
        if rule.allowed_roles and not caller.has_any_role(rule.allowed_roles):
            return _finish(TransitionResult(
                success=False,
                outcome=OUTCOME_ROLE_DENIED,
                reason=f"Action '{action}' requires one of "
                       f"{', '.join(rule.allowed_roles)}",
                required_roles=rule.allowed_roles,
                **base,
            ))

        # 3. Guard
        if transition.guard is not None:
            if not self._guard_executor.evaluate(transition.guard, ctx):
                return _finish(TransitionResult(
                    success=False,
                    outcome=OUTCOME_GUARD_FAILED,
                    reason=f"Guard not satisfied: {transition.guard.name}",
                    guard_name=transition.guard.name,
                    **base,
                ))

        # 4. Required fields
        for field_name in rule.required_fields:
            if _is_blank(ctx.get(field_name)):
                return _finish(TransitionResult(
                    success=False,
                    outcome=OUTCOME_MISSING_FIELD,
                    reason=f"Action '{action}' requires '{field_name}'",
                    missing_field=field_name,
                    **base,
                ))

        return _finish(TransitionResult(
            success=True,
            outcome=OUTCOME_SUCCESS,
            new_state=transition.to_state,
            stamp_field=rule.stamp_field,
            reason=f"Transition {current_state} -> {transition.to_state}",
            **base,
        ))

    def execute_or_raise(
        self,
        workflow: Workflow,
        policy: TransitionPolicy,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        caller: Caller,
        context: Mapping[str, Any] | None = None,
    ) -> TransitionResult:
        """``execute_transition`` that raises on any failed outcome."""
        result = self.execute_transition(
            workflow, policy, entity_type, entity_id, current_state,
            action, caller, context,
        )
        result.raise_for_failure()
        return result
