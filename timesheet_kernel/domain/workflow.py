"""
Canonical workflow types (``timesheet_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for approval state machines.  The monthly summary
machine and the subcontractor invoice machine are both instances of
``Workflow`` paired with a ``TransitionPolicy``; the policy carries what
differs between them (required fields, permitted roles, which date a
transition stamps).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* At most one transition exists per (from_state, action).
* Policy rules reference only actions declared by the workflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow executor does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    ``terminal_states`` are states with no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state '{self.initial_state}' "
                "is not a declared state"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition '{t.action}' references "
                    f"undeclared state ({t.from_state} -> {t.to_state})"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition '{t.action}' "
                    f"from '{t.from_state}'"
                )
            seen.add(key)

    @property
    def actions(self) -> tuple[str, ...]:
        """Distinct action names in declaration order."""
        return tuple(dict.fromkeys(t.action for t in self.transitions))

    def find(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def find_by_target(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def source_states(self, action: str) -> tuple[str, ...]:
        """States from which ``action`` is legal."""
        return tuple(t.from_state for t in self.transitions if t.action == action)

    def available_actions(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)


@dataclass(frozen=True)
class TransitionRule:
    """Per-action policy entry.

    ``allowed_roles`` empty means any authenticated caller.
    ``stamp_field`` names the date attribute the transition sets.
    """
    action: str
    required_fields: tuple[str, ...] = ()
    allowed_roles: tuple[str, ...] = ()
    stamp_field: str | None = None


@dataclass(frozen=True)
class TransitionPolicy:
    """Rules that parametrize a workflow for one entity type."""
    name: str
    rules: tuple[TransitionRule, ...] = field(default_factory=tuple)

    def rule_for(self, action: str) -> TransitionRule:
        for rule in self.rules:
            if rule.action == action:
                return rule
        return TransitionRule(action=action)

    def check_covers(self, workflow: Workflow) -> None:
        """Raise ValueError if a rule names an action the workflow lacks."""
        unknown = {r.action for r in self.rules} - set(workflow.actions)
        if unknown:
            raise ValueError(
                f"Policy {self.name} references actions not in workflow "
                f"{workflow.name}: {sorted(unknown)}"
            )
