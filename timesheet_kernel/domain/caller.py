"""
Caller identity and roles.

The identity collaborator authenticates a request and hands the kernel a
``Caller``.  The kernel never looks identities up itself; everything it
knows about who is acting comes from this value object.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Roles recognized by the approval engine."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    PAYMENT_HANDLER = "payment_handler"
    SUBCONTRACTOR = "subcontractor"


ALL_ROLES: tuple[str, ...] = tuple(r.value for r in Role)


@dataclass(frozen=True)
class Caller:
    """Authenticated identity performing an operation."""

    user_id: UUID
    username: str
    roles: frozenset[str]

    @classmethod
    def of(cls, user_id: UUID, username: str, *roles: Role | str) -> Caller:
        return cls(
            user_id=user_id,
            username=username,
            roles=frozenset(Role(r).value for r in roles),
        )

    def has_role(self, role: Role | str) -> bool:
        return Role(role).value in self.roles

    def has_any_role(self, roles: tuple[str, ...]) -> bool:
        return bool(self.roles.intersection(roles))

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN.value in self.roles
