"""
Shared transaction helpers for timesheet module services.

Every public service operation that writes owns exactly one transaction:
commit on success, rollback on any exception.  Writers that target a
(user, month) also hold that key's in-process lock for the whole
read-merge-write.  Database-detected write conflicts (optimistic version
mismatch, unique constraint races) are translated into the retryable
``ReconciliationConflictError``.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator
from contextlib import contextmanager, nullcontext

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from timesheet_kernel.domain.caller import Caller
from timesheet_kernel.exceptions import (
    ReconciliationConflictError,
    UnauthorizedActorError,
)
from timesheet_kernel.logging_config import get_logger
from timesheet_services.key_lock import KeyedLockRegistry

logger = get_logger("modules.transaction")


def require_role(caller: Caller, action: str, roles: tuple[str, ...]) -> None:
    """Raise UnauthorizedActorError unless the caller holds one of ``roles``."""
    if not caller.has_any_role(roles):
        logger.warning(
            "caller_role_denied",
            extra={
                "action": action,
                "actor_id": str(caller.user_id),
                "required_roles": list(roles),
            },
        )
        raise UnauthorizedActorError(str(caller.user_id), action, roles)


def _format_key(key: Hashable | None) -> str:
    if isinstance(key, tuple):
        return "/".join(str(part) for part in key)
    return str(key)


@contextmanager
def service_transaction(
    session: Session,
    operation: str,
    entity_type: str,
    locks: KeyedLockRegistry | None = None,
    key: Hashable | None = None,
) -> Iterator[None]:
    """Run the ``with`` body as one committed-or-rolled-back unit.

    Holds ``locks[key]`` for the duration when a key is given.
    """
    guard = locks.hold(key) if locks is not None and key is not None else nullcontext()
    with guard:
        try:
            yield
            session.commit()
        except (StaleDataError, IntegrityError) as exc:
            session.rollback()
            logger.warning(
                "write_conflict_detected",
                extra={
                    "operation": operation,
                    "entity_type": entity_type,
                    "entity_key": _format_key(key),
                    "error": str(exc),
                },
            )
            raise ReconciliationConflictError(entity_type, _format_key(key)) from exc
        except Exception:
            session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={"operation": operation, "entity_type": entity_type},
                exc_info=True,
            )
            raise
