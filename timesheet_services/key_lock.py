"""
timesheet_services.key_lock -- Per-key mutual exclusion.

Responsibility:
    Serializes writers that target the same (user, year, month) inside one
    process, so the read-merge-write of a reconciliation, a document upload,
    and every state transition on a summary never interleave.

Architecture position:
    Services layer.  In-process only.  Writers in other processes are caught
    by the optimistic version column and unique constraints on the summary
    and record tables, which surface as ``ReconciliationConflictError``.

Invariants enforced:
    - At most one holder per key at a time.
    - Locks for keys with no holders or waiters are discarded, so the
      registry does not grow with the number of distinct months seen.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from uuid import UUID

from timesheet_kernel.logging_config import get_logger

logger = get_logger("services.key_lock")


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLockRegistry:
    """Reference-counted registry of one lock per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: dict[Hashable, _Slot] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Block until ``key`` is free, hold it for the ``with`` body."""
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.users += 1

        slot.lock.acquire()
        try:
            yield
        finally:
            slot.lock.release()
            with self._guard:
                slot.users -= 1
                if slot.users == 0:
                    del self._slots[key]

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""
        with self._guard:
            return len(self._slots)


def month_key(kind: str, user_id: UUID, year: int, month: int) -> tuple:
    """Lock key for one user's month of a given entity kind."""
    return (kind, user_id, year, month)


# Shared by every service instance in the process unless one is injected.
DEFAULT_LOCK_REGISTRY = KeyedLockRegistry()
