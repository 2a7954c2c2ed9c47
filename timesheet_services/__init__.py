"""
Timesheet services -- infrastructure shared by the module services.

* ``WorkflowExecutor`` -- role-gated, guard-checked approval transitions.
* ``KeyedLockRegistry`` -- per-(user, month) writer serialization.
* ``LocalDocumentStore`` -- uploaded file storage with staged promotion.
"""

from timesheet_services.document_store import DocumentStore, LocalDocumentStore
from timesheet_services.key_lock import (
    DEFAULT_LOCK_REGISTRY,
    KeyedLockRegistry,
    month_key,
)
from timesheet_services.workflow_executor import (
    GuardExecutor,
    TransitionResult,
    WorkflowExecutor,
    default_guard_executor,
)

__all__ = [
    "DocumentStore",
    "LocalDocumentStore",
    "DEFAULT_LOCK_REGISTRY",
    "KeyedLockRegistry",
    "month_key",
    "GuardExecutor",
    "TransitionResult",
    "WorkflowExecutor",
    "default_guard_executor",
]
