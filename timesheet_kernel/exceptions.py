"""
Typed Exception Hierarchy for the Timesheet Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval workflows must tell callers precisely what went wrong. A caller
that receives a generic ValueError has to parse the message to decide
whether to fix the input, wait for a state change, or retry. Instead:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.reject(caller, summary_id, comments="")
    except MissingRequiredFieldError as e:
        api_response(code=e.code, field=e.field)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from TimesheetKernelError:

    TimesheetKernelError (base)
    |
    +-- ValidationError                 (field)
    |   +-- InvalidPeriodError
    |   +-- InvalidEntryError
    |   +-- MissingRequiredFieldError
    |   +-- DocumentValidationError
    |   +-- ReportedHoursMismatchError
    |   +-- DuplicateInvoiceError
    |   +-- DuplicateHolidayCategoryError
    |   +-- InvalidStatusError
    |
    +-- StateGuardError
    |   +-- InvalidTransitionError      (current_state, required_states)
    |   +-- SummaryNotEditableError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedActorError      (required_roles)
    |   +-- NotOwnerError
    |
    +-- NotFoundError
    |   +-- SummaryNotFoundError
    |   +-- HolidayCategoryNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- DailyRecordNotFoundError
    |
    +-- ConcurrencyError
    |   +-- ReconciliationConflictError (retryable)
    |
    +-- DocumentStorageError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_PERIOD              | Month outside 1-12 or year outside 1-9999
                | INVALID_ENTRY               | Malformed date, negative hours, duplicate
                |                             | date, date outside the target month
                | MISSING_REQUIRED_FIELD      | Transition policy field absent/blank
                | DOCUMENT_INVALID            | Missing/empty file, wrong content type
                | REPORTED_HOURS_MISMATCH     | Reported total outside tolerance
                | DUPLICATE_INVOICE           | Invoice already exists for the month
                | DUPLICATE_HOLIDAY_CATEGORY  | Category name already taken
                | INVALID_STATUS              | Unknown status name
----------------|-----------------------------|-----------------------------------------
State guard     | INVALID_TRANSITION          | Action not legal from current state
                | SUMMARY_NOT_EDITABLE        | Entries changed on a non-draft summary
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED_ACTOR          | Caller lacks a required role
                | NOT_OWNER                   | Caller does not own the entity
----------------|-----------------------------|-----------------------------------------
Not found       | SUMMARY_NOT_FOUND           | Monthly summary does not exist
                | HOLIDAY_CATEGORY_NOT_FOUND  | Holiday category id unknown
                | INVOICE_NOT_FOUND           | Invoice does not exist
----------------|-----------------------------|-----------------------------------------
Concurrency     | RECONCILIATION_CONFLICT     | Concurrent writer detected (retryable)
----------------|-----------------------------|-----------------------------------------
Storage         | DOCUMENT_STORAGE_ERROR      | File write/move/delete failed
Configuration   | CONFIGURATION_ERROR         | Invalid configuration values

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError, etc.)?
   Domain exceptions should be catchable as a group. Inheriting from
   built-in types mixes domain errors with programming errors.

2. WHY code CLASS ATTRIBUTE (not instance)?
   Codes are static per exception type. SummaryNotFoundError.code works
   without instantiation.

3. WHY SEPARATE ERROR CATEGORIES?
   Callers handle categories differently:
   - ValidationError -> user fixes the request
   - StateGuardError -> user waits for or triggers another transition
   - ConcurrencyError -> automatic retry

===============================================================================
"""

from collections.abc import Iterable
from decimal import Decimal


class TimesheetKernelError(Exception):
    """
    Base exception for all timesheet kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TIMESHEET_KERNEL_ERROR"


# Validation exceptions


class ValidationError(TimesheetKernelError):
    """Input failed validation. ``field`` names the offending input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, detail: str):
        self.field = field
        self.detail = detail
        super().__init__(f"{field}: {detail}")


class InvalidPeriodError(ValidationError):
    """Year or month out of range."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: object, month: object):
        self.year = year
        self.month = month
        if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
            super().__init__("month", f"Month must be between 1 and 12, got {month!r}")
        else:
            super().__init__("year", f"Year must be between 1 and 9999, got {year!r}")


class InvalidEntryError(ValidationError):
    """A daily entry in a submitted batch is malformed."""

    code: str = "INVALID_ENTRY"


class MissingRequiredFieldError(ValidationError):
    """A transition policy requires a field that was absent or blank."""

    code: str = "MISSING_REQUIRED_FIELD"

    def __init__(self, action: str, field: str):
        self.action = action
        super().__init__(field, f"Required for action '{action}'")


class DocumentValidationError(ValidationError):
    """Uploaded document is missing, empty, or of an unaccepted type."""

    code: str = "DOCUMENT_INVALID"

    def __init__(self, detail: str):
        super().__init__("file", detail)


class ReportedHoursMismatchError(ValidationError):
    """Reported monthly total is outside tolerance of the expected hours."""

    code: str = "REPORTED_HOURS_MISMATCH"

    def __init__(self, reported: Decimal, expected: Decimal, workdays: int):
        self.reported = reported
        self.expected = expected
        self.workdays = workdays
        super().__init__(
            "total_hours_reported",
            f"Reported hours ({reported}) do not match the expected work hours "
            f"for the month ({expected}). Expected workdays: {workdays}",
        )


class DuplicateInvoiceError(ValidationError):
    """An invoice already exists for the user and month."""

    code: str = "DUPLICATE_INVOICE"

    def __init__(self, user_id: str, year: int, month: int):
        self.user_id = user_id
        self.year = year
        self.month = month
        super().__init__("month", "Invoice for this month already exists")


class DuplicateHolidayCategoryError(ValidationError):
    """A holiday category with the same name already exists."""

    code: str = "DUPLICATE_HOLIDAY_CATEGORY"

    def __init__(self, name: str):
        self.name = name
        super().__init__("name", f"Holiday category already exists: {name}")


class InvalidStatusError(ValidationError):
    """Status name is not one of the machine's states."""

    code: str = "INVALID_STATUS"

    def __init__(self, status: object, allowed: Iterable[str]):
        self.status = status
        self.allowed = tuple(allowed)
        super().__init__(
            "status",
            f"Unknown status {status!r}; expected one of {', '.join(self.allowed)}",
        )


# State guard exceptions


class StateGuardError(TimesheetKernelError):
    """Base exception for actions not permitted in the current state."""

    code: str = "STATE_GUARD_ERROR"


class InvalidTransitionError(StateGuardError):
    """The requested action has no transition from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        current_state: str,
        required_states: Iterable[str],
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.current_state = current_state
        self.required_states = tuple(required_states)
        required = " or ".join(self.required_states) or "(none)"
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state "
            f"'{current_state}'; requires {required}"
        )


class SummaryNotEditableError(StateGuardError):
    """Entries were changed on a summary that is no longer a draft."""

    code: str = "SUMMARY_NOT_EDITABLE"

    def __init__(self, summary_id: str, status: str, required_action: str | None = None):
        self.summary_id = summary_id
        self.status = status
        self.required_states = ("draft",)
        self.required_action = required_action
        hint = f"; '{required_action}' it first" if required_action else ""
        super().__init__(
            f"Summary {summary_id} is '{status}' and can only be edited in "
            f"state 'draft'{hint}"
        )


# Authorization exceptions


class AuthorizationError(TimesheetKernelError):
    """Base exception for caller permission failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedActorError(AuthorizationError):
    """Caller holds none of the roles the action requires."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(self, actor_id: str, action: str, required_roles: Iterable[str]):
        self.actor_id = actor_id
        self.action = action
        self.required_roles = tuple(required_roles)
        super().__init__(
            f"Actor {actor_id} may not {action}; requires one of "
            f"{', '.join(self.required_roles)}"
        )


class NotOwnerError(AuthorizationError):
    """Caller is not the owner of the entity."""

    code: str = "NOT_OWNER"

    def __init__(self, actor_id: str, entity_type: str, entity_id: str):
        self.actor_id = actor_id
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Actor {actor_id} does not own {entity_type} {entity_id}")


# Not-found exceptions


class NotFoundError(TimesheetKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class SummaryNotFoundError(NotFoundError):
    """Monthly summary was not found."""

    code: str = "SUMMARY_NOT_FOUND"

    def __init__(self, summary_ref: str):
        self.summary_ref = summary_ref
        super().__init__(f"Monthly summary not found: {summary_ref}")


class HolidayCategoryNotFoundError(NotFoundError):
    """Holiday category was not found."""

    code: str = "HOLIDAY_CATEGORY_NOT_FOUND"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Holiday category not found: {category_id}")


class InvoiceNotFoundError(NotFoundError):
    """Subcontractor invoice was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_ref: str):
        self.invoice_ref = invoice_ref
        super().__init__(f"Invoice not found: {invoice_ref}")


class DailyRecordNotFoundError(NotFoundError):
    """Daily record was not found."""

    code: str = "DAILY_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Daily record not found: {record_id}")


# Concurrency exceptions


class ConcurrencyError(TimesheetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = False


class ReconciliationConflictError(ConcurrencyError):
    """Another writer changed the same user-month; the caller may retry."""

    code: str = "RECONCILIATION_CONFLICT"
    retryable: bool = True

    def __init__(self, entity_type: str, entity_key: str):
        self.entity_type = entity_type
        self.entity_key = entity_key
        super().__init__(
            f"Conflicting concurrent update on {entity_type} {entity_key}: "
            "entity was modified by another transaction"
        )


# Storage / configuration exceptions


class DocumentStorageError(TimesheetKernelError):
    """Reading, writing, promoting or deleting a stored document failed."""

    code: str = "DOCUMENT_STORAGE_ERROR"

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Document storage failed for {path}: {detail}")


class ConfigurationError(TimesheetKernelError):
    """Configuration file is missing values or holds invalid ones."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, errors: Iterable[str]):
        self.errors = tuple(errors)
        super().__init__(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )
