"""
Typed Exception Hierarchy for the Timesheet Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

An approval workflow must tell its caller precisely why a request was
refused, so the UI or API client can render an actionable message.
Callers catch by type and read structured attributes; they never parse
message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

Example:
    try:
        engine.manager_approve(timesheet_id, actor, ApprovalDecision.APPROVE)
    except StateConflictError as e:
        ui.refresh_and_show(e.code, e.timesheet_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TimesheetKernelError (base)
    |
    +-- ValidationError
    |   +-- WeekAlignmentError
    |   +-- HourGranularityError
    |   +-- MissingCommentError
    |   +-- DuplicateTimesheetError
    |
    +-- AuthorizationError
    |   +-- TransitionNotPermittedError
    |   +-- TimesheetNotEditableError
    |
    +-- StateConflictError
    |   +-- InvalidTransitionError
    |   +-- StaleVersionError
    |
    +-- NotFoundError
    |   +-- TimesheetNotFoundError
    |   +-- ActivityNotFoundError
    |
    +-- ImmutabilityViolationError
    |
    +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed input, guard on content failed
                | WEEK_ALIGNMENT              | Week not Monday..Sunday
                | HOUR_GRANULARITY            | Hours not a multiple of 0.25
                | MISSING_COMMENT             | Reject/revert without comment/reason
                | DUPLICATE_TIMESHEET         | Owner already has this week
----------------|-----------------------------|-----------------------------------------
Authorization   | AUTHORIZATION_ERROR         | Role/ownership guard failed
                | TRANSITION_NOT_PERMITTED    | Capability table denied transition
                | TIMESHEET_NOT_EDITABLE      | Activity mutation on non-DRAFT
----------------|-----------------------------|-----------------------------------------
State           | STATE_CONFLICT              | Generic state conflict
                | INVALID_TRANSITION          | Transition invalid from current state
                | STALE_VERSION               | Optimistic version mismatch
----------------|-----------------------------|-----------------------------------------
Lookup          | TIMESHEET_NOT_FOUND         | Timesheet id absent
                | ACTIVITY_NOT_FOUND          | Activity id absent
----------------|-----------------------------|-----------------------------------------
Integrity       | IMMUTABILITY_VIOLATION      | UPDATE/DELETE on append-only record
                | AUDIT_CHAIN_BROKEN          | Audit hash chain validation failed
"""

from __future__ import annotations


class TimesheetKernelError(Exception):
    """
    Base exception for all timesheet kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TIMESHEET_KERNEL_ERROR"


# Validation errors


class ValidationError(TimesheetKernelError):
    """Malformed input detected before any write."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class WeekAlignmentError(ValidationError):
    """Timesheet week does not span exactly one Monday..Sunday week."""

    code: str = "WEEK_ALIGNMENT"

    def __init__(self, week_start: str, reason: str):
        self.week_start = week_start
        self.reason = reason
        super().__init__(
            f"Invalid week starting {week_start}: {reason}",
            field="week_start_date",
        )


class HourGranularityError(ValidationError):
    """Declared hours are not a positive multiple of the granularity."""

    code: str = "HOUR_GRANULARITY"

    def __init__(self, hours: str, reason: str):
        self.hours = hours
        self.reason = reason
        super().__init__(f"Invalid hours {hours}: {reason}", field="hours")


class MissingCommentError(ValidationError):
    """A rejection or revert was requested without explanation."""

    code: str = "MISSING_COMMENT"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"cannot {operation}: a comment is required", field="comment",
        )


class DuplicateTimesheetError(ValidationError):
    """Owner already has a timesheet for this week."""

    code: str = "DUPLICATE_TIMESHEET"

    def __init__(self, owner_id: str, week_start: str):
        self.owner_id = owner_id
        self.week_start = week_start
        super().__init__(
            f"A timesheet already exists for owner {owner_id} "
            f"and week starting {week_start}",
            field="week_start_date",
        )


# Authorization errors


class AuthorizationError(TimesheetKernelError):
    """Role or ownership guard failed."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, message: str, actor_id: str | None = None):
        self.actor_id = actor_id
        super().__init__(message)


class TransitionNotPermittedError(AuthorizationError):
    """The capability table (or self-approval rule) denied the transition."""

    code: str = "TRANSITION_NOT_PERMITTED"

    def __init__(self, actor_id: str, role: str, transition: str, reason: str):
        self.role = role
        self.transition = transition
        self.reason = reason
        super().__init__(
            f"cannot {transition}: {reason}", actor_id=actor_id,
        )


class TimesheetNotEditableError(AuthorizationError):
    """Activity mutation attempted on a timesheet that is not DRAFT."""

    code: str = "TIMESHEET_NOT_EDITABLE"

    def __init__(self, timesheet_id: str, status: str, actor_id: str | None = None):
        self.timesheet_id = timesheet_id
        self.status = status
        super().__init__(
            f"Timesheet {timesheet_id} is {status} and can no longer be modified",
            actor_id=actor_id,
        )


# State conflicts


class StateConflictError(TimesheetKernelError):
    """The timesheet is not in a state that allows the request."""

    code: str = "STATE_CONFLICT"

    def __init__(self, timesheet_id: str, message: str):
        self.timesheet_id = timesheet_id
        super().__init__(message)


class InvalidTransitionError(StateConflictError):
    """Transition is not valid from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, timesheet_id: str, current_status: str, transition: str, hint: str):
        self.current_status = current_status
        self.transition = transition
        super().__init__(
            timesheet_id,
            f"cannot {transition}: {hint} (current status {current_status})",
        )


class StaleVersionError(StateConflictError):
    """Optimistic concurrency check failed."""

    code: str = "STALE_VERSION"

    def __init__(
        self,
        timesheet_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            timesheet_id,
            f"Timesheet {timesheet_id} was modified by another transaction "
            f"(expected version {expected_version}, found {actual_version}); "
            "refresh and decide again",
        )


# Lookup errors


class NotFoundError(TimesheetKernelError):
    """Referenced entity is absent."""

    code: str = "NOT_FOUND"


class TimesheetNotFoundError(NotFoundError):
    """Timesheet with given ID was not found."""

    code: str = "TIMESHEET_NOT_FOUND"

    def __init__(self, timesheet_id: str):
        self.timesheet_id = timesheet_id
        super().__init__(f"Timesheet not found: {timesheet_id}")


class ActivityNotFoundError(NotFoundError):
    """Activity with given ID was not found."""

    code: str = "ACTIVITY_NOT_FOUND"

    def __init__(self, activity_id: str):
        self.activity_id = activity_id
        super().__init__(f"Activity not found: {activity_id}")


# Integrity errors


class ImmutabilityViolationError(TimesheetKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


class AuditChainBrokenError(TimesheetKernelError):
    """Audit log hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_entry_id: str, expected_hash: str, actual_hash: str):
        self.audit_entry_id = audit_entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_entry_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
