"""
Timesheet domain values (``timesheet_kernel.domain.values``).

Responsibility
--------------
Enumerations and frozen snapshots shared by every layer: statuses,
roles, transition kinds, approval decisions, the caller's
``ActorContext`` and read-only snapshots returned by services.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TimesheetStatus(str, Enum):
    """Timesheet lifecycle states."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    LOCKED = "LOCKED"


class Role(str, Enum):
    """Roles an identity provider may assert for an actor.

    ``SYSTEM`` is never issued to a person; it identifies scheduled
    processes such as the lock sweep.
    """

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    DIRECTEUR = "DIRECTEUR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class TransitionKind(str, Enum):
    """Every state-changing operation of the workflow."""

    SUBMIT = "submit"
    CANCEL_SUBMISSION = "cancel_submission"
    MANAGER_APPROVE = "manager_approve"
    MANAGER_REJECT = "manager_reject"
    FINAL_APPROVE = "final_approve"
    FINAL_REJECT = "final_reject"
    LOCK = "lock"
    REVERT = "revert"


class ApprovalDecision(str, Enum):
    """Decision types that an approver can make."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ApprovalTier(str, Enum):
    """Which review stage produced an approval record."""

    MANAGER = "MANAGER"
    FINAL = "FINAL"


@dataclass(frozen=True)
class ActorContext:
    """Identity and request provenance for one call.

    Supplied by the session provider; no operation accepts a
    self-asserted role.
    """

    actor_id: UUID | None
    role: Role
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def system(cls) -> ActorContext:
        return cls(actor_id=None, role=Role.SYSTEM, user_agent="timesheet-scheduler")

    @property
    def is_system(self) -> bool:
        return self.role == Role.SYSTEM


@dataclass(frozen=True)
class TimesheetDetails:
    """Free-text header fields of a timesheet."""

    employee_name: str = ""
    position: str = ""
    site: str = ""
    employee_observations: str | None = None


@dataclass(frozen=True)
class ActivityInput:
    """A new activity as submitted by the owner."""

    activity_date: date
    hours: Decimal
    description: str = ""
    category: str | None = None
    task_id: UUID | None = None


@dataclass(frozen=True)
class ActivityPatch:
    """Partial update of an activity.  ``None`` means "unchanged"."""

    activity_date: date | None = None
    hours: Decimal | None = None
    description: str | None = None
    category: str | None = None
    task_id: UUID | None = None


@dataclass(frozen=True)
class ActivitySnapshot:
    activity_id: UUID
    timesheet_id: UUID
    activity_date: date
    hours: Decimal
    description: str
    category: str | None = None
    task_id: UUID | None = None


@dataclass(frozen=True)
class ApprovalRecordSnapshot:
    """Record of a single approval decision. Immutable."""

    record_id: UUID
    timesheet_id: UUID
    tier: ApprovalTier
    actor_id: UUID
    actor_role: Role
    decision: ApprovalDecision
    comment: str | None
    decided_at: datetime
    superseded: bool = False


@dataclass(frozen=True)
class TimesheetSnapshot:
    """Read-only view of a timesheet and its children."""

    timesheet_id: UUID
    owner_id: UUID
    week_start_date: date
    week_end_date: date
    status: TimesheetStatus
    total_hours: Decimal
    version: int
    details: TimesheetDetails = field(default_factory=TimesheetDetails)
    submitted_at: datetime | None = None
    locked_at: datetime | None = None
    manager_approval: ApprovalRecordSnapshot | None = None
    final_approval: ApprovalRecordSnapshot | None = None
    activities: tuple[ActivitySnapshot, ...] = ()
