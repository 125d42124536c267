"""
Module: timesheet_kernel.selectors.timesheet_selector
Responsibility: Read-only queries over timesheets: lookups, approval
    queues, hour statistics and overdue detection.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - An approver's queue never contains the approver's own timesheets.
    - A MANAGER's queue holds only the timesheets of direct reports.

Failure modes:
    - Returns None or an empty result on absence of data (never raises).
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select

from timesheet_kernel.domain.authorization import DEFAULT_CAPABILITY_TABLE, CapabilityTable
from timesheet_kernel.domain.directory import OrgDirectory
from timesheet_kernel.domain.values import (
    ActorContext,
    ApprovalTier,
    Role,
    TimesheetSnapshot,
    TimesheetStatus,
    TransitionKind,
)
from timesheet_kernel.models.timesheet import ApprovalRecordModel, TimesheetModel
from timesheet_kernel.selectors.base import BaseSelector

_S = TimesheetStatus
_ZERO = Decimal("0")

_APPROVED_STATES = frozenset({_S.APPROVED.value, _S.LOCKED.value})
_PENDING_STATES = frozenset({_S.SUBMITTED.value, _S.MANAGER_APPROVED.value})
_DONE_STATES = frozenset(
    {_S.SUBMITTED.value, _S.MANAGER_APPROVED.value, _S.APPROVED.value, _S.LOCKED.value}
)


class EscalationLevel(str, Enum):
    NONE = "none"
    REMINDER = "reminder"
    WARNING = "warning"
    CRITICAL = "critical"


# (days overdue, level), checked from the most severe down
_ESCALATION_STEPS: tuple[tuple[int, EscalationLevel], ...] = (
    (7, EscalationLevel.CRITICAL),
    (5, EscalationLevel.WARNING),
    (3, EscalationLevel.REMINDER),
)


def escalation_level(week_start: date, today: date) -> EscalationLevel:
    """How late a timesheet for ``week_start`` is, counted from the
    Monday after the week ends."""
    due = week_start + timedelta(days=7)
    overdue = (today - due).days
    for threshold, level in _ESCALATION_STEPS:
        if overdue >= threshold:
            return level
    return EscalationLevel.NONE


@dataclass(frozen=True)
class TimesheetStats:
    """Hour statistics of one owner over a date range."""

    owner_id: UUID
    start: date
    end: date
    timesheet_count: int = 0
    total_hours: Decimal = _ZERO
    approved_hours: Decimal = _ZERO
    pending_hours: Decimal = _ZERO
    hours_by_status: dict[str, Decimal] = field(default_factory=dict)
    hours_by_category: dict[str, Decimal] = field(default_factory=dict)


class TimesheetSelector(BaseSelector):
    """Queries for timesheet screens, approval queues and reminders."""

    def get(self, timesheet_id: UUID) -> TimesheetSnapshot | None:
        timesheet = self.session.get(TimesheetModel, timesheet_id)
        return timesheet.to_dto() if timesheet else None

    def for_owner_week(self, owner_id: UUID, week_start: date) -> TimesheetSnapshot | None:
        timesheet = self.session.execute(
            select(TimesheetModel).where(
                TimesheetModel.owner_id == owner_id,
                TimesheetModel.week_start_date == week_start,
            )
        ).scalar_one_or_none()
        return timesheet.to_dto() if timesheet else None

    def list_for_owner(
        self,
        owner_id: UUID,
        start: date | None = None,
        end: date | None = None,
        status: TimesheetStatus | None = None,
    ) -> list[TimesheetSnapshot]:
        """Owner's timesheets, newest week first."""
        stmt = select(TimesheetModel).where(TimesheetModel.owner_id == owner_id)
        if start is not None:
            stmt = stmt.where(TimesheetModel.week_start_date >= start)
        if end is not None:
            stmt = stmt.where(TimesheetModel.week_start_date <= end)
        if status is not None:
            stmt = stmt.where(TimesheetModel.status == TimesheetStatus(status).value)
        stmt = stmt.order_by(TimesheetModel.week_start_date.desc())
        return [t.to_dto() for t in self.session.execute(stmt).scalars()]

    def pending_for_approver(
        self,
        actor: ActorContext,
        directory: OrgDirectory,
        capabilities: CapabilityTable = DEFAULT_CAPABILITY_TABLE,
    ) -> list[TimesheetSnapshot]:
        """
        Timesheets waiting on ``actor``: SUBMITTED ones for manager-tier
        roles and MANAGER_APPROVED ones for final-tier roles, oldest
        submission first.
        """
        snapshots: list[TimesheetSnapshot] = []

        if capabilities.grants(actor.role, TransitionKind.MANAGER_APPROVE):
            stmt = select(TimesheetModel).where(
                TimesheetModel.status == _S.SUBMITTED.value,
                TimesheetModel.owner_id != actor.actor_id,
            )
            if actor.role == Role.MANAGER:
                reports = directory.direct_reports(actor.actor_id)
                if reports:
                    stmt = stmt.where(TimesheetModel.owner_id.in_(reports))
                else:
                    stmt = None
            if stmt is not None:
                snapshots.extend(t.to_dto() for t in self.session.execute(stmt).scalars())

        if capabilities.grants(actor.role, TransitionKind.FINAL_APPROVE):
            stmt = select(TimesheetModel).where(
                TimesheetModel.status == _S.MANAGER_APPROVED.value,
                TimesheetModel.owner_id != actor.actor_id,
            )
            snapshots.extend(t.to_dto() for t in self.session.execute(stmt).scalars())

        return sorted(
            snapshots,
            key=lambda s: (s.submitted_at is None, s.submitted_at, s.week_start_date),
        )

    def stats(self, owner_id: UUID, start: date, end: date) -> TimesheetStats:
        """Hours declared by ``owner_id`` in weeks starting within [start, end]."""
        timesheets = self.session.execute(
            select(TimesheetModel).where(
                TimesheetModel.owner_id == owner_id,
                TimesheetModel.week_start_date >= start,
                TimesheetModel.week_start_date <= end,
            )
        ).scalars().all()

        by_status: dict[str, Decimal] = defaultdict(Decimal)
        by_category: dict[str, Decimal] = defaultdict(Decimal)
        total = approved = pending = _ZERO
        for timesheet in timesheets:
            hours = Decimal(timesheet.total_hours)
            total += hours
            by_status[timesheet.status] += hours
            if timesheet.status in _APPROVED_STATES:
                approved += hours
            elif timesheet.status in _PENDING_STATES:
                pending += hours
            for activity in timesheet.activities:
                by_category[activity.category or "uncategorised"] += Decimal(activity.hours)

        return TimesheetStats(
            owner_id=owner_id,
            start=start,
            end=end,
            timesheet_count=len(timesheets),
            total_hours=total,
            approved_hours=approved,
            pending_hours=pending,
            hours_by_status=dict(by_status),
            hours_by_category=dict(by_category),
        )

    def missing_owners(self, week_start: date, owners: Iterable[UUID]) -> frozenset[UUID]:
        """Owners with no submitted timesheet for the week (missing or DRAFT)."""
        owners = frozenset(owners)
        if not owners:
            return frozenset()
        done = self.session.execute(
            select(TimesheetModel.owner_id).where(
                TimesheetModel.week_start_date == week_start,
                TimesheetModel.owner_id.in_(owners),
                TimesheetModel.status.in_(_DONE_STATES),
            )
        ).scalars().all()
        return owners - frozenset(done)

    def lockable_ids(self, approved_before: datetime) -> list[UUID]:
        """APPROVED timesheets whose final approval predates ``approved_before``.

        The final approval is the latest non-superseded FINAL record; one
        withdrawn by a revert no longer counts.
        """
        record = ApprovalRecordModel
        latest_final = (
            select(
                record.timesheet_id.label("timesheet_id"),
                func.max(record.decided_at).label("decided_at"),
            )
            .where(
                record.tier == ApprovalTier.FINAL.value,
                record.superseded.is_(False),
            )
            .group_by(record.timesheet_id)
            .subquery()
        )
        return list(
            self.session.execute(
                select(TimesheetModel.id)
                .join(latest_final, latest_final.c.timesheet_id == TimesheetModel.id)
                .where(
                    TimesheetModel.status == _S.APPROVED.value,
                    latest_final.c.decided_at <= approved_before,
                )
                .order_by(latest_final.c.decided_at, TimesheetModel.id)
            ).scalars()
        )
