"""
Module: timesheet_kernel.models.timesheet
Responsibility: ORM persistence for timesheets, their activities and the
    approval records produced by reviewers.
Architecture position: Kernel > Models.  May import from db/, domain/values
    and exceptions only.

Invariants enforced:
    - One timesheet per (owner, week): UNIQUE(owner_id, week_start_date).
    - Optimistic concurrency: ``version`` is the mapper's version_id_col, so
      status and version are written in the same UPDATE and a stale write
      raises StaleDataError.
    - A LOCKED timesheet row is never updated or deleted (ORM listener).
    - Approval records are append-only.  The only permitted change is
      marking a record superseded when an administrator reverts.

Failure modes:
    - IntegrityError on duplicate (owner, week).
    - StaleDataError when another transaction committed first.
    - ImmutabilityViolationError on forbidden UPDATE/DELETE.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timesheet_kernel.db.base import Base, TrackedBase, UUIDString
from timesheet_kernel.db.types import UTCDateTime
from timesheet_kernel.domain.values import (
    ActivitySnapshot,
    ApprovalDecision,
    ApprovalRecordSnapshot,
    ApprovalTier,
    Role,
    TimesheetDetails,
    TimesheetSnapshot,
    TimesheetStatus,
)
from timesheet_kernel.exceptions import ImmutabilityViolationError


class TimesheetModel(TrackedBase):
    """Weekly activity report of one employee.

    Contract:
        ``total_hours`` is derived from the activities and maintained by
        ActivityLedger; it is frozen from SUBMITTED onwards.

    Guarantees:
        - ``version`` increments on every UPDATE of the row.
        - Current approval records are the latest non-superseded record
          of each tier.
    """

    __tablename__ = "timesheets"

    __table_args__ = (
        UniqueConstraint(
            "owner_id", "week_start_date", name="uq_timesheets_owner_week",
        ),
        CheckConstraint(
            "status IN ('DRAFT', 'SUBMITTED', 'MANAGER_APPROVED', "
            "'APPROVED', 'REJECTED', 'LOCKED')",
            name="ck_timesheets_valid_status",
        ),
        CheckConstraint("total_hours >= 0", name="ck_timesheets_total_non_negative"),
        Index("ix_timesheets_status", "status"),
        Index("ix_timesheets_owner_status", "owner_id", "status"),
    )

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TimesheetStatus.DRAFT.value,
    )
    total_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    employee_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    position: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    site: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    employee_observations: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    activities: Mapped[list[ActivityModel]] = relationship(
        "ActivityModel",
        back_populates="timesheet",
        cascade="all, delete-orphan",
        order_by="ActivityModel.activity_date",
        lazy="selectin",
    )

    approval_records: Mapped[list[ApprovalRecordModel]] = relationship(
        "ApprovalRecordModel",
        back_populates="timesheet",
        order_by="ApprovalRecordModel.decided_at",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Timesheet {self.id} owner={self.owner_id} "
            f"week={self.week_start_date} status={self.status} v{self.version}>"
        )

    @property
    def status_enum(self) -> TimesheetStatus:
        return TimesheetStatus(self.status)

    def current_approval(self, tier: ApprovalTier) -> ApprovalRecordModel | None:
        """Latest non-superseded approval record of ``tier``."""
        current = [
            r for r in self.approval_records
            if r.tier == tier.value and not r.superseded
        ]
        return current[-1] if current else None

    @property
    def details(self) -> TimesheetDetails:
        return TimesheetDetails(
            employee_name=self.employee_name,
            position=self.position,
            site=self.site,
            employee_observations=self.employee_observations,
        )

    def to_dto(self) -> TimesheetSnapshot:
        """Convert ORM model to frozen domain DTO."""
        manager = self.current_approval(ApprovalTier.MANAGER)
        final = self.current_approval(ApprovalTier.FINAL)
        return TimesheetSnapshot(
            timesheet_id=self.id,
            owner_id=self.owner_id,
            week_start_date=self.week_start_date,
            week_end_date=self.week_end_date,
            status=self.status_enum,
            total_hours=Decimal(self.total_hours),
            version=self.version,
            details=self.details,
            submitted_at=self.submitted_at,
            locked_at=self.locked_at,
            manager_approval=manager.to_dto() if manager else None,
            final_approval=final.to_dto() if final else None,
            activities=tuple(a.to_dto() for a in self.activities),
        )


class ActivityModel(TrackedBase):
    """One declared block of work inside a timesheet's week."""

    __tablename__ = "timesheet_activities"

    __table_args__ = (
        CheckConstraint("hours > 0 AND hours <= 24", name="ck_activities_hours_range"),
        Index("ix_activities_timesheet_date", "timesheet_id", "activity_date"),
    )

    timesheet_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False,
    )
    task_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    timesheet: Mapped[TimesheetModel] = relationship(
        "TimesheetModel", back_populates="activities",
    )

    def __repr__(self) -> str:
        return f"<Activity {self.id} {self.activity_date} {self.hours}h>"

    def to_dto(self) -> ActivitySnapshot:
        """Convert ORM model to frozen domain DTO."""
        return ActivitySnapshot(
            activity_id=self.id,
            timesheet_id=self.timesheet_id,
            activity_date=self.activity_date,
            hours=Decimal(self.hours),
            description=self.description,
            category=self.category,
            task_id=self.task_id,
        )


class ApprovalRecordModel(Base):
    """Persistent approval decision. Append-only.

    Contract:
        Records are never deleted.  A revert flips ``superseded`` to True;
        no other column ever changes after INSERT.
    """

    __tablename__ = "timesheet_approval_records"

    __table_args__ = (
        CheckConstraint(
            "tier IN ('MANAGER', 'FINAL')", name="ck_approval_records_tier",
        ),
        CheckConstraint(
            "decision IN ('APPROVE', 'REJECT')", name="ck_approval_records_decision",
        ),
        Index("ix_approval_records_timesheet", "timesheet_id", "tier"),
    )

    timesheet_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("timesheets.id"), nullable=False,
    )
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    superseded: Mapped[bool] = mapped_column(nullable=False, default=False)

    timesheet: Mapped[TimesheetModel] = relationship(
        "TimesheetModel", back_populates="approval_records",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalRecord {self.id} {self.tier}/{self.decision} "
            f"timesheet={self.timesheet_id}>"
        )

    def to_dto(self) -> ApprovalRecordSnapshot:
        """Convert ORM model to frozen domain DTO."""
        return ApprovalRecordSnapshot(
            record_id=self.id,
            timesheet_id=self.timesheet_id,
            tier=ApprovalTier(self.tier),
            actor_id=self.actor_id,
            actor_role=Role(self.actor_role),
            decision=ApprovalDecision(self.decision),
            comment=self.comment,
            decided_at=self.decided_at,
            superseded=self.superseded,
        )


# =============================================================================
# ORM-Level Immutability
# =============================================================================


def _previous_value(target, key: str):
    history = inspect(target).attrs[key].history
    previous = history.deleted or history.unchanged
    return previous[0] if previous else None


@event.listens_for(TimesheetModel, "before_update")
def prevent_locked_timesheet_update(mapper, connection, target):
    """A LOCKED timesheet is final."""
    if _previous_value(target, "status") == TimesheetStatus.LOCKED.value:
        raise ImmutabilityViolationError(
            entity_type="Timesheet",
            entity_id=str(target.id),
            reason="Locked timesheets cannot be modified",
        )


@event.listens_for(TimesheetModel, "before_delete")
def prevent_locked_timesheet_delete(mapper, connection, target):
    if _previous_value(target, "status") == TimesheetStatus.LOCKED.value:
        raise ImmutabilityViolationError(
            entity_type="Timesheet",
            entity_id=str(target.id),
            reason="Locked timesheets cannot be deleted",
        )


@event.listens_for(ApprovalRecordModel, "before_update")
def prevent_approval_record_update(mapper, connection, target):
    """Only the superseded flag may change, and only from False to True."""
    state = inspect(target)
    changed = {
        attr.key for attr in mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    }
    reopened = state.attrs["superseded"].history.deleted
    if changed - {"superseded"} or (reopened and reopened[0]):
        raise ImmutabilityViolationError(
            entity_type="ApprovalRecord",
            entity_id=str(target.id),
            reason="Approval records are append-only -- only supersession is allowed",
        )


@event.listens_for(ApprovalRecordModel, "before_delete")
def prevent_approval_record_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="ApprovalRecord",
        entity_id=str(target.id),
        reason="Approval records are append-only -- cannot delete",
    )
