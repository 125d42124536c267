"""
ActivityLedger -- the activities of a timesheet and its derived total.

Responsibility:
    Adds, updates and deletes activities on a DRAFT timesheet, keeps
    ``total_hours`` equal to the sum of the activities and reports
    non-fatal warnings against the daily reference (8h Monday-Friday by
    default).

Architecture position:
    Kernel > Services -- imperative shell.  Called by the outer request
    layer (and by WorkflowEngine.submit to reconfirm the total).

Invariants enforced:
    - Status is re-read in the same transaction before every mutation
      (``populate_existing``), so an edit never lands on a timesheet that
      was submitted concurrently.
    - Only the owner edits, and only while DRAFT.
    - Hours are positive multiples of the granularity, at most 24 per
      activity and 24 per day across activities.
    - ``total_hours == sum(activity.hours)`` after every mutation.  A
      cached total found out of step is an integrity fault: it is logged
      as ``timesheet_total_divergence`` and the recomputed value wins.

Failure modes:
    - TimesheetNotFoundError / ActivityNotFoundError.
    - AuthorizationError (not owner) / TimesheetNotEditableError.
    - ValidationError family for hours, dates and the daily cap.
    - StaleVersionError when another transaction changed the timesheet
      after it was read.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.hours import (
    HoursWarning,
    daily_totals,
    ensure_daily_cap,
    reference_warnings,
    validate_activity_date,
    validate_hours,
)
from timesheet_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from timesheet_kernel.domain.values import (
    ActivityInput,
    ActivityPatch,
    ActivitySnapshot,
    ActorContext,
)
from timesheet_kernel.domain.workflow import is_mutable
from timesheet_kernel.exceptions import (
    ActivityNotFoundError,
    AuthorizationError,
    TimesheetNotEditableError,
    TimesheetNotFoundError,
    ValidationError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.audit_log import AuditAction
from timesheet_kernel.models.timesheet import ActivityModel, TimesheetModel
from timesheet_kernel.services.audit_recorder import AuditRecorder, diff
from timesheet_kernel.services.base import BaseService

logger = get_logger("services.activity_ledger")

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of one ledger mutation."""

    activity: ActivitySnapshot | None
    total_hours: Decimal
    warnings: tuple[HoursWarning, ...] = ()


def _activity_fields(activity: ActivityModel) -> dict:
    return {
        "activity_date": activity.activity_date,
        "hours": Decimal(activity.hours),
        "description": activity.description,
        "category": activity.category,
        "task_id": activity.task_id,
    }


class ActivityLedger(BaseService):
    """Owner-side editing of a DRAFT timesheet's activities."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auditor: AuditRecorder | None = None,
        policy: WorkflowPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self.policy = policy
        self.auditor = auditor or AuditRecorder(session, self.clock, policy.audit_mode)

    # ------------------------------------------------------------------
    # Loading and guards
    # ------------------------------------------------------------------

    def _load_timesheet(self, timesheet_id: UUID) -> TimesheetModel:
        timesheet = self.session.execute(
            select(TimesheetModel)
            .where(TimesheetModel.id == timesheet_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if timesheet is None:
            raise TimesheetNotFoundError(str(timesheet_id))
        return timesheet

    def _load_activity(self, activity_id: UUID) -> ActivityModel:
        activity = self.session.get(ActivityModel, activity_id)
        if activity is None:
            raise ActivityNotFoundError(str(activity_id))
        return activity

    def _ensure_editable(self, timesheet: TimesheetModel, actor: ActorContext) -> None:
        if actor.actor_id != timesheet.owner_id:
            raise AuthorizationError(
                "cannot edit activities: only the timesheet owner may do this",
                actor_id=str(actor.actor_id),
            )
        if not is_mutable(timesheet.status_enum):
            raise TimesheetNotEditableError(
                str(timesheet.id), timesheet.status, actor_id=str(actor.actor_id),
            )

    def _validate_entry(
        self,
        timesheet: TimesheetModel,
        activity_date: date,
        hours,
        replacing: ActivityModel | None = None,
    ) -> Decimal:
        """Validate one entry against the week and the per-day cap."""
        if not isinstance(activity_date, date):
            raise ValidationError("activity_date is required", field="activity_date")
        validated = validate_hours(
            hours, self.policy.hour_granularity, self.policy.max_daily_hours,
        )
        validate_activity_date(
            activity_date, timesheet.week_start_date, timesheet.week_end_date,
        )
        entries = [
            (a.activity_date, Decimal(a.hours))
            for a in timesheet.activities
            if a is not replacing
        ]
        entries.append((activity_date, validated))
        ensure_daily_cap(daily_totals(entries), self.policy.max_daily_hours)
        return validated

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    @staticmethod
    def _sum(timesheet: TimesheetModel) -> Decimal:
        total = sum((Decimal(a.hours) for a in timesheet.activities), Decimal("0"))
        return total.quantize(_CENT)

    def reconcile_total(self, timesheet: TimesheetModel) -> Decimal:
        """Compare the cached total with the activities; recomputed wins."""
        actual = self._sum(timesheet)
        cached = Decimal(timesheet.total_hours).quantize(_CENT)
        if cached != actual:
            logger.error(
                "timesheet_total_divergence",
                extra={
                    "timesheet_id": str(timesheet.id),
                    "cached_total": cached,
                    "recomputed_total": actual,
                },
            )
            timesheet.total_hours = actual
        return actual

    def _apply_total(self, timesheet: TimesheetModel) -> Decimal:
        total = self._sum(timesheet)
        timesheet.total_hours = total
        timesheet.updated_at = self.clock.now()
        # Versioned UPDATE even when the total is unchanged.
        flag_modified(timesheet, "updated_at")
        return total

    def _warnings(self, timesheet: TimesheetModel) -> tuple[HoursWarning, ...]:
        totals = daily_totals(
            (a.activity_date, Decimal(a.hours)) for a in timesheet.activities
        )
        return reference_warnings(
            totals,
            self.policy.daily_reference_hours,
            self.policy.working_weekdays,
        )

    def recompute_total(self, timesheet_id: UUID) -> Decimal:
        """
        Re-derive ``total_hours`` from the activities.

        Postconditions:
            - The stored total equals the sum of the activities.
            - A divergence found on the way was logged at ERROR.
        """
        timesheet = self._load_timesheet(timesheet_id)
        total = self.reconcile_total(timesheet)
        self._flush_versioned(timesheet.id)
        return total

    def warnings_for(self, timesheet_id: UUID) -> tuple[HoursWarning, ...]:
        """Reference-hour warnings of a timesheet, without changing it."""
        return self._warnings(self._load_timesheet(timesheet_id))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_activity(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        activity: ActivityInput,
    ) -> LedgerResult:
        """Append one activity to a DRAFT timesheet."""
        with LogContext.bind(timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id)):
            timesheet = self._load_timesheet(timesheet_id)
            self._ensure_editable(timesheet, actor)
            hours = self._validate_entry(timesheet, activity.activity_date, activity.hours)
            old_total = self.reconcile_total(timesheet)

            now = self.clock.now()
            model = ActivityModel(
                activity_date=activity.activity_date,
                hours=hours,
                description=activity.description or "",
                category=activity.category,
                task_id=activity.task_id,
                created_at=now,
                updated_at=now,
            )
            timesheet.activities.append(model)
            new_total = self._apply_total(timesheet)
            self._flush_versioned(timesheet.id)

            self.auditor.record(
                actor,
                AuditAction.CREATE,
                "Activity",
                model.id,
                {
                    "timesheet_id": timesheet.id,
                    **{k: {"old": None, "new": v} for k, v in _activity_fields(model).items()},
                    "total_hours": {"old": old_total, "new": new_total},
                },
            )

            logger.info(
                "activity_added",
                extra={
                    "activity_id": str(model.id),
                    "activity_date": model.activity_date,
                    "hours": hours,
                    "total_hours": new_total,
                },
            )
            return LedgerResult(model.to_dto(), new_total, self._warnings(timesheet))

    def update_activity(
        self,
        activity_id: UUID,
        actor: ActorContext,
        patch: ActivityPatch,
    ) -> LedgerResult:
        """Change fields of one activity.  ``None`` fields stay unchanged."""
        activity = self._load_activity(activity_id)
        with LogContext.bind(
            timesheet_id=str(activity.timesheet_id), actor_id=str(actor.actor_id),
        ):
            timesheet = self._load_timesheet(activity.timesheet_id)
            self._ensure_editable(timesheet, actor)

            activity_date = patch.activity_date or activity.activity_date
            hours = patch.hours if patch.hours is not None else activity.hours
            hours = self._validate_entry(timesheet, activity_date, hours, replacing=activity)
            old_total = self.reconcile_total(timesheet)
            before = _activity_fields(activity)

            activity.activity_date = activity_date
            activity.hours = hours
            if patch.description is not None:
                activity.description = patch.description
            if patch.category is not None:
                activity.category = patch.category
            if patch.task_id is not None:
                activity.task_id = patch.task_id
            activity.updated_at = self.clock.now()

            new_total = self._apply_total(timesheet)
            self._flush_versioned(timesheet.id)

            changes = diff(before, _activity_fields(activity))
            if new_total != old_total:
                changes["total_hours"] = {"old": old_total, "new": new_total}
            self.auditor.record(actor, AuditAction.UPDATE, "Activity", activity.id, changes)

            logger.info(
                "activity_updated",
                extra={
                    "activity_id": str(activity.id),
                    "changed_fields": sorted(changes),
                    "total_hours": new_total,
                },
            )
            return LedgerResult(activity.to_dto(), new_total, self._warnings(timesheet))

    def delete_activity(self, activity_id: UUID, actor: ActorContext) -> LedgerResult:
        """Remove one activity from a DRAFT timesheet."""
        activity = self._load_activity(activity_id)
        with LogContext.bind(
            timesheet_id=str(activity.timesheet_id), actor_id=str(actor.actor_id),
        ):
            timesheet = self._load_timesheet(activity.timesheet_id)
            self._ensure_editable(timesheet, actor)
            old_total = self.reconcile_total(timesheet)
            before = _activity_fields(activity)

            timesheet.activities.remove(activity)
            new_total = self._apply_total(timesheet)
            self._flush_versioned(timesheet.id)

            self.auditor.record(
                actor,
                AuditAction.DELETE,
                "Activity",
                activity_id,
                {
                    "timesheet_id": timesheet.id,
                    **{k: {"old": v, "new": None} for k, v in before.items()},
                    "total_hours": {"old": old_total, "new": new_total},
                },
            )

            logger.info(
                "activity_deleted",
                extra={"activity_id": str(activity_id), "total_hours": new_total},
            )
            return LedgerResult(None, new_total, self._warnings(timesheet))
