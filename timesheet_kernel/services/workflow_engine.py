"""
WorkflowEngine -- the timesheet approval state machine.

Responsibility:
    Moves a timesheet through DRAFT -> SUBMITTED -> MANAGER_APPROVED ->
    APPROVED -> LOCKED (with REJECTED reachable from both review stages
    and an administrative revert), and owns the timesheet header
    lifecycle (create, edit details, delete while DRAFT).

Architecture position:
    Kernel > Services -- imperative shell.  Each operation:

        load (fresh read) -> expected_version check -> AuthorizationGate
        -> workflow edge + guards -> apply -> flush (version bump)
        -> AuditRecorder -> queue TransitionOutcome

    The outcome is handed to ``on_transition`` (normally
    ``WorkflowUnitOfWork``), which dispatches notifications and cache
    invalidation only after the caller's transaction commits.

Invariants enforced:
    - Every transition is authorized by the capability table before any
      guard runs; self-approval is always denied.
    - Status and version are written in one UPDATE (version_id_col).  A
      concurrent writer makes the flush fail with StaleVersionError; the
      engine never retries.
    - The transition is flushed before the audit write, so a conflict
      produces no audit entry, no event and no invalidation.
    - Approval records are appended, never rewritten; a revert marks the
      records at or after the target tier as superseded.
    - A LOCKED timesheet never changes again.

Failure modes:
    - ValidationError family: missing comment or reason, no activities,
      zero total, future week, no manager, duplicate week.
    - AuthorizationError family: capability denied, not the owner, not
      the owner's manager, not editable.
    - StateConflictError family: wrong status, lock window not elapsed,
      stale version.  After StaleVersionError the session must be rolled
      back by the caller.
    - NotFoundError family.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.directory import OrgDirectory, StaticOrgDirectory
from timesheet_kernel.domain.hours import week_end_for
from timesheet_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from timesheet_kernel.domain.values import (
    ActorContext,
    ApprovalDecision,
    ApprovalTier,
    Role,
    TimesheetDetails,
    TimesheetSnapshot,
    TimesheetStatus,
    TransitionKind,
)
from timesheet_kernel.domain.workflow import (
    TIMESHEET_WORKFLOW,
    Transition,
    is_mutable,
    revert_targets,
)
from timesheet_kernel.exceptions import (
    AuthorizationError,
    DuplicateTimesheetError,
    InvalidTransitionError,
    MissingCommentError,
    StaleVersionError,
    StateConflictError,
    TimesheetNotEditableError,
    TimesheetNotFoundError,
    TransitionNotPermittedError,
    ValidationError,
)
from timesheet_kernel.logging_config import LogContext, get_logger
from timesheet_kernel.models.audit_log import AuditAction
from timesheet_kernel.models.timesheet import ApprovalRecordModel, TimesheetModel
from timesheet_kernel.services.activity_ledger import ActivityLedger
from timesheet_kernel.services.audit_recorder import AuditRecorder, diff
from timesheet_kernel.services.base import BaseService

logger = get_logger("services.workflow_engine")

_S = TimesheetStatus
_K = TransitionKind

# Status a review stage must find the timesheet in, phrased for the caller.
_STAGE_HINTS: dict[TransitionKind, str] = {
    _K.SUBMIT: "only a draft timesheet can be submitted",
    _K.CANCEL_SUBMISSION: "timesheet is not awaiting manager review",
    _K.MANAGER_APPROVE: "timesheet is not pending manager review",
    _K.MANAGER_REJECT: "timesheet is not pending manager review",
    _K.FINAL_APPROVE: "timesheet is not awaiting final approval",
    _K.FINAL_REJECT: "timesheet is not awaiting final approval",
    _K.LOCK: "only an approved timesheet can be locked",
    _K.REVERT: "timesheet cannot be reverted from its current status",
}

_AUDIT_ACTIONS: dict[TransitionKind, AuditAction] = {
    _K.SUBMIT: AuditAction.SUBMIT,
    _K.CANCEL_SUBMISSION: AuditAction.CANCEL,
    _K.MANAGER_APPROVE: AuditAction.APPROVE,
    _K.MANAGER_REJECT: AuditAction.REJECT,
    _K.FINAL_APPROVE: AuditAction.APPROVE,
    _K.FINAL_REJECT: AuditAction.REJECT,
    _K.LOCK: AuditAction.LOCK,
    _K.REVERT: AuditAction.REVERT,
}

# Records of these tiers are superseded when reverting to the key status.
_SUPERSEDED_TIERS: dict[TimesheetStatus, frozenset[ApprovalTier]] = {
    _S.DRAFT: frozenset({ApprovalTier.MANAGER, ApprovalTier.FINAL}),
    _S.SUBMITTED: frozenset({ApprovalTier.MANAGER, ApprovalTier.FINAL}),
    _S.MANAGER_APPROVED: frozenset({ApprovalTier.FINAL}),
}

# Roles that review any employee; MANAGER reviews direct reports only.
_ORG_WIDE_REVIEWERS = frozenset({Role.HR, Role.DIRECTEUR, Role.ADMIN})


@dataclass(frozen=True)
class TransitionOutcome:
    """What happened, for post-commit notification and cache invalidation."""

    kind: TransitionKind
    timesheet: TimesheetSnapshot
    from_status: TimesheetStatus
    to_status: TimesheetStatus
    actor: ActorContext
    occurred_at: datetime
    decision: ApprovalDecision | None = None
    comment: str | None = None
    superseded_record_ids: tuple[UUID, ...] = field(default=())

    @property
    def timesheet_id(self) -> UUID:
        return self.timesheet.timesheet_id

    @property
    def owner_id(self) -> UUID:
        return self.timesheet.owner_id

    @property
    def version(self) -> int:
        return self.timesheet.version


class WorkflowEngine(BaseService):
    """
    Applies workflow transitions to persisted timesheets.

    Non-goals:
        - Does NOT call ``session.commit()`` -- the unit of work does.
        - Does NOT deliver notifications or touch caches; it only reports
          outcomes through ``on_transition``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        directory: OrgDirectory | None = None,
        policy: WorkflowPolicy = DEFAULT_POLICY,
        auditor: AuditRecorder | None = None,
        ledger: ActivityLedger | None = None,
        on_transition: Callable[[TransitionOutcome], None] | None = None,
    ):
        super().__init__(session, clock)
        self.policy = policy
        self.directory = directory or StaticOrgDirectory()
        self.auditor = auditor or AuditRecorder(session, self.clock, policy.audit_mode)
        self.ledger = ledger or ActivityLedger(session, self.clock, self.auditor, policy)
        self._on_transition = on_transition

    # ------------------------------------------------------------------
    # Loading and checks
    # ------------------------------------------------------------------

    def _load(self, timesheet_id: UUID) -> TimesheetModel:
        timesheet = self.session.execute(
            select(TimesheetModel)
            .where(TimesheetModel.id == timesheet_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if timesheet is None:
            raise TimesheetNotFoundError(str(timesheet_id))
        return timesheet

    @staticmethod
    def _check_version(timesheet: TimesheetModel, expected_version: int | None) -> None:
        if expected_version is not None and timesheet.version != expected_version:
            raise StaleVersionError(
                str(timesheet.id),
                expected_version=expected_version,
                actual_version=timesheet.version,
            )

    def _authorize(
        self, timesheet: TimesheetModel, actor: ActorContext, kind: TransitionKind,
    ) -> None:
        decision = self.policy.capabilities.can_transition(
            actor.role, actor.actor_id, timesheet.owner_id, timesheet.status_enum, kind,
        )
        if not decision:
            logger.warning(
                "transition_denied",
                extra={
                    "transition": kind.value,
                    "role": actor.role.value,
                    "status": timesheet.status,
                    "reason": decision.reason,
                },
            )
            raise TransitionNotPermittedError(
                str(actor.actor_id), actor.role.value, kind.value, decision.reason,
            )

    def _ensure_reviews_owner(
        self, timesheet: TimesheetModel, actor: ActorContext, kind: TransitionKind,
    ) -> None:
        if actor.role in _ORG_WIDE_REVIEWERS:
            return
        if self.directory.manager_of(timesheet.owner_id) != actor.actor_id:
            raise TransitionNotPermittedError(
                str(actor.actor_id),
                actor.role.value,
                kind.value,
                "only the employee's manager may review this timesheet",
            )

    @staticmethod
    def _edge(timesheet: TimesheetModel, kind: TransitionKind) -> Transition:
        transition = TIMESHEET_WORKFLOW.find(kind, timesheet.status_enum)
        if transition is None:
            raise InvalidTransitionError(
                str(timesheet.id), timesheet.status, kind.value, _STAGE_HINTS[kind],
            )
        return transition

    def _ensure_owner_draft(self, timesheet: TimesheetModel, actor: ActorContext) -> None:
        if actor.actor_id != timesheet.owner_id:
            raise AuthorizationError(
                "only the timesheet owner may do this", actor_id=str(actor.actor_id),
            )
        if not is_mutable(timesheet.status_enum):
            raise TimesheetNotEditableError(
                str(timesheet.id), timesheet.status, actor_id=str(actor.actor_id),
            )

    # ------------------------------------------------------------------
    # Shared transition tail
    # ------------------------------------------------------------------

    def _complete(
        self,
        timesheet: TimesheetModel,
        actor: ActorContext,
        kind: TransitionKind,
        from_status: TimesheetStatus,
        old_version: int,
        expected_version: int | None,
        extra_changes: dict | None = None,
        decision: ApprovalDecision | None = None,
        comment: str | None = None,
        superseded: tuple[UUID, ...] = (),
    ) -> TimesheetSnapshot:
        now = timesheet.updated_at
        self._flush_versioned(timesheet.id, expected_version)

        changes = {
            "status": {"old": from_status.value, "new": timesheet.status},
            "version": {"old": old_version, "new": timesheet.version},
        }
        changes.update(extra_changes or {})
        self.auditor.record(actor, _AUDIT_ACTIONS[kind], "Timesheet", timesheet.id, changes)

        snapshot = timesheet.to_dto()
        logger.info(
            "timesheet_transitioned",
            extra={
                "transition": kind.value,
                "from_status": from_status.value,
                "to_status": timesheet.status,
                "version": timesheet.version,
            },
        )
        if self._on_transition is not None:
            self._on_transition(
                TransitionOutcome(
                    kind=kind,
                    timesheet=snapshot,
                    from_status=from_status,
                    to_status=snapshot.status,
                    actor=actor,
                    occurred_at=now,
                    decision=decision,
                    comment=comment,
                    superseded_record_ids=superseded,
                )
            )
        return snapshot

    # ------------------------------------------------------------------
    # Timesheet header lifecycle
    # ------------------------------------------------------------------

    def create_timesheet(
        self,
        actor: ActorContext,
        week_start: date,
        details: TimesheetDetails | None = None,
    ) -> TimesheetSnapshot:
        """
        Open a DRAFT timesheet for the actor's week starting ``week_start``.

        Raises:
            WeekAlignmentError: week_start is not a Monday.
            DuplicateTimesheetError: the actor already has this week.
        """
        if actor.actor_id is None:
            raise AuthorizationError("cannot create a timesheet without an owner")
        week_end = week_end_for(week_start)
        details = details or TimesheetDetails()

        existing = self.session.execute(
            select(TimesheetModel.id).where(
                TimesheetModel.owner_id == actor.actor_id,
                TimesheetModel.week_start_date == week_start,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateTimesheetError(str(actor.actor_id), week_start.isoformat())

        now = self.clock.now()
        timesheet = TimesheetModel(
            owner_id=actor.actor_id,
            week_start_date=week_start,
            week_end_date=week_end,
            status=_S.DRAFT.value,
            employee_name=details.employee_name,
            position=details.position,
            site=details.site,
            employee_observations=details.employee_observations,
            created_at=now,
            updated_at=now,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(timesheet)
            self.session.flush()
        except IntegrityError as exc:
            savepoint.rollback()
            raise DuplicateTimesheetError(
                str(actor.actor_id), week_start.isoformat(),
            ) from exc
        savepoint.commit()

        with LogContext.bind(timesheet_id=str(timesheet.id), actor_id=str(actor.actor_id)):
            self.auditor.record(
                actor,
                AuditAction.CREATE,
                "Timesheet",
                timesheet.id,
                {
                    k: {"old": None, "new": v}
                    for k, v in {
                        "owner_id": actor.actor_id,
                        "week_start_date": week_start,
                        "week_end_date": week_end,
                        "status": _S.DRAFT.value,
                        **_detail_fields(timesheet),
                    }.items()
                },
            )
            logger.info(
                "timesheet_created",
                extra={"week_start_date": week_start, "owner_id": str(actor.actor_id)},
            )
        return timesheet.to_dto()

    def update_timesheet_details(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        details: TimesheetDetails,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """Change the header fields of a DRAFT timesheet (owner only)."""
        with LogContext.bind(timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id)):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._ensure_owner_draft(timesheet, actor)

            before = _detail_fields(timesheet)
            timesheet.employee_name = details.employee_name
            timesheet.position = details.position
            timesheet.site = details.site
            timesheet.employee_observations = details.employee_observations
            changes = diff(before, _detail_fields(timesheet))
            if not changes:
                return timesheet.to_dto()

            timesheet.updated_at = self.clock.now()
            self._flush_versioned(timesheet.id, expected_version)
            self.auditor.record(actor, AuditAction.UPDATE, "Timesheet", timesheet.id, changes)
            logger.info("timesheet_details_updated", extra={"changed_fields": sorted(changes)})
            return timesheet.to_dto()

    def delete_timesheet(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        expected_version: int | None = None,
    ) -> None:
        """
        Delete a DRAFT timesheet and its activities (owner only).

        A timesheet that has been reviewed before keeps its approval
        history and cannot be deleted.
        """
        with LogContext.bind(timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id)):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._ensure_owner_draft(timesheet, actor)
            if timesheet.approval_records:
                raise StateConflictError(
                    str(timesheet.id),
                    "cannot delete: timesheet has approval history",
                )

            snapshot = {
                "owner_id": timesheet.owner_id,
                "week_start_date": timesheet.week_start_date,
                "total_hours": timesheet.total_hours,
                "activity_count": len(timesheet.activities),
            }
            self.session.delete(timesheet)
            self._flush_versioned(timesheet.id, expected_version)
            self.auditor.record(actor, AuditAction.DELETE, "Timesheet", timesheet_id, snapshot)
            logger.info("timesheet_deleted", extra={"activity_count": snapshot["activity_count"]})

    # ------------------------------------------------------------------
    # Employee transitions
    # ------------------------------------------------------------------

    def submit(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """
        DRAFT -> SUBMITTED.

        Guards: owner only; at least one activity; positive total; the
        week has started; the owner has a manager to review it.
        Postconditions: total_hours frozen, submitted_at set.
        """
        kind = _K.SUBMIT
        with LogContext.bind(
            timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id), transition=kind.value,
        ):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._authorize(timesheet, actor, kind)
            self._edge(timesheet, kind)

            if not timesheet.activities:
                raise ValidationError(
                    "cannot submit: timesheet has no activities", field="activities",
                )
            total = self.ledger.reconcile_total(timesheet)
            if total <= 0:
                raise ValidationError(
                    "cannot submit: total declared hours must be greater than zero",
                    field="total_hours",
                )
            if timesheet.week_start_date > self.clock.today():
                raise ValidationError(
                    "cannot submit: the week has not started yet",
                    field="week_start_date",
                )
            if self.directory.manager_of(timesheet.owner_id) is None:
                raise ValidationError(
                    "cannot submit: no manager is assigned to review this timesheet",
                    field="owner_id",
                )

            from_status, old_version = timesheet.status_enum, timesheet.version
            now = self.clock.now()
            timesheet.status = _S.SUBMITTED.value
            timesheet.submitted_at = now
            timesheet.updated_at = now
            return self._complete(
                timesheet, actor, kind, from_status, old_version, expected_version,
                {"total_hours": total},
            )

    def cancel_submission(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """SUBMITTED -> DRAFT, owner only, before any review decision."""
        kind = _K.CANCEL_SUBMISSION
        with LogContext.bind(
            timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id), transition=kind.value,
        ):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._authorize(timesheet, actor, kind)
            self._edge(timesheet, kind)
            if timesheet.current_approval(ApprovalTier.MANAGER) is not None:
                raise InvalidTransitionError(
                    str(timesheet.id), timesheet.status, kind.value,
                    "a reviewer has already decided",
                )

            from_status, old_version = timesheet.status_enum, timesheet.version
            timesheet.status = _S.DRAFT.value
            timesheet.submitted_at = None
            timesheet.updated_at = self.clock.now()
            return self._complete(
                timesheet, actor, kind, from_status, old_version, expected_version,
            )

    # ------------------------------------------------------------------
    # Review transitions
    # ------------------------------------------------------------------

    def _decide(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        decision: ApprovalDecision | str,
        comment: str | None,
        tier: ApprovalTier,
        expected_version: int | None,
    ) -> TimesheetSnapshot:
        decision = ApprovalDecision(decision)
        approve = decision == ApprovalDecision.APPROVE
        if tier == ApprovalTier.MANAGER:
            kind = _K.MANAGER_APPROVE if approve else _K.MANAGER_REJECT
        else:
            kind = _K.FINAL_APPROVE if approve else _K.FINAL_REJECT
        comment = comment.strip() if comment else None

        with LogContext.bind(
            timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id), transition=kind.value,
        ):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._authorize(timesheet, actor, kind)
            if tier == ApprovalTier.MANAGER:
                self._ensure_reviews_owner(timesheet, actor, kind)
            transition = self._edge(timesheet, kind)
            if not approve and not comment:
                raise MissingCommentError("reject")

            from_status, old_version = timesheet.status_enum, timesheet.version
            now = self.clock.now()
            record = ApprovalRecordModel(
                id=uuid4(),
                timesheet=timesheet,
                tier=tier.value,
                actor_id=actor.actor_id,
                actor_role=actor.role.value,
                decision=decision.value,
                comment=comment,
                decided_at=now,
            )
            self.session.add(record)
            timesheet.status = transition.to_state.value
            timesheet.updated_at = now
            return self._complete(
                timesheet, actor, kind, from_status, old_version, expected_version,
                {
                    "tier": tier.value,
                    "decision": decision.value,
                    "comment": comment,
                    "approval_record_id": record.id,
                },
                decision=decision,
                comment=comment,
            )

    def manager_approve(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        decision: ApprovalDecision | str = ApprovalDecision.APPROVE,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """SUBMITTED -> MANAGER_APPROVED (APPROVE) or REJECTED (REJECT)."""
        return self._decide(
            timesheet_id, actor, decision, comment, ApprovalTier.MANAGER, expected_version,
        )

    def final_approve(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        decision: ApprovalDecision | str = ApprovalDecision.APPROVE,
        comment: str | None = None,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """MANAGER_APPROVED -> APPROVED (APPROVE) or REJECTED (REJECT)."""
        return self._decide(
            timesheet_id, actor, decision, comment, ApprovalTier.FINAL, expected_version,
        )

    # ------------------------------------------------------------------
    # System and administrative transitions
    # ------------------------------------------------------------------

    def lock(
        self,
        timesheet_id: UUID,
        actor: ActorContext | None = None,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """
        APPROVED -> LOCKED once the lock window has elapsed since the
        final approval.  Idempotent on an already LOCKED timesheet.
        """
        actor = actor or ActorContext.system()
        kind = _K.LOCK
        with LogContext.bind(timesheet_id=str(timesheet_id), transition=kind.value):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._authorize(timesheet, actor, kind)
            if timesheet.status_enum == _S.LOCKED:
                logger.info("timesheet_already_locked")
                return timesheet.to_dto()
            self._edge(timesheet, kind)

            final = timesheet.current_approval(ApprovalTier.FINAL)
            if final is None:
                raise InvalidTransitionError(
                    str(timesheet.id), timesheet.status, kind.value,
                    "no final approval on record",
                )
            eligible_at = final.decided_at + self.policy.lock_window
            now = self.clock.now()
            if now < eligible_at:
                raise InvalidTransitionError(
                    str(timesheet.id), timesheet.status, kind.value,
                    f"lock window has not elapsed (eligible from {eligible_at.isoformat()})",
                )

            from_status, old_version = timesheet.status_enum, timesheet.version
            timesheet.status = _S.LOCKED.value
            timesheet.locked_at = now
            timesheet.updated_at = now
            return self._complete(
                timesheet, actor, kind, from_status, old_version, expected_version,
                {"locked_at": now, "lock_window_days": self.policy.lock_window_days},
            )

    def revert_status(
        self,
        timesheet_id: UUID,
        actor: ActorContext,
        target: TimesheetStatus | str,
        reason: str,
        expected_version: int | None = None,
    ) -> TimesheetSnapshot:
        """
        Administrative correction: move a timesheet back to an earlier
        state.  Current approval records at or after the target tier are
        marked superseded; nothing is deleted.
        """
        kind = _K.REVERT
        target = TimesheetStatus(target)
        reason = reason.strip() if reason else ""
        with LogContext.bind(
            timesheet_id=str(timesheet_id), actor_id=str(actor.actor_id), transition=kind.value,
        ):
            timesheet = self._load(timesheet_id)
            self._check_version(timesheet, expected_version)
            self._authorize(timesheet, actor, kind)
            if not reason:
                raise MissingCommentError("revert")
            self._edge(timesheet, kind)

            current = timesheet.status_enum
            allowed = revert_targets(current)
            if target not in allowed:
                names = ", ".join(sorted(s.value for s in allowed))
                raise InvalidTransitionError(
                    str(timesheet.id), current.value, kind.value,
                    f"can only revert to an earlier state ({names}), not {target.value}",
                )
            if target == _S.MANAGER_APPROVED:
                manager = timesheet.current_approval(ApprovalTier.MANAGER)
                if manager is None or manager.decision != ApprovalDecision.APPROVE.value:
                    raise InvalidTransitionError(
                        str(timesheet.id), current.value, kind.value,
                        "there is no manager approval to return to",
                    )

            old_version = timesheet.version
            superseded: list[UUID] = []
            for tier in sorted(_SUPERSEDED_TIERS[target]):
                record = timesheet.current_approval(tier)
                if record is not None:
                    record.superseded = True
                    superseded.append(record.id)

            now = self.clock.now()
            timesheet.status = target.value
            timesheet.updated_at = now
            if target == _S.DRAFT:
                timesheet.submitted_at = None
                self.ledger.reconcile_total(timesheet)

            return self._complete(
                timesheet, actor, kind, current, old_version, expected_version,
                {"reason": reason, "superseded_records": superseded},
                comment=reason,
                superseded=tuple(superseded),
            )


def _detail_fields(timesheet: TimesheetModel) -> dict:
    return {
        "employee_name": timesheet.employee_name,
        "position": timesheet.position,
        "site": timesheet.site,
        "employee_observations": timesheet.employee_observations,
    }
