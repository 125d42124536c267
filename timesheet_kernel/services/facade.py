"""
WorkflowFacade -- result-returning surface over the engine and ledger.

Request handlers call the facade and match on ``OperationResult.error.kind``
instead of catching kernel exceptions.  Only the four caller-facing error
families are folded into results; anything else (database outages,
programming errors) still raises.

The facade does not own the transaction.  After a STATE_CONFLICT result
caused by a stale version the caller must roll back before reusing the
session.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from timesheet_kernel.domain.result import OperationResult, capture
from timesheet_kernel.domain.values import (
    ActivityInput,
    ActivityPatch,
    ActorContext,
    ApprovalDecision,
    TimesheetDetails,
    TimesheetSnapshot,
    TimesheetStatus,
)
from timesheet_kernel.services.activity_ledger import ActivityLedger, LedgerResult
from timesheet_kernel.services.workflow_engine import WorkflowEngine


class WorkflowFacade:
    def __init__(self, engine: WorkflowEngine, ledger: ActivityLedger | None = None):
        self.engine = engine
        self.ledger = ledger or engine.ledger

    def create_timesheet(
        self, actor: ActorContext, week_start: date, details: TimesheetDetails | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(self.engine.create_timesheet, actor, week_start, details)

    def update_timesheet_details(
        self, timesheet_id: UUID, actor: ActorContext, details: TimesheetDetails,
        expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(
            self.engine.update_timesheet_details, timesheet_id, actor, details, expected_version,
        )

    def delete_timesheet(
        self, timesheet_id: UUID, actor: ActorContext, expected_version: int | None = None,
    ) -> OperationResult[None]:
        return capture(self.engine.delete_timesheet, timesheet_id, actor, expected_version)

    def add_activity(
        self, timesheet_id: UUID, actor: ActorContext, activity: ActivityInput,
    ) -> OperationResult[LedgerResult]:
        return capture(self.ledger.add_activity, timesheet_id, actor, activity)

    def update_activity(
        self, activity_id: UUID, actor: ActorContext, patch: ActivityPatch,
    ) -> OperationResult[LedgerResult]:
        return capture(self.ledger.update_activity, activity_id, actor, patch)

    def delete_activity(
        self, activity_id: UUID, actor: ActorContext,
    ) -> OperationResult[LedgerResult]:
        return capture(self.ledger.delete_activity, activity_id, actor)

    def submit(
        self, timesheet_id: UUID, actor: ActorContext, expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(self.engine.submit, timesheet_id, actor, expected_version)

    def cancel_submission(
        self, timesheet_id: UUID, actor: ActorContext, expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(self.engine.cancel_submission, timesheet_id, actor, expected_version)

    def manager_approve(
        self, timesheet_id: UUID, actor: ActorContext,
        decision: ApprovalDecision | str = ApprovalDecision.APPROVE,
        comment: str | None = None, expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(
            self.engine.manager_approve, timesheet_id, actor, decision, comment, expected_version,
        )

    def final_approve(
        self, timesheet_id: UUID, actor: ActorContext,
        decision: ApprovalDecision | str = ApprovalDecision.APPROVE,
        comment: str | None = None, expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(
            self.engine.final_approve, timesheet_id, actor, decision, comment, expected_version,
        )

    def lock(
        self, timesheet_id: UUID, actor: ActorContext | None = None,
        expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(self.engine.lock, timesheet_id, actor, expected_version)

    def revert_status(
        self, timesheet_id: UUID, actor: ActorContext, target: TimesheetStatus | str,
        reason: str, expected_version: int | None = None,
    ) -> OperationResult[TimesheetSnapshot]:
        return capture(
            self.engine.revert_status, timesheet_id, actor, target, reason, expected_version,
        )
