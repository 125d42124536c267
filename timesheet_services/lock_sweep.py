"""
Scheduled lock sweep.

Contract:
    ``TimesheetLockTask`` follows the batch-task shape:
    ``prepare_items()`` selects APPROVED timesheets whose lock window has
    elapsed at ``as_of``; ``execute_item()`` locks ONE of them inside a
    SAVEPOINT owned by the caller.  ``run_lock_sweep()`` drives the task
    over one session and reports what happened.

Architecture:
    timesheet_services.  Uses the kernel engine; never commits.  The
    caller (normally a ``WorkflowUnitOfWork``) commits, so lock
    notifications go out only once the sweep is durable.

Invariants enforced:
    - Locking runs as the SYSTEM actor with the clock pinned at ``as_of``.
    - A failed item rolls back its own SAVEPOINT only; the other items
      still lock.
    - Re-running the sweep is harmless: LOCKED timesheets are no longer
      selected and ``lock`` is idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from timesheet_kernel.domain.clock import DeterministicClock
from timesheet_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from timesheet_kernel.domain.values import ActorContext
from timesheet_kernel.exceptions import TimesheetKernelError
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.selectors.timesheet_selector import TimesheetSelector
from timesheet_kernel.services.workflow_engine import TransitionOutcome, WorkflowEngine

logger = get_logger("services.lock_sweep")


class SweepItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SweepItemInput:
    """One timesheet to lock, created by ``prepare_items()``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SweepItemResult:
    status: SweepItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class LockSweepReport:
    as_of: datetime
    total_items: int
    locked: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()

    @property
    def failed_count(self) -> int:
        return len(self.failed)


class TimesheetLockTask:
    """Batch task locking APPROVED timesheets past their retention window."""

    def __init__(
        self,
        policy: WorkflowPolicy = DEFAULT_POLICY,
        on_transition: Callable[[TransitionOutcome], None] | None = None,
    ):
        self.policy = policy
        self.on_transition = on_transition

    @property
    def task_type(self) -> str:
        return "timesheets.lock_sweep"

    @property
    def description(self) -> str:
        return "Lock approved timesheets once the lock window has elapsed"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[SweepItemInput, ...]:
        cutoff = as_of - self.policy.lock_window
        ids = TimesheetSelector(session).lockable_ids(cutoff)
        return tuple(
            SweepItemInput(
                item_index=i,
                item_key=str(timesheet_id),
                payload={"timesheet_id": timesheet_id},
            )
            for i, timesheet_id in enumerate(ids)
        )

    def execute_item(
        self,
        item: SweepItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> SweepItemResult:
        outcomes: list[TransitionOutcome] = []
        engine = WorkflowEngine(
            session,
            clock=DeterministicClock(as_of),
            policy=self.policy,
            on_transition=outcomes.append,
        )
        try:
            snapshot = engine.lock(item.payload["timesheet_id"], ActorContext.system())
        except TimesheetKernelError as exc:
            return SweepItemResult(
                status=SweepItemStatus.FAILED,
                error_code=exc.code,
                error_message=str(exc),
            )
        # Reported only once the lock stands.
        if self.on_transition is not None:
            for outcome in outcomes:
                self.on_transition(outcome)
        return SweepItemResult(
            status=SweepItemStatus.SUCCEEDED,
            result_data={"timesheet_id": str(snapshot.timesheet_id), "version": snapshot.version},
        )


def run_lock_sweep(
    session: Session,
    as_of: datetime,
    policy: WorkflowPolicy = DEFAULT_POLICY,
    on_transition: Callable[[TransitionOutcome], None] | None = None,
    parameters: dict[str, Any] | None = None,
) -> LockSweepReport:
    """
    Lock every eligible timesheet, one SAVEPOINT per item.

    Postconditions:
        - Every timesheet in ``report.locked`` is LOCKED in ``session``.
        - Nothing is committed.
    """
    task = TimesheetLockTask(policy, on_transition)
    parameters = parameters or {}
    items = task.prepare_items(parameters, session, as_of)
    logger.info(
        "lock_sweep_started",
        extra={"as_of": as_of, "item_count": len(items), "task_type": task.task_type},
    )

    locked: list[str] = []
    failed: list[tuple[str, str]] = []
    for item in items:
        savepoint = session.begin_nested()
        result = task.execute_item(item, parameters, session, as_of)
        if result.status == SweepItemStatus.SUCCEEDED:
            savepoint.commit()
            locked.append(item.item_key)
        else:
            savepoint.rollback()
            failed.append((item.item_key, result.error_code or ""))
            logger.warning(
                "lock_sweep_item_failed",
                extra={
                    "timesheet_id": item.item_key,
                    "error_code": result.error_code,
                    "error_message": result.error_message,
                },
            )

    logger.info(
        "lock_sweep_completed",
        extra={"locked_count": len(locked), "failed_count": len(failed)},
    )
    return LockSweepReport(
        as_of=as_of,
        total_items=len(items),
        locked=tuple(locked),
        failed=tuple(failed),
    )
