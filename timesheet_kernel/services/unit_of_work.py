"""
WorkflowUnitOfWork -- transaction boundary for workflow operations.

Responsibility:
    Owns one SQLAlchemy session, builds the ActivityLedger and
    WorkflowEngine on it, commits or rolls back, and only after a
    successful commit hands each queued ``TransitionOutcome`` to the
    post-commit hooks (notification dispatch, cache invalidation).

Architecture position:
    Kernel > Services -- the caller that services defer to for commit.
    Hooks live in ``timesheet_services`` and are injected, so the kernel
    never imports from outer layers.

Invariants enforced:
    - Outcomes are discarded on rollback: a failed transition emits no
      notification and invalidates no cache.
    - A hook failure is logged and never propagates; the transaction is
      already durable at that point.
"""

from __future__ import annotations

from typing import Callable, Sequence

from sqlalchemy.orm import Session, sessionmaker

from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.directory import OrgDirectory
from timesheet_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.services.activity_ledger import ActivityLedger
from timesheet_kernel.services.audit_recorder import AuditRecorder
from timesheet_kernel.services.workflow_engine import TransitionOutcome, WorkflowEngine

logger = get_logger("services.unit_of_work")

PostCommitHook = Callable[[TransitionOutcome], None]


class WorkflowUnitOfWork:
    """
    Usage:
        with WorkflowUnitOfWork(factory, hooks=[dispatcher, invalidator]) as uow:
            uow.engine.submit(timesheet_id, actor)
        # committed here, then hooks run
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        hooks: Sequence[PostCommitHook] = (),
        clock: Clock | None = None,
        directory: OrgDirectory | None = None,
        policy: WorkflowPolicy = DEFAULT_POLICY,
    ):
        self._session_factory = session_factory
        self._hooks = tuple(hooks)
        self._clock = clock
        self._directory = directory
        self._policy = policy
        self._pending: list[TransitionOutcome] = []
        self.session: Session | None = None
        self.engine: WorkflowEngine | None = None
        self.ledger: ActivityLedger | None = None

    def __enter__(self) -> WorkflowUnitOfWork:
        self.session = self._session_factory()
        auditor = AuditRecorder(self.session, self._clock, self._policy.audit_mode)
        self.ledger = ActivityLedger(self.session, self._clock, auditor, self._policy)
        self.engine = WorkflowEngine(
            self.session,
            clock=self._clock,
            directory=self._directory,
            policy=self._policy,
            auditor=auditor,
            ledger=self.ledger,
            on_transition=self.queue,
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.session.close()

    def queue(self, outcome: TransitionOutcome) -> None:
        """Hold ``outcome`` until commit.  Passed to engines as ``on_transition``."""
        self._pending.append(outcome)

    @property
    def pending(self) -> tuple[TransitionOutcome, ...]:
        return tuple(self._pending)

    def commit(self) -> None:
        """Commit, then run every hook for every queued outcome."""
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise
        outcomes = list(self._pending)
        self._pending.clear()
        for outcome in outcomes:
            for hook in self._hooks:
                self._run_hook(hook, outcome)

    def rollback(self) -> None:
        self.session.rollback()
        if self._pending:
            logger.info("post_commit_outcomes_discarded", extra={"count": len(self._pending)})
        self._pending.clear()

    def _run_hook(self, hook: PostCommitHook, outcome: TransitionOutcome) -> None:
        try:
            hook(outcome)
        except Exception:
            logger.error(
                "post_commit_hook_failed",
                extra={
                    "hook": getattr(hook, "__qualname__", type(hook).__name__),
                    "transition": outcome.kind.value,
                    "timesheet_id": str(outcome.timesheet_id),
                },
                exc_info=True,
            )
