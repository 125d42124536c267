"""
NotificationDispatcher -- post-commit workflow events.

Responsibility:
    Turns each committed ``TransitionOutcome`` into exactly one
    ``WorkflowEvent`` addressed to the people who must act on it or be
    told about it, and hands it to a pluggable ``NotificationChannel``.

Architecture position:
    Services layer.  Installed as a post-commit hook on
    ``WorkflowUnitOfWork``; never called inside the transaction.

Recipients:
    submit             -> owner's manager
    cancel_submission  -> owner's manager (withdrawal)
    manager_approve    -> final approver tier, owner informed
    manager_reject     -> owner
    final_approve      -> owner
    final_reject       -> owner
    revert             -> owner
    lock               -> owner

Invariants enforced:
    - One event per transition; ``dedupe_key`` is
      ``(timesheet_id, kind, version)`` so redelivery is detectable.
    - A failing publish is retried up to ``MAX_ATTEMPTS`` times with
      doubling backoff; each retry logs ``notification_publish_retry``.
    - Exhausted retries are logged as ``notification_dispatch_failed`` and
      never propagate: the transition is already durable.
    - Retries reuse the same event, so a ``DedupingConsumer`` behind the
      channel absorbs a publish that landed but reported failure.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol
from uuid import UUID

from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.domain.directory import OrgDirectory
from timesheet_kernel.domain.values import TimesheetStatus, TransitionKind
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.services.workflow_engine import TransitionOutcome

logger = get_logger("services.notifications")

_K = TransitionKind


@dataclass(frozen=True)
class WorkflowEvent:
    """A workflow notification, emitted once per committed transition."""

    kind: TransitionKind
    timesheet_id: UUID
    owner_id: UUID
    actor_id: UUID | None
    recipients: tuple[UUID, ...]
    version: int
    emitted_at: datetime
    from_status: TimesheetStatus
    to_status: TimesheetStatus
    comment: str | None = None

    @property
    def dedupe_key(self) -> tuple[UUID, str, int]:
        return (self.timesheet_id, self.kind.value, self.version)


class NotificationChannel(Protocol):
    def publish(self, event: WorkflowEvent) -> None: ...


class InMemoryChannel:
    """Collects published events.  For tests and local runs."""

    def __init__(self) -> None:
        self.events: list[WorkflowEvent] = []

    def publish(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def for_recipient(self, recipient: UUID) -> list[WorkflowEvent]:
        return [e for e in self.events if recipient in e.recipients]

    def clear(self) -> None:
        self.events.clear()


class DedupingConsumer:
    """
    Idempotent consumer: delivers each ``dedupe_key`` to ``handler`` once.

    Usable as a ``NotificationChannel`` itself, so it can sit between the
    dispatcher and a real channel.
    """

    def __init__(self, handler: Callable[[WorkflowEvent], None]):
        self._handler = handler
        self._seen: set[tuple[UUID, str, int]] = set()

    def consume(self, event: WorkflowEvent) -> bool:
        """Deliver ``event`` unless already seen.  Returns True if delivered."""
        key = event.dedupe_key
        if key in self._seen:
            logger.info(
                "notification_duplicate_skipped",
                extra={"timesheet_id": str(event.timesheet_id), "kind": event.kind.value},
            )
            return False
        self._handler(event)
        self._seen.add(key)
        return True

    publish = consume


class NotificationDispatcher:
    """Post-commit hook computing recipients and publishing one event."""

    MAX_ATTEMPTS = 3
    BACKOFF_SECONDS = 0.2

    def __init__(
        self,
        channel: NotificationChannel,
        directory: OrgDirectory,
        clock: Clock | None = None,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.channel = channel
        self.directory = directory
        self.clock = clock or SystemClock()
        self.max_attempts = max(1, max_attempts or self.MAX_ATTEMPTS)
        self.backoff_seconds = self.BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self._sleep = sleep

    def recipients_for(self, outcome: TransitionOutcome) -> tuple[UUID, ...]:
        owner = outcome.owner_id
        kind = outcome.kind
        if kind in (_K.SUBMIT, _K.CANCEL_SUBMISSION):
            manager = self.directory.manager_of(owner)
            people = [manager] if manager is not None else []
        elif kind == _K.MANAGER_APPROVE:
            people = sorted(self.directory.final_approvers() - {owner}, key=str) + [owner]
        else:
            people = [owner]

        seen: set[UUID] = set()
        ordered = []
        for person in people:
            if person not in seen:
                seen.add(person)
                ordered.append(person)
        return tuple(ordered)

    def build_event(self, outcome: TransitionOutcome) -> WorkflowEvent:
        return WorkflowEvent(
            kind=outcome.kind,
            timesheet_id=outcome.timesheet_id,
            owner_id=outcome.owner_id,
            actor_id=outcome.actor.actor_id,
            recipients=self.recipients_for(outcome),
            version=outcome.version,
            emitted_at=self.clock.now(),
            from_status=outcome.from_status,
            to_status=outcome.to_status,
            comment=outcome.comment,
        )

    def _publish_with_retry(self, event: WorkflowEvent) -> int:
        """Publish ``event``; returns the attempt that succeeded, re-raises the last failure."""
        attempt = 1
        while True:
            try:
                self.channel.publish(event)
                return attempt
            except Exception as exc:
                if attempt >= self.max_attempts:
                    raise
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "notification_publish_retry",
                    extra={
                        "timesheet_id": str(event.timesheet_id),
                        "kind": event.kind.value,
                        "attempt": attempt,
                        "delay_seconds": delay,
                        "error": str(exc),
                    },
                )
                self._sleep(delay)
            attempt += 1

    def dispatch(self, outcome: TransitionOutcome) -> WorkflowEvent | None:
        """Publish the event for ``outcome``.  Returns None once every attempt has failed."""
        event = self.build_event(outcome)
        if not event.recipients:
            logger.warning(
                "notification_without_recipients",
                extra={"timesheet_id": str(event.timesheet_id), "kind": event.kind.value},
            )
        try:
            attempts = self._publish_with_retry(event)
        except Exception:
            logger.error(
                "notification_dispatch_failed",
                extra={
                    "timesheet_id": str(event.timesheet_id),
                    "kind": event.kind.value,
                    "version": event.version,
                    "attempts": self.max_attempts,
                },
                exc_info=True,
            )
            return None
        logger.info(
            "notification_dispatched",
            extra={
                "timesheet_id": str(event.timesheet_id),
                "kind": event.kind.value,
                "recipient_count": len(event.recipients),
                "attempts": attempts,
            },
        )
        return event

    def __call__(self, outcome: TransitionOutcome) -> None:
        self.dispatch(outcome)
