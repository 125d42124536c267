"""
AuditRecorder -- append-only, hash-chained audit log of timesheet mutations.

Responsibility:
    Writes one ``AuditLogEntry`` for every successful timesheet, activity
    and approval mutation: who (actor id and role), what (action, entity,
    JSON diff), from where (ip address, user agent) and when.  Provides
    chain validation for tamper detection and per-entity traces.

Architecture position:
    Kernel > Services -- imperative shell, called by ActivityLedger and
    WorkflowEngine after the primary change has been flushed.

Invariants enforced:
    - seq comes from SequenceService, never from MAX(seq) + 1.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash)
      so that any retroactive edit is detectable by ``validate_chain()``.
    - Entries are append-only (ORM listeners on ``AuditLogEntry``).

Failure modes:
    - ``best_effort`` mode (default): the entry is written inside a
      SAVEPOINT.  A database failure rolls back only the savepoint, is
      logged at ERROR as ``audit_write_failed`` and the primary change
      still commits with the caller's transaction.
    - ``strict`` mode: the failure propagates and the caller's whole
      transaction rolls back.
    - AuditChainBrokenError from ``validate_chain()`` on any mismatch.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_kernel.domain.clock import Clock
from timesheet_kernel.domain.values import ActorContext
from timesheet_kernel.exceptions import AuditChainBrokenError
from timesheet_kernel.logging_config import get_logger
from timesheet_kernel.models.audit_log import AuditAction, AuditLogEntry
from timesheet_kernel.services.base import BaseService
from timesheet_kernel.services.sequence_service import SequenceService
from timesheet_kernel.utils.hashing import hash_audit_entry, hash_payload, to_jsonable

logger = get_logger("services.audit")


class AuditMode(str, Enum):
    BEST_EFFORT = "best_effort"
    STRICT = "strict"


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    occurred_at: datetime
    actor_id: UUID | None
    actor_role: str | None
    changes: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit entries of one entity, oldest first."""

    entity_type: str
    entity_id: UUID
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


def diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """``{field: {"old": ..., "new": ...}}`` for every field that changed."""
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(before) | set(after)):
        old, new = before.get(key), after.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


class AuditRecorder(BaseService):
    """
    Creates and validates tamper-evident audit entries.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret entries; reporting is out of scope.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        mode: AuditMode | str = AuditMode.BEST_EFFORT,
    ):
        super().__init__(session, clock)
        self.mode = AuditMode(mode)
        self._sequence = SequenceService(session)

    def _last_hash(self) -> str | None:
        last = self.session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last.hash if last else None

    def _append(
        self,
        actor: ActorContext,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        changes: Mapping[str, Any] | None,
    ) -> AuditLogEntry:
        seq = self._sequence.next_value(SequenceService.AUDIT_LOG)
        prev_hash = self._last_hash()

        payload = to_jsonable(dict(changes or {}))
        payload_hash = hash_payload(payload)
        entry_hash = hash_audit_entry(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action.value,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        entry = AuditLogEntry(
            seq=seq,
            actor_id=actor.actor_id,
            actor_role=actor.role.value,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=payload,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            occurred_at=self.clock.now(),
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=entry_hash,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "seq": seq,
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
            },
        )
        return entry

    def record(
        self,
        actor: ActorContext,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID,
        changes: Mapping[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        """
        Append one entry for a mutation already flushed by the caller.

        Returns the entry, or None when a best-effort write failed.
        """
        if self.mode == AuditMode.STRICT:
            return self._append(actor, action, entity_type, entity_id, changes)

        savepoint = self.session.begin_nested()
        try:
            entry = self._append(actor, action, entity_type, entity_id, changes)
        except SQLAlchemyError:
            savepoint.rollback()
            logger.error(
                "audit_write_failed",
                extra={
                    "action": action.value,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "audit_mode": self.mode.value,
                },
                exc_info=True,
            )
            return None
        savepoint.commit()
        return entry

    def validate_chain(self) -> bool:
        """
        Recompute every hash and check every link.

        Raises:
            AuditChainBrokenError: at the first entry that does not verify.
        """
        entries = self.session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq)
        ).scalars().all()

        previous: AuditLogEntry | None = None
        for entry in entries:
            expected_prev = previous.hash if previous else None
            if entry.prev_hash != expected_prev:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(
                    str(entry.id), str(expected_prev), str(entry.prev_hash),
                )

            if hash_payload(entry.changes) != entry.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(
                    str(entry.id), entry.payload_hash, hash_payload(entry.changes),
                )

            expected = hash_audit_entry(
                entity_type=entry.entity_type,
                entity_id=str(entry.entity_id),
                action=entry.action,
                payload_hash=entry.payload_hash,
                prev_hash=entry.prev_hash,
            )
            if entry.hash != expected:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(str(entry.id), expected, entry.hash)
            previous = entry

        logger.info("audit_chain_valid", extra={"entry_count": len(entries)})
        return True

    def get_trace(self, entity_type: str, entity_id: UUID) -> AuditTrace:
        """All entries recorded for one entity, in seq order."""
        entries = self.session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
            .order_by(AuditLogEntry.seq)
        ).scalars().all()

        return AuditTrace(
            entity_type=entity_type,
            entity_id=entity_id,
            entries=tuple(
                AuditTraceEntry(
                    seq=e.seq,
                    action=AuditAction(e.action),
                    occurred_at=e.occurred_at,
                    actor_id=e.actor_id,
                    actor_role=e.actor_role,
                    changes=e.changes or {},
                    hash=e.hash,
                )
                for e in entries
            ),
        )
