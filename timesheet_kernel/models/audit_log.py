"""
Module: timesheet_kernel.models.audit_log
Responsibility: ORM persistence for the tamper-evident audit log.
Architecture position: Kernel > Models.  May import from db/ and exceptions.

Invariants enforced:
    - Audit entries are append-only; no UPDATE or DELETE (ORM listeners).
    - Hash chain integrity: hash = H(entity_type | entity_id | action |
      payload_hash | prev_hash).  Validated by AuditRecorder.validate_chain.
    - seq is strictly monotonic, allocated by SequenceService.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.
    - AuditChainBrokenError when chain validation detects a hash mismatch.

Audit relevance:
    AuditLogEntry IS the audit trail.  Every successful timesheet, activity
    and approval mutation produces one entry carrying the actor, the
    request provenance and a JSON diff of the change.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_kernel.db.base import Base, UUIDString
from timesheet_kernel.db.types import UTCDateTime
from timesheet_kernel.exceptions import ImmutabilityViolationError


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    CANCEL = "CANCEL"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REVERT = "REVERT"
    LOCK = "LOCK"


class AuditLogEntry(Base):
    """
    Audit log entry with hash chain for tamper evidence.

    Guarantees:
        - seq is globally unique and monotonically increasing.
        - prev_hash is None only for the genesis entry.
        - actor_id is None only for system actions (scheduled lock).
    """

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_log_entity", "entity_type", "entity_id"),
        Index("idx_audit_log_action", "action"),
        Index("idx_audit_log_occurred", "occurred_at"),
        Index("idx_audit_log_actor", "actor_id"),
    )

    seq: Mapped[int] = mapped_column(nullable=False, unique=True)

    # Who performed the action (None for the scheduler)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    action: Mapped[str] = mapped_column(String(20), nullable=False)

    # "Timesheet", "Activity" or "ApprovalRecord"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # {"field": {"old": ..., "new": ...}} plus free-form context keys
    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry #{self.seq} {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def action_enum(self) -> AuditAction:
        return AuditAction(self.action)

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None


@event.listens_for(AuditLogEntry, "before_update")
def prevent_audit_update(mapper, connection, target):
    """Audit entries are never modified."""
    raise ImmutabilityViolationError(
        entity_type="AuditLogEntry",
        entity_id=str(target.id),
        reason="Audit log entries are immutable and cannot be modified",
    )


@event.listens_for(AuditLogEntry, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    """Audit entries are never deleted."""
    raise ImmutabilityViolationError(
        entity_type="AuditLogEntry",
        entity_id=str(target.id),
        reason="Audit log entries cannot be deleted",
    )
