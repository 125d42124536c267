"""Imperative shell of the kernel: ledger, workflow engine, audit, unit of work."""

from timesheet_kernel.services.activity_ledger import ActivityLedger, LedgerResult
from timesheet_kernel.services.audit_recorder import (
    AuditMode,
    AuditRecorder,
    AuditTrace,
    AuditTraceEntry,
)
from timesheet_kernel.services.facade import WorkflowFacade
from timesheet_kernel.services.sequence_service import SequenceService
from timesheet_kernel.services.unit_of_work import PostCommitHook, WorkflowUnitOfWork
from timesheet_kernel.services.workflow_engine import TransitionOutcome, WorkflowEngine

__all__ = [
    "ActivityLedger",
    "AuditMode",
    "AuditRecorder",
    "AuditTrace",
    "AuditTraceEntry",
    "LedgerResult",
    "PostCommitHook",
    "SequenceService",
    "TransitionOutcome",
    "WorkflowEngine",
    "WorkflowFacade",
    "WorkflowUnitOfWork",
]
