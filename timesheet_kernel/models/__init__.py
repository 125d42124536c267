"""ORM models for the timesheet kernel."""

from timesheet_kernel.models.audit_log import AuditAction, AuditLogEntry
from timesheet_kernel.models.sequence import SequenceCounter
from timesheet_kernel.models.timesheet import (
    ActivityModel,
    ApprovalRecordModel,
    TimesheetModel,
)

__all__ = [
    "ActivityModel",
    "ApprovalRecordModel",
    "AuditAction",
    "AuditLogEntry",
    "SequenceCounter",
    "TimesheetModel",
]
