"""Pure domain layer: values, workflow definition, hour rules, authorization."""

from timesheet_kernel.domain.authorization import (
    DEFAULT_CAPABILITY_TABLE,
    AuthorizationDecision,
    CapabilityTable,
    can_transition,
)
from timesheet_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timesheet_kernel.domain.directory import OrgDirectory, StaticOrgDirectory
from timesheet_kernel.domain.policy import DEFAULT_POLICY, WorkflowPolicy
from timesheet_kernel.domain.result import ErrorKind, OperationResult, capture
from timesheet_kernel.domain.values import (
    ActivityInput,
    ActivityPatch,
    ActivitySnapshot,
    ActorContext,
    ApprovalDecision,
    ApprovalRecordSnapshot,
    ApprovalTier,
    Role,
    TimesheetDetails,
    TimesheetSnapshot,
    TimesheetStatus,
    TransitionKind,
)
from timesheet_kernel.domain.workflow import TIMESHEET_WORKFLOW, revert_targets

__all__ = [
    "ActivityInput",
    "ActivityPatch",
    "ActivitySnapshot",
    "ActorContext",
    "ApprovalDecision",
    "ApprovalRecordSnapshot",
    "ApprovalTier",
    "AuthorizationDecision",
    "CapabilityTable",
    "Clock",
    "DEFAULT_CAPABILITY_TABLE",
    "DEFAULT_POLICY",
    "DeterministicClock",
    "ErrorKind",
    "OperationResult",
    "OrgDirectory",
    "Role",
    "StaticOrgDirectory",
    "SystemClock",
    "TIMESHEET_WORKFLOW",
    "TimesheetDetails",
    "TimesheetSnapshot",
    "TimesheetStatus",
    "TransitionKind",
    "WorkflowPolicy",
    "can_transition",
    "capture",
    "revert_targets",
]
