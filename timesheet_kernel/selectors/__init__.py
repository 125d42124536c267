"""Read-only query selectors."""

from timesheet_kernel.selectors.timesheet_selector import (
    EscalationLevel,
    TimesheetSelector,
    TimesheetStats,
    escalation_level,
)

__all__ = [
    "EscalationLevel",
    "TimesheetSelector",
    "TimesheetStats",
    "escalation_level",
]
