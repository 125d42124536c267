"""
Workflow policy (``timesheet_kernel.domain.policy``).

The tunable knobs of the workflow, as one frozen value.  The kernel never
reads configuration files; ``timesheet_config.bridges`` builds a
``WorkflowPolicy`` from the loaded YAML settings and hands it in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from timesheet_kernel.domain.authorization import (
    DEFAULT_CAPABILITY_TABLE,
    CapabilityTable,
)
from timesheet_kernel.domain.hours import (
    DAILY_REFERENCE_HOURS,
    HOUR_GRANULARITY,
    MAX_DAILY_HOURS,
    WORKING_WEEKDAYS,
)

DEFAULT_LOCK_WINDOW_DAYS = 30


@dataclass(frozen=True)
class WorkflowPolicy:
    lock_window_days: int = DEFAULT_LOCK_WINDOW_DAYS
    daily_reference_hours: Decimal = DAILY_REFERENCE_HOURS
    working_weekdays: frozenset[int] = WORKING_WEEKDAYS
    hour_granularity: Decimal = HOUR_GRANULARITY
    max_daily_hours: Decimal = MAX_DAILY_HOURS
    audit_mode: str = "best_effort"
    capabilities: CapabilityTable = field(default=DEFAULT_CAPABILITY_TABLE)

    @property
    def lock_window(self) -> timedelta:
        return timedelta(days=self.lock_window_days)


DEFAULT_POLICY = WorkflowPolicy()
