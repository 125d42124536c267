"""
Config -> Kernel Bridges.

Functions that convert ``WorkflowSettings`` into kernel-compatible
inputs.  These live in timesheet_config (the producer) because the
kernel must NEVER import timesheet_config.

Usage:
    from timesheet_config import get_workflow_settings
    from timesheet_config.bridges import build_workflow_policy

    policy = build_workflow_policy(get_workflow_settings())
"""

from __future__ import annotations

from timesheet_config.schema import WorkflowSettings
from timesheet_kernel.domain.authorization import CapabilityTable
from timesheet_kernel.domain.policy import WorkflowPolicy
from timesheet_kernel.domain.values import TransitionKind


def build_capability_table(settings: WorkflowSettings) -> CapabilityTable:
    """Default capability table extended with the configured grants."""
    return CapabilityTable.from_mapping(dict(settings.capability_overrides))


def build_workflow_policy(settings: WorkflowSettings) -> WorkflowPolicy:
    return WorkflowPolicy(
        lock_window_days=settings.lock_window_days,
        daily_reference_hours=settings.daily_reference_hours,
        working_weekdays=frozenset(settings.working_weekdays),
        hour_granularity=settings.hour_granularity,
        max_daily_hours=settings.max_daily_hours,
        audit_mode=settings.audit_mode,
        capabilities=build_capability_table(settings),
    )


def build_cache_tag_map(settings: WorkflowSettings) -> dict[TransitionKind, tuple[str, ...]]:
    """Configured transition -> tag templates.  Empty when none configured."""
    return {TransitionKind(rule.transition): rule.tags for rule in settings.cache_tags}
