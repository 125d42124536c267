"""
WorkflowSettings schema.

The human-authored, reviewable form of the workflow knobs.  YAML files
are parsed into these types by the loader; ``bridges`` turns them into
the kernel's ``WorkflowPolicy``.

Key distinction:
  WorkflowSettings = source artifact (YAML, versioned, checksummed)
  WorkflowPolicy   = runtime artifact consumed by the kernel
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

AUDIT_MODES = ("best_effort", "strict")


@dataclass(frozen=True)
class CacheTagRule:
    """Tag templates invalidated after one kind of transition."""

    transition: str
    tags: tuple[str, ...]


@dataclass(frozen=True)
class WorkflowSettings:
    """Complete, validated workflow configuration."""

    config_id: str
    version: int = 1
    description: str = ""
    lock_window_days: int = 30
    daily_reference_hours: Decimal = Decimal("8")
    working_weekdays: tuple[int, ...] = (0, 1, 2, 3, 4)
    hour_granularity: Decimal = Decimal("0.25")
    max_daily_hours: Decimal = Decimal("24")
    audit_mode: str = "best_effort"
    # {"ROLE": ("transition", ...)} extending the default capability table
    capability_overrides: tuple[tuple[str, tuple[str, ...]], ...] = ()
    cache_tags: tuple[CacheTagRule, ...] = ()
    checksum: str = field(default="", compare=False)
