"""
Configuration Loader (``timesheet_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``WorkflowSettings``.  Callers go through
``timesheet_config.get_workflow_settings()``; the functions here are
exposed for tests and tooling.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` with a descriptive message;
  unknown keys are rejected rather than ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from timesheet_config.schema import AUDIT_MODES, CacheTagRule, WorkflowSettings

_KNOWN_KEYS = frozenset({
    "config_id",
    "version",
    "description",
    "lock_window_days",
    "daily_reference_hours",
    "working_weekdays",
    "hour_granularity",
    "max_daily_hours",
    "audit_mode",
    "capabilities",
    "cache_tags",
})

_ROLES = frozenset({"EMPLOYEE", "MANAGER", "HR", "DIRECTEUR", "ADMIN", "SYSTEM"})
_TRANSITIONS = frozenset({
    "submit",
    "cancel_submission",
    "manager_approve",
    "manager_reject",
    "final_approve",
    "final_reject",
    "lock",
    "revert",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_decimal(name: str, value: Any, minimum: Decimal = Decimal("0")) -> Decimal:
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name}: not a number: {value!r}") from None
    if not parsed.is_finite() or parsed <= minimum:
        raise ValueError(f"{name}: must be greater than {minimum}, got {value!r}")
    return parsed


def _parse_weekdays(value: Any) -> tuple[int, ...]:
    if not isinstance(value, (list, tuple)) or not value:
        raise ValueError("working_weekdays: expected a non-empty list")
    days = []
    for day in value:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValueError(f"working_weekdays: {day!r} is not a weekday number 0-6")
        days.append(day)
    return tuple(sorted(set(days)))


def _parse_capabilities(value: Any) -> tuple[tuple[str, tuple[str, ...]], ...]:
    if not isinstance(value, dict):
        raise ValueError("capabilities: expected a mapping of role to transitions")
    parsed = []
    for role, kinds in sorted(value.items()):
        if role not in _ROLES:
            raise ValueError(f"capabilities: unknown role {role!r}")
        if not isinstance(kinds, (list, tuple)):
            raise ValueError(f"capabilities.{role}: expected a list of transitions")
        for kind in kinds:
            if kind not in _TRANSITIONS:
                raise ValueError(f"capabilities.{role}: unknown transition {kind!r}")
        parsed.append((role, tuple(kinds)))
    return tuple(parsed)


def _parse_cache_tags(value: Any) -> tuple[CacheTagRule, ...]:
    if not isinstance(value, dict):
        raise ValueError("cache_tags: expected a mapping of transition to tag templates")
    rules = []
    for kind, tags in sorted(value.items()):
        if kind not in _TRANSITIONS:
            raise ValueError(f"cache_tags: unknown transition {kind!r}")
        if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
            raise ValueError(f"cache_tags.{kind}: expected a list of strings")
        rules.append(CacheTagRule(transition=kind, tags=tuple(tags)))
    return tuple(rules)


def parse_settings(data: dict[str, Any]) -> WorkflowSettings:
    """
    Parse and validate a settings mapping.

    Preconditions:
        - ``data`` carries ``config_id``; every other key is optional.
    Postconditions:
        - Returns a frozen ``WorkflowSettings`` whose ``checksum`` is the
          checksum of ``data``.
    Raises:
        ValueError: on unknown keys or invalid values.
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"unknown settings keys: {sorted(unknown)}")
    if not data.get("config_id"):
        raise ValueError("config_id is required")

    defaults = WorkflowSettings(config_id=str(data["config_id"]))

    lock_window_days = data.get("lock_window_days", defaults.lock_window_days)
    if isinstance(lock_window_days, bool) or not isinstance(lock_window_days, int) or lock_window_days < 0:
        raise ValueError(f"lock_window_days: expected a non-negative integer, got {lock_window_days!r}")

    audit_mode = data.get("audit_mode", defaults.audit_mode)
    if audit_mode not in AUDIT_MODES:
        raise ValueError(f"audit_mode: expected one of {AUDIT_MODES}, got {audit_mode!r}")

    granularity = _parse_decimal(
        "hour_granularity", data.get("hour_granularity", defaults.hour_granularity),
    )
    max_daily = _parse_decimal(
        "max_daily_hours", data.get("max_daily_hours", defaults.max_daily_hours),
    )
    if max_daily % granularity != 0:
        raise ValueError("max_daily_hours must be a multiple of hour_granularity")

    return WorkflowSettings(
        config_id=defaults.config_id,
        version=int(data.get("version", defaults.version)),
        description=str(data.get("description", "")),
        lock_window_days=lock_window_days,
        daily_reference_hours=_parse_decimal(
            "daily_reference_hours",
            data.get("daily_reference_hours", defaults.daily_reference_hours),
        ),
        working_weekdays=_parse_weekdays(
            data.get("working_weekdays", list(defaults.working_weekdays)),
        ),
        hour_granularity=granularity,
        max_daily_hours=max_daily,
        audit_mode=audit_mode,
        capability_overrides=_parse_capabilities(data.get("capabilities", {})),
        cache_tags=_parse_cache_tags(data.get("cache_tags", {})),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> WorkflowSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path))
