"""
Tests for workflow configuration: loading, validation and kernel bridges.

Covers:
- Shipped default settings load and match the kernel defaults
- Every load logs the config identity and checksum
- Invalid documents are rejected with ValueError
- Bridges build WorkflowPolicy, CapabilityTable and cache tag maps
- A configured grant takes effect in the engine
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from timesheet_config import get_workflow_settings
from timesheet_config.bridges import (
    build_cache_tag_map,
    build_capability_table,
    build_workflow_policy,
)
from timesheet_config.loader import compute_checksum, load_yaml_file, parse_settings
from timesheet_kernel.domain.policy import DEFAULT_POLICY
from timesheet_kernel.domain.values import Role, TimesheetStatus, TransitionKind
from timesheet_kernel.services.workflow_engine import WorkflowEngine
from timesheet_services.cache_invalidator import DEFAULT_TAG_MAP


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultSettings:
    def test_loads(self):
        settings = get_workflow_settings()
        assert settings.config_id == "timesheet-workflow-default"
        assert settings.lock_window_days == 30
        assert settings.hour_granularity == Decimal("0.25")
        assert settings.max_daily_hours == Decimal("24")
        assert settings.working_weekdays == (0, 1, 2, 3, 4)
        assert settings.audit_mode == "best_effort"
        assert settings.capability_overrides == ()

    def test_matches_kernel_defaults(self):
        policy = build_workflow_policy(get_workflow_settings())
        assert policy.lock_window_days == DEFAULT_POLICY.lock_window_days
        assert policy.daily_reference_hours == DEFAULT_POLICY.daily_reference_hours
        assert policy.working_weekdays == DEFAULT_POLICY.working_weekdays
        assert policy.hour_granularity == DEFAULT_POLICY.hour_granularity
        assert policy.max_daily_hours == DEFAULT_POLICY.max_daily_hours
        assert policy.capabilities.roles_for(TransitionKind.REVERT) == {Role.ADMIN}

    def test_cache_tags_match_invalidator_defaults(self):
        assert build_cache_tag_map(get_workflow_settings()) == DEFAULT_TAG_MAP

    def test_load_logged_with_checksum(self, captured_logs):
        settings = get_workflow_settings()
        (record,) = [r for r in captured_logs() if r["message"] == "workflow_config_loaded"]
        assert record["config_id"] == settings.config_id
        assert record["checksum"] == settings.checksum
        assert record["source"].endswith("default.yaml")


class TestChecksum:
    def test_deterministic(self):
        assert compute_checksum({"b": 1, "a": 2}) == compute_checksum({"a": 2, "b": 1})

    def test_changes_with_content(self, tmp_path):
        first = get_workflow_settings(_write(tmp_path, {"config_id": "x", "lock_window_days": 30}))
        second = get_workflow_settings(_write(tmp_path, {"config_id": "x", "lock_window_days": 31}))
        assert first.checksum != second.checksum

    def test_not_part_of_equality(self):
        a = parse_settings({"config_id": "x"})
        b = parse_settings({"config_id": "x", "version": 1})
        assert a.checksum != b.checksum
        assert a == b


class TestValidation:
    @pytest.mark.parametrize(
        "data, message",
        [
            ({}, "config_id is required"),
            ({"config_id": "x", "lock_window": 30}, "unknown settings keys"),
            ({"config_id": "x", "lock_window_days": -1}, "lock_window_days"),
            ({"config_id": "x", "lock_window_days": "30"}, "lock_window_days"),
            ({"config_id": "x", "audit_mode": "never"}, "audit_mode"),
            ({"config_id": "x", "hour_granularity": "0"}, "hour_granularity"),
            ({"config_id": "x", "hour_granularity": "quarter"}, "not a number"),
            ({"config_id": "x", "max_daily_hours": "10.1"}, "multiple of hour_granularity"),
            ({"config_id": "x", "working_weekdays": [0, 7]}, "weekday number"),
            ({"config_id": "x", "working_weekdays": []}, "non-empty list"),
            ({"config_id": "x", "capabilities": {"INTERN": ["submit"]}}, "unknown role"),
            ({"config_id": "x", "capabilities": {"HR": ["approve_all"]}}, "unknown transition"),
            ({"config_id": "x", "cache_tags": {"archive": ["x"]}}, "unknown transition"),
            ({"config_id": "x", "cache_tags": {"lock": "x"}}, "list of strings"),
        ],
    )
    def test_rejected(self, data, message):
        with pytest.raises(ValueError, match=message):
            parse_settings(data)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_workflow_settings(tmp_path / "absent.yaml")


class TestBridges:
    def test_capability_override_extends_defaults(self):
        settings = parse_settings({"config_id": "x", "capabilities": {"HR": ["revert"]}})
        table = build_capability_table(settings)
        assert table.roles_for(TransitionKind.REVERT) == {Role.ADMIN, Role.HR}
        assert table.grants(Role.EMPLOYEE, TransitionKind.SUBMIT)

    def test_policy_fields(self):
        settings = parse_settings({
            "config_id": "x",
            "lock_window_days": 45,
            "hour_granularity": "0.5",
            "max_daily_hours": "12",
            "working_weekdays": [0, 1, 2, 3, 4, 5],
            "audit_mode": "strict",
        })
        policy = build_workflow_policy(settings)
        assert policy.lock_window.days == 45
        assert policy.hour_granularity == Decimal("0.5")
        assert policy.max_daily_hours == Decimal("12")
        assert 5 in policy.working_weekdays
        assert policy.audit_mode == "strict"

    def test_configured_grant_used_by_engine(
        self, session, deterministic_clock, directory, auditor, ledger,
        submitted_timesheet, people,
    ):
        submitted = submitted_timesheet()
        settings = parse_settings({"config_id": "x", "capabilities": {"HR": ["revert"]}})
        hr_engine = WorkflowEngine(
            session,
            clock=deterministic_clock,
            directory=directory,
            policy=build_workflow_policy(settings),
            auditor=auditor,
            ledger=ledger,
        )
        reverted = hr_engine.revert_status(
            submitted.timesheet_id, people.hr, TimesheetStatus.DRAFT, reason="wrong week",
        )
        assert reverted.status == TimesheetStatus.DRAFT
