"""
Tests for AuditRecorder.

Covers:
- Hash chain: genesis entry, links, validate_chain
- Tamper detection after raw SQL edits of the audit table
- best_effort mode: a failed audit write is logged and the transition stands
- strict mode: a failed audit write aborts the operation
- Per-entity traces carry actor, role and changes
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from timesheet_kernel.domain.policy import DEFAULT_POLICY
from timesheet_kernel.domain.values import TimesheetDetails, TimesheetStatus
from timesheet_kernel.exceptions import AuditChainBrokenError
from timesheet_kernel.models.audit_log import AuditAction, AuditLogEntry
from timesheet_kernel.services.activity_ledger import ActivityLedger
from timesheet_kernel.services.audit_recorder import AuditMode, AuditRecorder, diff
from timesheet_kernel.services.sequence_service import SequenceService
from timesheet_kernel.services.workflow_engine import WorkflowEngine

WEEK_START = date(2025, 1, 13)


def _entries(session):
    return session.execute(select(AuditLogEntry).order_by(AuditLogEntry.seq)).scalars().all()


def _failing_next_value(self, sequence_name):
    raise OperationalError("UPDATE sequence_counters", {}, Exception("database is locked"))


class TestHashChain:
    def test_chain_links(self, session, approved_timesheet):
        approved_timesheet()
        entries = _entries(session)

        assert entries[0].is_genesis
        for previous, entry in zip(entries, entries[1:]):
            assert entry.prev_hash == previous.hash
            assert entry.seq > previous.seq

    def test_valid_chain(self, auditor, approved_timesheet, captured_logs):
        approved_timesheet()
        assert auditor.validate_chain() is True
        assert any(r["message"] == "audit_chain_valid" for r in captured_logs())

    def test_empty_chain_is_valid(self, auditor):
        assert auditor.validate_chain() is True

    def test_entries_are_flushed_not_committed(self, session, draft_timesheet):
        draft_timesheet()
        assert session.in_transaction()
        assert len(_entries(session)) == 3


class TestTamperDetection:
    def test_edited_changes_detected(self, session, auditor, submitted_timesheet, captured_logs):
        submitted_timesheet()
        target = _entries(session)[1]
        session.execute(
            text("UPDATE audit_log SET changes = :changes WHERE seq = :seq"),
            {"changes": '{"hours": "80"}', "seq": target.seq},
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError) as exc_info:
            auditor.validate_chain()
        assert exc_info.value.audit_entry_id == str(target.id)
        assert any(r["message"] == "audit_chain_broken" for r in captured_logs())

    def test_relinked_entry_detected(self, session, auditor, submitted_timesheet):
        submitted_timesheet()
        target = _entries(session)[2]
        session.execute(
            text("UPDATE audit_log SET prev_hash = :forged WHERE seq = :seq"),
            {"forged": "0" * 64, "seq": target.seq},
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError):
            auditor.validate_chain()

    def test_rewritten_action_detected(self, session, auditor, approved_timesheet):
        approved_timesheet()
        last = _entries(session)[-1]
        session.execute(
            text("UPDATE audit_log SET action = 'REJECT' WHERE seq = :seq"),
            {"seq": last.seq},
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError):
            auditor.validate_chain()


class TestBestEffortMode:
    def test_failed_write_does_not_block_transition(
        self, session, engine, auditor, draft_timesheet, people, captured_logs, monkeypatch,
    ):
        draft = draft_timesheet()
        monkeypatch.setattr(SequenceService, "next_value", _failing_next_value)

        submitted = engine.submit(draft.timesheet_id, people.employee)
        session.commit()

        assert submitted.status == TimesheetStatus.SUBMITTED
        monkeypatch.undo()
        trace = auditor.get_trace("Timesheet", draft.timesheet_id)
        assert AuditAction.SUBMIT not in trace.actions

        failures = [r for r in captured_logs() if r["message"] == "audit_write_failed"]
        assert len(failures) == 1
        assert failures[0]["level"] == "ERROR"
        assert failures[0]["action"] == "SUBMIT"
        assert failures[0]["audit_mode"] == "best_effort"

    def test_record_returns_none_on_failure(self, auditor, people, monkeypatch):
        monkeypatch.setattr(SequenceService, "next_value", _failing_next_value)
        assert auditor.record(people.admin, AuditAction.UPDATE, "Timesheet", uuid4()) is None


class TestStrictMode:
    @pytest.fixture
    def strict_engine(self, session, deterministic_clock, directory):
        strict = AuditRecorder(session, deterministic_clock, AuditMode.STRICT)
        ledger = ActivityLedger(session, deterministic_clock, strict, DEFAULT_POLICY)
        return WorkflowEngine(
            session,
            clock=deterministic_clock,
            directory=directory,
            policy=DEFAULT_POLICY,
            auditor=strict,
            ledger=ledger,
        )

    def test_failed_write_propagates(self, strict_engine, people, monkeypatch):
        sheet = strict_engine.create_timesheet(people.employee, WEEK_START)
        monkeypatch.setattr(SequenceService, "next_value", _failing_next_value)
        with pytest.raises(OperationalError):
            strict_engine.update_timesheet_details(
                sheet.timesheet_id, people.employee, TimesheetDetails(site="Nantes"),
            )

    def test_mode_from_string(self, session):
        assert AuditRecorder(session, mode="strict").mode == AuditMode.STRICT
        with pytest.raises(ValueError):
            AuditRecorder(session, mode="sometimes")


class TestTrace:
    def test_entry_captures_actor(self, auditor, submitted_timesheet, people):
        submitted = submitted_timesheet()
        trace = auditor.get_trace("Timesheet", submitted.timesheet_id)
        submit = trace.entries[-1]
        assert submit.action == AuditAction.SUBMIT
        assert submit.actor_id == people.employee.actor_id
        assert submit.actor_role == "EMPLOYEE"
        assert submit.changes["total_hours"] == "15.5"

    def test_network_origin_stored(self, session, submitted_timesheet):
        submitted_timesheet()
        entry = _entries(session)[-1]
        assert entry.ip_address == "10.0.0.11"
        assert entry.user_agent == "pytest"

    def test_unknown_entity_trace_is_empty(self, auditor):
        trace = auditor.get_trace("Timesheet", uuid4())
        assert trace.is_empty
        assert trace.last_action is None


class TestDiff:
    def test_only_changed_fields(self):
        before = {"hours": Decimal("8"), "description": "site visit", "category": None}
        after = {"hours": Decimal("7.5"), "description": "site visit", "category": "travel"}
        assert diff(before, after) == {
            "hours": {"old": Decimal("8"), "new": Decimal("7.5")},
            "category": {"old": None, "new": "travel"},
        }

    def test_no_change(self):
        assert diff({"a": 1}, {"a": 1}) == {}
