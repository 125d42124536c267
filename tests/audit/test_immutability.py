"""
ORM-level immutability of workflow records.

Covers:
- Audit log entries cannot be updated or deleted through the ORM
- A LOCKED timesheet cannot be updated or deleted through the ORM
- Approval records are append-only; only supersession may change them
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from timesheet_kernel.exceptions import ImmutabilityViolationError
from timesheet_kernel.models.audit_log import AuditLogEntry
from timesheet_kernel.models.timesheet import ApprovalRecordModel, TimesheetModel


class TestAuditLogImmutability:
    def test_update_rejected(self, session, draft_timesheet):
        draft_timesheet()
        entry = session.execute(select(AuditLogEntry).limit(1)).scalar_one()
        entry.changes = {"forged": True}
        with pytest.raises(ImmutabilityViolationError, match="immutable"):
            session.flush()

    def test_delete_rejected(self, session, draft_timesheet):
        draft_timesheet()
        entry = session.execute(select(AuditLogEntry).limit(1)).scalar_one()
        session.delete(entry)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestLockedTimesheet:
    @pytest.fixture
    def locked(self, engine, approved_timesheet, deterministic_clock, session):
        approved = approved_timesheet()
        deterministic_clock.advance(days=31)
        engine.lock(approved.timesheet_id)
        return session.get(TimesheetModel, approved.timesheet_id)

    def test_update_rejected(self, session, locked):
        locked.status = "DRAFT"
        with pytest.raises(ImmutabilityViolationError, match="Locked"):
            session.flush()

    def test_detail_update_rejected(self, session, locked):
        locked.site = "Bordeaux"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_rejected(self, session, locked):
        session.delete(locked)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_approved_timesheet_is_still_updatable(self, session, approved_timesheet):
        approved = approved_timesheet()
        model = session.get(TimesheetModel, approved.timesheet_id)
        model.updated_at = model.updated_at + timedelta(seconds=1)
        session.flush()


class TestApprovalRecords:
    def _record(self, session, manager_approved_timesheet):
        reviewed = manager_approved_timesheet()
        return session.execute(
            select(ApprovalRecordModel).where(ApprovalRecordModel.timesheet_id == reviewed.timesheet_id)
        ).scalar_one()

    def test_decision_cannot_change(self, session, manager_approved_timesheet):
        record = self._record(session, manager_approved_timesheet)
        record.decision = "REJECT"
        with pytest.raises(ImmutabilityViolationError, match="append-only"):
            session.flush()

    def test_comment_cannot_change(self, session, manager_approved_timesheet):
        record = self._record(session, manager_approved_timesheet)
        record.comment = "looks fine"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_supersession_allowed(self, session, manager_approved_timesheet):
        record = self._record(session, manager_approved_timesheet)
        record.superseded = True
        session.flush()
        assert record.superseded is True

    def test_supersession_is_one_way(self, session, manager_approved_timesheet):
        record = self._record(session, manager_approved_timesheet)
        record.superseded = True
        session.flush()
        record.superseded = False
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_rejected(self, session, manager_approved_timesheet):
        record = self._record(session, manager_approved_timesheet)
        session.delete(record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
