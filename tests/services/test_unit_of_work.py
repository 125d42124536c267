"""
Tests for WorkflowUnitOfWork -- commit boundary and post-commit hooks.

Covers:
- Hooks see committed state, never uncommitted state
- Rollback discards queued outcomes: no notification, no invalidation
- A failing hook is logged and does not stop later hooks
- Notification and cache hooks wired end to end
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from timesheet_kernel.domain.values import ActivityInput, TimesheetStatus, TransitionKind
from timesheet_kernel.exceptions import ValidationError
from timesheet_kernel.selectors.timesheet_selector import TimesheetSelector
from timesheet_kernel.services.unit_of_work import WorkflowUnitOfWork
from timesheet_services.cache_invalidator import CacheInvalidator, InMemoryCacheBackend
from timesheet_services.notification_dispatcher import InMemoryChannel, NotificationDispatcher

WEEK_START = date(2025, 1, 13)


@pytest.fixture
def uow_factory(session_factory, deterministic_clock, directory):
    def _make(hooks=()):
        return WorkflowUnitOfWork(
            session_factory, hooks=hooks, clock=deterministic_clock, directory=directory,
        )

    return _make


@pytest.fixture
def draft_id(uow_factory, people):
    with uow_factory() as uow:
        sheet = uow.engine.create_timesheet(people.employee, WEEK_START)
        for offset in range(2):
            uow.ledger.add_activity(
                sheet.timesheet_id,
                people.employee,
                ActivityInput(WEEK_START + timedelta(days=offset), Decimal("8"), "audit prep"),
            )
    return sheet.timesheet_id


def _status(session_factory, timesheet_id):
    session = session_factory()
    try:
        return TimesheetSelector(session).get(timesheet_id).status
    finally:
        session.close()


class TestCommitThenHooks:
    def test_hook_sees_committed_state(self, uow_factory, session_factory, draft_id, people):
        observed = []

        def hook(outcome):
            observed.append(_status(session_factory, outcome.timesheet_id))

        with uow_factory(hooks=[hook]) as uow:
            uow.engine.submit(draft_id, people.employee)
            assert observed == []
            assert len(uow.pending) == 1

        assert observed == [TimesheetStatus.SUBMITTED]

    def test_outcomes_in_order(self, uow_factory, draft_id, people):
        kinds = []
        with uow_factory(hooks=[lambda o: kinds.append(o.kind)]) as uow:
            uow.engine.submit(draft_id, people.employee)
            uow.engine.manager_approve(draft_id, people.manager)
            uow.engine.final_approve(draft_id, people.directeur)

        assert kinds == [
            TransitionKind.SUBMIT,
            TransitionKind.MANAGER_APPROVE,
            TransitionKind.FINAL_APPROVE,
        ]

    def test_every_hook_gets_every_outcome(self, uow_factory, draft_id, people):
        first, second = [], []
        with uow_factory(hooks=[first.append, second.append]) as uow:
            uow.engine.submit(draft_id, people.employee)
            uow.engine.cancel_submission(draft_id, people.employee)
        assert [o.kind for o in first] == [o.kind for o in second]
        assert len(first) == 2

    def test_pending_cleared_after_commit(self, uow_factory, draft_id, people):
        with uow_factory() as uow:
            uow.engine.submit(draft_id, people.employee)
        assert uow.pending == ()


class TestRollback:
    def test_no_hooks_on_failure(
        self, uow_factory, session_factory, draft_id, people, captured_logs,
    ):
        delivered = []
        with pytest.raises(ValidationError):
            with uow_factory(hooks=[delivered.append]) as uow:
                uow.engine.submit(draft_id, people.employee)
                uow.engine.manager_approve(draft_id, people.manager, "REJECT", comment=None)

        assert delivered == []
        assert _status(session_factory, draft_id) == TimesheetStatus.DRAFT
        discarded = [r for r in captured_logs() if r["message"] == "post_commit_outcomes_discarded"]
        assert discarded[0]["count"] == 1

    def test_explicit_rollback(self, uow_factory, session_factory, draft_id, people):
        delivered = []
        with uow_factory(hooks=[delivered.append]) as uow:
            uow.engine.submit(draft_id, people.employee)
            uow.rollback()
        assert delivered == []
        assert _status(session_factory, draft_id) == TimesheetStatus.DRAFT


class TestHookFailure:
    def test_failure_logged_and_isolated(
        self, uow_factory, session_factory, draft_id, people, captured_logs,
    ):
        delivered = []

        def broken(outcome):
            raise RuntimeError("smtp relay unreachable")

        with uow_factory(hooks=[broken, delivered.append]) as uow:
            uow.engine.submit(draft_id, people.employee)

        assert len(delivered) == 1
        assert _status(session_factory, draft_id) == TimesheetStatus.SUBMITTED
        failures = [r for r in captured_logs() if r["message"] == "post_commit_hook_failed"]
        assert len(failures) == 1
        assert failures[0]["transition"] == "submit"
        assert failures[0]["exc_message"] == "smtp relay unreachable"


class TestWiredHooks:
    def test_submit_notifies_manager_and_invalidates(
        self, uow_factory, draft_id, directory, deterministic_clock, people,
    ):
        channel = InMemoryChannel()
        cache = InMemoryCacheBackend()
        cache.set("queue:manager", ["stale"], tags=["approvals:pending:manager"])
        cache.set("queue:final", ["fresh"], tags=["approvals:pending:final"])
        hooks = [
            NotificationDispatcher(channel, directory, deterministic_clock),
            CacheInvalidator([cache]),
        ]

        with uow_factory(hooks=hooks) as uow:
            uow.engine.submit(draft_id, people.employee)

        (event,) = channel.events
        assert event.kind == TransitionKind.SUBMIT
        assert event.recipients == (people.manager.actor_id,)
        assert cache.get("queue:manager") is None
        assert cache.get("queue:final") == ["fresh"]
        assert f"timesheet:{draft_id}" in cache.invalidations[0]

    def test_failed_transition_sends_nothing(
        self, uow_factory, draft_id, directory, deterministic_clock, people,
    ):
        channel = InMemoryChannel()
        cache = InMemoryCacheBackend()
        hooks = [
            NotificationDispatcher(channel, directory, deterministic_clock),
            CacheInvalidator([cache]),
        ]
        with pytest.raises(ValidationError):
            with uow_factory(hooks=hooks) as uow:
                uow.engine.submit(draft_id, people.employee)
                raise ValidationError("request aborted by caller")

        assert channel.events == []
        assert cache.invalidations == []

    def test_dispatcher_retries_after_commit(
        self, uow_factory, draft_id, directory, deterministic_clock, people, captured_logs,
    ):
        delivered = []
        calls = []

        class DropsFirstPublish:
            def publish(self, event):
                calls.append(event)
                if len(calls) == 1:
                    raise ConnectionError("broker restarting")
                delivered.append(event)

        dispatcher = NotificationDispatcher(
            DropsFirstPublish(), directory, deterministic_clock, sleep=lambda _: None,
        )
        with uow_factory(hooks=[dispatcher]) as uow:
            uow.engine.submit(draft_id, people.employee)

        assert [e.kind for e in delivered] == [TransitionKind.SUBMIT]
        assert len(calls) == 2
        assert not any(r["message"] == "post_commit_hook_failed" for r in captured_logs())
