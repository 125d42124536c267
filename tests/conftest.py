"""
Pytest fixtures for the timesheet kernel test suite.

Provides:
- A file-backed SQLite database per test (real commits, real
  SAVEPOINTs, multi-connection concurrency)
- A deterministic clock pinned to Monday 2025-01-13 09:00 UTC
- Actors for every role and an org directory wiring them together
- Kernel services bound to the test session
- Captured structured logs

Environment Variables:
- DATABASE_URL: optional PostgreSQL URL.  When set, tests run against it
  instead of SQLite (tables are dropped and recreated per test).
"""

import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from timesheet_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from timesheet_kernel.domain.clock import DeterministicClock
from timesheet_kernel.domain.directory import StaticOrgDirectory
from timesheet_kernel.domain.policy import DEFAULT_POLICY
from timesheet_kernel.domain.values import ActivityInput, ActorContext, Role
from timesheet_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from timesheet_kernel.selectors.timesheet_selector import TimesheetSelector
from timesheet_kernel.services.activity_ledger import ActivityLedger
from timesheet_kernel.services.audit_recorder import AuditRecorder
from timesheet_kernel.services.workflow_engine import WorkflowEngine

# Monday of the week most tests work in.
WEEK_START = date(2025, 1, 13)
NOW = datetime(2025, 1, 13, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture timesheet_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.submit(...)
            logs = captured_logs()
            assert any(r["message"] == "timesheet_transitioned" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("timesheet_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """Fresh database per test.

    SQLite files give every test real commits and a real write lock, so
    concurrency tests need no special isolation pattern.
    """
    url = os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'timesheets.db'}"
    eng = init_engine_from_url(url, pool_size=10, max_overflow=10, pool_timeout=10)
    if os.environ.get("DATABASE_URL"):
        drop_tables()
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """Session for one test.  Uncommitted work is rolled back at teardown."""
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Clock, people, directory
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(NOW)


@pytest.fixture
def people():
    """Stable identities for one org: two employees, their manager, a
    second manager with no reports, HR, a directeur and an admin."""
    return SimpleNamespace(
        employee=ActorContext(uuid4(), Role.EMPLOYEE, ip_address="10.0.0.11", user_agent="pytest"),
        colleague=ActorContext(uuid4(), Role.EMPLOYEE, ip_address="10.0.0.12", user_agent="pytest"),
        manager=ActorContext(uuid4(), Role.MANAGER, ip_address="10.0.0.21", user_agent="pytest"),
        other_manager=ActorContext(uuid4(), Role.MANAGER),
        hr=ActorContext(uuid4(), Role.HR),
        directeur=ActorContext(uuid4(), Role.DIRECTEUR, ip_address="10.0.0.31"),
        admin=ActorContext(uuid4(), Role.ADMIN, ip_address="10.0.0.41"),
        system=ActorContext.system(),
    )


@pytest.fixture
def directory(people):
    return StaticOrgDirectory(
        managers={
            people.employee.actor_id: people.manager.actor_id,
            people.colleague.actor_id: people.manager.actor_id,
            people.manager.actor_id: people.directeur.actor_id,
        },
        final_approvers=[people.hr.actor_id, people.directeur.actor_id, people.admin.actor_id],
    )


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def auditor(session, deterministic_clock):
    return AuditRecorder(session, deterministic_clock)


@pytest.fixture
def ledger(session, deterministic_clock, auditor):
    return ActivityLedger(session, deterministic_clock, auditor, DEFAULT_POLICY)


@pytest.fixture
def transitions():
    """Outcomes reported by the engine, in order."""
    return []


@pytest.fixture
def engine(session, deterministic_clock, directory, auditor, ledger, transitions):
    return WorkflowEngine(
        session,
        clock=deterministic_clock,
        directory=directory,
        policy=DEFAULT_POLICY,
        auditor=auditor,
        ledger=ledger,
        on_transition=transitions.append,
    )


# =============================================================================
# Timesheet builders
# =============================================================================


@pytest.fixture
def draft_timesheet(engine, ledger, people):
    """Factory: a DRAFT timesheet with one activity per ``hours`` entry,
    on consecutive days from Monday."""

    def _create(owner=None, hours=("8", "7.5"), week_start=WEEK_START):
        owner = owner or people.employee
        snapshot = engine.create_timesheet(owner, week_start)
        for offset, h in enumerate(hours):
            ledger.add_activity(
                snapshot.timesheet_id,
                owner,
                ActivityInput(
                    activity_date=week_start + timedelta(days=offset),
                    hours=Decimal(h),
                    description=f"work day {offset + 1}",
                    category="project",
                ),
            )
        return TimesheetSelector(engine.session).get(snapshot.timesheet_id)

    return _create


@pytest.fixture
def submitted_timesheet(engine, draft_timesheet, people):
    def _create(owner=None, **kwargs):
        owner = owner or people.employee
        draft = draft_timesheet(owner, **kwargs)
        return engine.submit(draft.timesheet_id, owner)

    return _create


@pytest.fixture
def manager_approved_timesheet(engine, submitted_timesheet, people):
    def _create(**kwargs):
        submitted = submitted_timesheet(**kwargs)
        return engine.manager_approve(submitted.timesheet_id, people.manager)

    return _create


@pytest.fixture
def approved_timesheet(engine, manager_approved_timesheet, people):
    def _create(**kwargs):
        reviewed = manager_approved_timesheet(**kwargs)
        return engine.final_approve(reviewed.timesheet_id, people.directeur)

    return _create
