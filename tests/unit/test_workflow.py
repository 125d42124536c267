"""
Unit tests for the timesheet workflow definition.

Verifies:
- Every forward edge and its target
- LOCKED has no outgoing transitions
- APPROVED is reachable only through MANAGER_APPROVED
- revert targets are strictly backward
"""

import pytest

from timesheet_kernel.domain.values import TimesheetStatus, TransitionKind
from timesheet_kernel.domain.workflow import (
    TIMESHEET_WORKFLOW,
    is_mutable,
    revert_targets,
)

_S = TimesheetStatus
_K = TransitionKind


class TestEdges:
    @pytest.mark.parametrize(
        "kind,source,target",
        [
            (_K.SUBMIT, _S.DRAFT, _S.SUBMITTED),
            (_K.CANCEL_SUBMISSION, _S.SUBMITTED, _S.DRAFT),
            (_K.MANAGER_APPROVE, _S.SUBMITTED, _S.MANAGER_APPROVED),
            (_K.MANAGER_REJECT, _S.SUBMITTED, _S.REJECTED),
            (_K.FINAL_APPROVE, _S.MANAGER_APPROVED, _S.APPROVED),
            (_K.FINAL_REJECT, _S.MANAGER_APPROVED, _S.REJECTED),
            (_K.LOCK, _S.APPROVED, _S.LOCKED),
        ],
    )
    def test_forward_edges(self, kind, source, target):
        transition = TIMESHEET_WORKFLOW.find(kind, source)
        assert transition is not None
        assert transition.to_state == target

    def test_transitions_reference_known_states(self):
        states = set(TIMESHEET_WORKFLOW.states)
        for t in TIMESHEET_WORKFLOW.transitions:
            assert t.from_state in states
            assert t.to_state in states

    def test_locked_has_no_outgoing_edges(self):
        assert not [t for t in TIMESHEET_WORKFLOW.transitions if t.from_state == _S.LOCKED]

    def test_approved_only_from_manager_approved(self):
        sources = {t.from_state for t in TIMESHEET_WORKFLOW.transitions if t.to_state == _S.APPROVED}
        assert sources == {_S.MANAGER_APPROVED}

    def test_manager_approved_only_from_submitted(self):
        sources = {
            t.from_state for t in TIMESHEET_WORKFLOW.transitions
            if t.to_state == _S.MANAGER_APPROVED
        }
        assert sources == {_S.SUBMITTED}

    def test_cannot_skip_manager_review(self):
        assert TIMESHEET_WORKFLOW.find(_K.FINAL_APPROVE, _S.SUBMITTED) is None


class TestRevertTargets:
    @pytest.mark.parametrize(
        "current,expected",
        [
            (_S.DRAFT, set()),
            (_S.SUBMITTED, {_S.DRAFT}),
            (_S.MANAGER_APPROVED, {_S.DRAFT, _S.SUBMITTED}),
            (_S.APPROVED, {_S.DRAFT, _S.SUBMITTED, _S.MANAGER_APPROVED}),
            (_S.REJECTED, {_S.DRAFT, _S.SUBMITTED, _S.MANAGER_APPROVED}),
            (_S.LOCKED, set()),
        ],
    )
    def test_targets(self, current, expected):
        assert revert_targets(current) == expected


def test_only_draft_is_mutable():
    assert [s for s in TimesheetStatus if is_mutable(s)] == [_S.DRAFT]
