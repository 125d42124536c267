"""
Unit tests for OperationResult and capture().
"""

import pytest

from timesheet_kernel.domain.result import ErrorKind, OperationResult, capture, error_kind
from timesheet_kernel.exceptions import (
    AuditChainBrokenError,
    InvalidTransitionError,
    MissingCommentError,
    TimesheetNotFoundError,
    TransitionNotPermittedError,
)


def _raise(exc):
    raise exc


class TestErrorKind:
    @pytest.mark.parametrize(
        "exc,kind",
        [
            (MissingCommentError("reject"), ErrorKind.VALIDATION),
            (TransitionNotPermittedError("a", "EMPLOYEE", "lock", "no"), ErrorKind.AUTHORIZATION),
            (InvalidTransitionError("t", "DRAFT", "lock", "no"), ErrorKind.STATE_CONFLICT),
            (TimesheetNotFoundError("t"), ErrorKind.NOT_FOUND),
        ],
    )
    def test_families(self, exc, kind):
        assert error_kind(exc) == kind

    def test_integrity_errors_have_no_caller_kind(self):
        with pytest.raises(TypeError):
            error_kind(AuditChainBrokenError("e", "x", "y"))


class TestCapture:
    def test_success(self):
        result = capture(lambda a, b: a + b, 1, b=2)
        assert result.ok
        assert result.unwrap() == 3

    def test_failure_carries_code_and_message(self):
        result = capture(_raise, MissingCommentError("reject"))
        assert not result.ok
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.code == "MISSING_COMMENT"
        assert "comment is required" in result.error.message

    def test_unwrap_failure_raises(self):
        result = OperationResult.failure(TimesheetNotFoundError("abc"))
        with pytest.raises(ValueError, match="TIMESHEET_NOT_FOUND"):
            result.unwrap()

    def test_non_kernel_errors_propagate(self):
        with pytest.raises(ZeroDivisionError):
            capture(lambda: 1 / 0)
