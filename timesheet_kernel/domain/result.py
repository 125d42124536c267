"""
Explicit operation results (``timesheet_kernel.domain.result``).

Responsibility
--------------
Outer callers (HTTP handlers, job runners) should not need to know the
kernel's exception classes to render a refusal.  ``OperationResult``
carries either the value or a closed ``ErrorKind`` plus the error code
and message, so callers can handle VALIDATION, AUTHORIZATION,
STATE_CONFLICT and NOT_FOUND exhaustively.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ``capture()`` converts a kernel
exception raised by a service call into an error result; any other
exception propagates unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

from timesheet_kernel.exceptions import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    TimesheetKernelError,
    ValidationError,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE_CONFLICT = "state_conflict"
    NOT_FOUND = "not_found"


_KIND_BY_TYPE: tuple[tuple[type[TimesheetKernelError], ErrorKind], ...] = (
    (ValidationError, ErrorKind.VALIDATION),
    (AuthorizationError, ErrorKind.AUTHORIZATION),
    (StateConflictError, ErrorKind.STATE_CONFLICT),
    (NotFoundError, ErrorKind.NOT_FOUND),
)


@dataclass(frozen=True)
class OperationError:
    kind: ErrorKind
    code: str
    message: str


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    value: T | None = None
    error: OperationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, exc: TimesheetKernelError) -> OperationResult[T]:
        return cls(error=OperationError(error_kind(exc), exc.code, str(exc)))

    def unwrap(self) -> T:
        if self.error is not None:
            raise ValueError(f"{self.error.code}: {self.error.message}")
        return self.value  # type: ignore[return-value]


def error_kind(exc: TimesheetKernelError) -> ErrorKind:
    for exc_type, kind in _KIND_BY_TYPE:
        if isinstance(exc, exc_type):
            return kind
    raise TypeError(f"{type(exc).__name__} has no caller-facing error kind")


def capture(fn: Callable[..., T], *args, **kwargs) -> OperationResult[T]:
    """Call ``fn`` and fold caller-facing kernel errors into a result."""
    try:
        return OperationResult.success(fn(*args, **kwargs))
    except (ValidationError, AuthorizationError, StateConflictError, NotFoundError) as exc:
        return OperationResult.failure(exc)
