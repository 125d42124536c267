"""
BaseService -- common constructor for kernel services.

Responsibility:
    Every write service receives the caller's SQLAlchemy ``Session`` and
    an injected ``Clock``.  Services ``flush()`` inside the caller's
    transaction and never ``commit()`` or ``rollback()`` it; the caller
    (``WorkflowUnitOfWork`` or a test) owns the boundary.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Failure modes:
    - A subclass that commits on its own breaks the all-or-nothing rule:
      a transition and its audit entry must land together or not at all.
    - A flush whose versioned UPDATE matches no row raises
      StaleVersionError, never SQLAlchemy's StaleDataError.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from timesheet_kernel.domain.clock import Clock, SystemClock
from timesheet_kernel.exceptions import StaleVersionError
from timesheet_kernel.logging_config import get_logger

logger = get_logger("services")


class BaseService(ABC):
    """Abstract base class for kernel services that write."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _flush_versioned(self, timesheet_id: UUID, expected_version: int | None = None) -> None:
        """Flush; a concurrent commit on the timesheet surfaces as StaleVersionError."""
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "stale_version_conflict",
                extra={"timesheet_id": str(timesheet_id), "service": type(self).__name__},
            )
            raise StaleVersionError(
                str(timesheet_id), expected_version=expected_version,
            ) from exc
