"""
timesheet_services -- post-commit side effects and scheduled jobs.

Sits above ``timesheet_kernel``: notification dispatch and cache
invalidation are installed as ``WorkflowUnitOfWork`` hooks; the lock
sweep runs the engine as the SYSTEM actor.
"""

from timesheet_services.cache_invalidator import (
    DEFAULT_TAG_MAP,
    CacheBackend,
    CacheInvalidator,
    InMemoryCacheBackend,
)
from timesheet_services.lock_sweep import LockSweepReport, TimesheetLockTask, run_lock_sweep
from timesheet_services.notification_dispatcher import (
    DedupingConsumer,
    InMemoryChannel,
    NotificationChannel,
    NotificationDispatcher,
    WorkflowEvent,
)

__all__ = [
    "CacheBackend",
    "CacheInvalidator",
    "DEFAULT_TAG_MAP",
    "DedupingConsumer",
    "InMemoryCacheBackend",
    "InMemoryChannel",
    "LockSweepReport",
    "NotificationChannel",
    "NotificationDispatcher",
    "TimesheetLockTask",
    "WorkflowEvent",
    "run_lock_sweep",
]
