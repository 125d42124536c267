"""Database layer - engine, base classes and column types."""

from timesheet_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from timesheet_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from timesheet_kernel.db.types import UTCDateTime, as_utc

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "UTCDateTime",
    "as_utc",
]
