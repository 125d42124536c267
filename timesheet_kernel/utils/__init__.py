"""Utility modules for the timesheet kernel."""

from timesheet_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_entry,
    hash_payload,
    to_jsonable,
)

__all__ = [
    "canonicalize_json",
    "hash_audit_entry",
    "hash_payload",
    "to_jsonable",
]
