"""
Deterministic hashing for the audit chain.

The same audit payload must always hash to the same value, on every
interpreter and backend, so entries can be re-verified years later.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS_MARKER = "GENESIS"


def _json_default(obj: Any) -> Any:
    """Encode the non-JSON types that appear in timesheet payloads."""
    if isinstance(obj, Decimal):
        # 8.00 and 8 must hash identically
        return format(obj.normalize(), "f")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Sorted keys, no whitespace, stable encoding of special types."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_default,
    )


def to_jsonable(data: Any) -> Any:
    """Plain JSON structure (str/int/list/dict) safe for a JSON column."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: dict | None) -> str:
    """SHA-256 hex digest of the canonical JSON form of ``payload``."""
    canonical = canonicalize_json(payload or {})
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_entry(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chain hash of one audit entry.

    H(entity_type | entity_id | action | payload_hash | prev_hash), with
    the genesis marker standing in for the missing predecessor.
    """
    data = "|".join([
        entity_type,
        str(entity_id),
        action,
        payload_hash,
        prev_hash or GENESIS_MARKER,
    ])
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
