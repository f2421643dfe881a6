"""
Hashes for the audit log chain.

Each audit row stores a hash of its own payload and a hash linking it to
the row before it.  Both are recomputed by ``AuditLogService.validate_chain``
from stored columns alone, so the JSON rendering here must never drift.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

GENESIS = "GENESIS"


def _canonical_value(obj: Any) -> Any:
    # 150 and 150.000000000 must hash alike.
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    raise TypeError(f"cannot canonicalize {type(obj).__name__} for hashing")


def canonicalize_json(data: Any) -> str:
    """Sorted-key, whitespace-free JSON with fixed renderings for non-JSON types."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_canonical_value)


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict) -> str:
    return _sha256(canonicalize_json(payload))


def hash_audit_entry(
    seq: int,
    actor_id: str,
    action_type: str,
    requisition_id: str | None,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chain hash for the audit row at position ``seq``.

    ``prev_hash`` is the hash of row ``seq - 1`` (``None`` for the first
    row), so editing or deleting any earlier row changes every later hash.
    """
    subject = "-" if requisition_id is None else str(requisition_id)
    return _sha256(
        f"{seq}|{actor_id}|{action_type}|{subject}|{payload_hash}|{prev_hash or GENESIS}"
    )
