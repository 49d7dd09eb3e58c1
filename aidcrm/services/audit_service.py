"""Audit logging service - tamper-evident record of every accepted mutation.

Security guidelines:
- Details carry ids, enum values and field diffs only; never tokens
- One entry per accepted mutation, written inside the mutation's transaction
- Entries are chained: each hash covers the previous entry's hash
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from aidcrm.db.enums import AuditAction
from aidcrm.db.store import EntityStore
from aidcrm.schemas.audit import AuditDetails, AuditLogEntry
from aidcrm.schemas.auth import Actor

GENESIS_HASH = "0" * 64  # prev_hash of the first entry


def canonical_json(obj: dict | None) -> str:
    """
    Serialize object to canonical JSON for consistent hashing.

    Uses sorted keys, compact separators, and str() for non-JSON types.
    This MUST be used consistently everywhere hashes are computed.
    """
    return json.dumps(obj or {}, sort_keys=True, separators=(",", ":"), default=str)


def compute_entry_hash(
    prev_hash: str,
    action: str,
    user_id: str,
    timestamp: str,
    details_json: str,
) -> str:
    """Hash = SHA256(prev_hash|action|user_id|timestamp|details_json)."""
    data = "|".join([prev_hash, action, user_id, timestamp, details_json])
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _hash_entry(
    prev_hash: str, action: AuditAction, actor_id: str, timestamp: datetime, details: AuditDetails,
) -> str:
    return compute_entry_hash(
        prev_hash=prev_hash,
        action=action.value,
        user_id=actor_id,
        timestamp=timestamp.isoformat(),
        details_json=canonical_json(details.model_dump(mode="json")),
    )


def record(
    store: EntityStore,
    action: AuditAction,
    actor: Actor,
    details: AuditDetails,
    timestamp: datetime,
) -> AuditLogEntry:
    """
    Append one audit entry for an accepted mutation.

    Must be called inside the same ``store.transaction()`` as the write it
    describes, so the entry and the write commit or roll back together.
    """
    if details.action != action:
        raise ValueError(f"details payload is for {details.action.value}, not {action.value}")

    prev_hash = store.last_audit_hash() or GENESIS_HASH
    entry = AuditLogEntry(
        action=action,
        user_id=actor.user_id,
        timestamp=timestamp,
        details=details,
        prev_hash=prev_hash,
        entry_hash=_hash_entry(prev_hash, action, str(actor.user_id), timestamp, details),
    )
    return store.append_audit(entry)


@dataclass(frozen=True)
class ChainReport:
    checked: int
    first_broken_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.first_broken_id is None


def verify_chain(entries: Iterable[AuditLogEntry]) -> ChainReport:
    """Recompute every hash in append order and report the first mismatch."""
    expected_prev = GENESIS_HASH
    checked = 0
    for entry in entries:
        checked += 1
        recomputed = _hash_entry(
            entry.prev_hash or GENESIS_HASH,
            entry.action,
            str(entry.user_id),
            entry.timestamp,
            entry.details,
        )
        if entry.prev_hash != expected_prev or entry.entry_hash != recomputed:
            return ChainReport(checked=checked, first_broken_id=entry.id)
        expected_prev = entry.entry_hash
    return ChainReport(checked=checked)
