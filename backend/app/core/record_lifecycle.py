"""Record Lifecycle — id assignment, timestamp stamping, and shallow merge.

Invariants:
    - Pure functions: the caller (record store) supplies the current collection and clock
    - new_record_id never returns an id present in `taken`, and its timestamp part
      always exceeds `after_ms` (the caller's high-water mark of issued ids)
    - build_record sets createdAt == updatedAt; id/createdAt are never overwritten by merge
    - merge_record's updatedAt is strictly greater than the previous updatedAt

Design Decisions:
    - Id = PROP_<ms-timestamp>_<12 hex>: readable ordering plus 48 random bits; the
      collision check against `taken` runs under the store lock so uniqueness is
      guaranteed, not just probable
    - Strictly-increasing updatedAt: two writes inside one clock tick would otherwise
      produce equal timestamps and break "last modified" comparisons
"""

import secrets
import time
from collections.abc import Callable, Collection, Mapping
from datetime import datetime, timedelta, timezone

from app.core.domain_types import RECORD_ID_PREFIX, RecordId

PROTECTED_KEYS = frozenset({"id", "createdAt"})

_MAX_ID_ATTEMPTS = 16


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def record_id_millis(record_id: str | None) -> int | None:
    """Timestamp part of a PROP_<ms>_<hex> id, or None for foreign ids."""
    parts = (record_id or "").split("_")
    if len(parts) != 3 or parts[0] != RECORD_ID_PREFIX or not parts[1].isdigit():
        return None
    return int(parts[1])


def new_record_id(taken: Collection[str] = (), after_ms: int = 0) -> RecordId:
    """Generate an id absent from `taken` whose timestamp part exceeds `after_ms`."""
    millis = max(int(time.time() * 1000), after_ms + 1)
    for _ in range(_MAX_ID_ATTEMPTS):
        candidate = f"{RECORD_ID_PREFIX}_{millis}_{secrets.token_hex(6)}"
        if candidate not in taken:
            return RecordId(candidate)
    raise RuntimeError("Unable to generate a unique record id")


def build_record(
    attributes: Mapping,
    taken: Collection[str] = (),
    clock: Callable[[], datetime] = utc_now,
    after_ms: int = 0,
) -> dict:
    """Create a new record dict from caller attributes."""
    stamp = clock().isoformat()
    record = {"id": new_record_id(taken, after_ms)}
    record.update(
        {k: v for k, v in attributes.items() if k not in PROTECTED_KEYS},
    )
    record["createdAt"] = stamp
    record["updatedAt"] = stamp
    return record


def next_timestamp(
    previous: str | None, clock: Callable[[], datetime] = utc_now,
) -> str:
    """Current time, nudged forward if it does not exceed `previous`."""
    now = clock()
    if previous:
        try:
            prior = datetime.fromisoformat(previous)
        except ValueError:
            prior = None
        if prior is not None and prior.tzinfo is None:
            prior = prior.replace(tzinfo=timezone.utc)
        if prior is not None and now <= prior:
            now = prior + timedelta(microseconds=1)
    return now.isoformat()


def merge_record(
    existing: Mapping,
    partial: Mapping,
    clock: Callable[[], datetime] = utc_now,
) -> dict:
    """Shallow-merge `partial` over `existing` and refresh updatedAt."""
    merged = dict(existing)
    merged.update(
        {k: v for k, v in partial.items() if k not in PROTECTED_KEYS},
    )
    merged["updatedAt"] = next_timestamp(existing.get("updatedAt"), clock)
    return merged
