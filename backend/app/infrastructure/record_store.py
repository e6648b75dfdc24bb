"""Record Store — durable JSON collection with serialized read-modify-write cycles.

Invariants:
    - The store exclusively owns the collection file; nothing else reads or writes it
    - Every create/update/delete runs load -> mutate -> persist under one asyncio.Lock
      per store instance (no lost updates between concurrent requests)
    - Persistence is write-to-temp + fsync + os.replace: readers see the previous or
      the next complete collection, never a truncated one
    - Absent file == empty collection; unreadable file == StorageCorruptedError (never
      silently empty, so the next write can not clobber recoverable data)
    - A failed write leaves the file untouched and raises StorageError

Design Decisions:
    - Blocking file IO via asyncio.to_thread: keeps the event loop free while the lock
      is held, without an extra async file dependency
    - Locked cycle wrapped in asyncio.shield: a cancelled request can not interrupt a
      write half way; the cycle finishes and a late failure is logged, not lost
    - Ids issued by an instance strictly increase in their timestamp part, so an
      id freed by delete is never handed out again
    - Reads take no lock: atomic replace already guarantees a consistent snapshot
    - Singleton record_store initialized on startup (ADR: no global import side effects)
"""

import asyncio
import contextlib
import functools
import json
import logging
import os
import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from app.core.errors import StorageCorruptedError, StorageError
from app.core.record_lifecycle import build_record, merge_record, record_id_millis

logger = logging.getLogger(__name__)

# mutation(records) -> (new collection or None when unchanged, result)
Mutation = Callable[[list[dict]], tuple[list[dict] | None, Any]]


class JsonRecordStore:
    """Single-file record collection with one writer at a time."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = asyncio.Lock()
        # timestamp part of the newest id this instance issued, deleted or not
        self._id_high_water = 0

    # ---- reads ---------------------------------------------------------

    async def get(self, record_id: str) -> dict | None:
        """Return the record with `record_id`, or None."""
        records = await self._load()
        return next((r for r in records if r.get("id") == record_id), None)

    async def list_all(self) -> list[dict]:
        """Return every record in insertion order."""
        return await self._load()

    async def health_check(self) -> bool:
        """Check the durable collection can be loaded (for readiness probes)."""
        try:
            await self._load()
            return True
        except StorageError as e:
            logger.error(f"Record store health check failed: {e.message}")
            return False

    # ---- writes --------------------------------------------------------

    async def create(self, attributes: Mapping) -> dict:
        """Append a new record with a fresh id and timestamps."""
        def mutation(records: list[dict]):
            taken = {r.get("id") for r in records}
            floor = max(
                [self._id_high_water, *(record_id_millis(i) or 0 for i in taken)],
            )
            record = build_record(attributes, taken=taken, after_ms=floor)
            self._id_high_water = record_id_millis(record["id"]) or floor
            return [*records, record], record

        record = await self._mutate("create", mutation)
        logger.info("Record created", extra={"record_id": record["id"]})
        return record

    async def update(self, record_id: str, partial: Mapping) -> dict | None:
        """Shallow-merge `partial` into the record; None if it does not exist."""
        _, updated = await self.update_with_previous(record_id, partial)
        return updated

    async def update_with_previous(
        self, record_id: str, partial: Mapping,
    ) -> tuple[dict | None, dict | None]:
        """Like update, but also return the record as it was when the merge ran."""
        def mutation(records: list[dict]):
            for i, existing in enumerate(records):
                if existing.get("id") == record_id:
                    updated = merge_record(existing, partial)
                    return [*records[:i], updated, *records[i + 1:]], (existing, updated)
            return None, (None, None)

        previous, updated = await self._mutate("update", mutation)
        if updated is not None:
            logger.info("Record updated", extra={"record_id": record_id})
        return previous, updated

    async def delete(self, record_id: str) -> dict | None:
        """Remove the record and return it; None if it did not exist."""
        def mutation(records: list[dict]):
            kept = [r for r in records if r.get("id") != record_id]
            if len(kept) == len(records):
                return None, None
            removed = next(r for r in records if r.get("id") == record_id)
            return kept, removed

        removed = await self._mutate("delete", mutation)
        if removed is not None:
            logger.info("Record deleted", extra={"record_id": record_id})
        return removed

    # ---- internals -----------------------------------------------------

    async def _mutate(self, operation: str, mutation: Mutation) -> Any:
        cycle = asyncio.ensure_future(self._locked_cycle(operation, mutation))
        try:
            return await asyncio.shield(cycle)
        except asyncio.CancelledError:
            # nobody awaits the cycle any more; its outcome is reported here
            cycle.add_done_callback(functools.partial(_report_detached_cycle, operation))
            raise

    async def _locked_cycle(self, operation: str, mutation: Mutation) -> Any:
        async with self._lock:
            records = await self._load()
            new_records, result = mutation(records)
            if new_records is not None:
                await self._persist(new_records, operation)
            return result

    async def _load(self) -> list[dict]:
        try:
            return await asyncio.to_thread(self._read_collection)
        except StorageError as e:
            logger.error(
                f"Failed to load record collection: {e.message}",
                extra={"error_code": e.code, "operation": "load"},
            )
            raise

    async def _persist(self, records: list[dict], operation: str) -> None:
        try:
            await asyncio.to_thread(self._write_collection, records)
        except (OSError, TypeError, ValueError) as e:
            logger.error(
                f"Failed to persist record collection: {e}",
                extra={"error_code": "STORAGE_ERROR", "operation": operation},
            )
            raise StorageError("Could not write record collection", operation) from e

    def _read_collection(self) -> list[dict]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(str(e), "load") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(
                f"{self.path.name} is not valid JSON (line {e.lineno}: {e.msg})",
            ) from e
        if not isinstance(data, list):
            raise StorageCorruptedError(
                f"{self.path.name} does not contain a record array",
            )
        return data

    def _write_collection(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise


def _report_detached_cycle(operation: str, cycle: asyncio.Future) -> None:
    """Retrieve the outcome of a cycle whose caller was cancelled."""
    if cycle.cancelled():
        return
    exc = cycle.exception()
    if exc is not None:
        logger.error(
            f"Record {operation} failed after its caller was cancelled: {exc}",
            extra={"operation": operation},
        )


# Singleton (initialized on startup)
record_store: JsonRecordStore | None = None


def init_store(path: Path | str) -> JsonRecordStore:
    global record_store
    record_store = JsonRecordStore(path)
    return record_store


def get_record_store() -> JsonRecordStore:
    """FastAPI dependency for the record store."""
    if not record_store:
        raise RuntimeError("Record store not initialized")
    return record_store
