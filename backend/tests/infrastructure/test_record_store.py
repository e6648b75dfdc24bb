"""Record Store — durable collection, serialized mutations, and failure handling.

Tests cover:
    - Absent file is an empty collection (first run)
    - create/get/list round trip and on-disk JSON array layout
    - update merges, protects id/createdAt, bumps updatedAt strictly
    - update/delete of unknown ids return None without writing
    - 50 concurrent creates: unique ids, none lost
    - Concurrent updates to different fields: no lost update
    - Corrupted or non-array file raises StorageCorruptedError and is never overwritten
    - Failed write raises StorageError, leaves previous file intact, cleans temp files
    - Cancelling a caller does not interrupt an in-flight write; a late failure is logged
    - update_with_previous returns the record as it was under the lock
    - Ids freed by delete are not issued again

Design Decisions:
    - Real files under tmp_path; faults injected by monkeypatching os.replace
"""

import asyncio
import logging
import json
from datetime import datetime
from unittest.mock import patch

import pytest

from app.core.errors import StorageCorruptedError, StorageError
from app.infrastructure.record_store import JsonRecordStore


@pytest.fixture
def store(records_path):
    return JsonRecordStore(records_path)


async def test_absent_file_is_empty_collection(store, records_path):
    assert await store.list_all() == []
    assert await store.get("PROP_missing") is None
    assert not records_path.exists()


async def test_create_then_get_round_trip(store):
    attrs = {"title": "Loft", "price": 1200, "images": []}
    record = await store.create(attrs)

    fetched = await store.get(record["id"])
    assert fetched == record
    assert {k: fetched[k] for k in attrs} == attrs
    assert set(fetched) == set(attrs) | {"id", "createdAt", "updatedAt"}


async def test_collection_persisted_as_json_array(store, records_path):
    first = await store.create({"title": "A"})
    second = await store.create({"title": "B"})

    on_disk = json.loads(records_path.read_text(encoding="utf-8"))
    assert [r["id"] for r in on_disk] == [first["id"], second["id"]]


async def test_list_preserves_insertion_order(store):
    ids = [(await store.create({"n": i}))["id"] for i in range(5)]
    assert [r["id"] for r in await store.list_all()] == ids


async def test_new_store_instance_reads_existing_file(store, records_path):
    record = await store.create({"title": "Persisted"})
    reopened = JsonRecordStore(records_path)
    assert await reopened.get(record["id"]) == record


async def test_update_merges_and_bumps_updated_at(store):
    record = await store.create({"title": "Loft", "price": 900, "beds": 1})

    updated = await store.update(record["id"], {"price": 500})

    assert updated["price"] == 500
    assert updated["title"] == "Loft"
    assert updated["beds"] == 1
    assert updated["createdAt"] == record["createdAt"]
    assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(record["updatedAt"])
    assert await store.get(record["id"]) == updated


async def test_update_unknown_id_returns_none_without_writing(store, records_path):
    assert await store.update("PROP_missing", {"price": 1}) is None
    assert not records_path.exists()


async def test_update_with_previous_returns_both_versions(store):
    record = await store.create({"images": ["old.png"]})

    previous, updated = await store.update_with_previous(record["id"], {"images": ["new.png"]})

    assert previous == record
    assert updated["images"] == ["new.png"]


async def test_update_with_previous_unknown_id(store):
    assert await store.update_with_previous("PROP_missing", {"a": 1}) == (None, None)


async def test_delete_then_get_is_none(store):
    record = await store.create({"title": "Gone"})
    removed = await store.delete(record["id"])
    assert removed == record
    assert await store.get(record["id"]) is None


async def test_delete_twice_returns_none(store):
    record = await store.create({"title": "Gone"})
    await store.delete(record["id"])
    assert await store.delete(record["id"]) is None


async def test_delete_keeps_other_records(store):
    keep = await store.create({"title": "Keep"})
    drop = await store.create({"title": "Drop"})
    await store.delete(drop["id"])
    assert await store.list_all() == [keep]


async def test_fifty_concurrent_creates_are_all_kept(store):
    records = await asyncio.gather(*(store.create({"n": i}) for i in range(50)))

    ids = {r["id"] for r in records}
    assert len(ids) == 50
    stored = await store.list_all()
    assert {r["id"] for r in stored} == ids
    assert sorted(r["n"] for r in stored) == list(range(50))


async def test_concurrent_updates_do_not_lose_fields(store):
    record = await store.create({"a": 0, "b": 0})

    await asyncio.gather(
        store.update(record["id"], {"a": 1}),
        store.update(record["id"], {"b": 2}),
    )

    final = await store.get(record["id"])
    assert final["a"] == 1
    assert final["b"] == 2


async def test_invalid_json_raises_corrupted_and_is_not_overwritten(store, records_path):
    records_path.parent.mkdir(parents=True)
    records_path.write_text("[{\"id\": ", encoding="utf-8")

    with pytest.raises(StorageCorruptedError):
        await store.list_all()
    with pytest.raises(StorageCorruptedError):
        await store.create({"title": "Would clobber"})

    assert records_path.read_text(encoding="utf-8") == "[{\"id\": "


async def test_non_array_json_raises_corrupted(store, records_path):
    records_path.parent.mkdir(parents=True)
    records_path.write_text("{\"id\": \"x\"}", encoding="utf-8")

    with pytest.raises(StorageCorruptedError):
        await store.get("x")


async def test_failed_write_raises_and_keeps_previous_file(store, records_path, monkeypatch):
    record = await store.create({"title": "Original"})
    before = records_path.read_text(encoding="utf-8")

    def boom(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("app.infrastructure.record_store.os.replace", boom)

    with pytest.raises(StorageError) as exc_info:
        await store.create({"title": "Lost"})
    assert exc_info.value.operation == "create"
    with pytest.raises(StorageError):
        await store.update(record["id"], {"title": "Changed"})

    assert records_path.read_text(encoding="utf-8") == before
    assert [p.name for p in records_path.parent.iterdir()] == [records_path.name]


async def test_store_usable_after_failed_write(store, monkeypatch):
    def boom(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("app.infrastructure.record_store.os.replace", boom)
    with pytest.raises(StorageError):
        await store.create({"title": "Lost"})
    monkeypatch.undo()

    record = await store.create({"title": "Saved"})
    assert await store.list_all() == [record]


async def test_cancelled_caller_does_not_interrupt_write(store):
    task = asyncio.create_task(store.create({"title": "Finishes anyway"}))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # the shielded cycle still holds the lock; acquiring it waits for the write
    async with store._lock:
        pass
    titles = [r["title"] for r in await store.list_all()]
    assert titles == ["Finishes anyway"]


async def test_health_check_reports_corruption(store, records_path):
    assert await store.health_check() is True
    records_path.parent.mkdir(parents=True)
    records_path.write_text("garbage", encoding="utf-8")
    assert await store.health_check() is False


async def test_deleted_id_is_not_issued_again(store):
    with patch("app.core.record_lifecycle.time.time", return_value=1_700_000_000.0), \
            patch("app.core.record_lifecycle.secrets.token_hex", return_value="aaaaaaaaaaaa"):
        first = await store.create({"title": "First"})
        await store.delete(first["id"])
        second = await store.create({"title": "Second"})

    assert second["id"] != first["id"]


async def test_failure_after_caller_cancelled_is_logged(store, monkeypatch, caplog):
    entered = asyncio.Event()
    release = asyncio.Event()

    async def stalled_persist(records, operation):
        entered.set()
        await release.wait()
        raise StorageError("disk full", operation)

    monkeypatch.setattr(store, "_persist", stalled_persist)

    task = asyncio.create_task(store.create({"title": "Never saved"}))
    await entered.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with caplog.at_level(logging.ERROR, logger="app.infrastructure.record_store"):
        release.set()
        async with store._lock:
            pass
        for _ in range(3):
            await asyncio.sleep(0)

    assert any(
        "failed after its caller was cancelled" in r.getMessage() for r in caplog.records
    )
    assert await store.list_all() == []
