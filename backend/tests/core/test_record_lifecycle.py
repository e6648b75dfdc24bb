"""Record Lifecycle tests — id assignment, stamping, and shallow merge."""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.core.record_lifecycle import (
    build_record, merge_record, new_record_id, next_timestamp, record_id_millis,
)

_ID = re.compile(r"^PROP_\d{13}_[0-9a-f]{12}$")
_T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _clock(value=_T0):
    return lambda: value


def test_new_id_format():
    assert _ID.match(new_record_id())


def test_new_id_avoids_taken_ids():
    with patch("app.core.record_lifecycle.secrets.token_hex", side_effect=["aaaaaaaaaaaa", "bbbbbbbbbbbb"]), \
            patch("app.core.record_lifecycle.time.time", return_value=1_700_000_000.0):
        record_id = new_record_id(taken={"PROP_1700000000000_aaaaaaaaaaaa"})
    assert record_id == "PROP_1700000000000_bbbbbbbbbbbb"


def test_new_id_gives_up_after_repeated_collisions():
    with patch("app.core.record_lifecycle.secrets.token_hex", return_value="aaaaaaaaaaaa"), \
            patch("app.core.record_lifecycle.time.time", return_value=1_700_000_000.0):
        with pytest.raises(RuntimeError):
            new_record_id(taken={"PROP_1700000000000_aaaaaaaaaaaa"})


def test_new_id_timestamp_exceeds_high_water_mark():
    with patch("app.core.record_lifecycle.time.time", return_value=1_700_000_000.0):
        record_id = new_record_id(after_ms=1_700_000_000_500)
    assert record_id_millis(record_id) == 1_700_000_000_501


def test_new_id_uses_clock_when_ahead_of_high_water_mark():
    with patch("app.core.record_lifecycle.time.time", return_value=1_700_000_000.0):
        record_id = new_record_id(after_ms=5)
    assert record_id_millis(record_id) == 1_700_000_000_000


@pytest.mark.parametrize("record_id,expected", [
    ("PROP_1700000000000_aaaaaaaaaaaa", 1_700_000_000_000),
    ("imported-42", None),
    ("PROP_x_aaaaaaaaaaaa", None),
    (None, None),
])
def test_record_id_millis(record_id, expected):
    assert record_id_millis(record_id) == expected


def test_build_record_stamps_equal_timestamps():
    record = build_record({"title": "Loft"}, clock=_clock())
    assert record["title"] == "Loft"
    assert record["createdAt"] == record["updatedAt"] == _T0.isoformat()


def test_build_record_ignores_caller_id_and_created_at():
    record = build_record({"id": "mine", "createdAt": "yesterday"}, clock=_clock())
    assert record["id"] != "mine"
    assert record["createdAt"] == _T0.isoformat()


def test_merge_overwrites_supplied_keys_only():
    existing = build_record({"title": "Loft", "price": 900}, clock=_clock())
    later = _T0 + timedelta(seconds=5)
    merged = merge_record(existing, {"price": 500}, clock=_clock(later))
    assert merged["price"] == 500
    assert merged["title"] == "Loft"
    assert merged["id"] == existing["id"]
    assert merged["createdAt"] == existing["createdAt"]
    assert merged["updatedAt"] == later.isoformat()


def test_merge_does_not_mutate_existing():
    existing = build_record({"price": 900}, clock=_clock())
    merge_record(existing, {"price": 500})
    assert existing["price"] == 900


def test_merge_protects_id_and_created_at():
    existing = build_record({}, clock=_clock())
    merged = merge_record(existing, {"id": "other", "createdAt": "x"})
    assert merged["id"] == existing["id"]
    assert merged["createdAt"] == existing["createdAt"]


def test_updated_at_strictly_increases_within_same_tick():
    previous = _T0.isoformat()
    stamp = next_timestamp(previous, clock=_clock(_T0))
    assert datetime.fromisoformat(stamp) > _T0


def test_updated_at_strictly_increases_when_clock_goes_backwards():
    stamp = next_timestamp(_T0.isoformat(), clock=_clock(_T0 - timedelta(hours=1)))
    assert datetime.fromisoformat(stamp) == _T0 + timedelta(microseconds=1)


def test_unparseable_previous_timestamp_uses_clock():
    assert next_timestamp("not-a-date", clock=_clock()) == _T0.isoformat()


def test_naive_previous_timestamp_treated_as_utc():
    stamp = next_timestamp("2026-01-01T12:00:00", clock=_clock(_T0))
    assert datetime.fromisoformat(stamp) > _T0
