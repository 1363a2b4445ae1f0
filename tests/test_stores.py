from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from lovestory.core.errors import NotFound, StorageUnavailable
from lovestory.domain.models import Couple
from lovestory.storage.base import for_day
from lovestory.storage.jsonl import JsonCoupleDirectory, JsonlCheckpointLedger, JsonlLocationStore
from lovestory.storage.memory import MemoryCheckpointLedger, MemoryCoupleDirectory, MemoryLocationStore

KST = ZoneInfo("Asia/Seoul")
T0 = datetime(2024, 5, 3, 12, 0, tzinfo=KST)


@pytest.fixture(params=["memory", "jsonl"])
def stores(request, tmp_path):
    if request.param == "memory":
        return MemoryLocationStore(), MemoryCheckpointLedger(), MemoryCoupleDirectory()
    return JsonlLocationStore(tmp_path), JsonlCheckpointLedger(tmp_path), JsonCoupleDirectory(tmp_path)


def test_latest_raises_not_found_for_unknown_user(stores):
    locations, _, _ = stores
    with pytest.raises(NotFound):
        locations.latest("nobody")


def test_latest_uses_max_captured_at_not_insertion_order(stores):
    locations, _, _ = stores
    locations.append("u1", 37.0, 127.0, T0 + timedelta(minutes=5))
    locations.append("u1", 38.0, 128.0, T0)
    assert locations.latest("u1").latitude == 37.0


def test_latest_breaks_timestamp_ties_by_last_write(stores):
    locations, _, _ = stores
    locations.append("u1", 37.0, 127.0, T0)
    locations.append("u1", 37.5, 127.5, T0)
    latest = locations.latest("u1")
    assert (latest.latitude, latest.longitude) == (37.5, 127.5)


def test_range_filters_owners_and_half_open_window(stores):
    locations, _, _ = stores
    locations.append("u1", 37.0, 127.0, T0 + timedelta(minutes=2))
    locations.append("u2", 37.1, 127.1, T0)
    locations.append("u3", 37.2, 127.2, T0 + timedelta(minutes=1))
    locations.append("u1", 37.3, 127.3, T0 + timedelta(minutes=10))

    out = locations.range(["u1", "u2"], T0, T0 + timedelta(minutes=10))
    assert [s.owner_user_id for s in out] == ["u2", "u1"]
    assert out == locations.range(["u2", "u1"], T0, T0 + timedelta(minutes=10))


def test_recent_is_newest_first_and_limited(stores):
    locations, _, _ = stores
    for i in range(5):
        locations.append("u1", 30.0 + i, 127.0, T0 + timedelta(minutes=i))
    recent = locations.recent("u1", limit=3)
    assert [s.latitude for s in recent] == [34.0, 33.0, 32.0]


def test_seq_is_monotonic(stores):
    locations, ledger, _ = stores
    a = locations.append("u1", 37.0, 127.0, T0)
    b = locations.append("u2", 37.0, 127.0, T0)
    assert b.seq > a.seq
    c1 = ledger.append_checkpoint("c1", 37.0, 127.0, T0)
    c2 = ledger.append_checkpoint("c1", 37.0, 127.0, T0)
    assert c2.seq > c1.seq


def test_most_recent_checkpoint_per_couple(stores):
    _, ledger, _ = stores
    with pytest.raises(NotFound):
        ledger.most_recent("c1")
    ledger.append_checkpoint("c1", 37.0, 127.0, T0)
    ledger.append_checkpoint("c1", 37.1, 127.1, T0 + timedelta(minutes=1))
    ledger.append_checkpoint("c2", 37.2, 127.2, T0 + timedelta(minutes=5))
    assert ledger.most_recent("c1").latitude == 37.1


def test_for_day_uses_reference_timezone_boundaries(stores):
    _, ledger, _ = stores
    day = T0.date()
    ledger.append_checkpoint("c1", 37.0, 127.0, datetime(2024, 5, 3, 0, 0, tzinfo=KST))
    ledger.append_checkpoint("c1", 37.1, 127.0, datetime(2024, 5, 3, 23, 59, 59, tzinfo=KST))
    ledger.append_checkpoint("c1", 37.2, 127.0, datetime(2024, 5, 4, 0, 0, tzinfo=KST))
    ledger.append_checkpoint("c1", 37.3, 127.0, datetime(2024, 5, 2, 23, 59, 59, tzinfo=KST))

    assert [c.latitude for c in for_day(ledger, "c1", day, "Asia/Seoul")] == [37.0, 37.1]
    # The same instants seen from UTC land on different days.
    assert [c.latitude for c in for_day(ledger, "c1", day, "UTC")] == [37.1, 37.2]


def test_purges_only_touch_their_owner(stores):
    locations, ledger, _ = stores
    locations.append("u1", 37.0, 127.0, T0)
    locations.append("u2", 37.0, 127.0, T0)
    ledger.append_checkpoint("c1", 37.0, 127.0, T0)
    ledger.append_checkpoint("c2", 37.0, 127.0, T0)

    assert locations.purge_owner("u1") == 1
    assert ledger.purge_couple("c1") == 1
    with pytest.raises(NotFound):
        locations.latest("u1")
    assert locations.latest("u2").owner_user_id == "u2"
    assert ledger.most_recent("c2").couple_id == "c2"


def test_couple_directory_register_lookup_remove(stores):
    _, _, directory = stores
    directory.register(Couple(couple_id="c1", user_a="u1", user_b="u2"))
    assert directory.get_couple_members("c1") == ("u1", "u2")
    directory.remove("c1")
    with pytest.raises(NotFound):
        directory.get_couple_members("c1")
    with pytest.raises(NotFound):
        directory.remove("c1")


def test_jsonl_store_survives_restart_and_keeps_seq_monotonic(tmp_path):
    store = JsonlLocationStore(tmp_path)
    first = store.append("u1", 37.0, 127.0, T0)

    reopened = JsonlLocationStore(tmp_path)
    assert reopened.latest("u1") == first
    assert reopened.latest("u1").captured_at == T0
    assert reopened.append("u1", 37.1, 127.1, T0).seq == first.seq + 1


def test_jsonl_store_skips_torn_trailing_line(tmp_path):
    store = JsonlLocationStore(tmp_path)
    store.append("u1", 37.0, 127.0, T0)
    with (tmp_path / "location_samples.jsonl").open("a", encoding="utf-8") as fh:
        fh.write('{"owner_user_id": "u1", "lati')
    assert JsonlLocationStore(tmp_path).latest("u1").latitude == 37.0


def test_jsonl_append_failure_is_storage_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    ledger = JsonlCheckpointLedger(blocker)
    with pytest.raises(StorageUnavailable):
        ledger.append_checkpoint("c1", 37.0, 127.0, T0)


@pytest.mark.parametrize("payload", ['{"c1": {"couple_id": "c1"}}', '["c1"]', "{not json"])
def test_jsonl_corrupt_couples_file_is_storage_unavailable(tmp_path, payload):
    (tmp_path / "couples.json").write_text(payload, encoding="utf-8")
    directory = JsonCoupleDirectory(tmp_path)
    with pytest.raises(StorageUnavailable):
        directory.get_couple_members("c1")
    with pytest.raises(StorageUnavailable):
        directory.register(Couple(couple_id="c2", user_a="u1", user_b="u2"))
    with pytest.raises(StorageUnavailable):
        directory.remove("c1")
