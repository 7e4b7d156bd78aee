import os
import threading
from datetime import datetime, timedelta, timezone

from market_snapshot.instruments import Pair
from market_snapshot.negative_cache import NegativeResultCache, persist


def _write_cache(path, symbols, written_at: datetime):
    path.write_text("\n".join(symbols) + "\n", encoding="utf-8")
    ts = written_at.timestamp()
    os.utime(path, (ts, ts))


def _clock(dt: datetime):
    return lambda: dt


T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_entry_honored_within_ttl_and_ignored_after(tmp_path):
    path = tmp_path / "negative.txt"
    _write_cache(path, ["DUSDT"], T0)
    universe = {Pair("A"), Pair("D")}

    fresh = NegativeResultCache.load(path, clock=_clock(T0 + timedelta(days=29)))
    assert fresh.filter(universe) == {Pair("A")}
    assert fresh.valid_until == T0 + timedelta(days=30)

    stale = NegativeResultCache.load(path, clock=_clock(T0 + timedelta(days=31)))
    assert stale.filter(universe) == universe
    assert stale.previous == frozenset()


def test_stale_file_is_ignored_regardless_of_contents(tmp_path):
    path = tmp_path / "negative.txt"
    now = datetime.now(timezone.utc)
    _write_cache(path, ["XUSDT"], now - timedelta(days=40))

    cache = NegativeResultCache.load(path)
    assert cache.filter({Pair("X"), Pair("Y")}) == {Pair("X"), Pair("Y")}


def test_persist_round_trip_is_set_equal(tmp_path):
    path = tmp_path / "sub" / "negative.txt"
    assert persist(path, {"BUSDT"}, {"ZUSDT", "AUSDT"})

    cache = NegativeResultCache.load(path)
    assert cache.previous == frozenset({"AUSDT", "BUSDT", "ZUSDT"})


def test_persist_without_new_entries_leaves_file_untouched(tmp_path):
    path = tmp_path / "negative.txt"
    _write_cache(path, ["XUSDT"], T0)
    mtime_before = path.stat().st_mtime

    assert not persist(path, {"XUSDT"}, set())
    assert path.stat().st_mtime == mtime_before
    assert path.read_text(encoding="utf-8") == "XUSDT\n"


def test_missing_or_unreadable_cache_loads_empty(tmp_path):
    assert NegativeResultCache.load(tmp_path / "absent.txt").previous == frozenset()

    # a directory where the file should be cannot be read as text
    (tmp_path / "dir.txt").mkdir()
    assert NegativeResultCache.load(tmp_path / "dir.txt").previous == frozenset()


def test_persist_failure_is_not_fatal(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    assert persist(blocker / "negative.txt", set(), {"AUSDT"}) is False


def test_concurrent_record_loses_nothing(tmp_path):
    cache = NegativeResultCache.load(tmp_path / "negative.txt")
    pairs = [Pair(f"C{i}") for i in range(400)]

    def worker(chunk):
        for p in chunk:
            cache.record(p)

    threads = [threading.Thread(target=worker, args=(pairs[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.new == frozenset(p.symbol for p in pairs)
    assert cache.persist()
    assert NegativeResultCache.load(tmp_path / "negative.txt").previous == cache.new
