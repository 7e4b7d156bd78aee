import threading
import time

import pandas as pd
import requests

from market_snapshot.fetcher import fetch_all
from market_snapshot.instruments import Pair, RequestRange
from market_snapshot.negative_cache import NegativeResultCache


def _series(n):
    idx = pd.date_range("2025-01-01", periods=n, freq="5min", tz="UTC")
    return pd.Series(range(1, n + 1), index=idx, dtype=float)


def _fake_fetch(behaviour: dict):
    def fetch(pair, timeframe, request_range):
        action = behaviour[pair.base]
        if isinstance(action, Exception):
            raise action
        if action == "hang":
            time.sleep(2.0)
            return _series(5)
        return _series(action)
    return fetch


def test_failures_and_empties_are_isolated(tmp_path):
    cache = NegativeResultCache.load(tmp_path / "neg.txt")
    fetch = _fake_fetch({
        "A": 5,
        "B": requests.ConnectionError("reset by peer"),
        "C": 0,
        "D": ValueError("bad payload"),
        "E": 3,
    })

    out = fetch_all([Pair(b) for b in "ABCDE"], fetch, "5m", RequestRange(limit=5), cache=cache)

    assert set(out) == {Pair("A"), Pair("E")}
    assert len(out[Pair("A")]) == 5
    # only the successful-but-empty answer is a negative result
    assert cache.new == frozenset({"CUSDT"})


def test_concurrency_is_bounded():
    in_flight = 0
    peak = 0
    lock = threading.Lock()

    def fetch(pair, timeframe, request_range):
        nonlocal in_flight, peak
        with lock:
            in_flight += 1
            peak = max(peak, in_flight)
        time.sleep(0.02)
        with lock:
            in_flight -= 1
        return _series(2)

    pairs = [Pair(f"C{i}") for i in range(30)]
    out = fetch_all(pairs, fetch, "5m", RequestRange(limit=2), max_workers=4)

    assert len(out) == 30
    assert peak <= 4


def test_batch_deadline_keeps_finished_results():
    fetch = _fake_fetch({"FAST": 4, "SLOW": "hang"})
    started = time.monotonic()

    out = fetch_all([Pair("FAST"), Pair("SLOW")], fetch, "5m", RequestRange(limit=4), batch_timeout=0.5)

    assert time.monotonic() - started < 1.5
    assert set(out) == {Pair("FAST")}


def test_empty_input():
    assert fetch_all([], _fake_fetch({}), "5m", RequestRange(limit=1)) == {}
