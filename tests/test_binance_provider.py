import pandas as pd
import pytest
import requests

from market_snapshot.errors import UniverseUnavailable
from market_snapshot.instruments import Pair, RequestRange
from market_snapshot.providers import binance


class _Resp:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def _patch_get(monkeypatch, responder):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, dict(params or {})))
        return responder(url, params)

    monkeypatch.setattr(binance.requests, "get", fake_get)
    monkeypatch.setattr(binance.time, "sleep", lambda s: None)
    return calls


_EXCHANGE_INFO = {
    "symbols": [
        {"symbol": "BTCUSDT", "baseAsset": "BTC", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
        {"symbol": "BTCUSDT_250328", "baseAsset": "BTC", "quoteAsset": "USDT", "status": "TRADING", "contractType": "CURRENT_QUARTER"},
        {"symbol": "1000PEPEUSDT", "baseAsset": "1000PEPE", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
        {"symbol": "ETHUSDC", "baseAsset": "ETH", "quoteAsset": "USDC", "status": "TRADING", "contractType": "PERPETUAL"},
        {"symbol": "LUNAUSDT", "baseAsset": "LUNA", "quoteAsset": "USDT", "status": "SETTLING", "contractType": "PERPETUAL"},
    ]
}


def test_resolve_universe_keeps_trading_usdt_perpetuals(monkeypatch):
    _patch_get(monkeypatch, lambda url, params: _Resp(_EXCHANGE_INFO))
    assert binance.resolve_universe("futures") == {Pair("BTC"), Pair("1000PEPE")}


def test_resolve_universe_failure_is_universe_unavailable(monkeypatch):
    calls = _patch_get(monkeypatch, lambda url, params: _Resp({}, status=503))
    with pytest.raises(UniverseUnavailable):
        binance.resolve_universe("futures")
    assert len(calls) == binance.MAX_RETRIES


def test_resolve_universe_rejects_malformed_payload(monkeypatch):
    _patch_get(monkeypatch, lambda url, params: _Resp({"unexpected": []}))
    with pytest.raises(UniverseUnavailable):
        binance.resolve_universe("spot")


def test_fetch_closes_parses_klines(monkeypatch):
    klines = [
        [1735689900000, "1.0", "1.2", "0.9", "1.10", "100", 1735690199999, "0", 1, "0", "0", "0"],
        [1735689600000, "1.0", "1.2", "0.9", "1.05", "100", 1735689899999, "0", 1, "0", "0", "0"],
        [1735689900000, "1.0", "1.2", "0.9", "1.10", "100", 1735690199999, "0", 1, "0", "0", "0"],
    ]
    calls = _patch_get(monkeypatch, lambda url, params: _Resp(klines))

    s = binance.fetch_closes(Pair("SOL"), "5m", RequestRange(limit=5000))

    assert calls[0][0] == binance.KLINES_URL["futures"]
    assert calls[0][1] == {"symbol": "SOLUSDT", "interval": "5m", "limit": 1500}
    assert s.tolist() == [1.05, 1.10]
    assert s.index.is_monotonic_increasing
    assert s.index[0] == pd.Timestamp(1735689600000, unit="ms", tz="UTC")


def test_fetch_long_short_ratio_returns_long_share(monkeypatch):
    rows = [
        {"symbol": "ETHUSDT", "longAccount": "0.6", "shortAccount": "0.4", "longShortRatio": "1.5", "timestamp": 1735689600000},
        {"symbol": "ETHUSDT", "longAccount": "0.55", "shortAccount": "0.45", "longShortRatio": "1.22", "timestamp": 1735689900000},
    ]
    calls = _patch_get(monkeypatch, lambda url, params: _Resp(rows))

    s = binance.fetch_long_short_ratio(Pair("ETH"), "5m", RequestRange(limit=289))

    assert calls[0][0] == binance.LSR_URL
    assert calls[0][1]["period"] == "5m"
    assert s.tolist() == [0.6, 0.55]


def test_empty_answer_is_an_empty_series(monkeypatch):
    _patch_get(monkeypatch, lambda url, params: _Resp([]))
    assert binance.fetch_long_short_ratio(Pair("NEW"), "1h", RequestRange(limit=10)).empty


def test_long_short_ratio_rejects_unsupported_period():
    with pytest.raises(ValueError):
        binance.fetch_long_short_ratio(Pair("ETH"), "1m", RequestRange(limit=10))
