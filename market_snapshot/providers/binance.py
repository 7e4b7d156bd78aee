"""
market_snapshot/providers/binance.py
Binance public REST API (spot + USD-M futures) — no authentication required.

Endpoints used
--------------
Exchange info (instrument universe):
    GET https://fapi.binance.com/fapi/v1/exchangeInfo
    GET https://api.binance.com/api/v3/exchangeInfo
    Returns: {symbols: [{symbol, baseAsset, quoteAsset, status, contractType?}]}

Klines:
    GET https://fapi.binance.com/fapi/v1/klines      (limit max 1500)
    GET https://api.binance.com/api/v3/klines        (limit max 1000)
    Params: symbol, interval, limit, startTime (ms), endTime (ms)
    Returns: [[openTime, open, high, low, close, volume, closeTime, ...]]

Global long/short account ratio (USD-M only):
    GET https://fapi.binance.com/futures/data/globalLongShortAccountRatio
    Params: symbol, period, limit (max 500), startTime (ms), endTime (ms)
    Returns: [{symbol, longAccount, shortAccount, longShortRatio, timestamp}]
    Binance keeps only the last ~30 days of this series.

Series produced
---------------
pd.Series of float, indexed by a sorted, de-duplicated UTC DatetimeIndex:
    fetch_closes            : kline close, indexed by open time
    fetch_long_short_ratio  : longAccount share (0..1), indexed by timestamp
"""

from __future__ import annotations

import time
import logging

import requests
import pandas as pd

from market_snapshot.errors import UniverseUnavailable
from market_snapshot.instruments import Pair, RequestRange

logger = logging.getLogger(__name__)

FAPI_URL = "https://fapi.binance.com"
SPOT_URL = "https://api.binance.com"

EXCHANGE_INFO_URL = {
    "futures": f"{FAPI_URL}/fapi/v1/exchangeInfo",
    "spot":    f"{SPOT_URL}/api/v3/exchangeInfo",
}
KLINES_URL = {
    "futures": f"{FAPI_URL}/fapi/v1/klines",
    "spot":    f"{SPOT_URL}/api/v3/klines",
}
LSR_URL = f"{FAPI_URL}/futures/data/globalLongShortAccountRatio"

# Max items per Binance API page
KLINES_PAGE_LIMIT = {"futures": 1500, "spot": 1000}
LSR_PAGE_LIMIT    = 500

# /futures/data/* only serves these periods
LSR_PERIODS = ("5m", "15m", "30m", "1h", "2h", "4h", "6h", "12h", "1d")

# Request timeout and retry settings
REQUEST_TIMEOUT = 10   # seconds
MAX_RETRIES     = 3
RETRY_DELAY     = 1.0  # seconds between retries


def _get(url: str, params: dict | None = None) -> dict | list:
    """GET with simple retry logic."""
    for attempt in range(MAX_RETRIES):
        try:
            resp = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            if attempt == MAX_RETRIES - 1:
                raise
            logger.debug("Request failed (attempt %d/%d): %s", attempt + 1, MAX_RETRIES, e)
            time.sleep(RETRY_DELAY * (attempt + 1))
    raise RuntimeError("Unreachable")


def _check_market(market: str) -> None:
    if market not in EXCHANGE_INFO_URL:
        raise ValueError(f"Unknown market {market!r}; expected one of {sorted(EXCHANGE_INFO_URL)}")


def resolve_universe(market: str = "futures", quote: str = "USDT") -> set[Pair]:
    """
    Return every currently trading *quote*-margined instrument on *market*.

    For "futures" only perpetual contracts are kept (quarterlies share the
    base/quote but carry a delivery suffix in their symbol).

    Raises
    ------
    UniverseUnavailable : the exchange could not answer or answered garbage.
    """
    _check_market(market)
    try:
        info = _get(EXCHANGE_INFO_URL[market])
        symbols = info["symbols"]
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        raise UniverseUnavailable(market, e) from e

    pairs = set()
    for s in symbols:
        if s.get("status") != "TRADING" or s.get("quoteAsset") != quote:
            continue
        if market == "futures" and s.get("contractType") != "PERPETUAL":
            continue
        pairs.add(Pair(s["baseAsset"], s["quoteAsset"]))

    if not pairs:
        raise UniverseUnavailable(market, f"no trading {quote} instruments listed")
    logger.info("Resolved %d %s instruments on %s", len(pairs), quote, market)
    return pairs


def _to_series(index: list, values: list, name: str) -> pd.Series:
    s = pd.Series(values, index=pd.DatetimeIndex(index, name="ts"), name=name, dtype=float)
    s = s[~s.index.duplicated(keep="last")].sort_index()
    return s


def fetch_closes(
    pair: Pair,
    timeframe: str,
    request_range: RequestRange,
    market: str = "futures",
) -> pd.Series:
    """
    Fetch kline close prices for *pair*.

    Returns an empty Series when Binance answers with no bars (delisted or
    not yet listed in the window); transport errors propagate.
    """
    _check_market(market)
    params = {"symbol": pair.symbol, "interval": timeframe}
    params.update(request_range.to_params(KLINES_PAGE_LIMIT[market]))
    data = _get(KLINES_URL[market], params)

    ts     = [pd.Timestamp(int(row[0]), unit="ms", tz="UTC") for row in data]
    closes = [float(row[4]) for row in data]
    return _to_series(ts, closes, pair.symbol)


def fetch_long_short_ratio(
    pair: Pair,
    timeframe: str,
    request_range: RequestRange,
    market: str = "futures",
) -> pd.Series:
    """
    Fetch the global long/short account ratio for *pair* as the long share.

    Only USD-M futures publish this statistic.
    """
    if market != "futures":
        raise ValueError("Long/short ratios are only published for the futures market")
    if timeframe not in LSR_PERIODS:
        raise ValueError(f"Unsupported long/short period {timeframe!r}; expected one of {LSR_PERIODS}")

    params = {"symbol": pair.symbol, "period": timeframe}
    params.update(request_range.to_params(LSR_PAGE_LIMIT))
    data = _get(LSR_URL, params)

    ts    = [pd.Timestamp(int(row["timestamp"]), unit="ms", tz="UTC") for row in data]
    longs = [float(row["longAccount"]) for row in data]
    return _to_series(ts, longs, pair.symbol)
