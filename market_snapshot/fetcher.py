"""
market_snapshot/fetcher.py
Fan out one request per instrument on a bounded thread pool.

Every task is isolated: an exception or an empty answer from one instrument
becomes "no contribution" plus a log record, and never reaches the other
tasks or the caller. Empty-but-successful answers are additionally recorded
in the negative-result cache. All tasks are joined at a single barrier with
an overall deadline; whatever is still running at the deadline is abandoned.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, Optional

import pandas as pd

from market_snapshot.errors import InstrumentEmpty, InstrumentFetchFailed
from market_snapshot.instruments import Pair, RequestRange
from market_snapshot.negative_cache import NegativeResultCache

logger = logging.getLogger(__name__)

FetchFn = Callable[[Pair, str, RequestRange], pd.Series]

DEFAULT_MAX_WORKERS   = 16
DEFAULT_BATCH_TIMEOUT = 120.0   # seconds


def _fetch_one(
    pair: Pair,
    fetch_fn: FetchFn,
    timeframe: str,
    request_range: RequestRange,
    cache: Optional[NegativeResultCache],
) -> Optional[pd.Series]:
    """Run one request; return the series or None. Never raises."""
    try:
        series = fetch_fn(pair, timeframe, request_range)
    except Exception as e:
        logger.warning("%s", InstrumentFetchFailed(pair.symbol, e))
        return None

    if series is None or len(series) == 0:
        logger.info("%s", InstrumentEmpty(pair.symbol))
        if cache is not None:
            cache.record(pair)
        return None
    return series


def fetch_all(
    pairs: Iterable[Pair],
    fetch_fn: FetchFn,
    timeframe: str,
    request_range: RequestRange,
    cache: Optional[NegativeResultCache] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    batch_timeout: Optional[float] = DEFAULT_BATCH_TIMEOUT,
) -> dict[Pair, pd.Series]:
    """
    Fetch *pairs* concurrently and return {pair: series} for the ones that
    produced a non-empty series.

    Parameters
    ----------
    pairs         : instruments to request (already filtered by the cache)
    fetch_fn      : provider call, ``fetch_fn(pair, timeframe, request_range)``
    cache         : receives ``record(pair)`` for every empty answer
    max_workers   : cap on concurrent in-flight requests
    batch_timeout : seconds to wait for the whole batch; None waits forever

    Result order carries no meaning; downstream code is keyed by Pair.
    """
    pairs = sorted(set(pairs))
    if not pairs:
        return {}

    results: dict[Pair, pd.Series] = {}
    pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fetch")
    try:
        futures: dict[Future, Pair] = {
            pool.submit(_fetch_one, p, fetch_fn, timeframe, request_range, cache): p
            for p in pairs
        }
        done, pending = wait(futures, timeout=batch_timeout)

        for fut in done:
            series = fut.result()
            if series is not None:
                results[futures[fut]] = series

        if pending:
            for fut in pending:
                fut.cancel()
            logger.warning(
                "Batch deadline of %.0fs hit: abandoned %d of %d requests (%s)",
                batch_timeout, len(pending), len(pairs),
                ", ".join(sorted(futures[f].symbol for f in pending)[:10]),
            )
    finally:
        # Do not block on hung requests; their threads finish on their own.
        pool.shutdown(wait=False, cancel_futures=True)

    logger.info("Collected data for %d/%d instruments", len(results), len(pairs))
    return results
