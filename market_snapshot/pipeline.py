"""
market_snapshot/pipeline.py
Compute one cross-sectional snapshot.

Behaviour
---------
1. Resolve the instrument universe              (fatal on failure)
2. Load the negative-result cache, filter the universe
3. Fetch every candidate concurrently, record empty answers
4. Persist newly found negatives
5. Take the Reference Time Index from the reference instrument (fatal if absent)
6. Normalize every series, align against the reference
7. Rank the unaligned set and summarise

compute_snapshot() is a single run; scheduling lives in update.py.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Mapping, Optional

import pandas as pd

from market_snapshot.config import CONFIG
from market_snapshot.errors import ReferenceUnavailable, SnapshotError
from market_snapshot.fetcher import FetchFn, fetch_all
from market_snapshot.instruments import Pair, RequestRange
from market_snapshot.negative_cache import NegativeResultCache
from market_snapshot.normalize import align, normalize
from market_snapshot.providers import binance
from market_snapshot.ranking import Ranked, rank
from market_snapshot.storage import PATHS

logger = logging.getLogger(__name__)

# source name -> provider call returning one Sample Series
SOURCES: dict[str, Callable[..., pd.Series]] = {
    "lsr":    binance.fetch_long_short_ratio,
    "closes": binance.fetch_closes,
}


def format_lookback(index: pd.Index) -> str:
    """Human-readable span of a time index, e.g. "24h" or "3d 6h"."""
    if len(index) < 2:
        return "0h"
    span = index[-1] - index[0]
    hours = int(round(span / pd.Timedelta(hours=1)))
    if hours < 1:
        return f"{int(round(span / pd.Timedelta(minutes=1)))}m"
    days, hours = divmod(hours, 24)
    if days and hours:
        return f"{days}d {hours}h"
    return f"{days}d" if days else f"{hours}h"


@dataclass(frozen=True)
class Snapshot:
    source:          str
    market:          str
    timeframe:       str
    reference:       Pair
    reference_index: pd.DatetimeIndex
    normalized:      Mapping[Pair, pd.Series]    # every usable instrument
    aligned:         Mapping[Pair, pd.Series]    # same length as reference_index
    ranked:          Ranked                      # ascending (score, symbol)
    n_universe:      int
    created_at:      datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def n_collected(self) -> int:
        return len(self.normalized)

    @property
    def n_misaligned(self) -> int:
        return len(self.normalized) - len(self.aligned)

    @property
    def mean_score(self) -> float:
        if not self.ranked:
            return float("nan")
        return sum(s for _, s in self.ranked) / len(self.ranked)

    @property
    def lookback(self) -> str:
        return format_lookback(self.reference_index)

    def scores_frame(self) -> pd.DataFrame:
        """Derived summary persisted between runs (no full series)."""
        rows = [
            {
                "symbol":   pair.symbol,
                "score":    score,
                "n_points": len(self.normalized[pair]),
                "aligned":  pair in self.aligned,
            }
            for pair, score in self.ranked
        ]
        return pd.DataFrame(rows, columns=["symbol", "score", "n_points", "aligned"])


class SnapshotHolder:
    """
    Last published snapshot; readers never see a partially built one.

    A failed refresh leaves the previous snapshot in place and is kept in
    ``last_error`` until the next successful one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self.last_error: Optional[SnapshotError] = None

    def publish(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self.last_error = None

    def latest(self) -> Optional[Snapshot]:
        with self._lock:
            return self._snapshot

    def refresh(self, compute: Callable[[], Snapshot]) -> Snapshot:
        """
        Publish the result of *compute* and return it.

        On SnapshotError the previous snapshot is returned instead; the error
        is re-raised only when nothing has been published yet.
        """
        try:
            snapshot = compute()
        except SnapshotError as e:
            with self._lock:
                self.last_error = e
                previous = self._snapshot
            if previous is None:
                raise
            logger.warning("Refresh failed, keeping snapshot from %s: %s", previous.created_at, e)
            return previous
        self.publish(snapshot)
        return snapshot


def compute_snapshot(
    source: str = "closes",
    market: str = CONFIG["market"],
    timeframe: str = CONFIG["timeframe"],
    request_range: Optional[RequestRange] = None,
    reference: str = CONFIG["reference"],
    cache_path: Optional[Path] = None,
    ttl: timedelta = timedelta(days=CONFIG["negative_ttl_days"]),
    max_workers: int = CONFIG["max_workers"],
    batch_timeout: Optional[float] = CONFIG["batch_timeout_s"],
    resolve_fn: Callable[[str], set[Pair]] = binance.resolve_universe,
    fetch_fn: Optional[FetchFn] = None,
) -> Snapshot:
    """
    Run the whole aggregation once and return an immutable Snapshot.

    Raises
    ------
    UniverseUnavailable  : the universe could not be resolved
    ReferenceUnavailable : the reference instrument produced no data
    """
    if fetch_fn is None:
        if source not in SOURCES:
            raise ValueError(f"Unknown source {source!r}; expected one of {sorted(SOURCES)}")
        provider = SOURCES[source]

        def fetch_fn(pair: Pair, tf: str, rr: RequestRange) -> pd.Series:
            return provider(pair, tf, rr, market=market)

    request_range = request_range or RequestRange(limit=CONFIG["limit"])
    reference_pair = Pair.from_symbol(reference)
    cache_path = cache_path or PATHS.negative_cache(source, market)

    # ── 1. Universe ───────────────────────────────────────────────────────────
    universe = resolve_fn(market)

    # ── 2. Negative-result cache ──────────────────────────────────────────────
    cache = NegativeResultCache.load(cache_path, ttl=ttl)
    candidates = cache.filter(universe)
    # The reference is always requested; the run is meaningless without it.
    if reference_pair in universe:
        candidates.add(reference_pair)
    logger.info("%d/%d instruments left after negative-result filter", len(candidates), len(universe))

    # ── 3. Fan out ────────────────────────────────────────────────────────────
    raw = fetch_all(
        candidates, fetch_fn, timeframe, request_range,
        cache=cache, max_workers=max_workers, batch_timeout=batch_timeout,
    )

    # ── 4. Persist new negatives ──────────────────────────────────────────────
    cache.persist()

    # ── 5. Reference axis ─────────────────────────────────────────────────────
    if reference_pair not in raw:
        raise ReferenceUnavailable(reference_pair.symbol)
    reference_index = raw[reference_pair].index

    # ── 6. Normalize + align ──────────────────────────────────────────────────
    normalized = normalize(raw)
    if reference_pair not in normalized:
        raise ReferenceUnavailable(reference_pair.symbol)
    aligned = align(normalized, reference_index)

    # ── 7. Rank ───────────────────────────────────────────────────────────────
    snapshot = Snapshot(
        source=source,
        market=market,
        timeframe=timeframe,
        reference=reference_pair,
        reference_index=reference_index,
        normalized=normalized,
        aligned=aligned,
        ranked=rank(normalized),
        n_universe=len(universe),
    )
    logger.info(
        "Snapshot %s/%s: %d/%d collected, %d aligned, mean score %+.4f",
        source, market, snapshot.n_collected, snapshot.n_universe,
        len(aligned), snapshot.mean_score,
    )
    return snapshot
