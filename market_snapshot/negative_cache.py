"""
market_snapshot/negative_cache.py
Persisted set of instruments that answered with no data.

File format
-----------
Flat text, one symbol per line, no header. The file's own mtime is the only
staleness signal: once ``mtime + ttl`` has passed, the whole file is ignored
on load (entries never expire one by one). The file is overwritten wholesale
on persist, and only when the run found new negatives, so an unproductive
run does not refresh the TTL clock.

Usage
-----
    cache = NegativeResultCache.load(PATHS.negative_cache("lsr", "futures"))
    candidates = cache.filter(universe)
    ...                                   # fetch tasks call cache.record(pair)
    cache.persist()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable

from market_snapshot.errors import CacheLoadFailed, CachePersistFailed
from market_snapshot.instruments import Pair

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=30)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _read_symbols(path: Path) -> frozenset[str]:
    text = path.read_text(encoding="utf-8")
    return frozenset(line.strip() for line in text.splitlines() if line.strip())


@dataclass
class NegativeResultCache:
    """
    Loaded view of the negative-result file plus the accumulator for this run.

    ``previous`` and the staleness fields are fixed at load time; ``record``
    is the only mutating operation and may be called from worker threads.
    """

    path:        Path
    previous:    frozenset[str]
    loaded_at:   datetime
    valid_until: datetime | None
    _new:        set[str]         = field(default_factory=set, repr=False)
    _lock:       threading.Lock   = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def load(cls, path: Path, ttl: timedelta = DEFAULT_TTL, clock: Clock = _utcnow) -> "NegativeResultCache":
        """
        Read *path*; an absent, unreadable or expired file yields an empty cache.
        """
        path = Path(path)
        now = clock()
        if not path.exists():
            logger.debug("No negative-result cache at %s", path)
            return cls(path, frozenset(), now, None)

        try:
            mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            symbols = _read_symbols(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("%s", CacheLoadFailed(f"Ignoring negative-result cache {path}: {e}"))
            return cls(path, frozenset(), now, None)

        valid_until = mtime + ttl
        if now >= valid_until:
            logger.info("Negative-result cache %s expired at %s; ignoring %d entries",
                        path, valid_until.isoformat(), len(symbols))
            return cls(path, frozenset(), now, valid_until)

        logger.info("Loaded %d known-empty instruments ← %s", len(symbols), path)
        return cls(path, symbols, now, valid_until)

    def __contains__(self, pair: Pair) -> bool:
        return pair.symbol in self.previous

    def filter(self, universe: Iterable[Pair]) -> set[Pair]:
        """Universe minus cached negatives."""
        return {p for p in universe if p.symbol not in self.previous}

    def record(self, pair: Pair) -> None:
        with self._lock:
            self._new.add(pair.symbol)

    @property
    def new(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._new)

    def persist(self) -> bool:
        return persist(self.path, self.previous, self.new)


def persist(path: Path, previous: Iterable[str], new: Iterable[str]) -> bool:
    """
    Overwrite *path* with ``previous | new`` when *new* is non-empty.

    Returns True when the file was written. Write failures are logged and
    reported as False; they never raise.
    """
    new = set(new)
    if not new:
        return False

    merged = sorted(set(previous) | new)
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(merged) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("%s", CachePersistFailed(f"Could not write negative-result cache {path}: {e}"))
        return False

    logger.info("Saved %d known-empty instruments (%d new) → %s", len(merged), len(new), path)
    return True
