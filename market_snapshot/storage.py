"""
market_snapshot/storage.py
Persistence for derived artefacts. Full price/ratio series are never stored.

Storage layout
--------------
data/
  cache/
    negative_lsr_futures.txt        ← negative-result cache (one symbol per line)
  snapshots/
    lsr_futures.parquet             ← last ranked scores (symbol, score, n_points, aligned)
  reports/
    lsr_futures.txt                 ← rendered text report
    closes_futures.html             ← rendered chart
    quality_lsr_futures_YYYYMMDD.json

Each parquet file carries metadata in pandas attrs:
  last_updated_utc, source, market, row_count

Usage
-----
    from market_snapshot.storage import PATHS, save_scores, load_scores

    save_scores(snapshot.scores_frame(), PATHS.scores("lsr", "futures"), source="lsr", market="futures")
    df = load_scores(PATHS.scores("lsr", "futures"))    # empty DF if missing
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

logger = logging.getLogger(__name__)

# Root of the project (one level up from the package); MARKET_SNAPSHOT_DATA overrides
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_ROOT     = Path(os.environ.get("MARKET_SNAPSHOT_DATA", _PROJECT_ROOT / "data"))


@dataclass(frozen=True)
class _Paths:
    """Centralised path resolver for all derived artefacts."""

    root: Path = DATA_ROOT

    def negative_cache(self, source: str, market: str) -> Path:
        return self.root / "cache" / f"negative_{source}_{market}.txt"

    def scores(self, source: str, market: str) -> Path:
        return self.root / "snapshots" / f"{source}_{market}.parquet"

    def text_report(self, source: str, market: str) -> Path:
        return self.root / "reports" / f"{source}_{market}.txt"

    def chart(self, source: str, market: str) -> Path:
        return self.root / "reports" / f"{source}_{market}.html"

    def quality_report(self, source: str, market: str, date_str: Optional[str] = None) -> Path:
        date_str = date_str or datetime.now(timezone.utc).strftime("%Y%m%d")
        return self.root / "reports" / f"quality_{source}_{market}_{date_str}.json"


PATHS = _Paths()


def save_scores(df: pd.DataFrame, path: Path, source: str = "", market: str = "") -> None:
    """
    Write the ranked score table to *path* as Parquet.

    Creates parent directories automatically.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    df.attrs["snapshot_meta"] = {
        "last_updated_utc": datetime.now(timezone.utc).isoformat(),
        "source":           source,
        "market":           market,
        "row_count":        len(df),
    }
    df.to_parquet(str(path), engine="pyarrow", compression="snappy")
    logger.info("Saved %d scores → %s", len(df), path)


def load_scores(path: Path) -> pd.DataFrame:
    """Load a score table; return an empty DataFrame if the file does not exist."""
    if not path.exists():
        logger.debug("File not found: %s — returning empty DataFrame.", path)
        return pd.DataFrame(columns=["symbol", "score", "n_points", "aligned"])

    df = pd.read_parquet(str(path), engine="pyarrow")
    logger.info("Loaded %d scores ← %s", len(df), path)
    return df


def write_text(text: str, path: Path) -> None:
    """Overwrite *path* with *text* via a temp file so readers never see half a report."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)
    logger.info("Wrote %s", path)
