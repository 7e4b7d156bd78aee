"""
market_snapshot/quality.py
Data quality checks for one snapshot.

Reports universe coverage, alignment losses and the effective lookback.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from market_snapshot.pipeline import Snapshot

logger = logging.getLogger(__name__)

MIN_COVERAGE_PCT   = 50.0
MAX_MISALIGNED_PCT = 10.0


def check_snapshot(snapshot: Snapshot) -> dict:
    """
    Quality check for a computed snapshot.

    Checks:
    - % of the universe that produced usable data
    - % of collected instruments dropped from the aligned set
    - reference series length
    """
    n_universe  = snapshot.n_universe
    n_collected = snapshot.n_collected
    n_aligned   = len(snapshot.aligned)
    n_misaligned = snapshot.n_misaligned

    coverage_pct   = round(n_collected / max(n_universe, 1) * 100, 2)
    misaligned_pct = round(n_misaligned / max(n_collected, 1) * 100, 2)

    issues = []
    if coverage_pct < MIN_COVERAGE_PCT:
        issues.append(f"Only {coverage_pct:.1f}% of the universe returned data ({n_collected}/{n_universe})")
    if misaligned_pct > MAX_MISALIGNED_PCT:
        issues.append(f"{misaligned_pct:.1f}% of collected instruments misaligned ({n_misaligned})")
    if len(snapshot.reference_index) < 2:
        issues.append(f"Reference {snapshot.reference.symbol} has {len(snapshot.reference_index)} bars")

    return {
        "source":         snapshot.source,
        "market":         snapshot.market,
        "timeframe":      snapshot.timeframe,
        "n_universe":     n_universe,
        "n_collected":    n_collected,
        "coverage_pct":   coverage_pct,
        "n_aligned":      n_aligned,
        "n_misaligned":   n_misaligned,
        "lookback":       snapshot.lookback,
        "mean_score":     snapshot.mean_score,
        "issues":         issues,
        "status":         "ok" if not issues else "warnings",
    }


def save_quality_report(report: dict, path: Path) -> None:
    """Save a quality report dict as a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    report["generated_utc"] = datetime.now(timezone.utc).isoformat()
    with open(str(path), "w") as f:
        json.dump(report, f, indent=2, default=str)
    logger.info("Quality report saved → %s", path)
