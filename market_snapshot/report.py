"""
market_snapshot/report.py
Fixed-width two-column text rendering of a snapshot.

    Most Shorted (24h)    Most Longed (24h)
      ├DOGE     : -4.12%    ├SOL      : +6.80%
      ├XRP      : -3.05%    ├AVAX     : +5.11%
    --------------------------------------------
    Mean: +0.37%
    Collected for 212/298 instruments
"""

from __future__ import annotations

import logging

from market_snapshot.errors import InsufficientDataForRow
from market_snapshot.instruments import Pair
from market_snapshot.pipeline import Snapshot
from market_snapshot.ranking import Selection, fixed_count, select_extremes

logger = logging.getLogger(__name__)

NAME_WIDTH  = 9
VALUE_WIDTH = 8
CELL_WIDTH  = len("  ├") + NAME_WIDTH + len(": ") + VALUE_WIDTH

TITLES = {
    "lsr":    ("Most Shorted", "Most Longed"),
    "closes": ("Worst", "Best"),
}


def format_pct(score: float) -> str:
    """Log score as a signed percentage with two decimals, e.g. "+1.23%"."""
    sign = "+" if score >= 0 else "-"
    return f"{sign}{100.0 * abs(score):.2f}%"


def format_cell(pair: Pair, score: float) -> str:
    return f"  ├{pair.display_name:<{NAME_WIDTH}}: {format_pct(score):<{VALUE_WIDTH}}"


def format_row(selection: Selection, i: int) -> str:
    """
    Row *i* pairs the i-th lowest with the i-th highest selected instrument.

    Raises InsufficientDataForRow when the selection has no row *i*.
    """
    rows = selection.pairs()
    if i < 0 or i >= len(rows):
        raise InsufficientDataForRow(i, selection.n)
    low, high = rows[i]
    return format_cell(*low) + format_cell(*high)


def render_header(source: str, lookback: str) -> str:
    left, right = TITLES.get(source, ("Lowest", "Highest"))
    left, right = f"{left} ({lookback})", f"{right} ({lookback})"
    return f"{left:<{CELL_WIDTH}}{right:<{CELL_WIDTH}}"


def render_text(snapshot: Snapshot, rows: int = 10) -> str:
    selection = select_extremes(snapshot.ranked, fixed_count(rows))
    lines = [render_header(snapshot.source, snapshot.lookback)]
    for i in range(rows):
        try:
            lines.append(format_row(selection, i))
        except InsufficientDataForRow as e:
            logger.info("%s", e)
            lines.append(f"  (insufficient data for rows {i + 1}-{rows})")
            break

    lines.append("-" * (2 * CELL_WIDTH))
    lines.append(f"Mean: {format_pct(snapshot.mean_score) if snapshot.ranked else 'n/a'}")
    lines.append(f"Collected for {snapshot.n_collected}/{snapshot.n_universe} instruments")
    return "\n".join(line.rstrip() for line in lines) + "\n"
