"""
market_snapshot/ranking.py
Order instruments by Performance Score and pick the extremes.

One sort, two count strategies:
    fixed_count(k) : min(k, n // 2) per side — text report rows
    log_count      : round(ln n) per side    — labeled chart traces

Ties on score are broken by symbol so the ranking is reproducible.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Mapping

import pandas as pd

from market_snapshot.instruments import Pair

CountFn = Callable[[int], int]
Ranked  = list[tuple[Pair, float]]


def performance_score(normalized: pd.Series) -> float:
    """Total log change over the window (the first value is 0 after normalization)."""
    return float(normalized.iloc[-1] - normalized.iloc[0])


def rank(normalized: Mapping[Pair, pd.Series]) -> Ranked:
    """[(pair, score)] ascending by score, then symbol."""
    scored = [(pair, performance_score(s)) for pair, s in normalized.items()]
    scored.sort(key=lambda x: (x[1], x[0].symbol))
    return scored


def fixed_count(k: int) -> CountFn:
    def count(n: int) -> int:
        return min(k, n // 2)
    return count


def log_count(n: int) -> int:
    if n <= 0:
        return 0
    return int(round(math.log(n)))


@dataclass(frozen=True)
class Selection:
    """
    Extremes picked from a ranking.

    bottom : lowest scores, most negative first
    top    : highest scores, most positive first
    """

    ranked: Ranked
    bottom: Ranked
    top:    Ranked

    @property
    def n(self) -> int:
        return len(self.ranked)

    def pairs(self) -> list[tuple[tuple[Pair, float], tuple[Pair, float]]]:
        """(i-th lowest, i-th highest) for every selected row."""
        return list(zip(self.bottom, self.top))

    def extreme_pairs(self) -> set[Pair]:
        return {p for p, _ in self.bottom} | {p for p, _ in self.top}


def select_extremes(ranked: Ranked, count_fn: CountFn) -> Selection:
    n = len(ranked)
    k = max(0, min(count_fn(n), n))
    bottom = ranked[:k]
    top = list(reversed(ranked[n - k:])) if k else []
    return Selection(ranked=ranked, bottom=bottom, top=top)
