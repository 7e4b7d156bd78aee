"""
market_snapshot/normalize.py
Put every instrument on a common basis and check it against the reference axis.

normalize_series : v -> ln(v / first); first element is exactly 0
normalize        : applies the above to a whole {pair: series} mapping
align            : keeps only series as long as the Reference Time Index

Two result tiers are kept on purpose. Ranking only needs relative values and
uses the unaligned mapping; plotting against the shared x-axis needs equal
lengths and uses the aligned one.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import numpy as np
import pandas as pd

from market_snapshot.instruments import Pair

logger = logging.getLogger(__name__)


def normalize_series(series: pd.Series) -> Optional[pd.Series]:
    """
    Log-ratio of every observation to the first one.

    Returns None when there is no usable first observation (empty series,
    NaN, or a non-positive value the logarithm is undefined for).
    """
    if series is None or series.empty:
        return None
    first = series.iloc[0]
    if pd.isna(first) or first <= 0:
        return None
    return np.log(series / first)


def normalize(raw: Mapping[Pair, pd.Series]) -> dict[Pair, pd.Series]:
    out: dict[Pair, pd.Series] = {}
    for pair, series in raw.items():
        norm = normalize_series(series)
        if norm is None:
            logger.warning("Received no usable first observation for %s; excluded", pair.symbol)
            continue
        out[pair] = norm
    return out


def align(normalized: Mapping[Pair, pd.Series], reference_index: pd.Index) -> dict[Pair, pd.Series]:
    """Drop series whose length differs from *reference_index*."""
    n_ref = len(reference_index)
    aligned: dict[Pair, pd.Series] = {}
    for pair, series in normalized.items():
        if len(series) != n_ref:
            logger.info("misaligned: %s (%d bars, reference has %d)", pair.symbol, len(series), n_ref)
            continue
        aligned[pair] = series
    return aligned
