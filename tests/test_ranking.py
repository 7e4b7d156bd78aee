import math

import pandas as pd
import pytest

from market_snapshot.instruments import Pair
from market_snapshot.ranking import (
    fixed_count,
    log_count,
    performance_score,
    rank,
    select_extremes,
)


def _ranked(n):
    return [(Pair(f"S{i:03d}"), float(i) - n / 2) for i in range(n)]


def test_performance_score_is_last_minus_first():
    assert performance_score(pd.Series([0.0, 0.3, -0.2])) == pytest.approx(-0.2)
    assert performance_score(pd.Series([0.1, 0.5])) == pytest.approx(0.4)


def test_rank_orders_ascending_with_symbol_tiebreak():
    normalized = {
        Pair("ZED"): pd.Series([0.0, 0.1]),
        Pair("ABC"): pd.Series([0.0, 0.1]),
        Pair("LOW"): pd.Series([0.0, -0.5]),
    }
    assert [p.base for p, _ in rank(normalized)] == ["LOW", "ABC", "ZED"]


@pytest.mark.parametrize("n", [1, 2, 3, 7, 20, 100, 350])
def test_log_count_selects_round_ln_n_per_side_without_overlap(n):
    sel = select_extremes(_ranked(n), log_count)
    k = int(round(math.log(n)))

    assert len(sel.bottom) == k
    assert len(sel.top) == k
    if 2 * k <= n:
        assert not ({p for p, _ in sel.bottom} & {p for p, _ in sel.top})


def test_log_count_of_empty_ranking():
    assert log_count(0) == 0
    assert select_extremes([], log_count).pairs() == []


@pytest.mark.parametrize("n, expected", [(0, 0), (1, 0), (3, 1), (7, 3), (19, 9), (20, 10), (250, 10)])
def test_fixed_count_never_exceeds_half(n, expected):
    sel = select_extremes(_ranked(n), fixed_count(10))
    assert len(sel.pairs()) == expected


def test_extremes_are_ordered_outward_in():
    ranked = _ranked(30)
    sel = select_extremes(ranked, fixed_count(3))

    assert sel.bottom == ranked[:3]
    assert sel.top == [ranked[-1], ranked[-2], ranked[-3]]
    assert sel.pairs()[0] == (ranked[0], ranked[-1])
