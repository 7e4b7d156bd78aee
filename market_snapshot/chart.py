"""
market_snapshot/chart.py
Plotly rendering of the aligned, normalized series of a snapshot.

Every aligned instrument is drawn. The round(ln N) best and worst get a
labeled, thicker line; the reference instrument is always drawn in gold;
everything else is a thin grey context line kept out of the legend.
"""

from __future__ import annotations

import plotly.graph_objects as go

from market_snapshot.instruments import Pair
from market_snapshot.pipeline import Snapshot
from market_snapshot.ranking import log_count, rank, select_extremes

CONTEXT_COLOR   = "grey"
CONTEXT_WIDTH   = 1.0
EXTREME_WIDTH   = 2.0
REFERENCE_COLOR = "gold"
REFERENCE_WIDTH = 3.5


def legend_label(name: str, score: float) -> str:
    sign = "+" if score >= 0 else "-"
    return f"{name:<5}{sign}{100.0 * abs(score):>5.2f}%"


def _trace(snapshot: Snapshot, pair: Pair, width: float, color: str | None, legend: str | None) -> go.Scatter:
    line = dict(width=width)
    if color:
        line["color"] = color
    return go.Scatter(
        x=snapshot.reference_index,
        y=snapshot.aligned[pair].values,
        mode="lines",
        line=line,
        name=legend if legend is not None else pair.symbol,
        showlegend=legend is not None,
        hoverinfo="name+y" if legend is not None else "skip",
    )


def build_chart(snapshot: Snapshot) -> go.Figure:
    ranked = rank(snapshot.aligned)
    scores = dict(ranked)
    selection = select_extremes(ranked, log_count)
    ref = snapshot.reference
    highlighted = selection.extreme_pairs() | {ref}

    fig = go.Figure()
    for pair, _ in ranked:
        if pair not in highlighted:
            fig.add_trace(_trace(snapshot, pair, CONTEXT_WIDTH, CONTEXT_COLOR, None))

    # Legend reads from best to worst with the reference in between
    for pair, score in selection.top:
        if pair != ref:
            fig.add_trace(_trace(snapshot, pair, EXTREME_WIDTH, None, legend_label(pair.display_name, score)))
    if ref in scores:
        fig.add_trace(_trace(snapshot, ref, REFERENCE_WIDTH, REFERENCE_COLOR,
                             legend_label(f"~{ref.display_name}~", scores[ref])))
    for pair, score in reversed(selection.bottom):
        if pair != ref:
            fig.add_trace(_trace(snapshot, pair, EXTREME_WIDTH, None, legend_label(pair.display_name, score)))

    fig.update_layout(
        title=dict(
            text=(
                f"Normalized {snapshot.source} · last {snapshot.lookback} · "
                f"{snapshot.n_collected}/{snapshot.n_universe} instruments"
            ),
            font=dict(size=14),
        ),
        template="plotly_dark",
        paper_bgcolor="#0d1117", plot_bgcolor="#0d1117",
        height=700,
        margin=dict(l=10, r=10, t=50, b=10),
        legend=dict(font=dict(family="monospace", size=11)),
        yaxis=dict(title="ln(value / first)", tickformat=".2%"),
        xaxis=dict(type="date"),
    )
    return fig
