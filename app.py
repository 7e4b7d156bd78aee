"""
app.py
Streamlit dashboard publishing the last computed market snapshots.

Layout
------
Sidebar : market / timeframe / window / rows
Header  : title + snapshot timestamp
Row 1   : coverage metric cards
Row 2   : normalized closes chart (extremes labeled, BTC in gold)
Row 3   : long/short ratio report | closes report

Snapshots are cached for an hour, matching the refresh cadence of
``python -m market_snapshot.update --loop``. When a refresh fails the last
good snapshot for the same window stays on screen.
"""

import logging

import streamlit as st

# ── Page config (must be first Streamlit call) ──────────────────────────────
st.set_page_config(
    page_title="Market Snapshot",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)

from market_snapshot.chart import build_chart
from market_snapshot.config import CONFIG
from market_snapshot.errors import SnapshotError
from market_snapshot.instruments import RequestRange
from market_snapshot.pipeline import Snapshot, SnapshotHolder, compute_snapshot
from market_snapshot.providers.binance import LSR_PERIODS
from market_snapshot.report import format_pct, render_text
from ui_components import metric_card, report_block, section_title

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s")

st.markdown(
    """
    <style>
    html, body, [data-testid="stAppViewContainer"] {
        background-color: #0d1117;
        color: #e6edf3;
    }
    .summary-metric-card {
        background: #161b22;
        border: 1px solid #30363d;
        border-radius: 12px;
        padding: 12px 16px;
    }
    .summary-metric-label { color:#8b949e; font-size:0.75rem; text-transform:uppercase; letter-spacing:2px; }
    .summary-metric-value { color:#e6edf3; font-size:1.4rem; font-weight:700; }
    .summary-metric-sub   { color:#8b949e; font-size:0.8rem; }
    .section-title {
        color:#8b949e; font-size:0.75rem;
        text-transform:uppercase; letter-spacing:2px;
        margin-bottom:4px;
    }
    .report-card {
        background:#161b22; border:1px solid #30363d; border-radius:8px;
        padding:10px 14px; overflow:auto; resize:both;
    }
    .report-card pre { margin:0; color:#e6edf3; }
    </style>
    """,
    unsafe_allow_html=True,
)


def build_sidebar() -> dict:
    st.sidebar.markdown("## Snapshot Window")
    cfg = {}
    cfg["market"]    = st.sidebar.selectbox("Market", ["futures", "spot"], index=0)
    cfg["timeframe"] = st.sidebar.selectbox("Timeframe", list(LSR_PERIODS), index=LSR_PERIODS.index(CONFIG["timeframe"]))
    cfg["limit"]     = st.sidebar.slider("Bars per instrument", 10, 500, CONFIG["limit"], 1)
    cfg["rows"]      = st.sidebar.slider("Report rows", 1, 25, CONFIG["text_rows"], 1)
    st.sidebar.markdown("---")
    st.sidebar.caption("Defaults are defined in `market_snapshot/config.py → CONFIG`.")
    return cfg


@st.cache_data(ttl=CONFIG["refresh_interval_s"], show_spinner=False)
def fetch_snapshot(source: str, market: str, timeframe: str, limit: int) -> Snapshot:
    return compute_snapshot(
        source=source,
        market=market,
        timeframe=timeframe,
        request_range=RequestRange(limit=limit),
    )


@st.cache_resource
def snapshot_holder(source: str, market: str, timeframe: str, limit: int) -> SnapshotHolder:
    """Last good snapshot per window, shared across sessions and reruns."""
    return SnapshotHolder()


def _try_snapshot(source: str, cfg: dict) -> Snapshot | None:
    key = (source, cfg["market"], cfg["timeframe"], cfg["limit"])
    holder = snapshot_holder(*key)
    try:
        snapshot = holder.refresh(lambda: fetch_snapshot(*key))
    except SnapshotError as e:
        st.error(f"{source} snapshot failed: {e}")
        return None
    if holder.last_error is not None:
        st.warning(
            f"{source} refresh failed ({holder.last_error}); showing the snapshot "
            f"computed {snapshot.created_at.strftime('%Y-%m-%d %H:%M')} UTC"
        )
    return snapshot


def main():
    cfg = build_sidebar()

    st.markdown(f"## Market Snapshot — Binance {cfg['market']}")

    with st.spinner("Fetching every instrument · normalizing · ranking…"):
        closes = _try_snapshot("closes", cfg)
        lsr = _try_snapshot("lsr", cfg) if cfg["market"] == "futures" else None

    if closes is not None:
        st.markdown(
            f'<p style="text-align:right;color:#8b949e;">Computed '
            f'{closes.created_at.strftime("%Y-%m-%d %H:%M")} UTC</p>',
            unsafe_allow_html=True,
        )
        m1, m2, m3, m4 = st.columns(4)
        for col, label, value, sub in [
            (m1, "Collected",  f"{closes.n_collected}/{closes.n_universe}", "instruments with data"),
            (m2, "Aligned",    f"{len(closes.aligned)}", f"{closes.n_misaligned} misaligned"),
            (m3, "Mean Move",  format_pct(closes.mean_score), f"last {closes.lookback}"),
            (m4, "Reference",  closes.reference.symbol, f"{len(closes.reference_index)} bars"),
        ]:
            with col:
                st.markdown(metric_card(label, value, sub), unsafe_allow_html=True)

        st.markdown("---")
        st.plotly_chart(build_chart(closes), use_container_width=True)

    st.markdown("---")
    col_lsr, col_closes = st.columns(2)
    with col_lsr:
        st.markdown(section_title("Long/Short Ratio"), unsafe_allow_html=True)
        if lsr is None:
            st.markdown(report_block("Waiting for long/short data..."), unsafe_allow_html=True)
        else:
            st.markdown(report_block(render_text(lsr, rows=cfg["rows"])), unsafe_allow_html=True)
    with col_closes:
        st.markdown(section_title("Price Performance"), unsafe_allow_html=True)
        if closes is None:
            st.markdown(report_block("Waiting for price data..."), unsafe_allow_html=True)
        else:
            st.markdown(report_block(render_text(closes, rows=cfg["rows"])), unsafe_allow_html=True)

    if st.button("Refresh Now"):
        st.cache_data.clear()
        st.rerun()


if __name__ == "__main__":
    main()
