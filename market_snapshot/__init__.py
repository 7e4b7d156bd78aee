"""
market_snapshot — cross-sectional Binance market snapshots.

Pipeline
--------
- providers.binance : universe, kline closes, global long/short account ratio
- negative_cache    : TTL-bounded set of instruments known to return nothing
- fetcher           : bounded concurrent fan-out, per-instrument isolation
- normalize         : ln(v / first) and alignment to the reference time axis
- ranking           : one sort, fixed-count and log-count extreme selection
- report / chart    : two-column text report, Plotly figure

Storage
-------
Derived artefacts only (cache file, score tables, reports) under data/

CLI
---
python -m market_snapshot.update --source all
python -m market_snapshot.update --loop
"""

from .pipeline import Snapshot, SnapshotHolder, compute_snapshot

__all__ = ["Snapshot", "SnapshotHolder", "compute_snapshot"]
