"""
market_snapshot/update.py
CLI entry point: compute snapshots and write their reports.

Usage
-----
  # One snapshot of both sources (5m bars, last 24h):
  python -m market_snapshot.update

  # Long/short ratios only, 1h period over the last 3 days:
  python -m market_snapshot.update --source lsr --timeframe 1h --limit 73

  # Keep refreshing every hour:
  python -m market_snapshot.update --loop

Behaviour
---------
For every requested source:
1. Compute a snapshot (universe → cache filter → fetch → normalize → rank)
2. Write the text report, the chart HTML and the ranked score table
3. Save a data quality report to data/reports/

A failed source leaves its previous report files untouched.
"""

from __future__ import annotations

import argparse
import logging
import time
from datetime import timedelta

from market_snapshot.chart import build_chart
from market_snapshot.config import CONFIG
from market_snapshot.errors import SnapshotError
from market_snapshot.instruments import Pair, RequestRange
from market_snapshot.pipeline import SOURCES, Snapshot, compute_snapshot
from market_snapshot.quality import check_snapshot, save_quality_report
from market_snapshot.report import render_text
from market_snapshot.storage import PATHS, save_scores, write_text

logger = logging.getLogger(__name__)


def _reference_symbol(value: str) -> str:
    try:
        return Pair.from_symbol(value).symbol
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return n


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Aggregate per-instrument Binance statistics into a ranked snapshot",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--source",        choices=[*SOURCES, "all"], default="all", help="Statistic to aggregate")
    p.add_argument("--market",        default=CONFIG["market"],    choices=["futures", "spot"])
    p.add_argument("--reference",     type=_reference_symbol, default=CONFIG["reference"], help="Instrument supplying the time axis")
    p.add_argument("--timeframe",     default=CONFIG["timeframe"], help="Kline interval / ratio period")
    p.add_argument("--limit",         type=_positive_int, default=CONFIG["limit"], help="Bars per instrument")
    p.add_argument("--rows",          type=int, default=CONFIG["text_rows"], help="Rows in the text report")
    p.add_argument("--max_workers",   type=int, default=CONFIG["max_workers"], help="Concurrent requests")
    p.add_argument("--batch_timeout", type=float, default=CONFIG["batch_timeout_s"], help="Seconds to wait for a whole batch")
    p.add_argument("--ttl_days",      type=int, default=CONFIG["negative_ttl_days"], help="Negative-result cache TTL")
    p.add_argument("--loop",          action="store_true", help="Refresh forever instead of running once")
    p.add_argument("--interval",      type=float, default=CONFIG["refresh_interval_s"], help="Seconds between refreshes with --loop")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def _sources(args: argparse.Namespace) -> list[str]:
    return list(SOURCES) if args.source == "all" else [args.source]


def write_outputs(snapshot: Snapshot, rows: int) -> None:
    source, market = snapshot.source, snapshot.market
    write_text(render_text(snapshot, rows=rows), PATHS.text_report(source, market))
    write_text(build_chart(snapshot).to_html(include_plotlyjs="cdn"), PATHS.chart(source, market))
    save_scores(snapshot.scores_frame(), PATHS.scores(source, market), source=source, market=market)

    qr = check_snapshot(snapshot)
    logger.info("%s quality: %s  (issues: %s)", source, qr["status"], qr["issues"])
    save_quality_report(qr, PATHS.quality_report(source, market))


def run_once(args: argparse.Namespace) -> int:
    """Compute every requested source once; return how many failed."""
    failures = 0
    for source in _sources(args):
        if source == "lsr" and args.market != "futures":
            logger.warning("Skipping lsr: long/short ratios exist only on the futures market")
            continue
        logger.info("=== %s / %s ===", source, args.market)
        try:
            snapshot = compute_snapshot(
                source=source,
                market=args.market,
                timeframe=args.timeframe,
                request_range=RequestRange(limit=args.limit),
                reference=args.reference,
                cache_path=PATHS.negative_cache(source, args.market),
                ttl=timedelta(days=args.ttl_days),
                max_workers=args.max_workers,
                batch_timeout=args.batch_timeout,
            )
        except SnapshotError as e:
            logger.error("%s snapshot failed, keeping the previous reports: %s", source, e)
            failures += 1
            continue

        try:
            write_outputs(snapshot, args.rows)
        except OSError as e:
            logger.error("Could not write %s outputs: %s", source, e)
            failures += 1
    return failures


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    if not args.loop:
        return 1 if run_once(args) else 0

    while True:
        started = time.monotonic()
        run_once(args)
        sleep_s = max(0.0, args.interval - (time.monotonic() - started))
        logger.info("Next refresh in %.0fs", sleep_s)
        time.sleep(sleep_s)


if __name__ == "__main__":
    raise SystemExit(main())
