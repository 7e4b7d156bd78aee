"""
market_snapshot/config.py

──────────────────────────────────────────────
  CONFIGURATION — defaults for one aggregation run.
  CLI flags in update.py override these per invocation.
──────────────────────────────────────────────
"""

CONFIG: dict = {
    # ── Universe ─────────────────────────────────────────────────────────────
    "market":              "futures",   # "futures" (USD-M perps) or "spot"
    "reference":           "BTCUSDT",   # supplies the shared time axis

    # ── Request window ───────────────────────────────────────────────────────
    "timeframe":           "5m",
    "limit":               24 * 12 + 1, # 24h of 5m bars, both ends inclusive

    # ── Negative-result cache ────────────────────────────────────────────────
    "negative_ttl_days":   30,

    # ── Fan-out ──────────────────────────────────────────────────────────────
    "max_workers":         16,          # concurrent in-flight requests
    "batch_timeout_s":     120.0,       # deadline for the whole join

    # ── Display ──────────────────────────────────────────────────────────────
    "text_rows":           10,

    # ── Refresh loop ─────────────────────────────────────────────────────────
    "refresh_interval_s":  60 * 60,
}
