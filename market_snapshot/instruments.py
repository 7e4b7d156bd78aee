"""
market_snapshot/instruments.py
Instrument identifiers and request windows shared by every component.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

KNOWN_QUOTES = ("USDT", "USDC", "FDUSD", "BUSD", "BTC", "ETH")


@dataclass(frozen=True, order=True)
class Pair:
    """A tradable base/quote pair, e.g. Pair("BTC", "USDT")."""

    base:  str
    quote: str = "USDT"

    @property
    def symbol(self) -> str:
        return f"{self.base}{self.quote}"

    @property
    def display_name(self) -> str:
        # Binance lists low-priced perps as e.g. 1000PEPEUSDT
        return self.base.replace("1000", "", 1) if self.base.startswith("1000") else self.base

    @classmethod
    def from_symbol(cls, symbol: str) -> "Pair":
        symbol = symbol.strip().upper()
        for quote in KNOWN_QUOTES:
            if symbol.endswith(quote) and len(symbol) > len(quote):
                return cls(symbol[: -len(quote)], quote)
        raise ValueError(f"Cannot split {symbol!r} into base/quote")

    def __str__(self) -> str:
        return self.symbol


def _dt_to_ms(dt: datetime) -> int:
    """Convert a UTC-aware datetime to Unix milliseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


@dataclass(frozen=True)
class RequestRange:
    """
    Either a trailing bar count (*limit*) or an explicit [start, end] window.

    Binance accepts both together; a window without a limit falls back to the
    endpoint's own default page size.
    """

    limit: Optional[int]      = None
    start: Optional[datetime] = None
    end:   Optional[datetime] = None

    def __post_init__(self):
        if self.limit is None and self.start is None:
            raise ValueError("RequestRange needs a limit or a start time")
        if self.limit is not None and self.limit <= 0:
            raise ValueError(f"limit must be positive, got {self.limit}")

    def to_params(self, max_limit: int) -> dict:
        params: dict = {}
        if self.limit is not None:
            params["limit"] = min(self.limit, max_limit)
        if self.start is not None:
            params["startTime"] = _dt_to_ms(self.start)
        if self.end is not None:
            params["endTime"] = _dt_to_ms(self.end)
        return params
