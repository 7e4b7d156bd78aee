"""
market_snapshot/errors.py
Error taxonomy for one aggregation run.

Run-level (raised, abort the snapshot):
    UniverseUnavailable, ReferenceUnavailable
Instrument-level (built at the task boundary for logging, never raised past it):
    InstrumentFetchFailed, InstrumentEmpty
Formatter:
    InsufficientDataForRow
Cache (logged only):
    CacheLoadFailed, CachePersistFailed
"""

from __future__ import annotations


class SnapshotError(Exception):
    """Base class for everything this package raises on purpose."""


class UniverseUnavailable(SnapshotError):
    def __init__(self, market: str, reason: object = None):
        self.market = market
        msg = f"Instrument universe for {market!r} unavailable"
        super().__init__(f"{msg}: {reason}" if reason is not None else msg)


class ReferenceUnavailable(SnapshotError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Reference instrument {symbol} returned no data")


class InstrumentFetchFailed(SnapshotError):
    def __init__(self, symbol: str, cause: BaseException):
        self.symbol = symbol
        self.cause = cause
        super().__init__(f"Couldn't fetch data for {symbol}: {cause!r}")


class InstrumentEmpty(SnapshotError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No data for {symbol}")


class InsufficientDataForRow(SnapshotError, IndexError):
    def __init__(self, row: int, available: int):
        self.row = row
        self.available = available
        super().__init__(
            f"Row {row} needs {2 * (row + 1)} ranked instruments, only {available} available"
        )


class CacheLoadFailed(SnapshotError):
    pass


class CachePersistFailed(SnapshotError):
    pass
