"""
Domain entities for stock price data.
Zero external dependencies: pure Python dataclasses only.

Prices are Decimal so that display rounding never drifts from what the
provider reported; the percentage change is a float because it is only ever
shown rounded to two places.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

_ZERO = Decimal("0")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QuoteSnapshot:
    """Point-in-time price/volume state for one ticker.

    Build through ``QuoteSnapshot.build`` so that ``change`` and
    ``change_percent`` are always derived from ``price`` and ``open_price``.
    """

    price: Decimal
    open_price: Decimal
    change: Decimal
    change_percent: float
    volume: int
    captured_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def build(
        cls,
        price: Decimal,
        open_price: Decimal,
        volume: int,
        captured_at: Optional[datetime] = None,
    ) -> "QuoteSnapshot":
        if not price.is_finite():
            price = _ZERO
        if not open_price.is_finite():
            open_price = _ZERO
        change = _ZERO
        change_percent = 0.0
        if open_price > 0:
            try:
                change = price - open_price
                change_percent = float(change / open_price * 100)
            except ArithmeticError:
                change, change_percent = _ZERO, 0.0
            if not math.isfinite(change_percent):
                change_percent = 0.0
        return cls(
            price=price,
            open_price=open_price,
            change=change,
            change_percent=change_percent,
            volume=max(int(volume), 0),
            captured_at=captured_at or _utcnow(),
        )


@dataclass(frozen=True)
class HistoricalBar:
    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass(frozen=True)
class HistoricalSeries:
    """Daily bars for *symbol*, ascending by timestamp with no duplicates."""

    symbol: str
    bars: tuple[HistoricalBar, ...]

    @classmethod
    def from_bars(cls, symbol: str, bars: list[HistoricalBar]) -> "HistoricalSeries":
        """Sort by timestamp and keep the last bar seen for each timestamp."""
        by_timestamp = {bar.timestamp: bar for bar in bars}
        ordered = sorted(by_timestamp.values(), key=lambda bar: bar.timestamp)
        return cls(symbol=symbol, bars=tuple(ordered))

    def latest(self, limit: int) -> "HistoricalSeries":
        """Return a series holding at most the *limit* most recent bars."""
        if limit <= 0:
            return HistoricalSeries(symbol=self.symbol, bars=())
        return HistoricalSeries(symbol=self.symbol, bars=self.bars[-limit:])

    @property
    def closes(self) -> list[Decimal]:
        return [bar.close for bar in self.bars]

    def __len__(self) -> int:
        return len(self.bars)
