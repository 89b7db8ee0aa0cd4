"""
Moving-average crossover markers for the price chart.

A buy marker sits on bar i when the close moves from at-or-below its trailing
average to above it; a sell marker is the mirror image. The trailing average
for bar i is the mean of the ``period`` closes strictly before it, so the
first bar that can carry a marker is index ``period + 1``.
"""

from decimal import Decimal
from typing import Sequence

from src.domain.entities.analysis import TradingSignals

DEFAULT_PERIOD = 5


def trailing_mean(closes: Sequence[Decimal], index: int, period: int) -> Decimal:
    window = closes[index - period:index]
    return sum(window, Decimal("0")) / period


def find_crossovers(closes: Sequence[Decimal], period: int = DEFAULT_PERIOD) -> TradingSignals:
    if period <= 0:
        raise ValueError("period must be positive")

    buy: list[int] = []
    sell: list[int] = []
    for i in range(period + 1, len(closes)):
        ma = trailing_mean(closes, i, period)
        prev_ma = trailing_mean(closes, i - 1, period)
        if closes[i] > ma and closes[i - 1] <= prev_ma:
            buy.append(i)
        if closes[i] < ma and closes[i - 1] >= prev_ma:
            sell.append(i)
    return TradingSignals(buy=tuple(buy), sell=tuple(sell))
