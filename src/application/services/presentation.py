"""
Display formatting for the dashboard metrics and chart feed.

Nothing here talks to a page or a charting library; it produces the exact
strings and series a renderer paints.
"""

from dataclasses import dataclass
from decimal import MAX_PREC, ROUND_HALF_UP, Context, Decimal
from typing import Optional, Union

from src.application.services.signals import find_crossovers
from src.domain.entities.stock_price import HistoricalSeries, QuoteSnapshot

Number = Union[int, float, Decimal]

LOADING = "Loading..."
ERROR_LOADING = "Error loading data"

DEFAULT_SHARES_OUTSTANDING = Decimal("10.2e9")
CHART_MAX_POINTS = 30

_TRILLION = Decimal("1e12")
_BILLION = Decimal("1e9")
_CENT = Decimal("0.01")
# Quantizing must not fail on values with more than 28 significant digits.
_DISPLAY_CONTEXT = Context(prec=MAX_PREC)


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP, context=_DISPLAY_CONTEXT)


def format_number(value: Number) -> str:
    """Group thousands: 45000000 -> '45,000,000'."""
    number = Decimal(str(value))
    if number == number.to_integral_value():
        return f"{int(number):,}"
    return f"{number.normalize():,f}"


def format_currency(value: Number) -> str:
    """USD with T/B abbreviations: 185.5 -> '$185.50', 1.9e12 -> '$1.90T'.

    Only positive amounts are abbreviated; -2e9 renders in full.
    """
    amount = Decimal(str(value))
    if amount >= _TRILLION:
        return f"${_quantize(amount / _TRILLION):.2f}T"
    if amount >= _BILLION:
        return f"${_quantize(amount / _BILLION):.2f}B"
    cents = _quantize(amount)
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents):,.2f}"


def format_percent(value: float) -> str:
    return f"{_quantize(Decimal(str(value))):.2f}%"


@dataclass(frozen=True)
class MetricsView:
    price: str
    change: str
    change_direction: Optional[str]
    volume: str
    market_cap: str

    @classmethod
    def loading(cls) -> "MetricsView":
        return cls(LOADING, LOADING, None, LOADING, LOADING)

    @classmethod
    def error(cls) -> "MetricsView":
        return cls(ERROR_LOADING, ERROR_LOADING, None, ERROR_LOADING, ERROR_LOADING)


def present_quote(
    snapshot: QuoteSnapshot,
    shares_outstanding: Decimal = DEFAULT_SHARES_OUTSTANDING,
) -> MetricsView:
    return MetricsView(
        price=format_currency(snapshot.price),
        change=f"{format_currency(snapshot.change)} ({format_percent(snapshot.change_percent)})",
        change_direction="positive" if snapshot.change >= 0 else "negative",
        volume=format_number(snapshot.volume),
        market_cap=format_currency(snapshot.price * shares_outstanding),
    )


@dataclass(frozen=True)
class ChartView:
    """Parallel series for a line chart with buy/sell markers and a volume bar chart.

    ``buy_markers``/``sell_markers`` hold the close at marked bars and None
    elsewhere, matching the label axis one-to-one.
    """

    labels: list[str]
    closes: list[float]
    volumes: list[int]
    buy_markers: list[Optional[float]]
    sell_markers: list[Optional[float]]

    @classmethod
    def empty(cls) -> "ChartView":
        return cls([], [], [], [], [])


def present_chart(series: HistoricalSeries, max_points: int = CHART_MAX_POINTS) -> ChartView:
    recent = series.latest(max_points)
    closes = recent.closes
    signals = find_crossovers(closes)
    buy = set(signals.buy)
    sell = set(signals.sell)
    prices = [float(close) for close in closes]
    return ChartView(
        labels=[bar.timestamp.date().isoformat() for bar in recent.bars],
        closes=prices,
        volumes=[bar.volume for bar in recent.bars],
        buy_markers=[price if i in buy else None for i, price in enumerate(prices)],
        sell_markers=[price if i in sell else None for i, price in enumerate(prices)],
    )
