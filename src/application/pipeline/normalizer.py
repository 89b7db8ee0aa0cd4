"""
Raw provider payloads -> QuoteSnapshot / HistoricalSeries.

Every field parser is lossy-but-available: a missing or malformed value
becomes zero and is logged, it never fails the whole snapshot.

    parse_volume("12.3M")  -> 12300000
    parse_volume("450K")   -> 450000
    parse_volume("45,000,000") -> 45000000
    parse_money("$1,234.50")   -> Decimal("1234.50")
"""

import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from src.domain.entities.stock_price import HistoricalBar, HistoricalSeries, QuoteSnapshot

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_VOLUME_MULTIPLIERS = {"M": 1_000_000, "K": 1_000}
_SEPARATORS = re.compile(r"[,\s]")
_NON_DIGITS = re.compile(r"\D")
# Scraped text is plain positional notation; "1e400" is not a price.
_PLAIN_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


def to_decimal(value: Any) -> Decimal:
    """Coerce a JSON number or numeric string to a finite Decimal, else 0."""
    if value is None or isinstance(value, bool):
        return _ZERO
    try:
        # str() first so floats keep their shortest repr (185.5, not 185.4999...)
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.debug(f"Unparseable numeric value {value!r}, using 0")
        return _ZERO
    return result if result.is_finite() else _ZERO


def to_volume(value: Any) -> int:
    if isinstance(value, str):
        return parse_volume(value)
    volume = int(to_decimal(value))
    return volume if volume > 0 else 0


def parse_money(text: Optional[str]) -> Decimal:
    if not text:
        return _ZERO
    cleaned = _SEPARATORS.sub("", text).replace("$", "")
    if not _PLAIN_NUMBER.fullmatch(cleaned):
        logger.debug(f"Unparseable money text {text!r}, using 0")
        return _ZERO
    return to_decimal(cleaned)


def parse_volume(text: Optional[str]) -> int:
    """Parse a display volume string, honouring M and K unit suffixes."""
    if not text:
        return 0
    cleaned = _SEPARATORS.sub("", text)
    if not cleaned:
        return 0

    suffix = cleaned[-1]
    if suffix in _VOLUME_MULTIPLIERS:
        if not _PLAIN_NUMBER.fullmatch(cleaned[:-1]):
            return 0
        prefix = to_decimal(cleaned[:-1])
        return max(int(prefix * _VOLUME_MULTIPLIERS[suffix]), 0)

    if _PLAIN_NUMBER.fullmatch(cleaned):
        return max(int(Decimal(cleaned)), 0)
    digits = _NON_DIGITS.sub("", cleaned)
    return int(digits) if digits else 0


def _first_result(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        logger.warning(f"Aggregate payload is not an object: {type(payload).__name__}")
        return {}
    results = payload.get("results")
    if not isinstance(results, list) or not results or not isinstance(results[0], Mapping):
        logger.warning("Aggregate payload has no results; quote degrades to zero")
        return {}
    return results[0]


def normalize_aggregate_quote(
    payload: Any,
    captured_at: Optional[datetime] = None,
) -> QuoteSnapshot:
    """Build a snapshot from ``{"results": [{"c": .., "o": .., "v": ..}]}``."""
    result = _first_result(payload)
    return QuoteSnapshot.build(
        price=to_decimal(result.get("c")),
        open_price=to_decimal(result.get("o")),
        volume=to_volume(result.get("v")),
        captured_at=captured_at,
    )


def normalize_scraped_quote(
    cells: Mapping[str, Optional[str]],
    captured_at: Optional[datetime] = None,
) -> QuoteSnapshot:
    """Build a snapshot from scraped cell texts keyed price/open/volume."""
    for name in ("price", "open", "volume"):
        if not cells.get(name):
            logger.warning(f"Scraped page is missing the {name!r} cell; using 0")
    return QuoteSnapshot.build(
        price=parse_money(cells.get("price")),
        open_price=parse_money(cells.get("open")),
        volume=parse_volume(cells.get("volume")),
        captured_at=captured_at,
    )


def _bar_timestamp(value: Any) -> Optional[datetime]:
    millis = to_decimal(value)
    if millis <= 0:
        return None
    try:
        return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_aggregate_series(symbol: str, payload: Any) -> HistoricalSeries:
    """Build a series from an aggregate range response.

    Bars without a usable ``t`` (epoch millis) are dropped; the rest are
    sorted ascending and de-duplicated by timestamp.
    """
    results = payload.get("results") if isinstance(payload, Mapping) else None
    if not isinstance(results, list):
        logger.warning(f"Range payload for {symbol} has no results list")
        return HistoricalSeries(symbol=symbol, bars=())

    bars: list[HistoricalBar] = []
    for row in results:
        if not isinstance(row, Mapping):
            continue
        timestamp = _bar_timestamp(row.get("t"))
        if timestamp is None:
            logger.debug(f"Dropping bar without timestamp: {row!r}")
            continue
        bars.append(
            HistoricalBar(
                timestamp=timestamp,
                open=to_decimal(row.get("o")),
                high=to_decimal(row.get("h")),
                low=to_decimal(row.get("l")),
                close=to_decimal(row.get("c")),
                volume=to_volume(row.get("v")),
            )
        )
    return HistoricalSeries.from_bars(symbol, bars)
