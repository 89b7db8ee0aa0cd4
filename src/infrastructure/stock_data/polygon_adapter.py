"""
Infrastructure adapter: Polygon.io aggregates API -> IQuoteProvider, IHistoricalProvider.
All Polygon-specific details (paths, query parameters, the apiKey parameter)
are confined here; the rest of the codebase depends only on the ports.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from src.application.pipeline.normalizer import normalize_aggregate_quote, normalize_aggregate_series
from src.domain.entities.stock_price import HistoricalSeries, QuoteSnapshot
from src.domain.ports.stock_data_port import IHistoricalProvider, IQuoteProvider
from src.infrastructure.stock_data.http_errors import get_json

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PolygonMarketDataProvider(IQuoteProvider, IHistoricalProvider):
    """Fetches previous-day aggregates and daily ranges from Polygon.io."""

    BASE_URL = "https://api.polygon.io/v2"

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        base_url: str = BASE_URL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            api_key:  Polygon API key, sent as the apiKey query parameter.
            client:   Shared AsyncClient; its lifecycle belongs to the caller.
            base_url: API root, without trailing slash.
            now:      Clock for the range window (injected in tests).
        """
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        self._api_key = api_key
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._now = now

    async def fetch_quote(self, symbol: str) -> QuoteSnapshot:
        url = f"{self._base_url}/aggs/ticker/{symbol}/prev"
        payload = await get_json(self._client, url, {"apiKey": self._api_key})
        logger.debug(f"Previous-day aggregate for {symbol}: {payload!r}")
        return normalize_aggregate_quote(payload)

    async def fetch_historical(
        self,
        symbol: str,
        lookback_days: int = 30,
        limit: int = 30,
    ) -> HistoricalSeries:
        to_date = self._now()
        from_date = to_date - timedelta(days=lookback_days)
        url = (
            f"{self._base_url}/aggs/ticker/{symbol}/range/1/day/"
            f"{int(from_date.timestamp())}/{int(to_date.timestamp())}"
        )
        payload = await get_json(
            self._client,
            url,
            {"adjusted": "true", "sort": "asc", "limit": limit, "apiKey": self._api_key},
        )
        series = normalize_aggregate_series(symbol, payload)
        logger.debug(f"Historical data for {symbol}: {len(series)} bars")
        return series.latest(limit)
