"""
Ports (interfaces) for market-data sources.
Infrastructure adapters (e.g. PolygonMarketDataProvider, ScrapedQuoteProvider)
must implement these interfaces.

Adapters raise RateLimitedError on HTTP 429 and TransportError on any other
failure to obtain a body; they never retry or rate-limit on their own.
"""

from abc import ABC, abstractmethod

from src.domain.entities.stock_price import HistoricalSeries, QuoteSnapshot


class IQuoteProvider(ABC):
    @abstractmethod
    async def fetch_quote(self, symbol: str) -> QuoteSnapshot: ...


class IHistoricalProvider(ABC):
    @abstractmethod
    async def fetch_historical(
        self,
        symbol: str,
        lookback_days: int = 30,
        limit: int = 30,
    ) -> HistoricalSeries:
        """Fetch daily bars covering the last *lookback_days* calendar days."""
        ...
