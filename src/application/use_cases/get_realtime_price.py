"""
Use-case: latest quote snapshot for a symbol, through the fetch pipeline.
Depends only on Domain ports/entities and the application pipeline.
"""

from typing import Optional

from src.application.pipeline.orchestrator import FetchOrchestrator
from src.domain.entities.stock_price import QuoteSnapshot
from src.domain.ports.stock_data_port import IQuoteProvider


class GetRealtimeStockPriceUseCase:
    def __init__(
        self,
        provider: IQuoteProvider,
        orchestrator: FetchOrchestrator,
        cache_key: Optional[str] = None,
    ) -> None:
        """
        Args:
            provider:     IQuoteProvider implementation (aggregates API or scraper).
            orchestrator: Shared FetchOrchestrator (rate limit, retry, cache).
            cache_key:    Storage key for the snapshot; defaults to
                          '<symbol>_data' (e.g. 'amzn_data').
        """
        self._provider = provider
        self._orchestrator = orchestrator
        self._cache_key = cache_key

    async def execute(self, symbol: str) -> QuoteSnapshot:
        """Fetch the current quote for *symbol* (uppercased).

        Raises:
            ValueError: if *symbol* is blank.
            RetriesExhaustedError: if every attempt failed.
        """
        if not symbol or not symbol.strip():
            raise ValueError("symbol must be a non-empty string")
        symbol = symbol.upper().strip()
        key = self._cache_key or f"{symbol.lower()}_data"
        return await self._orchestrator.fetch(
            key, lambda: self._provider.fetch_quote(symbol)
        )
