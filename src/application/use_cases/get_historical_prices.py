"""
Use-case: daily bars for the chart and the analysis prompt.
Depends only on Domain ports/entities and the application pipeline.
"""

from src.application.pipeline.orchestrator import FetchOrchestrator
from src.domain.entities.stock_price import HistoricalSeries
from src.domain.ports.stock_data_port import IHistoricalProvider


class GetHistoricalStockPricesUseCase:
    LOOKBACK_DAYS: int = 30
    MAX_BARS: int = 30

    def __init__(self, provider: IHistoricalProvider, orchestrator: FetchOrchestrator) -> None:
        self._provider = provider
        self._orchestrator = orchestrator

    async def execute(self, symbol: str) -> HistoricalSeries:
        """Fetch the last LOOKBACK_DAYS of daily bars for *symbol*.

        Returns:
            At most MAX_BARS bars, most recent last.

        Raises:
            ValueError: if *symbol* is blank.
            RetriesExhaustedError: if every attempt failed.
        """
        if not symbol or not symbol.strip():
            raise ValueError("symbol must be a non-empty string")
        symbol = symbol.upper().strip()
        series = await self._orchestrator.fetch(
            f"{symbol.lower()}_history",
            lambda: self._provider.fetch_historical(
                symbol, lookback_days=self.LOOKBACK_DAYS, limit=self.MAX_BARS
            ),
        )
        return series.latest(self.MAX_BARS)
