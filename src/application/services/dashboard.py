"""
Application service: keeps the dashboard state current.

Business decisions owned here:
  - A failed quote fetch replaces every metric with the error text; metrics
    are never partially updated.
  - A failed history fetch keeps the previous chart and analysis.
  - The analysis panel is refreshed only after a successful history fetch.

DashboardRefresher drives the service on two fixed cadences (quote every
15s, history every 120s by default) after one initial history-then-quote
refresh. A refresh that raises unexpectedly is logged and the loop carries
on with the next tick; neither loop can take the other one down.
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from src.application.services.presentation import (
    DEFAULT_SHARES_OUTSTANDING,
    ChartView,
    MetricsView,
    present_chart,
    present_quote,
)
from src.application.use_cases.generate_analysis import GenerateAnalysisUseCase
from src.application.use_cases.get_historical_prices import GetHistoricalStockPricesUseCase
from src.application.use_cases.get_realtime_price import GetRealtimeStockPriceUseCase
from src.domain.entities.analysis import AnalysisReport
from src.domain.entities.stock_price import QuoteSnapshot
from src.domain.errors import FetchError
from src.domain.ports.clock_port import IClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardState:
    symbol: str
    metrics: MetricsView = field(default_factory=MetricsView.loading)
    chart: ChartView = field(default_factory=ChartView.empty)
    analysis: Optional[AnalysisReport] = None
    quote: Optional[QuoteSnapshot] = None
    quote_updated_at: Optional[datetime] = None
    history_updated_at: Optional[datetime] = None
    last_error: Optional[str] = None


class DashboardService:
    def __init__(
        self,
        symbol: str,
        quote_use_case: GetRealtimeStockPriceUseCase,
        history_use_case: GetHistoricalStockPricesUseCase,
        analysis_use_case: Optional[GenerateAnalysisUseCase] = None,
        shares_outstanding: Decimal = DEFAULT_SHARES_OUTSTANDING,
        clock: Optional[IClock] = None,
    ) -> None:
        self._symbol = symbol.upper()
        self._quote_uc = quote_use_case
        self._history_uc = history_use_case
        self._analysis_uc = analysis_use_case
        self._shares_outstanding = shares_outstanding
        self._clock = clock
        self._state = DashboardState(symbol=self._symbol)

    @property
    def state(self) -> DashboardState:
        return self._state

    def _now(self) -> datetime:
        if self._clock is None:
            return datetime.now(timezone.utc)
        return datetime.fromtimestamp(self._clock.now(), timezone.utc)

    def _update(self, **changes) -> None:
        self._state = dataclasses.replace(self._state, **changes)

    async def refresh_quote(self) -> DashboardState:
        try:
            snapshot = await self._quote_uc.execute(self._symbol)
        except FetchError as exc:
            logger.error(f"Error fetching current data for {self._symbol}: {exc}")
            self._update(metrics=MetricsView.error(), last_error=str(exc))
            return self._state

        self._update(
            metrics=present_quote(snapshot, self._shares_outstanding),
            quote=snapshot,
            quote_updated_at=self._now(),
            last_error=None,
        )
        return self._state

    async def refresh_history(self) -> DashboardState:
        try:
            series = await self._history_uc.execute(self._symbol)
        except FetchError as exc:
            logger.error(f"Error fetching historical data for {self._symbol}: {exc}")
            self._update(last_error=str(exc))
            return self._state

        if not len(series):
            logger.warning(f"No historical bars returned for {self._symbol}")
        self._update(
            chart=present_chart(series),
            history_updated_at=self._now(),
            last_error=None,
        )
        if self._analysis_uc is not None and len(series):
            report = await self._analysis_uc.execute(self._symbol, series)
            self._update(analysis=report)
        return self._state


class DashboardRefresher:
    DEFAULT_QUOTE_INTERVAL = 15.0
    DEFAULT_HISTORY_INTERVAL = 120.0

    def __init__(
        self,
        service: DashboardService,
        clock: IClock,
        quote_interval: float = DEFAULT_QUOTE_INTERVAL,
        history_interval: float = DEFAULT_HISTORY_INTERVAL,
    ) -> None:
        self._service = service
        self._clock = clock
        self.quote_interval = quote_interval
        self.history_interval = history_interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="dashboard-refresher")
        logger.info(
            f"Dashboard refresh started (quote every {self.quote_interval:.0f}s, "
            f"history every {self.history_interval:.0f}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Dashboard refresher had already failed")
        self._task = None
        logger.info("Dashboard refresh stopped")

    async def _run(self) -> None:
        await self._guarded(self._service.refresh_history)
        await self._guarded(self._service.refresh_quote)
        await asyncio.gather(
            self._every(self.quote_interval, self._service.refresh_quote),
            self._every(self.history_interval, self._service.refresh_history),
        )

    async def _every(
        self,
        interval: float,
        refresh: Callable[[], Awaitable[DashboardState]],
    ) -> None:
        while True:
            await self._clock.sleep(interval)
            await self._guarded(refresh)

    async def _guarded(self, refresh: Callable[[], Awaitable[DashboardState]]) -> None:
        try:
            await refresh()
        except Exception:
            logger.exception(f"Unexpected error in {refresh.__name__}, will retry next tick")
