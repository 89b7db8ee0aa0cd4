import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from src.application.pipeline.cache import SnapshotCache
from src.application.pipeline.orchestrator import FetchOrchestrator
from src.application.pipeline.rate_limiter import RateLimiter
from src.application.pipeline.retry import RetryPolicy
from src.application.services.dashboard import DashboardRefresher, DashboardService
from src.application.services.presentation import ERROR_LOADING, LOADING
from src.application.use_cases.generate_analysis import GenerateAnalysisUseCase
from src.application.use_cases.get_historical_prices import GetHistoricalStockPricesUseCase
from src.application.use_cases.get_realtime_price import GetRealtimeStockPriceUseCase
from src.domain.entities.analysis import AnalysisReport
from src.domain.entities.stock_price import QuoteSnapshot
from src.domain.errors import RateLimitedError, TransportError
from src.domain.ports.stock_data_port import IHistoricalProvider, IQuoteProvider
from tests.conftest import make_series
from tests.test_analysis import FakeLanguageModel
from tests.test_orchestrator import ReadOnlyStore


class FakeProvider(IQuoteProvider, IHistoricalProvider):
    def __init__(self, quote_errors=(), history_errors=()):
        self.quote_errors = list(quote_errors)
        self.history_errors = list(history_errors)
        self.quote_calls = 0
        self.history_calls = 0
        self.symbols = []

    async def fetch_quote(self, symbol):
        self.quote_calls += 1
        self.symbols.append(symbol)
        if self.quote_errors:
            raise self.quote_errors.pop(0)
        return QuoteSnapshot.build(Decimal("185.50"), Decimal("180.00"), 45_000_000)

    async def fetch_historical(self, symbol, lookback_days=30, limit=30):
        self.history_calls += 1
        if self.history_errors:
            raise self.history_errors.pop(0)
        return make_series([float(i) for i in range(1, 41)], symbol=symbol)


def _service(clock, provider, llm=None, max_retries=3):
    orchestrator = FetchOrchestrator(
        RateLimiter(clock, min_interval=15),
        RetryPolicy(clock, max_retries=max_retries, retry_delay=20),
    )
    return DashboardService(
        "amzn",
        GetRealtimeStockPriceUseCase(provider, orchestrator),
        GetHistoricalStockPricesUseCase(provider, orchestrator),
        GenerateAnalysisUseCase(llm) if llm else None,
        clock=clock,
    )


async def test_initial_state_is_loading(clock):
    service = _service(clock, FakeProvider())

    assert service.state.symbol == "AMZN"
    assert service.state.metrics.price == LOADING
    assert service.state.analysis is None


async def test_refresh_quote_formats_metrics(clock):
    provider = FakeProvider()
    service = _service(clock, provider)

    state = await service.refresh_quote()

    assert state.metrics.price == "$185.50"
    assert state.metrics.change == "$5.50 (3.06%)"
    assert state.metrics.change_direction == "positive"
    assert state.metrics.volume == "45,000,000"
    assert state.quote_updated_at is not None
    assert provider.symbols == ["AMZN"]


async def test_exhausted_quote_sets_every_metric_to_error(clock):
    provider = FakeProvider(quote_errors=[RateLimitedError()] * 4)
    service = _service(clock, provider)

    state = await service.refresh_quote()

    assert provider.quote_calls == 4
    assert {state.metrics.price, state.metrics.change, state.metrics.volume, state.metrics.market_cap} == {
        ERROR_LOADING
    }
    assert state.metrics.change_direction is None
    assert "4 attempt" in state.last_error


async def test_refresh_history_builds_chart_and_analysis(clock):
    llm = FakeLanguageModel()
    service = _service(clock, FakeProvider(), llm=llm)

    state = await service.refresh_history()

    assert len(state.chart.labels) == 30
    assert state.chart.closes[-1] == 40.0
    assert state.analysis is not None and state.analysis.is_available
    assert "Current Price: $40.00" in llm.prompts[0]


async def test_failed_history_keeps_previous_chart(clock):
    provider = FakeProvider(history_errors=[TransportError("down")] * 2)
    service = _service(clock, provider, max_retries=1)
    await service.refresh_history()  # fails
    provider.history_errors = []
    first = await service.refresh_history()
    provider.history_errors = [TransportError("down")] * 2

    second = await service.refresh_history()

    assert second.chart == first.chart
    assert second.last_error is not None


async def test_refresher_runs_initial_history_then_quote_and_repeats(clock):
    provider = FakeProvider()
    service = _service(clock, provider, llm=FakeLanguageModel(reply="nonsense"))
    refresher = DashboardRefresher(service, clock, quote_interval=15, history_interval=120)

    refresher.start()
    for _ in range(50):
        await asyncio.sleep(0)
        if provider.quote_calls >= 3:
            break
    await refresher.stop()

    assert provider.history_calls >= 1
    assert provider.quote_calls >= 3
    assert not refresher.running
    assert service.state.analysis == AnalysisReport.unavailable()


async def test_update_timestamps_come_from_the_clock(clock):
    service = _service(clock, FakeProvider())

    quote_state = await service.refresh_quote()
    assert quote_state.quote_updated_at == datetime.fromtimestamp(clock.now(), timezone.utc)

    history_state = await service.refresh_history()
    assert history_state.history_updated_at == datetime.fromtimestamp(clock.now(), timezone.utc)


async def test_unwritable_cache_does_not_hide_the_quote(clock):
    orchestrator = FetchOrchestrator(
        RateLimiter(clock, min_interval=15),
        RetryPolicy(clock, max_retries=3, retry_delay=20),
        cache=SnapshotCache(ReadOnlyStore(), clock),
    )
    provider = FakeProvider()
    service = DashboardService(
        "amzn",
        GetRealtimeStockPriceUseCase(provider, orchestrator, cache_key="amzn_data"),
        GetHistoricalStockPricesUseCase(provider, orchestrator),
        clock=clock,
    )

    state = await service.refresh_quote()

    assert state.metrics.price == "$185.50"
    assert state.last_error is None


class FlakyHistoryProvider(FakeProvider):
    """Raises an unexpected error on the second history fetch."""

    async def fetch_historical(self, symbol, lookback_days=30, limit=30):
        if self.history_calls == 1:
            self.history_calls += 1
            raise RuntimeError("unexpected")
        return await super().fetch_historical(symbol, lookback_days, limit)


async def test_refresher_survives_an_unexpected_refresh_error(clock):
    provider = FlakyHistoryProvider()
    service = _service(clock, provider)
    refresher = DashboardRefresher(service, clock, quote_interval=15, history_interval=120)

    refresher.start()
    for _ in range(200):
        await asyncio.sleep(0)
        if provider.history_calls >= 3 and provider.quote_calls >= 3:
            break

    assert provider.history_calls >= 3
    assert refresher.running

    await refresher.stop()
    calls = (provider.quote_calls, provider.history_calls)
    for _ in range(20):
        await asyncio.sleep(0)

    assert not refresher.running
    assert (provider.quote_calls, provider.history_calls) == calls
