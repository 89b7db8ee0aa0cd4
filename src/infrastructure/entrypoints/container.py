"""
Composition Root: wires settings, secrets and infrastructure adapters into
the application layer. Shared by the FastAPI app and the snapshot CLI.

One RateLimiter and one FetchOrchestrator are created per process and shared
by every fetch, so the cooldown applies across quote and history calls.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from src.application.pipeline.cache import SnapshotCache
from src.application.pipeline.orchestrator import FetchOrchestrator
from src.application.pipeline.rate_limiter import RateLimiter
from src.application.pipeline.retry import RetryPolicy
from src.application.services.dashboard import DashboardRefresher, DashboardService
from src.application.use_cases.generate_analysis import GenerateAnalysisUseCase
from src.application.use_cases.get_historical_prices import GetHistoricalStockPricesUseCase
from src.application.use_cases.get_realtime_price import GetRealtimeStockPriceUseCase
from src.domain.ports.clock_port import IClock
from src.domain.ports.key_value_store_port import IKeyValueStore
from src.domain.ports.secret_store_port import ISecretStore
from src.domain.ports.stock_data_port import IQuoteProvider
from src.infrastructure.clock.system_clock import SystemClock
from src.infrastructure.config import DashboardSettings
from src.infrastructure.llm.openai_adapter import OpenAIChatAdapter
from src.infrastructure.secrets.env_secret_store import EnvSecretStore
from src.infrastructure.secrets.secrets_manager_adapter import SecretsManagerAdapter
from src.infrastructure.stock_data.polygon_adapter import PolygonMarketDataProvider
from src.infrastructure.stock_data.scraping_adapter import ScrapedQuoteProvider
from src.infrastructure.storage.json_file_store import JsonFileKeyValueStore
from src.infrastructure.storage.memory_store import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

POLYGON_API_KEY = "POLYGON_API_KEY"
OPENAI_API_KEY = "OPENAI_API_KEY"


@dataclass
class Dashboard:
    service: DashboardService
    refresher: DashboardRefresher
    client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        try:
            await self.refresher.stop()
        finally:
            if self.client is not None:
                await self.client.aclose()


def build_secret_store(settings: DashboardSettings) -> ISecretStore:
    """Environment secrets, preloaded from Secrets Manager when an ARN is set."""
    if settings.secret_arn:
        SecretsManagerAdapter(settings.secret_arn).load_into_env()
    return EnvSecretStore()


def build_key_value_store(settings: DashboardSettings) -> IKeyValueStore:
    if settings.cache_path:
        return JsonFileKeyValueStore(settings.cache_path)
    return InMemoryKeyValueStore()


def build_dashboard(
    settings: DashboardSettings,
    secrets: ISecretStore,
    client: Optional[httpx.AsyncClient] = None,
    clock: Optional[IClock] = None,
    store: Optional[IKeyValueStore] = None,
) -> Dashboard:
    """Wire the full dashboard.

    Raises:
        MissingSecretError: a secret needed by an enabled code path is absent.
    """
    clock = clock or SystemClock()
    owns_client = client is None
    # Resolve secrets before opening any connection.
    polygon_key = secrets.require(POLYGON_API_KEY)
    openai_key = secrets.require(OPENAI_API_KEY) if settings.analysis_enabled else None

    http = client or httpx.AsyncClient(timeout=settings.http_timeout, follow_redirects=True)
    rate_limiter = RateLimiter(clock, min_interval=settings.min_request_interval)
    retry_policy = RetryPolicy(
        clock, max_retries=settings.max_retries, retry_delay=settings.retry_delay
    )
    polygon = PolygonMarketDataProvider(polygon_key, http, base_url=settings.polygon_base_url)

    quote_provider: IQuoteProvider
    if settings.data_source == "scrape":
        quote_provider = ScrapedQuoteProvider(
            http,
            page_url=settings.scrape_page_url,
            proxy_url=settings.scrape_proxy_url,
            selectors=settings.scrape_selectors,
        )
        cache = SnapshotCache(
            store or build_key_value_store(settings), clock, max_age=settings.cache_max_age
        )
        quote_orchestrator = FetchOrchestrator(rate_limiter, retry_policy, cache=cache)
        quote_cache_key: Optional[str] = settings.cache_key
    else:
        quote_provider = polygon
        quote_orchestrator = FetchOrchestrator(rate_limiter, retry_policy)
        quote_cache_key = None
    # History always comes from the aggregates API and is never cached.
    history_orchestrator = FetchOrchestrator(rate_limiter, retry_policy)

    analysis_uc = None
    if openai_key:
        llm = OpenAIChatAdapter(
            openai_key, http, base_url=settings.openai_base_url, model=settings.openai_model
        )
        analysis_uc = GenerateAnalysisUseCase(llm)

    service = DashboardService(
        settings.ticker,
        GetRealtimeStockPriceUseCase(quote_provider, quote_orchestrator, cache_key=quote_cache_key),
        GetHistoricalStockPricesUseCase(polygon, history_orchestrator),
        analysis_uc,
        shares_outstanding=settings.shares_outstanding,
        clock=clock,
    )
    refresher = DashboardRefresher(
        service,
        clock,
        quote_interval=settings.quote_refresh,
        history_interval=settings.history_refresh,
    )
    logger.info(
        f"Dashboard wired for {settings.ticker} "
        f"(source={settings.data_source}, analysis={'on' if analysis_uc else 'off'})"
    )
    return Dashboard(service=service, refresher=refresher, client=http if owns_client else None)
