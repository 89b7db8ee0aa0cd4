"""
FastAPI entry point: serves the dashboard state to the page that renders it.

The app owns the refresh loops through its lifespan: they start with the
server and are cancelled, together with the shared HTTP client, on shutdown.

Run locally:
    uvicorn src.infrastructure.entrypoints.fastapi_app:create_app --factory --port 8000
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from pydantic import BaseModel

from src.application.services.dashboard import DashboardState
from src.infrastructure.config import DashboardSettings
from src.infrastructure.entrypoints.container import (
    Dashboard,
    build_dashboard,
    build_secret_store,
)
from src.infrastructure.observability.logging_setup import configure_logging


class MetricsResponse(BaseModel):
    price: str
    change: str
    change_direction: Optional[str] = None
    volume: str
    market_cap: str


class ChartResponse(BaseModel):
    labels: list[str]
    closes: list[float]
    volumes: list[int]
    buy_markers: list[Optional[float]]
    sell_markers: list[Optional[float]]


class AnalysisResponse(BaseModel):
    technical: str
    sentiment: str
    signals: str
    risk: str


class DashboardResponse(BaseModel):
    symbol: str
    metrics: MetricsResponse
    chart: ChartResponse
    analysis: Optional[AnalysisResponse] = None
    quote_updated_at: Optional[datetime] = None
    history_updated_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @classmethod
    def from_state(cls, state: DashboardState) -> "DashboardResponse":
        analysis = state.analysis
        return cls(
            symbol=state.symbol,
            metrics=MetricsResponse(**vars(state.metrics)),
            chart=ChartResponse(**vars(state.chart)),
            analysis=AnalysisResponse(**vars(analysis)) if analysis else None,
            quote_updated_at=state.quote_updated_at,
            history_updated_at=state.history_updated_at,
            last_error=state.last_error,
        )


def create_app(
    settings: Optional[DashboardSettings] = None,
    dashboard: Optional[Dashboard] = None,
) -> FastAPI:
    """Build the app. Passing *dashboard* skips wiring (used by tests)."""
    if dashboard is None:
        settings = settings or DashboardSettings.from_env()
        configure_logging(settings.log_level)
        dashboard = build_dashboard(settings, build_secret_store(settings))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        dashboard.refresher.start()
        try:
            yield
        finally:
            await dashboard.aclose()

    app = FastAPI(title="Stock Dashboard API", lifespan=lifespan)

    @app.get("/dashboard", response_model=DashboardResponse)
    async def get_dashboard() -> DashboardResponse:
        """Latest metrics, chart series and analysis texts."""
        return DashboardResponse.from_state(dashboard.service.state)

    @app.get("/health")
    async def health():
        return {"status": "ok", "refreshing": dashboard.refresher.running}

    return app
