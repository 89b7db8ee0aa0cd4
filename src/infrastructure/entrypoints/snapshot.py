"""
CLI entry point: fetch the quote and history once and print the dashboard.

Uses the same Composition Root as the FastAPI app, so the cooldown, retry and
cache settings apply exactly as they do in the server.

    export POLYGON_API_KEY=<key>
    export OPENAI_API_KEY=<key>        # or DASHBOARD_ANALYSIS_ENABLED=false
    python -m src.infrastructure.entrypoints.snapshot
"""

import asyncio

from src.application.services.dashboard import DashboardState
from src.infrastructure.config import DashboardSettings
from src.infrastructure.entrypoints.container import build_dashboard, build_secret_store
from src.infrastructure.observability.logging_setup import configure_logging


def render(state: DashboardState) -> str:
    metrics = state.metrics
    lines = [
        f"{state.symbol}",
        f"  Price:      {metrics.price}",
        f"  Day change: {metrics.change}" + (f" [{metrics.change_direction}]" if metrics.change_direction else ""),
        f"  Volume:     {metrics.volume}",
        f"  Market cap: {metrics.market_cap}",
        f"  Chart:      {len(state.chart.labels)} bars, "
        f"{sum(m is not None for m in state.chart.buy_markers)} buy / "
        f"{sum(m is not None for m in state.chart.sell_markers)} sell markers",
    ]
    if state.analysis is not None:
        lines += [
            "  Analysis:",
            f"    Technical: {state.analysis.technical}",
            f"    Sentiment: {state.analysis.sentiment}",
            f"    Signals:   {state.analysis.signals}",
            f"    Risk:      {state.analysis.risk}",
        ]
    return "\n".join(lines)


async def run(settings: DashboardSettings) -> DashboardState:
    dashboard = build_dashboard(settings, build_secret_store(settings))
    try:
        await dashboard.service.refresh_history()
        return await dashboard.service.refresh_quote()
    finally:
        await dashboard.aclose()


def main() -> None:
    settings = DashboardSettings.from_env()
    configure_logging(settings.log_level)
    state = asyncio.run(run(settings))
    print(render(state))


if __name__ == "__main__":
    main()
