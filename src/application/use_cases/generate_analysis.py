"""
Use-case: ask the language model for the four analysis panel texts.
Depends only on Domain ports/entities; the prompt lives in application/analysis.
"""

import json
import logging
from decimal import Decimal

from src.application.analysis.prompts import ANALYSIS_PROMPT
from src.application.services.presentation import format_currency
from src.domain.entities.analysis import AnalysisReport
from src.domain.entities.stock_price import HistoricalSeries
from src.domain.errors import LanguageModelError
from src.domain.ports.llm_port import ILanguageModel

logger = logging.getLogger(__name__)

_FIELDS = ("technical", "sentiment", "signals", "risk")


def build_prompt(symbol: str, series: HistoricalSeries, window: int = 5) -> str:
    recent = series.closes[-window:]
    if not recent:
        raise ValueError("cannot build an analysis prompt from an empty series")
    current = recent[-1]
    first = recent[0]
    change = (current - first) / first * 100 if first > 0 else Decimal("0")
    return ANALYSIS_PROMPT.format(
        symbol=symbol,
        current_price=format_currency(current),
        window=len(recent),
        change_percent=f"{change:.2f}",
        recent_prices=", ".join(format_currency(p) for p in recent),
    )


def parse_report(content: str) -> AnalysisReport:
    """Parse the model's JSON reply.

    Raises:
        ValueError: if the reply is not a JSON object with the four text keys.
    """
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("analysis reply is not a JSON object")
    missing = [name for name in _FIELDS if not isinstance(data.get(name), str)]
    if missing:
        raise ValueError(f"analysis reply is missing {', '.join(missing)}")
    return AnalysisReport(**{name: data[name] for name in _FIELDS})


class GenerateAnalysisUseCase:
    def __init__(self, llm: ILanguageModel) -> None:
        self._llm = llm

    async def execute(self, symbol: str, series: HistoricalSeries) -> AnalysisReport:
        """Return the analysis for *series*, or the unavailable placeholder.

        Never raises for model or parse failures; those are logged and turned
        into AnalysisReport.unavailable().
        """
        try:
            prompt = build_prompt(symbol, series)
            content = await self._llm.complete(prompt)
            return parse_report(content)
        except (LanguageModelError, ValueError) as exc:
            logger.error(f"Error updating AI analysis for {symbol}: {exc}")
            return AnalysisReport.unavailable()
