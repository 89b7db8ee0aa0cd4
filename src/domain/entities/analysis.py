"""
Domain entities for the language-model analysis panel and crossover signals.
Zero external dependencies: pure Python dataclasses only.
"""

from dataclasses import dataclass

ANALYSIS_UNAVAILABLE = "Analysis temporarily unavailable"


@dataclass(frozen=True)
class AnalysisReport:
    technical: str
    sentiment: str
    signals: str
    risk: str

    @classmethod
    def unavailable(cls) -> "AnalysisReport":
        return cls(
            technical=ANALYSIS_UNAVAILABLE,
            sentiment=ANALYSIS_UNAVAILABLE,
            signals=ANALYSIS_UNAVAILABLE,
            risk=ANALYSIS_UNAVAILABLE,
        )

    @property
    def is_available(self) -> bool:
        return self != AnalysisReport.unavailable()


@dataclass(frozen=True)
class TradingSignals:
    """Bar indices where the close crosses its moving average."""

    buy: tuple[int, ...]
    sell: tuple[int, ...]
