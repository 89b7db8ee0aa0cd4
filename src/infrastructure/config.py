"""
Runtime configuration read from the environment (and a .env file, if present).

Secrets (POLYGON_API_KEY, OPENAI_API_KEY) are NOT part of these settings;
they are resolved through an ISecretStore at the composition root.

Variables (defaults in parentheses):
    DASHBOARD_TICKER               (AMZN)
    DASHBOARD_DATA_SOURCE          polygon | scrape (polygon)
    POLYGON_BASE_URL               (https://api.polygon.io/v2)
    DASHBOARD_MIN_REQUEST_INTERVAL seconds between outbound calls (15)
    DASHBOARD_MAX_RETRIES          (3)
    DASHBOARD_RETRY_DELAY          seconds, fixed (20)
    DASHBOARD_CACHE_MAX_AGE        seconds, scrape source only (300)
    DASHBOARD_CACHE_PATH           JSON file; empty keeps the cache in memory
    DASHBOARD_CACHE_KEY            (amzn_data)
    SCRAPE_PAGE_URL / SCRAPE_PROXY_URL
    SCRAPE_PRICE_SELECTOR / SCRAPE_OPEN_SELECTOR / SCRAPE_VOLUME_SELECTOR
    DASHBOARD_ANALYSIS_ENABLED     (true)
    OPENAI_BASE_URL / OPENAI_MODEL
    DASHBOARD_SHARES_OUTSTANDING   (10.2e9)
    DASHBOARD_QUOTE_REFRESH / DASHBOARD_HISTORY_REFRESH  seconds (15 / 120)
    DASHBOARD_HTTP_TIMEOUT         seconds (30)
    DASHBOARD_SECRET_ARN           optional AWS Secrets Manager secret
    LOG_LEVEL                      (INFO)
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from dotenv import load_dotenv

from src.infrastructure.stock_data.scraping_adapter import (
    DEFAULT_PAGE_URL,
    DEFAULT_PROXY_URL,
    DEFAULT_SELECTORS,
)

DATA_SOURCES = ("polygon", "scrape")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _str(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name)
    return value.strip() if value is not None and value.strip() else default


def _float(env: Mapping[str, str], name: str, default: float, minimum: float = 0.0) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {raw!r}")
    return value


@dataclass(frozen=True)
class DashboardSettings:
    ticker: str = "AMZN"
    data_source: str = "polygon"
    polygon_base_url: str = "https://api.polygon.io/v2"
    min_request_interval: float = 15.0
    max_retries: int = 3
    retry_delay: float = 20.0
    cache_max_age: float = 300.0
    cache_path: str = ".cache/dashboard.json"
    cache_key: str = "amzn_data"
    scrape_page_url: str = DEFAULT_PAGE_URL
    scrape_proxy_url: str = DEFAULT_PROXY_URL
    scrape_selectors: dict = field(default_factory=lambda: dict(DEFAULT_SELECTORS))
    analysis_enabled: bool = True
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    shares_outstanding: Decimal = Decimal("10.2e9")
    quote_refresh: float = 15.0
    history_refresh: float = 120.0
    http_timeout: float = 30.0
    secret_arn: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.data_source not in DATA_SOURCES:
            raise ValueError(
                f"DASHBOARD_DATA_SOURCE must be one of {', '.join(DATA_SOURCES)}, "
                f"got {self.data_source!r}"
            )
        if not self.ticker.strip():
            raise ValueError("DASHBOARD_TICKER must be a non-empty string")
        if self.cache_max_age <= 0:
            raise ValueError("DASHBOARD_CACHE_MAX_AGE must be > 0")
        if self.quote_refresh <= 0 or self.history_refresh <= 0:
            raise ValueError("refresh intervals must be > 0")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"LOG_LEVEL is not a logging level: {self.log_level!r}")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "DashboardSettings":
        """Build settings from *environ* (defaults to os.environ after load_dotenv)."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ
        env = environ
        defaults = cls()

        selectors = dict(DEFAULT_SELECTORS)
        for name in ("price", "open", "volume"):
            selectors[name] = _str(env, f"SCRAPE_{name.upper()}_SELECTOR", selectors[name])

        return cls(
            ticker=_str(env, "DASHBOARD_TICKER", defaults.ticker).upper(),
            data_source=_str(env, "DASHBOARD_DATA_SOURCE", defaults.data_source).lower(),
            polygon_base_url=_str(env, "POLYGON_BASE_URL", defaults.polygon_base_url),
            min_request_interval=_float(env, "DASHBOARD_MIN_REQUEST_INTERVAL", defaults.min_request_interval),
            max_retries=_int(env, "DASHBOARD_MAX_RETRIES", defaults.max_retries),
            retry_delay=_float(env, "DASHBOARD_RETRY_DELAY", defaults.retry_delay),
            cache_max_age=_float(env, "DASHBOARD_CACHE_MAX_AGE", defaults.cache_max_age),
            # An explicitly empty DASHBOARD_CACHE_PATH selects the in-memory store.
            cache_path=env.get("DASHBOARD_CACHE_PATH", defaults.cache_path).strip(),
            cache_key=_str(env, "DASHBOARD_CACHE_KEY", defaults.cache_key),
            scrape_page_url=_str(env, "SCRAPE_PAGE_URL", defaults.scrape_page_url),
            scrape_proxy_url=env.get("SCRAPE_PROXY_URL", defaults.scrape_proxy_url).strip(),
            scrape_selectors=selectors,
            analysis_enabled=_bool(env, "DASHBOARD_ANALYSIS_ENABLED", defaults.analysis_enabled),
            openai_base_url=_str(env, "OPENAI_BASE_URL", defaults.openai_base_url),
            openai_model=_str(env, "OPENAI_MODEL", defaults.openai_model),
            shares_outstanding=_decimal(env, "DASHBOARD_SHARES_OUTSTANDING", defaults.shares_outstanding),
            quote_refresh=_float(env, "DASHBOARD_QUOTE_REFRESH", defaults.quote_refresh),
            history_refresh=_float(env, "DASHBOARD_HISTORY_REFRESH", defaults.history_refresh),
            http_timeout=_float(env, "DASHBOARD_HTTP_TIMEOUT", defaults.http_timeout),
            secret_arn=_str(env, "DASHBOARD_SECRET_ARN", "") or None,
            log_level=_str(env, "LOG_LEVEL", defaults.log_level).upper(),
        )
