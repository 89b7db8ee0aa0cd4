"""
Infrastructure adapter: HTML quote page via a CORS relay proxy -> IQuoteProvider.

The page and the CSS selectors are configuration; this adapter only fetches
the page, reads the text of three cells and hands them to the normalizer.
"""

import logging
from typing import Mapping, Optional
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from src.application.pipeline.normalizer import normalize_scraped_quote
from src.domain.entities.stock_price import QuoteSnapshot
from src.domain.ports.stock_data_port import IQuoteProvider
from src.infrastructure.stock_data.http_errors import get_response

logger = logging.getLogger(__name__)

DEFAULT_PAGE_URL = "https://finance.yahoo.com/quote/{symbol}/"
DEFAULT_PROXY_URL = "https://api.allorigins.win/raw?url="
DEFAULT_SELECTORS: Mapping[str, str] = {
    "price": 'fin-streamer[data-field="regularMarketPrice"]',
    "open": 'td[data-test="OPEN-value"]',
    "volume": 'td[data-test="TD_VOLUME-value"]',
}


class ScrapedQuoteProvider(IQuoteProvider):
    """Reads price, open and volume cells from a public quote page."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        page_url: str = DEFAULT_PAGE_URL,
        proxy_url: str = DEFAULT_PROXY_URL,
        selectors: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Args:
            client:    Shared AsyncClient; its lifecycle belongs to the caller.
            page_url:  Quote page URL; '{symbol}' is substituted.
            proxy_url: Relay prefix the URL-encoded page URL is appended to.
                       Empty string fetches the page directly.
            selectors: CSS selectors keyed 'price', 'open', 'volume'.
        """
        self._client = client
        self._page_url = page_url
        self._proxy_url = proxy_url
        self._selectors = dict(DEFAULT_SELECTORS)
        if selectors:
            self._selectors.update(selectors)

    def request_url(self, symbol: str) -> str:
        page = self._page_url.format(symbol=symbol)
        if not self._proxy_url:
            return page
        return f"{self._proxy_url}{quote(page, safe='')}"

    def extract_cells(self, html: str) -> dict[str, Optional[str]]:
        soup = BeautifulSoup(html, "html.parser")
        cells: dict[str, Optional[str]] = {}
        for name, selector in self._selectors.items():
            element = soup.select_one(selector)
            cells[name] = element.get_text(strip=True) if element else None
        return cells

    async def fetch_quote(self, symbol: str) -> QuoteSnapshot:
        url = self.request_url(symbol)
        response = await get_response(self._client, url)
        cells = self.extract_cells(response.text)
        logger.debug(f"Scraped cells for {symbol}: {cells}")
        return normalize_scraped_quote(cells)
