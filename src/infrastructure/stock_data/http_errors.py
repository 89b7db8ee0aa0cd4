"""
Shared HTTP-to-domain error mapping for market-data adapters.

429 -> RateLimitedError, any other non-2xx or transport failure ->
TransportError. URLs in messages never include query parameters, so API keys
do not reach the logs.
"""

from typing import Any, Mapping, Optional

import httpx

from src.domain.errors import RateLimitedError, TransportError


def raise_for_provider_status(response: httpx.Response, url: str) -> None:
    if response.status_code == 429:
        raise RateLimitedError(url, retry_after=response.headers.get("Retry-After"))
    if not response.is_success:
        raise TransportError(
            f"HTTP error! status: {response.status_code} for {url}",
            status_code=response.status_code,
        )


async def get_response(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
) -> httpx.Response:
    try:
        response = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise TransportError(f"Request to {url} failed: {exc}") from exc
    raise_for_provider_status(response, url)
    return response


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
) -> Any:
    response = await get_response(client, url, params)
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(f"Response from {url} is not JSON: {exc}") from exc
