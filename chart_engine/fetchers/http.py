"""
Shared upstream GET.

One attempt per call: no retries, no backoff, no stale fallback. Callers
decide what to do with a FetchFailure.
"""

import logging
from typing import Optional

import httpx

from ..errors import MalformedResponse, UpstreamUnavailable

log = logging.getLogger("chart.http")

YAHOO_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


def make_client(timeout: float, max_connections: int = 50) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=20),
        timeout=timeout,
    )


async def get_json(client: httpx.AsyncClient, url: str, *, source: str, key: str,
                   params: Optional[dict] = None, headers: Optional[dict] = None):
    try:
        r = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        log.warning(f"{source} timeout for {key}: {url[:60]}")
        raise UpstreamUnavailable(source, key, f"timeout: {e}") from e
    except httpx.HTTPError as e:
        log.warning(f"{source} transport error for {key}: {e}")
        raise UpstreamUnavailable(source, key, str(e) or type(e).__name__) from e

    if r.status_code != 200:
        log.warning(f"HTTP {r.status_code} from {source} for {key}")
        raise UpstreamUnavailable(source, key, f"HTTP {r.status_code}", status=r.status_code)

    try:
        return r.json()
    except ValueError as e:
        raise MalformedResponse(source, key, "response body is not JSON") from e
