"""
Shared HTTP client and single-page fetching.

One `httpx.AsyncClient` is built per run and handed to every adapter;
its connection pool is shared by all concurrent fetches.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..config import FetchConfig


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was requested
        final_url: The URL after following redirects
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """

    url: str
    final_url: str
    status_code: int | None
    text: str | None
    error: str | None


def build_client(cfg: FetchConfig, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Build the run's shared async HTTP client."""
    headers = {
        "User-Agent": cfg.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_connections,
    )
    return httpx.AsyncClient(
        headers=headers,
        timeout=cfg.timeout_seconds,
        follow_redirects=True,
        trust_env=cfg.trust_env,
        limits=limits,
        transport=transport,
    )


async def fetch_page(client: httpx.AsyncClient, url: str) -> FetchResult:
    """GET `url`, following redirects, without raising on failure."""
    try:
        resp = await client.get(url)
    except httpx.HTTPError as exc:
        return FetchResult(url, url, None, None, f"{type(exc).__name__}: {exc}")
    final_url = str(resp.url)
    if resp.status_code >= 400:
        return FetchResult(url, final_url, resp.status_code, None, f"HTTP {resp.status_code}")
    return FetchResult(url, final_url, resp.status_code, resp.text, None)
