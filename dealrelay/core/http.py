from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

# Builds an AsyncClient. Tests swap in one backed by httpx.MockTransport.
ClientFactory = Callable[..., httpx.AsyncClient]


def default_client_factory(**kwargs: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(**kwargs)


def redirecting_client(
    factory: ClientFactory,
    *,
    timeout: float,
    max_redirects: int,
    headers: dict[str, str] | None = None,
) -> httpx.AsyncClient:
    """Client that follows redirects up to ``max_redirects`` hops and never raises on status."""
    return factory(
        follow_redirects=True,
        max_redirects=max_redirects,
        timeout=timeout,
        headers=headers or BROWSER_HEADERS,
    )


def is_html(response: httpx.Response) -> bool:
    return "text/html" in (response.headers.get("content-type") or "").lower()
