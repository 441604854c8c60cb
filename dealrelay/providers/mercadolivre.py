from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlencode, urlsplit

import httpx
from bs4 import BeautifulSoup

from dealrelay.core.config import Settings, settings
from dealrelay.core.http import ClientFactory, default_client_factory, is_html, redirecting_client
from dealrelay.core.logging import get_logger
from dealrelay.services.url_tools import host_matches, hostname, strip_query_and_fragment

logger = get_logger(__name__)

SOURCE_PARAM = "pdp_source"
GO_TO_PRODUCT_TEXT = "Ir para produto"
NON_PRODUCT_PATHS = ("/social/", "/stores/", "/ofertas/")
PRODUCT_URL_PATTERN = re.compile(r"https://www\.mercadolivre\.com\.br/[^\"'\s<>]+/p/MLB\d+", re.IGNORECASE)


def is_mercadolivre_url(url: str) -> bool:
    return host_matches(hostname(url), "mercadolivre.com.br")


def is_non_product_page(url: str) -> bool:
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False
    return any(marker in path for marker in NON_PRODUCT_PATHS)


def extract_product_url(html: str) -> str | None:
    """Find the product page a Mercado Livre share page points to."""
    soup = BeautifulSoup(html, "html.parser")

    anchor = soup.select_one(f'a:-soup-contains("{GO_TO_PRODUCT_TEXT}")')
    href = (anchor.get("href") or "").strip() if anchor else ""
    if href and is_mercadolivre_url(href):
        return href

    match = PRODUCT_URL_PATTERN.search(html)
    if match:
        return match.group(0)

    product_links = [
        (a.get("href") or "").strip()
        for a in soup.select('a[href*="/p/MLB"]')
        if is_mercadolivre_url((a.get("href") or "").strip())
    ]
    if product_links:
        return product_links[-1]

    return None


class MercadoLivreProvider:
    name = "mercadolivre"

    def __init__(
        self,
        *,
        client_factory: ClientFactory = default_client_factory,
        config: Settings | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._config = config or settings

    def can_handle(self, url: str) -> bool:
        url_lower = (url or "").lower()
        return (
            "mercadolivre.com.br" in url_lower
            or "mercadolibre." in url_lower
            or "mercadolivre.com/sec" in url_lower
        )

    async def rewrite(self, url: str, config: Any) -> str | None:
        if is_non_product_page(url):
            logger.info("provider.mercadolivre.non_product_skipped", extra={"provider": self.name, "url": url})
            return None

        try:
            resolved = await self.resolve_destination(url)
            if is_non_product_page(resolved):
                logger.info(
                    "provider.mercadolivre.non_product_skipped",
                    extra={"provider": self.name, "url": url, "resolved_url": resolved},
                )
                return None

            clean = strip_query_and_fragment(resolved)
            parts = urlsplit(clean)
            if not parts.scheme or not parts.netloc:
                return None

            tag = config.strip() if isinstance(config, str) else ""
            if tag:
                return f"{clean}?{urlencode({SOURCE_PARAM: tag})}"
            return clean
        except Exception:
            logger.exception("provider.rewrite.unexpected_error", extra={"provider": self.name, "url": url})
            return None

    async def resolve_destination(self, url: str) -> str:
        """Fetch the link and dig the product URL out of the page; falls back to the fetched URL, then the input."""
        try:
            async with redirecting_client(
                self._client_factory,
                timeout=self._config.destination_timeout_seconds,
                max_redirects=self._config.destination_max_redirects,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning(
                "provider.mercadolivre.resolve_failed",
                extra={"provider": self.name, "url": url, "error": str(exc)},
            )
            return url

        final_url = str(response.url) or url
        if not is_html(response) or not response.text:
            return final_url

        return extract_product_url(response.text) or final_url
