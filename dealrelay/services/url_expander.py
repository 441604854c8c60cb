from __future__ import annotations

import re
from urllib.parse import parse_qsl, unquote, urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from dealrelay.core.config import Settings, settings
from dealrelay.core.http import (
    BROWSER_USER_AGENT,
    ClientFactory,
    default_client_factory,
    is_html,
    redirecting_client,
)
from dealrelay.core.logging import get_logger
from dealrelay.core.metrics import record_link_expansion
from dealrelay.services.url_tools import host_matches, hostname

logger = get_logger(__name__)

AFFILIATE_NETWORK_DOMAINS = (
    "awin1.com",
    "awin.com",
    "go2cloud.org",
    "redirect.viglink.com",
)
# Awin wrappers carry the merchant URL in ``ued``.
EMBEDDED_DESTINATION_PARAMS = {"awin1.com": "ued", "awin.com": "ued"}

INTERSTITIAL_SHORTENERS = ("tecno.click", "tidd.ly")
CALL_TO_ACTION_PHRASES = ("clique aqui",)

STOREFRONT_DOMAINS = (
    "amazon.com.br",
    "shopee.com.br",
    "mercadolivre.com.br",
    "aliexpress.com",
    "magazineluiza.com.br",
    "magazinevoce.com.br",
    "natura.com.br",
)
LOGIN_MARKERS = ("/ap/signin", "/login", "/auth")
_META_REFRESH_URL = re.compile(r"url\s*=\s*['\"]?([^'\"]+)", re.IGNORECASE)


def is_affiliate_network_url(url: str) -> bool:
    host = hostname(url)
    return any(host_matches(host, domain) for domain in AFFILIATE_NETWORK_DOMAINS)


def is_interstitial_shortener(url: str) -> bool:
    host = hostname(url)
    return any(host_matches(host, domain) for domain in INTERSTITIAL_SHORTENERS)


def is_login_page(url: str) -> bool:
    return "/ap/signin" in (url or "")


def is_valid_product_link(url: str) -> bool:
    url_lower = (url or "").lower()
    if any(marker in url_lower for marker in LOGIN_MARKERS):
        return False
    host = hostname(url)
    return any(host_matches(host, domain) for domain in STOREFRONT_DOMAINS)


def extract_interstitial_link(html: str, page_url: str) -> str | None:
    """
    Best-effort scrape of a click-through page, in priority order:
    meta refresh, call-to-action anchor, first absolute anchor leaving the page's host.
    """
    soup = BeautifulSoup(html, "html.parser")

    meta = soup.select_one('meta[http-equiv="refresh" i]')
    if meta is not None:
        match = _META_REFRESH_URL.search(meta.get("content") or "")
        if match and match.group(1).strip():
            return urljoin(page_url, match.group(1).strip())

    for phrase in CALL_TO_ACTION_PHRASES:
        for anchor in soup.select("a[href]"):
            if phrase in anchor.get_text(" ", strip=True).lower():
                return urljoin(page_url, anchor["href"].strip())

    page_host = hostname(page_url)
    for anchor in soup.select('a[href^="http"]'):
        href = anchor["href"].strip()
        if hostname(href) and hostname(href) != page_host:
            return href

    return None


class UrlExpander:
    """
    Resolves shortened and wrapped links. ``expand`` is total: any failure
    returns the input unchanged.
    """

    def __init__(
        self,
        *,
        client_factory: ClientFactory = default_client_factory,
        config: Settings | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._config = config or settings

    async def expand(self, url: str) -> str:
        try:
            return await self._expand(url)
        except httpx.HTTPError as exc:
            logger.warning("url_expander.failed", extra={"url": url, "error": str(exc)})
            record_link_expansion(outcome="network_error")
            return url
        except Exception as exc:
            logger.warning(
                "url_expander.failed",
                extra={"url": url, "error": str(exc), "error_type": type(exc).__name__},
            )
            record_link_expansion(outcome="error")
            return url

    async def _expand(self, url: str) -> str:
        async with redirecting_client(
            self._client_factory,
            timeout=self._config.expander_timeout_seconds,
            max_redirects=self._config.expander_max_redirects,
        ) as client:
            response = await client.get(url)

        # httpx normalises the request URL (percent-encoding, default ports); only a real move counts.
        final_url = str(response.url) if response.url != httpx.URL(url) else url
        logger.debug(
            "url_expander.response",
            extra={"url": url, "resolved_url": final_url, "status_code": response.status_code},
        )

        if is_affiliate_network_url(final_url):
            destination = await self.follow_affiliate_network(final_url)
            if destination:
                final_url = destination

        if final_url != url and not is_login_page(final_url):
            logger.info("url_expander.expanded", extra={"url": url, "resolved_url": final_url})
            record_link_expansion(outcome="redirect")
            return final_url

        if is_html(response) and response.text and is_interstitial_shortener(url):
            candidate = extract_interstitial_link(response.text, url)
            if candidate and is_valid_product_link(candidate):
                logger.info(
                    "url_expander.interstitial_extracted",
                    extra={"url": url, "resolved_url": candidate},
                )
                record_link_expansion(outcome="interstitial")
                return candidate

        record_link_expansion(outcome="unchanged")
        return final_url

    async def follow_affiliate_network(self, network_url: str) -> str | None:
        """Second hop for affiliate wrappers; decodes embedded destinations without a request."""
        try:
            host = hostname(network_url)
            for domain, param in EMBEDDED_DESTINATION_PARAMS.items():
                if host_matches(host, domain):
                    value = dict(parse_qsl(urlsplit(network_url).query)).get(param)
                    if value:
                        # parse_qsl already decoded one layer; wrappers sometimes double-encode.
                        return unquote(value) if "%3a" in value.lower()[:12] else value

            async with redirecting_client(
                self._client_factory,
                timeout=self._config.affiliate_network_timeout_seconds,
                max_redirects=self._config.affiliate_network_max_redirects,
                headers={"User-Agent": BROWSER_USER_AGENT},
            ) as client:
                response = await client.get(network_url)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("url_expander.network_hop_failed", extra={"url": network_url, "error": str(exc)})
            return None

        final_url = str(response.url)
        return final_url if final_url and final_url != network_url else None
