from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from dealrelay.core.config import Settings, settings
from dealrelay.core.http import BROWSER_USER_AGENT, ClientFactory, default_client_factory
from dealrelay.core.logging import get_logger
from dealrelay.providers.base import ProviderError, ProviderNotConfiguredError
from dealrelay.providers.partner_api import send_partner_request
from dealrelay.providers.signing import sign_sorted_params
from dealrelay.schemas.affiliates import AliExpressCredentials
from dealrelay.services.url_tools import strip_query_and_fragment

logger = get_logger(__name__)

API_URL = "https://api-sg.aliexpress.com/sync"
API_METHOD = "aliexpress.affiliate.link.generate"


def build_link_generate_params(
    credentials: AliExpressCredentials,
    *,
    source_url: str,
    timestamp_ms: int,
) -> dict[str, str]:
    """Signed query for ``aliexpress.affiliate.link.generate``; ``sign`` covers every other key."""
    params = {
        "app_key": credentials.app_key,
        "format": "json",
        "method": API_METHOD,
        "promotion_link_type": "0",
        "ship_to_country": "BR",
        "sign_method": "md5",
        "source_values": source_url,
        "timestamp": str(timestamp_ms),
        "tracking_id": credentials.tracking_id,
        "v": "1",
    }
    params["sign"] = sign_sorted_params(params, credentials.app_secret)
    return params


def extract_promotion_link(payload: dict[str, Any]) -> str | None:
    node: Any = payload
    for key in ("aliexpress_affiliate_link_generate_response", "resp_result", "result", "promotion_links"):
        node = node.get(key) if isinstance(node, dict) else None
    links = node.get("promotion_link") if isinstance(node, dict) else None
    if not isinstance(links, list) or not links or not isinstance(links[0], dict):
        return None
    link = links[0].get("promotion_link")
    return link.strip() if isinstance(link, str) and link.strip() else None


class AliExpressProvider:
    name = "aliexpress"

    def __init__(
        self,
        *,
        client_factory: ClientFactory = default_client_factory,
        clock: Callable[[], float] = time.time,
        config: Settings | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._clock = clock
        self._config = config or settings

    def can_handle(self, url: str) -> bool:
        return "aliexpress.com" in (url or "").lower()

    async def rewrite(self, url: str, config: Any) -> str | None:
        try:
            return await self._generate_link(url, config)
        except ProviderNotConfiguredError:
            logger.warning("provider.not_configured", extra={"provider": self.name})
            return None
        except ProviderError as exc:
            logger.warning(
                "provider.rewrite.failed",
                extra={"provider": self.name, "url": url, "error": str(exc), "status_code": exc.status_code},
            )
            return None
        except Exception:
            logger.exception("provider.rewrite.unexpected_error", extra={"provider": self.name, "url": url})
            return None

    async def _generate_link(self, url: str, config: Any) -> str | None:
        if not isinstance(config, AliExpressCredentials) or not config.is_complete:
            raise ProviderNotConfiguredError("aliexpress credentials missing")

        params = build_link_generate_params(
            config,
            source_url=strip_query_and_fragment(url),
            timestamp_ms=int(self._clock() * 1000),
        )
        response = await send_partner_request(
            self._client_factory,
            provider=self.name,
            method="GET",
            url=API_URL,
            endpoint="/sync",
            timeout=self._config.partner_api_timeout_seconds,
            params=params,
            headers={"User-Agent": BROWSER_USER_AGENT},
        )

        link = extract_promotion_link(response)
        if not link:
            logger.warning(
                "provider.rewrite.missing_field",
                extra={"provider": self.name, "field": "promotion_link"},
            )
        return link
