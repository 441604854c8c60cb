from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any

from dealrelay.core.config import Settings, settings
from dealrelay.core.http import ClientFactory, default_client_factory
from dealrelay.core.logging import get_logger
from dealrelay.providers.base import ProviderError, ProviderNotConfiguredError
from dealrelay.providers.partner_api import send_partner_request
from dealrelay.providers.signing import credential_authorization_header
from dealrelay.schemas.affiliates import ShopeeCredentials

logger = get_logger(__name__)

API_URL = "https://open-api.affiliate.shopee.com.br/graphql"
ENDPOINT = "/graphql"


def build_short_link_payload(origin_url: str) -> str:
    # json.dumps gives a correctly escaped GraphQL string literal.
    query = f"mutation {{ generateShortLink(input: {{ originUrl: {json.dumps(origin_url)} }}) {{ shortLink }} }}"
    return json.dumps({"query": query})


def extract_short_link(payload: dict[str, Any]) -> str | None:
    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0] if isinstance(errors[0], dict) else {}
        raise ProviderError(
            f"shopee graphql error: {first.get('message') or 'unknown error'}",
            endpoint=ENDPOINT,
            method="POST",
            meta={"code": (first.get("extensions") or {}).get("code")},
        )

    data = payload.get("data") or {}
    node = data.get("generateShortLink") if isinstance(data, dict) else None
    link = node.get("shortLink") if isinstance(node, dict) else None
    if isinstance(link, str) and link.strip():
        return link.strip()
    return None


class ShopeeProvider:
    name = "shopee"

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
        url_lower = (url or "").lower()
        return "shopee.com.br" in url_lower or "shope.ee" in url_lower

    async def rewrite(self, url: str, config: Any) -> str | None:
        try:
            return await self._generate_short_link(url, config)
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

    async def _generate_short_link(self, url: str, config: Any) -> str | None:
        if not isinstance(config, ShopeeCredentials) or not config.is_complete:
            raise ProviderNotConfiguredError("shopee credentials missing")

        timestamp = int(self._clock())
        payload = build_short_link_payload(url)
        headers = {
            "Authorization": credential_authorization_header(config.app_id, timestamp, payload, config.secret),
            "Content-Type": "application/json",
        }

        response = await send_partner_request(
            self._client_factory,
            provider=self.name,
            method="POST",
            url=API_URL,
            endpoint=ENDPOINT,
            timeout=self._config.partner_api_timeout_seconds,
            content=payload,
            headers=headers,
        )

        short_link = extract_short_link(response)
        if not short_link:
            logger.warning("provider.rewrite.missing_field", extra={"provider": self.name, "field": "shortLink"})
        return short_link
