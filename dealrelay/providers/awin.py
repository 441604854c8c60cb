from __future__ import annotations

from typing import Any

from dealrelay.core.config import Settings, settings
from dealrelay.core.http import ClientFactory, default_client_factory
from dealrelay.core.logging import get_logger
from dealrelay.providers.base import ProviderError, ProviderNotConfiguredError
from dealrelay.providers.partner_api import send_partner_request
from dealrelay.schemas.affiliates import AwinCredentials
from dealrelay.services.url_tools import UTM_PARAMS, host_matches, hostname, replace_params

logger = get_logger(__name__)

API_URL = "https://api.awin.com/publishers"

# Advertiser domain -> Awin advertiser id
ADVERTISER_IDS: dict[str, int] = {
    "kabum.com.br": 17729,
    "adidas.com.br": 79926,
    "nike.com.br": 17652,
}
TRACKING_PARAMS = ("aw_affid", "awc", *UTM_PARAMS)


def advertiser_id_for(url: str) -> int | None:
    host = hostname(url)
    for domain, advertiser_id in ADVERTISER_IDS.items():
        if host_matches(host, domain):
            return advertiser_id
    return None


class AwinProvider:
    name = "awin"

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
        return any(domain in url_lower for domain in ADVERTISER_IDS)

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
        except ValueError:
            logger.debug("provider.rewrite.invalid_url", extra={"provider": self.name, "url": url})
            return None
        except Exception:
            logger.exception("provider.rewrite.unexpected_error", extra={"provider": self.name, "url": url})
            return None

    async def _generate_link(self, url: str, config: Any) -> str | None:
        if not isinstance(config, AwinCredentials) or not config.is_complete:
            raise ProviderNotConfiguredError("awin credentials missing")

        advertiser_id = advertiser_id_for(url)
        if advertiser_id is None:
            logger.debug("provider.awin.unknown_advertiser", extra={"provider": self.name, "url": url})
            return None

        destination = replace_params(url, remove=TRACKING_PARAMS)
        endpoint = f"/publishers/{config.publisher_id}/linkbuilder/generate"
        response = await send_partner_request(
            self._client_factory,
            provider=self.name,
            method="POST",
            url=f"{API_URL}/{config.publisher_id}/linkbuilder/generate",
            endpoint=endpoint,
            timeout=self._config.partner_api_timeout_seconds,
            json_body={"advertiserId": advertiser_id, "destinationUrl": destination, "shorten": True},
            headers={"Authorization": f"Bearer {config.token}"},
        )

        link = response.get("url")
        if isinstance(link, str) and link.strip():
            return link.strip()
        logger.warning("provider.rewrite.missing_field", extra={"provider": self.name, "field": "url"})
        return None
