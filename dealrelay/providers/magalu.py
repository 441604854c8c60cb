from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qsl, quote, unquote, urlsplit, urlunsplit

from dealrelay.core.logging import get_logger
from dealrelay.schemas.affiliates import MagaluConfig
from dealrelay.services.url_tools import UTM_PARAMS, host_matches, hostname, is_shortened, replace_params

logger = get_logger(__name__)

STORE_DOMAIN = "magazinevoce.com.br"
SITE_DOMAINS = ("magazineluiza.com.br", "magalu.com", STORE_DOMAIN)
APP_LINK_DOMAIN = "onelink.me"
EMBEDDED_TARGET_PARAMS = ("deep_link_value", "af_web_dp", "af_dp", "url", "redirect")

PROMOTER_PARAM = "promoter_id"
_APP_LINK_IDENTIFIERS = re.compile(r"([?&](?:promoter_id|partner_id)=)[^&#]*")
_PROMOTER_IDENTIFIER = re.compile(r"([?&]promoter_id=)[^&#]*")
_STORE_PATH = re.compile(r"^/([^/]+)(/.*)$")


def _identity(config: Any) -> tuple[str, str]:
    if isinstance(config, MagaluConfig):
        return (config.username or "").strip(), (config.promoter_id or "").strip()
    if isinstance(config, str):
        return config.strip(), ""
    return "", ""


def embedded_target(url: str) -> str | None:
    """First query value carrying an absolute http(s) URL, decoded."""
    query = urlsplit(url).query
    values = dict(parse_qsl(query, keep_blank_values=True))
    for key in EMBEDDED_TARGET_PARAMS:
        value = (values.get(key) or "").strip()
        # Some wrappers double-encode the target.
        if value.lower().startswith(("http%3a", "https%3a")):
            value = unquote(value)
        if value.lower().startswith(("http://", "https://")):
            return value
    return None


def _is_magalu_url(url: str) -> bool:
    host = hostname(url)
    return any(host_matches(host, domain) for domain in SITE_DOMAINS)


def _replace_store_handle(url: str, username: str) -> str | None:
    parts = urlsplit(url)
    match = _STORE_PATH.match(parts.path or "")
    if not match:
        return None
    return urlunsplit((parts.scheme, parts.netloc, f"/{username}{match.group(2)}", parts.query, parts.fragment))


class MagaluProvider:
    name = "magalu"

    def can_handle(self, url: str) -> bool:
        url_lower = (url or "").lower()
        if any(marker in url_lower for marker in ("magazineluiza.com.br", "magalu.", STORE_DOMAIN)):
            return True
        if host_matches(hostname(url), APP_LINK_DOMAIN):
            try:
                target = embedded_target(url)
            except ValueError:
                return False
            return bool(target) and _is_magalu_url(target)
        return False

    async def rewrite(self, url: str, config: Any) -> str | None:
        username, promoter_id = _identity(config)
        if not username and not promoter_id:
            return None

        try:
            target = embedded_target(url)
            if target and host_matches(hostname(url), APP_LINK_DOMAIN):
                return self._rewrite_app_link_target(target, promoter_id)

            # Unexpanded shorteners and other hosts that merely mention Magalu are left alone.
            if not _is_magalu_url(url) or is_shortened(url):
                logger.debug("provider.magalu.not_site_link", extra={"provider": self.name, "url": url})
                return None

            if target:
                return self._rewrite_web_redirect_target(target, username, promoter_id)

            if host_matches(hostname(url), STORE_DOMAIN):
                return _replace_store_handle(url, username) if username else None

            if promoter_id:
                return replace_params(url, remove=UTM_PARAMS, set_params={PROMOTER_PARAM: promoter_id})
            return None
        except ValueError:
            logger.debug("provider.rewrite.invalid_url", extra={"provider": self.name, "url": url})
            return None

    @staticmethod
    def _rewrite_app_link_target(target: str, promoter_id: str) -> str | None:
        if not promoter_id:
            return None
        value = quote(promoter_id, safe="")
        rewritten, count = _APP_LINK_IDENTIFIERS.subn(lambda m: f"{m.group(1)}{value}", target)
        if count:
            return rewritten
        separator = "&" if urlsplit(target).query else "?"
        return f"{target}{separator}{PROMOTER_PARAM}={value}"

    @staticmethod
    def _rewrite_web_redirect_target(target: str, username: str, promoter_id: str) -> str | None:
        rewritten = target
        changed = False

        if username and host_matches(hostname(target), STORE_DOMAIN):
            handled = _replace_store_handle(target, username)
            if handled:
                rewritten, changed = handled, True

        if promoter_id:
            value = quote(promoter_id, safe="")
            rewritten, count = _PROMOTER_IDENTIFIER.subn(lambda m: f"{m.group(1)}{value}", rewritten)
            changed = changed or bool(count)

        return rewritten if changed else None
