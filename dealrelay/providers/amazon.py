from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

from dealrelay.core.logging import get_logger
from dealrelay.services.url_tools import UTM_PARAMS, hostname, replace_params

logger = get_logger(__name__)

TAG_PARAM = "tag"
TRACKING_PARAMS = (
    "tag",
    "linkCode",
    "linkId",
    "ref_",
    "pf_rd_r",
    "pf_rd_p",
    "pf_rd_m",
    "pf_rd_s",
    "pf_rd_t",
    "pf_rd_i",
    "ascsubtag",
    "creative",
    "creativeASIN",
    "camp",
    *UTM_PARAMS,
)
ASIN_PATTERNS = (
    re.compile(r"/dp/([A-Z0-9]{10})(?=/|$)", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})(?=/|$)", re.IGNORECASE),
)


def extract_asin(path: str) -> str | None:
    for pattern in ASIN_PATTERNS:
        match = pattern.search(path or "")
        if match:
            return match.group(1).upper()
    return None


def canonical_product_url(url: str, tag: str) -> str | None:
    """``/dp/<ASIN>/ref=nosim?tag=...`` with every other query key dropped; None without an ASIN."""
    parts = urlsplit(url)
    asin = extract_asin(parts.path)
    if not asin:
        return None
    return urlunsplit((parts.scheme, parts.netloc, f"/dp/{asin}/ref=nosim", urlencode({TAG_PARAM: tag}), ""))


class AmazonProvider:
    name = "amazon"

    def can_handle(self, url: str) -> bool:
        url_lower = (url or "").lower()
        return "amazon.com.br" in url_lower or "amzn." in url_lower

    async def rewrite(self, url: str, config: Any) -> str | None:
        tag = config.strip() if isinstance(config, str) else ""
        if not tag:
            return None
        if not hostname(url).endswith("amazon.com.br"):
            # amzn.* short links that did not expand cannot carry a tag.
            return None
        try:
            # Product pages are canonicalised; anything else keeps its non-tracking keys.
            return canonical_product_url(url, tag) or replace_params(
                url, remove=TRACKING_PARAMS, set_params={TAG_PARAM: tag}
            )
        except ValueError:
            logger.debug("provider.rewrite.invalid_url", extra={"provider": self.name, "url": url})
            return None
