from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlencode

from dealrelay.schemas.affiliates import AffiliateConfig

LINK_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
# Trailing punctuation glued to links in chat text.
_TRAILING_PUNCTUATION = ".,;:!?)]}>\"'"

CHANNEL_LINK_MARKERS = (
    "t.me/",
    "bit.ly/canal",
    "adrena.click/ofertas",
    "linkmc.click/ofertas",
)
MERCADOLIVRE_SOCIAL_MARKER = "mercadolivre.com.br/social/"
MERCADOLIVRE_COUPONS_URL = "https://www.mercadolivre.com.br/cupons"


def extract_links(text: str | None, entity_urls: Iterable[str | None] = ()) -> list[str]:
    """Plain-text links followed by entity (hidden hyperlink) URLs, de-duplicated in first-seen order."""
    found = [match.rstrip(_TRAILING_PUNCTUATION) for match in LINK_PATTERN.findall(text or "")]
    found.extend(url.strip() for url in entity_urls if url and url.strip())
    return list(dict.fromkeys(link for link in found if link))


def is_relevant_link(link: str) -> bool:
    if any(marker in link for marker in CHANNEL_LINK_MARKERS):
        return False
    return MERCADOLIVRE_SOCIAL_MARKER not in link


def filter_relevant_links(links: Iterable[str]) -> list[str]:
    """Drop chat-channel invites and Mercado Livre social showcases; keep everything else."""
    return [link for link in links if link and is_relevant_link(link)]


def coupon_fallback_links(store: str | None, config: AffiliateConfig) -> list[str]:
    """Links to attach when a coupon message names a store but carries no product link."""
    store_lower = (store or "").strip().lower()
    if not store_lower:
        return []

    links: list[str] = []
    if "mercado" in store_lower and config.mercadolivre:
        links.append(f"{MERCADOLIVRE_COUPONS_URL}?{urlencode({'pdp_source': config.mercadolivre})}")
    return links
