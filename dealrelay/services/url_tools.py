from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SHORTENER_DOMAINS = (
    "amzn.to",
    "amzn.divulgador.link",
    "s.shopee.com.br",
    "shope.ee",
    "mercadolivre.com/sec",
    "s.click.aliexpress.com",
    "tidd.ly",
    "tiddly.xyz",
    "magalu.divulgador.link",
    "natura.divulgador.link",
    "tecno.click",
    "curt.link",
)

UTM_PARAMS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


def hostname(url: str) -> str:
    """Lower-cased host without ``www.``; empty string for anything unparsable."""
    try:
        host = urlsplit((url or "").strip()).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, domain: str) -> bool:
    host = (host or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith(f".{domain}")


def _matches_pattern(url: str, pattern: str) -> bool:
    domain, _, path_prefix = pattern.partition("/")
    if not host_matches(hostname(url), domain):
        return False
    if not path_prefix:
        return True
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        return False
    return path.lower().startswith(f"/{path_prefix.lower()}")


def is_shortened(url: str, domains: Iterable[str] = SHORTENER_DOMAINS) -> bool:
    return any(_matches_pattern(url, pattern) for pattern in domains)


def strip_query_and_fragment(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def replace_params(url: str, *, remove: Iterable[str] = (), set_params: dict[str, str] | None = None) -> str:
    """
    Drop every key in ``remove`` (all occurrences), then set ``set_params``.
    Keys being set are removed first, so the result carries exactly one of each.
    Raises ValueError for URLs without scheme or host.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"not an absolute URL: {url!r}")

    set_params = set_params or {}
    dropped = {key for key in remove} | set(set_params)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in dropped]
    query.extend(set_params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), ""))
