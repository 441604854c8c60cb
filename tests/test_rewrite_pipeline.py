from __future__ import annotations

import asyncio

import httpx
import pytest

from dealrelay.providers.registry import ProviderRegistry, build_default_registry
from dealrelay.schemas.affiliates import AffiliateConfig, AliExpressCredentials, MagaluConfig
from dealrelay.services.rewrite_pipeline import RewritePipeline
from dealrelay.services.url_expander import UrlExpander

CONFIG = AffiliateConfig(amazon="mytag-20", mercadolivre="mlaff", natura="minhaconsultoria")


def _pipeline(factory, registry: ProviderRegistry | None = None) -> RewritePipeline:
    return RewritePipeline(
        registry=registry or build_default_registry(client_factory=factory),
        expander=UrlExpander(client_factory=factory),
    )


def _run(pipeline: RewritePipeline, links, config=CONFIG):
    return asyncio.run(pipeline.rewrite_links(links, config))


def _storefront_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "amzn.to":
        return httpx.Response(301, headers={"Location": "https://www.amazon.com.br/dp/B08XYZ?tag=old-20"})
    if request.url.host == "mercadolivre.com":
        return httpx.Response(
            302, headers={"Location": "https://www.mercadolivre.com.br/social/achadinhos?matt_tool=42&forceInApp=true"}
        )
    if request.url.host == "curt.link":
        raise httpx.ConnectTimeout("timed out", request=request)
    return httpx.Response(200, html="<html><body>ok</body></html>")


def test_amazon_short_link_scenario(mock_http):
    out = _run(_pipeline(mock_http(_storefront_handler)), ["https://amzn.to/abc123"])
    assert out == ["https://www.amazon.com.br/dp/B08XYZ?tag=mytag-20"]


def test_declined_mercadolivre_social_link_falls_back_to_clean_expanded_url(mock_http):
    out = _run(_pipeline(mock_http(_storefront_handler)), ["https://mercadolivre.com/sec/abc"])
    assert out == ["https://www.mercadolivre.com.br/social/achadinhos"]


def test_unconfigured_remote_provider_falls_back_to_resolved_url(offline_factory, recorded_requests):
    config = AffiliateConfig(aliexpress=AliExpressCredentials())
    out = _run(_pipeline(offline_factory), ["https://pt.aliexpress.com/item/1005001.html?spm=a2g0o"], config)
    assert out == ["https://pt.aliexpress.com/item/1005001.html"]
    assert recorded_requests == []


def test_unmatched_link_is_stripped_of_tracking(offline_factory):
    out = _run(_pipeline(offline_factory), ["https://www.example.com/promo?utm_source=tg#x"])
    assert out == ["https://www.example.com/promo"]


def test_failed_expansion_of_unmatched_shortener_keeps_input(mock_http):
    out = _run(_pipeline(mock_http(_storefront_handler)), ["https://curt.link/AYOZB"])
    assert out == ["https://curt.link/AYOZB"]


def test_batch_preserves_length_and_order(mock_http):
    links = [
        "https://amzn.to/abc123",
        "",
        "not a url",
        "https://www.natura.com.br/p/perfume?consultoria=x",
        "https://mercadolivre.com/sec/abc",
        "http://[::1",
        "https://amzn.to/abc123",
    ]
    out = _run(_pipeline(mock_http(_storefront_handler)), links)

    assert len(out) == len(links)
    assert out[0] == out[6] == "https://www.amazon.com.br/dp/B08XYZ?tag=mytag-20"
    assert out[1] == ""
    assert out[2] == "not a url"
    assert out[3] == "https://www.natura.com.br/p/perfume?consultoria=minhaconsultoria"
    assert out[4] == "https://www.mercadolivre.com.br/social/achadinhos"
    assert out[5] == "http://[::1"


def test_empty_batch(offline_factory):
    assert _run(_pipeline(offline_factory), []) == []


class _ExplodingProvider:
    name = "amazon"

    def __init__(self, *, on_match: bool) -> None:
        self._on_match = on_match

    def can_handle(self, url: str) -> bool:
        if self._on_match:
            raise RuntimeError("predicate bug")
        return "boom" in url

    async def rewrite(self, url, config):
        raise RuntimeError("rewrite bug")


@pytest.mark.parametrize("on_match", [True, False])
def test_provider_exception_returns_original_input_for_that_link_only(offline_factory, on_match):
    registry = ProviderRegistry([_ExplodingProvider(on_match=on_match)])
    links = ["https://boom.example.com/a?x=1", "https://fine.example.com/b?y=2"]

    out = _run(_pipeline(offline_factory, registry), links)

    assert out[0] == "https://boom.example.com/a?x=1"
    if on_match:
        assert out[1] == "https://fine.example.com/b?y=2"
    else:
        assert out[1] == "https://fine.example.com/b"


def test_earlier_registered_provider_is_invoked(offline_factory):
    calls: list[str] = []

    class _Tagging:
        def __init__(self, name):
            self.name = name

        def can_handle(self, url):
            return "amazon.com.br" in url

        async def rewrite(self, url, config):
            calls.append(self.name)
            return f"{url}?by={self.name}"

    registry = ProviderRegistry([_Tagging("amazon"), _Tagging("natura")])
    out = _run(_pipeline(offline_factory, registry), ["https://www.amazon.com.br/dp/1"])

    assert out == ["https://www.amazon.com.br/dp/1?by=amazon"]
    assert calls == ["amazon"]


def test_links_are_processed_concurrently(offline_factory):
    started: list[str] = []

    class _Gate:
        name = "natura"

        def __init__(self):
            self.event = None

        def can_handle(self, url):
            return True

        async def rewrite(self, url, config):
            if self.event is None:
                self.event = asyncio.Event()
            started.append(url)
            if len(started) == 3:
                self.event.set()
            await asyncio.wait_for(self.event.wait(), timeout=2)
            return url

    links = ["https://a.com/1", "https://a.com/2", "https://a.com/3"]
    out = _run(_pipeline(offline_factory, ProviderRegistry([_Gate()])), links)

    assert out == links
    assert sorted(started) == links


def test_magalu_promoter_is_not_added_to_failed_short_links_or_foreign_hosts(offline_factory):
    config = AffiliateConfig(magalu=MagaluConfig(promoter_id="42"))
    links = ["https://magalu.divulgador.link/abc", "https://www.google.com/search?q=magalu.com"]

    out = _run(_pipeline(offline_factory), links, config)

    assert out == ["https://magalu.divulgador.link/abc", "https://www.google.com/search"]
