from __future__ import annotations

import pytest

from dealrelay.services.url_tools import hostname, is_shortened, replace_params, strip_query_and_fragment


@pytest.mark.parametrize(
    "url",
    [
        "https://amzn.to/abc123",
        "https://s.shopee.com.br/xyz456",
        "https://mercadolivre.com/sec/abc",
        "https://s.click.aliexpress.com/e/_abc123",
        "https://curt.link/AYOZB",
        "https://natura.divulgador.link/xyz",
        "HTTPS://TIDD.LY/Q",
    ],
)
def test_known_shorteners_are_classified_as_shortened(url):
    assert is_shortened(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.amazon.com.br/dp/B08XYZ",
        "https://mercadolivre.com/outra/abc",
        "https://notamzn.to.example.com/x",
        "",
        "not a url",
    ],
)
def test_direct_links_are_not_shortened(url):
    assert not is_shortened(url)


def test_hostname_drops_www_and_handles_garbage():
    assert hostname("https://WWW.Amazon.com.br/dp/1") == "amazon.com.br"
    assert hostname("http://[::1") == ""
    assert hostname("") == ""


def test_strip_query_and_fragment():
    assert strip_query_and_fragment("https://a.com/p/1?x=1&y=2#top") == "https://a.com/p/1"


def test_replace_params_sets_exactly_one_value():
    url = "https://a.com/p?tag=a&keep=1&tag=b&utm_source=x"
    out = replace_params(url, remove=("utm_source",), set_params={"tag": "mine"})
    assert out == "https://a.com/p?keep=1&tag=mine"


def test_replace_params_rejects_relative_urls():
    with pytest.raises(ValueError):
        replace_params("/dp/B08XYZ", set_params={"tag": "x"})
