from __future__ import annotations

import pytest
from pydantic import ValidationError

from dealrelay.core.config import Settings
from dealrelay.schemas.affiliates import AffiliateConfig, AliExpressCredentials, MagaluConfig, ShopeeCredentials


def _settings(**overrides) -> Settings:
    base = {
        "amazon_affiliate_tag": None,
        "mercadolivre_affiliate_id": None,
        "natura_affiliate_id": None,
        "magalu_affiliate_id": None,
        "magalu_promoter_id": None,
        "shopee_app_id": None,
        "shopee_secret": None,
        "aliexpress_app_key": None,
        "aliexpress_app_secret": None,
        "aliexpress_tracking_id": None,
        "awin_publisher_id": None,
        "awin_token": None,
    }
    base.update(overrides)
    return Settings(**base)


def test_provider_enabled_reports_missing_fields():
    cfg = _settings(amazon_affiliate_tag="mytag-20", shopee_app_id="123")

    assert cfg.provider_enabled("amazon") == (True, None)
    enabled, reason = cfg.provider_enabled("shopee")
    assert enabled is False
    assert reason == "missing required config: shopee_secret"
    assert cfg.provider_enabled("mercadolivre") == (True, None)
    assert cfg.provider_enabled("unknown") == (False, "provider is not configured")


def test_magalu_needs_either_identity():
    assert _settings().provider_enabled("magalu")[0] is False
    assert _settings(magalu_promoter_id="3440").provider_enabled("magalu") == (True, None)


def test_blank_values_count_as_missing():
    cfg = _settings(natura_affiliate_id="   ")
    assert cfg.provider_enabled("natura")[0] is False
    assert cfg.affiliate_config().natura is None


def test_affiliate_config_maps_every_slot():
    cfg = _settings(
        amazon_affiliate_tag=" mytag-20 ",
        mercadolivre_affiliate_id="mlaff",
        natura_affiliate_id="consultora",
        magalu_affiliate_id="minhaloja",
        shopee_app_id="123",
        shopee_secret="s",
        aliexpress_app_key="k",
        aliexpress_app_secret="s",
        aliexpress_tracking_id="t",
    )
    affiliate = cfg.affiliate_config()

    assert affiliate.amazon == "mytag-20"
    assert affiliate.mercadolivre == "mlaff"
    assert affiliate.natura == "consultora"
    assert affiliate.magalu == MagaluConfig(username="minhaloja", promoter_id=None)
    assert affiliate.shopee.is_complete
    assert affiliate.aliexpress == AliExpressCredentials(app_key="k", app_secret="s", tracking_id="t")
    assert affiliate.awin.is_complete is False


def test_for_provider_lookup():
    affiliate = AffiliateConfig(amazon="tag-20", shopee=ShopeeCredentials(app_id="1", secret="2"))

    assert affiliate.for_provider("amazon") == "tag-20"
    assert affiliate.for_provider("Shopee").app_id == "1"
    assert affiliate.for_provider("natura") is None
    assert affiliate.for_provider("nope") is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"expander_timeout_seconds": 30},
        {"affiliate_network_timeout_seconds": 1},
        {"destination_max_redirects": 0},
        {"expander_max_redirects": 25},
        {"partner_api_timeout_seconds": 60},
        {"partner_api_timeout_seconds": 0.5},
    ],
)
def test_network_bounds_are_validated(overrides):
    with pytest.raises(ValidationError):
        _settings(**overrides)


def test_sentry_environments_accept_comma_list():
    cfg = _settings(sentry_enabled_environments=[" prod ", "", "staging"])
    assert cfg.sentry_enabled_environments == ["prod", "staging"]
