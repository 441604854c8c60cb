from __future__ import annotations

import json

from pydantic import PrivateAttr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dealrelay.schemas.affiliates import (
    AffiliateConfig,
    AliExpressCredentials,
    AwinCredentials,
    MagaluConfig,
    ShopeeCredentials,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    _provider_availability: dict[str, tuple[bool, str | None]] = PrivateAttr(default_factory=dict)

    app_name: str = "dealrelay"
    environment: str = "dev"

    # Affiliate identities
    amazon_affiliate_tag: str | None = None
    mercadolivre_affiliate_id: str | None = None
    natura_affiliate_id: str | None = None
    magalu_affiliate_id: str | None = None
    magalu_promoter_id: str | None = None

    shopee_app_id: str | None = None
    shopee_secret: str | None = None

    aliexpress_app_key: str | None = None
    aliexpress_app_secret: str | None = None
    aliexpress_tracking_id: str | None = None

    awin_publisher_id: str | None = None
    awin_token: str | None = None

    # Network bounds
    expander_timeout_seconds: float = 15.0
    expander_max_redirects: int = 10
    affiliate_network_timeout_seconds: float = 5.0
    affiliate_network_max_redirects: int = 5
    destination_timeout_seconds: float = 15.0
    destination_max_redirects: int = 10
    partner_api_timeout_seconds: float = 10.0

    # Error reporting
    sentry_dsn: str | None = None
    sentry_environment: str | None = None
    sentry_enabled_environments: list[str] = ["staging", "prod"]
    sentry_traces_sample_rate: float = 0.0

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    @model_validator(mode="after")
    def _validate_provider_config(self) -> Settings:
        self.sentry_enabled_environments = self._parse_env_list(self.sentry_enabled_environments)

        for name in ("expander", "affiliate_network", "destination"):
            timeout = getattr(self, f"{name}_timeout_seconds")
            if not 5.0 <= timeout <= 15.0:
                raise ValueError(f"{name}_timeout_seconds must be between 5 and 15 seconds")
            redirects = getattr(self, f"{name}_max_redirects")
            if not 1 <= redirects <= 10:
                raise ValueError(f"{name}_max_redirects must be between 1 and 10")

        if not 5.0 <= self.partner_api_timeout_seconds <= 15.0:
            raise ValueError("partner_api_timeout_seconds must be between 5 and 15 seconds")

        self._provider_availability = {
            "amazon": self._validate_required_fields([self.amazon_affiliate_tag], ["amazon_affiliate_tag"]),
            "shopee": self._validate_required_fields(
                [self.shopee_app_id, self.shopee_secret], ["shopee_app_id", "shopee_secret"]
            ),
            # Mercado Livre still resolves destinations without a tag.
            "mercadolivre": (True, None),
            "magalu": self._validate_any_field(
                [self.magalu_affiliate_id, self.magalu_promoter_id],
                ["magalu_affiliate_id", "magalu_promoter_id"],
            ),
            "natura": self._validate_required_fields([self.natura_affiliate_id], ["natura_affiliate_id"]),
            "aliexpress": self._validate_required_fields(
                [self.aliexpress_app_key, self.aliexpress_app_secret, self.aliexpress_tracking_id],
                ["aliexpress_app_key", "aliexpress_app_secret", "aliexpress_tracking_id"],
            ),
            "awin": self._validate_required_fields(
                [self.awin_publisher_id, self.awin_token], ["awin_publisher_id", "awin_token"]
            ),
        }
        return self

    @staticmethod
    def _validate_required_fields(
        field_values: list[str | None],
        field_names: list[str],
    ) -> tuple[bool, str | None]:
        missing = [
            name for name, value in zip(field_names, field_values, strict=False) if not (value or "").strip()
        ]
        if not missing:
            return True, None

        return False, f"missing required config: {', '.join(missing)}"

    @staticmethod
    def _validate_any_field(
        field_values: list[str | None],
        field_names: list[str],
    ) -> tuple[bool, str | None]:
        if any((value or "").strip() for value in field_values):
            return True, None
        return False, f"missing config: one of {', '.join(field_names)}"

    @staticmethod
    def _parse_env_list(raw_value: list[str] | str) -> list[str]:
        if isinstance(raw_value, list):
            return [item.strip() for item in raw_value if item.strip()]

        value = raw_value.strip()
        if not value:
            return []

        if value.startswith("["):
            parsed = json.loads(value)
            if not isinstance(parsed, list):
                raise ValueError("list config must deserialize to a list")
            return [str(item).strip() for item in parsed if str(item).strip()]

        return [item.strip() for item in value.split(",") if item.strip()]

    def provider_enabled(self, provider_name: str) -> tuple[bool, str | None]:
        return self._provider_availability.get(provider_name, (False, "provider is not configured"))

    def affiliate_config(self) -> AffiliateConfig:
        def _clean(value: str | None) -> str:
            return (value or "").strip()

        return AffiliateConfig(
            amazon=_clean(self.amazon_affiliate_tag) or None,
            shopee=ShopeeCredentials(app_id=_clean(self.shopee_app_id), secret=_clean(self.shopee_secret)),
            mercadolivre=_clean(self.mercadolivre_affiliate_id) or None,
            aliexpress=AliExpressCredentials(
                app_key=_clean(self.aliexpress_app_key),
                app_secret=_clean(self.aliexpress_app_secret),
                tracking_id=_clean(self.aliexpress_tracking_id),
            ),
            magalu=MagaluConfig(
                username=_clean(self.magalu_affiliate_id) or None,
                promoter_id=_clean(self.magalu_promoter_id) or None,
            ),
            natura=_clean(self.natura_affiliate_id) or None,
            awin=AwinCredentials(publisher_id=_clean(self.awin_publisher_id), token=_clean(self.awin_token)),
        )


settings = Settings()
