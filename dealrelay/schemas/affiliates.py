from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


class _Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def is_complete(self) -> bool:
        return not any(_blank(getattr(self, name)) for name in type(self).model_fields)


class ShopeeCredentials(_Credentials):
    app_id: str = ""
    secret: str = ""


class AliExpressCredentials(_Credentials):
    app_key: str = ""
    app_secret: str = ""
    tracking_id: str = ""


class AwinCredentials(_Credentials):
    publisher_id: str = ""
    token: str = ""


class MagaluConfig(BaseModel):
    """Magalu identity: the store handle used in paths and the promoter id used in app links."""

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    promoter_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return not _blank(self.username) or not _blank(self.promoter_id)


class AffiliateConfig(BaseModel):
    """
    One slot per provider.
    Tag providers take a plain string, remote-API providers a credential model.
    An absent or blank slot means the provider is unavailable.
    """

    model_config = ConfigDict(frozen=True)

    amazon: str | None = None
    shopee: ShopeeCredentials | None = None
    mercadolivre: str | None = None
    aliexpress: AliExpressCredentials | None = None
    magalu: MagaluConfig | None = None
    natura: str | None = None
    awin: AwinCredentials | None = None

    def for_provider(self, name: str) -> Any:
        key = (name or "").strip().lower()
        if key not in type(self).model_fields:
            return None
        return getattr(self, key)
