from __future__ import annotations

from collections.abc import Iterable

from dealrelay.core.config import Settings
from dealrelay.core.http import ClientFactory, default_client_factory
from dealrelay.core.logging import get_logger
from dealrelay.providers.aliexpress import AliExpressProvider
from dealrelay.providers.amazon import AmazonProvider
from dealrelay.providers.awin import AwinProvider
from dealrelay.providers.base import AffiliateProvider
from dealrelay.providers.magalu import MagaluProvider
from dealrelay.providers.mercadolivre import MercadoLivreProvider
from dealrelay.providers.natura import NaturaProvider
from dealrelay.providers.shopee import ShopeeProvider

logger = get_logger(__name__)


class ProviderRegistry:
    """
    Ordered providers. Registration order is priority:
    find_provider returns the first provider whose can_handle matches.
    """

    def __init__(self, providers: Iterable[AffiliateProvider] = ()) -> None:
        self._providers: list[AffiliateProvider] = []
        for provider in providers:
            self.register(provider)

    def register(self, provider: AffiliateProvider) -> None:
        # No de-duplication; register each provider once.
        self._providers.append(provider)
        logger.debug("provider.registered", extra={"provider": provider.name, "position": len(self._providers)})

    def find_provider(self, url: str) -> AffiliateProvider | None:
        for provider in self._providers:
            if provider.can_handle(url):
                return provider
        return None

    @property
    def providers(self) -> tuple[AffiliateProvider, ...]:
        return tuple(self._providers)

    def names(self) -> list[str]:
        return [provider.name for provider in self._providers]

    def __len__(self) -> int:
        return len(self._providers)


def build_default_registry(
    config: Settings | None = None,
    *,
    client_factory: ClientFactory = default_client_factory,
) -> ProviderRegistry:
    """Every provider in priority order; ``config`` supplies the network bounds of the remote ones."""
    return ProviderRegistry(
        [
            AmazonProvider(),
            ShopeeProvider(client_factory=client_factory, config=config),
            MercadoLivreProvider(client_factory=client_factory, config=config),
            MagaluProvider(),
            NaturaProvider(),
            AliExpressProvider(client_factory=client_factory, config=config),
            AwinProvider(client_factory=client_factory, config=config),
        ]
    )
