# dealrelay/main.py
from __future__ import annotations

from collections.abc import Iterable, Sequence

from dealrelay.core.config import Settings, settings
from dealrelay.core.error_reporting import configure_error_reporting
from dealrelay.core.http import ClientFactory, default_client_factory
from dealrelay.core.logging import configure_logging, get_logger
from dealrelay.providers.registry import ProviderRegistry, build_default_registry
from dealrelay.schemas.affiliates import AffiliateConfig
from dealrelay.services.message_links import coupon_fallback_links, extract_links, filter_relevant_links
from dealrelay.services.rewrite_pipeline import RewritePipeline
from dealrelay.services.url_expander import UrlExpander

logger = get_logger(__name__)


class LinkRewriter:
    """
    Entry point for the message-processing collaborator.
    Built once at startup; holds read-only config and the provider registry.
    """

    def __init__(self, *, pipeline: RewritePipeline, registry: ProviderRegistry, config: AffiliateConfig) -> None:
        self.pipeline = pipeline
        self.registry = registry
        self.config = config

    async def rewrite_links(self, links: Sequence[str]) -> list[str]:
        return await self.pipeline.rewrite_links(links, self.config)

    async def process_message_links(
        self,
        text: str | None,
        entity_urls: Iterable[str | None] = (),
        *,
        coupon_store: str | None = None,
    ) -> list[str]:
        """
        Extract the links a message carries, drop irrelevant ones, rewrite the rest.
        A coupon message naming a store but carrying no product link gets the store's coupon page.
        """
        links = filter_relevant_links(extract_links(text, entity_urls))
        if not links and coupon_store:
            links = coupon_fallback_links(coupon_store, self.config)
        if not links:
            logger.debug("rewrite.message.no_links")
            return []
        return await self.rewrite_links(links)


def build_rewriter(
    config: Settings | None = None,
    *,
    client_factory: ClientFactory = default_client_factory,
    logging_replace_handlers: bool | None = None,
    affiliate_config: AffiliateConfig | None = None,
) -> LinkRewriter:
    cfg = config or settings
    if logging_replace_handlers is None:
        logging_replace_handlers = cfg.environment.lower() != "test"

    configure_logging(
        level=cfg.log_level,
        json_logs=cfg.json_logs,
        replace_handlers=logging_replace_handlers,
    )
    configure_error_reporting(cfg)

    registry = build_default_registry(cfg, client_factory=client_factory)
    expander = UrlExpander(client_factory=client_factory, config=cfg)
    pipeline = RewritePipeline(registry=registry, expander=expander)

    availability = {name: cfg.provider_enabled(name) for name in registry.names()}
    logger.info(
        "app.startup",
        extra={
            "app_name": cfg.app_name,
            "environment": cfg.environment,
            "providers": registry.names(),
            "providers_enabled": sorted(name for name, (enabled, _) in availability.items() if enabled),
        },
    )
    for name, (enabled, reason) in availability.items():
        if not enabled:
            logger.warning("provider.disabled", extra={"provider": name, "reason": reason})

    return LinkRewriter(
        pipeline=pipeline,
        registry=registry,
        config=affiliate_config or cfg.affiliate_config(),
    )
