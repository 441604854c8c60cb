from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from dealrelay.core.batch_context import batch_scope
from dealrelay.core.error_reporting import capture_exception
from dealrelay.core.logging import get_logger
from dealrelay.core.metrics import record_batch_latency, record_rewrite_result
from dealrelay.providers.registry import ProviderRegistry
from dealrelay.schemas.affiliates import AffiliateConfig
from dealrelay.services.url_expander import UrlExpander
from dealrelay.services.url_tools import is_shortened, strip_query_and_fragment

logger = get_logger(__name__)


class RewritePipeline:
    """Expand, match a provider, rewrite; one output per input link, in order."""

    def __init__(self, *, registry: ProviderRegistry, expander: UrlExpander) -> None:
        self._registry = registry
        self._expander = expander

    async def rewrite_links(self, links: Sequence[str], config: AffiliateConfig) -> list[str]:
        links = list(links)
        if not links:
            return []

        with batch_scope():
            start = time.perf_counter()
            try:
                results = await asyncio.gather(
                    *(self._rewrite_one(link, config) for link in links),
                    return_exceptions=True,
                )
            finally:
                duration = time.perf_counter() - start
                record_batch_latency(duration_seconds=duration)
                logger.info(
                    "rewrite.batch.completed",
                    extra={"links": len(links), "duration_ms": int(duration * 1000)},
                )

        # _rewrite_one never raises; only BaseExceptions such as cancellation land here.
        return [
            result if isinstance(result, str) else original
            for original, result in zip(links, results, strict=True)
        ]

    async def _rewrite_one(self, url: str, config: AffiliateConfig) -> str:
        provider_name: str | None = None
        try:
            resolved = await self._expander.expand(url) if is_shortened(url) else url

            provider = self._registry.find_provider(resolved)
            if provider is None:
                logger.debug("rewrite.link.no_provider", extra={"url": url, "resolved_url": resolved})
                record_rewrite_result(provider=None, outcome="no_provider")
                return strip_query_and_fragment(resolved)

            provider_name = provider.name
            rewritten = await provider.rewrite(resolved, config.for_provider(provider.name))
            if rewritten:
                record_rewrite_result(provider=provider_name, outcome="rewritten")
                return rewritten

            logger.info(
                "rewrite.link.fallback",
                extra={"provider": provider_name, "url": url, "resolved_url": resolved},
            )
            record_rewrite_result(provider=provider_name, outcome="fallback")
            return strip_query_and_fragment(resolved)
        except Exception as exc:
            logger.exception("rewrite.link.failed", extra={"provider": provider_name, "url": url})
            record_rewrite_result(provider=provider_name, outcome="error")
            capture_exception(exc)
            return url
