from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class DealRelayError(Exception):
    """Base class for errors raised inside the rewriting core."""


class ProviderNotConfiguredError(DealRelayError):
    """Raised when a provider is asked to rewrite without the credentials it needs."""


class ProviderError(DealRelayError):
    """Raised when a partner API request fails in a controlled way."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        meta: dict[str, Any] | None = None,
        endpoint: str | None = None,
        method: str = "GET",
        duration_ms: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.meta = meta
        self.endpoint = endpoint
        self.method = method
        self.duration_ms = duration_ms


@runtime_checkable
class AffiliateProvider(Protocol):
    """
    Storefront capability.
    Anything that implements this can be registered with the ProviderRegistry.
    """

    name: str

    def can_handle(self, url: str) -> bool:
        """Pure, case-insensitive host/substring check. No I/O."""
        raise NotImplementedError

    async def rewrite(self, url: str, config: Any) -> str | None:
        """
        Return the affiliate URL, or None when the provider is unconfigured,
        declines the URL, or any internal step fails. Must never raise.
        """
        raise NotImplementedError


@dataclass(frozen=True)
class ProviderRequestLog:
    provider: str
    endpoint: str
    method: str
    status_code: int | None
    duration_ms: int | None
    error: str | None
    meta: dict[str, Any] | None = None
