from __future__ import annotations

import time
from typing import Any

import httpx

from dealrelay.core.http import ClientFactory
from dealrelay.providers.base import ProviderError, ProviderRequestLog
from dealrelay.services.partner_requests import log_partner_request


async def send_partner_request(
    client_factory: ClientFactory,
    *,
    provider: str,
    method: str,
    url: str,
    endpoint: str,
    timeout: float,
    params: dict[str, str] | None = None,
    content: str | None = None,
    json_body: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """
    Single attempt against a partner API; no retries.
    Returns the decoded JSON object or raises ProviderError. Every outcome is logged.
    """
    start = time.perf_counter()

    def _finish(*, status_code: int | None, error: str | None, meta: dict[str, Any] | None = None) -> int:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log_partner_request(
            ProviderRequestLog(
                provider=provider,
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                error=error,
                meta=meta,
            )
        )
        return duration_ms

    try:
        async with client_factory(timeout=timeout) as client:
            resp = await client.request(
                method,
                url,
                params=params,
                content=content,
                json=json_body,
                headers=headers,
            )
    except httpx.HTTPError as exc:
        error = f"{provider} network error: {exc}"
        duration_ms = _finish(status_code=None, error=error)
        raise ProviderError(
            error,
            status_code=None,
            endpoint=endpoint,
            method=method,
            duration_ms=duration_ms,
        ) from exc

    if not 200 <= resp.status_code < 300:
        error = f"{provider} error {resp.status_code}"
        duration_ms = _finish(status_code=resp.status_code, error=error)
        raise ProviderError(
            error,
            status_code=resp.status_code,
            endpoint=endpoint,
            method=method,
            duration_ms=duration_ms,
            meta={"response": resp.text[:500]},
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        error = f"{provider} invalid JSON response"
        duration_ms = _finish(status_code=resp.status_code, error=error, meta={"response_invalid": True})
        raise ProviderError(
            error,
            status_code=resp.status_code,
            endpoint=endpoint,
            method=method,
            duration_ms=duration_ms,
        ) from exc

    if not isinstance(payload, dict):
        error = f"{provider} unexpected response shape"
        duration_ms = _finish(status_code=resp.status_code, error=error, meta={"response_invalid": True})
        raise ProviderError(error, status_code=resp.status_code, endpoint=endpoint, method=method)

    _finish(status_code=resp.status_code, error=None)
    return payload
