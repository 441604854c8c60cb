from __future__ import annotations

import logging

from dealrelay.core.logging import get_logger
from dealrelay.core.metrics import record_partner_api_call
from dealrelay.providers.base import ProviderRequestLog

logger = get_logger(__name__)


def log_partner_request(req: ProviderRequestLog) -> None:
    record_partner_api_call(provider=req.provider, status_code=req.status_code, error=req.error)
    logger.log(
        logging.WARNING if req.error else logging.INFO,
        "provider.partner_api.failed" if req.error else "provider.partner_api.completed",
        extra={
            "provider": req.provider,
            "endpoint": req.endpoint,
            "method": req.method,
            "status_code": req.status_code,
            "duration_ms": req.duration_ms,
            "error": req.error,
            "meta": req.meta,
        },
    )
