from __future__ import annotations

from typing import Any

import sentry_sdk

from dealrelay.core.batch_context import get_batch_id
from dealrelay.core.config import Settings, settings
from dealrelay.core.logging import get_logger

logger = get_logger(__name__)


def _disabled_reason(cfg: Settings) -> str | None:
    if not cfg.sentry_dsn:
        return "missing_dsn"
    enabled = {env.strip().lower() for env in cfg.sentry_enabled_environments}
    if cfg.environment.strip().lower() not in enabled:
        return "environment_not_enabled"
    return None


def _before_send(event: dict[str, Any], _hint: dict[str, Any]) -> dict[str, Any]:
    batch_id = get_batch_id()
    event.setdefault("tags", {}).setdefault("batch_id", batch_id)
    event.setdefault("extra", {}).setdefault("batch_id", batch_id)
    return event


def configure_error_reporting(config: Settings | None = None) -> bool:
    """Initialise Sentry when a DSN is set and the environment is enabled. Returns whether it did."""
    cfg = config or settings
    reason = _disabled_reason(cfg)
    if reason:
        logger.info(
            "error_reporting.disabled",
            extra={
                "reason": reason,
                "environment": cfg.environment,
                "enabled_environments": sorted(cfg.sentry_enabled_environments),
            },
        )
        return False

    environment = cfg.sentry_environment or cfg.environment
    sentry_sdk.init(
        dsn=cfg.sentry_dsn,
        environment=environment,
        traces_sample_rate=cfg.sentry_traces_sample_rate,
        before_send=_before_send,
    )
    logger.info(
        "error_reporting.enabled",
        extra={"environment": environment, "traces_sample_rate": cfg.sentry_traces_sample_rate},
    )
    return True


def capture_exception(exc: BaseException) -> None:
    """Send an exception caught at a link boundary; a no-op until Sentry is initialised."""
    sentry_sdk.capture_exception(exc)
