"""Logging for the link-rewriting core.

Every log call follows the same shape:

- the message is a stable dotted event name (``url_expander.expanded``,
  ``provider.partner_api.failed``, ``rewrite.link.failed``);
- context goes in ``extra``: ``batch_id`` is attached automatically, callers add
  ``provider``, ``url``, ``resolved_url``, ``status_code``, ``endpoint`` or ``duration_ms``;
- DEBUG for per-link decisions, INFO for completed work, WARNING when a link degrades
  to its fallback (network failure, unconfigured provider, partner API refusal),
  ERROR for unexpected exceptions caught at the per-link boundary.

Partner credentials and request signatures must never reach a handler in clear text.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging import Logger
from typing import Any

from dealrelay.core.batch_context import get_batch_id

HANDLER_NAME = "dealrelay-root-handler"
TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(batch_id)s | %(message)s"

REDACTED_VALUE = "***redacted***"
SENSITIVE_KEYS = frozenset(
    {"access_token", "token", "authorization", "secret", "app_secret", "sign", "signature", "password"}
)
# Secrets that travel inside strings: bearer tokens, Shopee signatures, AliExpress signed queries.
TOKEN_PATTERNS = (
    re.compile(r"(Bearer\s+)([^\s,]+)", flags=re.IGNORECASE),
    re.compile(r"(Signature=)([0-9a-f]+)", flags=re.IGNORECASE),
    re.compile(r"([?&]sign=)([^&\s]+)", flags=re.IGNORECASE),
)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "batch_id",
}
_QUIET_LIBRARIES = ("httpx", "httpcore")


def _is_sensitive(key: Any) -> bool:
    return str(key).lower() in SENSITIVE_KEYS


def _redact_text(text: str) -> str:
    for pattern in TOKEN_PATTERNS:
        text = pattern.sub(rf"\1{REDACTED_VALUE}", text)
    return text


def redact_sensitive_data(value: Any) -> Any:
    """Recursively mask sensitive keys and inline secrets in dicts, lists, tuples and strings."""
    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, dict):
        return {k: REDACTED_VALUE if _is_sensitive(k) else redact_sensitive_data(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact_sensitive_data(item) for item in value)
    return value


class BatchIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.batch_id = getattr(record, "batch_id", None) or get_batch_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: fixed header fields followed by the redacted ``extra`` context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": _redact_text(record.getMessage()),
            "batch_id": getattr(record, "batch_id", get_batch_id()),
        }
        payload.update(
            (key, REDACTED_VALUE if _is_sensitive(key) else redact_sensitive_data(value))
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            payload["exc_info"] = _redact_text(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


def _build_handler(json_logs: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.name = HANDLER_NAME
    handler.addFilter(BatchIDFilter())
    handler.setFormatter(JsonFormatter() if json_logs else logging.Formatter(TEXT_FORMAT))
    return handler


def _keeps_handler(handler: logging.Handler, replace_handlers: bool) -> bool:
    # pytest's caplog handler survives unless a full replacement is asked for.
    is_capture = type(handler).__module__ == "_pytest.logging" and type(handler).__name__ == "LogCaptureHandler"
    return is_capture and not replace_handlers


def configure_logging(*, level: str = "INFO", json_logs: bool = True, replace_handlers: bool = True) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if handler.name == HANDLER_NAME or not _keeps_handler(handler, replace_handlers):
            root.removeHandler(handler)
    root.addHandler(_build_handler(json_logs))

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)
