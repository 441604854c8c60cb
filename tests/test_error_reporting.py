from __future__ import annotations

from dealrelay.core import error_reporting
from dealrelay.core.batch_context import batch_scope
from dealrelay.core.config import Settings


def test_before_send_attaches_batch_id():
    with batch_scope("batch-123"):
        event = error_reporting._before_send({}, {})

    assert event["tags"]["batch_id"] == "batch-123"
    assert event["extra"]["batch_id"] == "batch-123"


def test_disabled_without_dsn():
    assert error_reporting.configure_error_reporting(Settings(sentry_dsn=None)) is False


def test_disabled_outside_enabled_environments(monkeypatch):
    calls = []
    monkeypatch.setattr(error_reporting.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    cfg = Settings(sentry_dsn="https://key@example.invalid/1", environment="test")
    assert error_reporting.configure_error_reporting(cfg) is False
    assert calls == []


def test_enabled_environment_initialises_sentry(monkeypatch):
    calls = []
    monkeypatch.setattr(error_reporting.sentry_sdk, "init", lambda **kwargs: calls.append(kwargs))

    cfg = Settings(sentry_dsn="https://key@example.invalid/1", environment="prod")
    assert error_reporting.configure_error_reporting(cfg) is True
    assert calls[0]["environment"] == "prod"
    assert calls[0]["before_send"] is error_reporting._before_send
