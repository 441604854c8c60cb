from __future__ import annotations

import os
from collections.abc import Callable

import httpx
import pytest

# --- Force test settings early (before dealrelay import) ---
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "INFO")
os.environ.setdefault("JSON_LOGS", "false")

Handler = Callable[[httpx.Request], httpx.Response]


def make_client_factory(handler: Handler) -> Callable[..., httpx.AsyncClient]:
    def factory(**kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture
def mock_http():
    """Returns a builder: handler -> client factory backed by httpx.MockTransport."""
    return make_client_factory


@pytest.fixture
def recorded_requests():
    return []


@pytest.fixture
def offline_factory(recorded_requests):
    """Client factory that records requests and answers every one with a 503."""

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return httpx.Response(503)

    return make_client_factory(handler)
