from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

BATCH_LATENCY_SECONDS = Histogram(
    "dealrelay_batch_latency_seconds",
    "Link rewrite batch latency in seconds",
)

LINK_EXPANSIONS_TOTAL = Counter(
    "dealrelay_link_expansions_total",
    "Shortened link expansions by outcome",
    labelnames=("outcome",),
)

PROVIDER_REWRITE_RESULTS_TOTAL = Counter(
    "dealrelay_provider_rewrite_results_total",
    "Per-link rewrite results by provider and outcome",
    labelnames=("provider", "outcome"),
)

PARTNER_API_CALLS_TOTAL = Counter(
    "dealrelay_partner_api_calls_total",
    "Partner API call results by provider, outcome, and status code",
    labelnames=("provider", "outcome", "status_code"),
)


def record_batch_latency(*, duration_seconds: float) -> None:
    BATCH_LATENCY_SECONDS.observe(max(duration_seconds, 0.0))


def record_link_expansion(*, outcome: str) -> None:
    LINK_EXPANSIONS_TOTAL.labels(outcome=outcome).inc()


def record_rewrite_result(*, provider: str | None, outcome: str) -> None:
    PROVIDER_REWRITE_RESULTS_TOTAL.labels(provider=provider or "none", outcome=outcome).inc()


def record_partner_api_call(*, provider: str, status_code: int | None, error: str | None) -> None:
    if error:
        outcome = "error"
    elif status_code is not None and 200 <= status_code < 300:
        outcome = "success"
    else:
        outcome = "unknown"

    PARTNER_API_CALLS_TOTAL.labels(
        provider=provider,
        outcome=outcome,
        status_code=str(status_code) if status_code is not None else "none",
    ).inc()


def metrics_payload() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
