"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "chsr_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "chsr_search_latency_seconds",
    "Latency of hybrid search calls",
    registry=REGISTRY,
)

MESSAGES_PROCESSED = Counter(
    "chsr_messages_total",
    "Messages seen by the indexer, by outcome",
    labelnames=("outcome", "path"),
    registry=REGISTRY,
)

BACKFILL_PAGES = Counter(
    "chsr_backfill_pages_total",
    "Message pages committed by the backfill crawler",
    registry=REGISTRY,
)

BACKFILL_CHANNEL_FAILURES = Counter(
    "chsr_backfill_channel_failures_total",
    "Channels whose backfill aborted on a fetch error",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "SEARCH_LATENCY",
    "MESSAGES_PROCESSED",
    "BACKFILL_PAGES",
    "BACKFILL_CHANNEL_FAILURES",
    "metrics_response",
]
