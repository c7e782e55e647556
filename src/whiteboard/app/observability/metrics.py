"""Prometheus metrics for the whiteboard service.

HTTP metrics are recorded by ``MetricsMiddleware``; the domain counters
below are incremented by the board service and the naming retry loop.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# ---------------------------------------------------------------------------
# HTTP request metrics
# ---------------------------------------------------------------------------

HTTP_REQUESTS_TOTAL = Counter(
    "whiteboard_http_requests_total",
    "Total HTTP requests by method, path pattern, and status code.",
    labelnames=["method", "path", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "whiteboard_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "whiteboard_http_requests_in_flight",
    "Number of HTTP requests currently being processed.",
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Board domain metrics
# ---------------------------------------------------------------------------

BOARD_OPERATIONS_TOTAL = Counter(
    "whiteboard_board_operations_total",
    "Board operations by action and outcome.",
    labelnames=["action", "outcome"],
    registry=REGISTRY,
)

PERMISSION_DENIALS_TOTAL = Counter(
    "whiteboard_permission_denials_total",
    "Operations rejected because the actor lacked a capability.",
    labelnames=["action"],
    registry=REGISTRY,
)

NAME_CONFLICT_RETRIES = Counter(
    "whiteboard_name_conflict_retries_total",
    "Store-level name conflicts retried with renumbering.",
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
