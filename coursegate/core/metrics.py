"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import the one they need and increment it in place.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Engine metrics
# ---------------------------------------------------------------------------

ACCESS_DECISIONS = Counter(
    "access_decisions_total",
    "Course access decisions by reason",
    ["reason"],
)

ENROLLMENTS_CREATED = Counter(
    "enrollments_created_total",
    "Enrollment rows written, by creation path",
    ["path"],  # free|paid|payment_event
)

ENROLLMENT_FAILURES = Counter(
    "enrollment_failures_total",
    "Enrollment attempts that returned a failure result, by code",
    ["code"],
)
