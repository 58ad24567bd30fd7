"""Prometheus metrics inventory.

All metrics are defined here and imported by the module that owns the
behaviour, so the full list of what the service measures lives in one
place.  Counters only go up; tests assert on deltas.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
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
# Compliance engine metrics
# ---------------------------------------------------------------------------

CERTIFICATES_ISSUED = Counter(
    "certificates_issued_total",
    "Certificates created, by issuance pathway",
    ["pathway"],  # "completion_rules", "quiz_pass", "provider_event"
)

COMPLETION_EVALUATIONS = Counter(
    "completion_evaluations_total",
    "Completion rule evaluations by overall outcome",
    ["outcome"],  # "passed", "failed", "no_rules"
)

ALLOCATION_WRITES = Counter(
    "allocation_writes_total",
    "Replace-all allocation writes by result",
    ["result"],  # "applied" or "rejected"
)

PROVIDER_EVENTS = Counter(
    "provider_events_total",
    "Provider completion events by resulting status",
    ["status"],  # "applied", "pending", "duplicate", "conflict"
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user", "provider" or "ip"
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],  # "certificate_issued", "compliance_reminder"
)
