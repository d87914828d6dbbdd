"""Prometheus metric inventory.

Every metric the service exports is declared here.  Modules import the
one they own and increment it at the point of action; the /metrics
endpoint renders the default registry.

The domain counters answer the operational questions for this service:
  - how many evaluations ran, and how many ended in a refusal or an
    unreachable store (achievement_evaluations_total{outcome})
  - how many awards were written and by which path
    (achievements_awarded_total{source})
  - how often a satisfied criterion lost the insert race to a concurrent
    evaluation, or a grant hit an already-held achievement
    (award_conflicts_total{source})
  - how many stored criteria are broken and being skipped
    (criterion_decode_failures_total)
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
# Achievement metrics
# ---------------------------------------------------------------------------

EVALUATIONS = Counter(
    "achievement_evaluations_total",
    "Achievement evaluations by outcome",
    ["outcome"],  # ok|forbidden|unavailable
)

AWARDS_GRANTED = Counter(
    "achievements_awarded_total",
    "Award records created",
    ["source"],  # evaluation|grant
)

AWARD_CONFLICTS = Counter(
    "award_conflicts_total",
    "Conditional inserts that found an existing award record",
    ["source"],  # evaluation|grant
)

CRITERION_DECODE_FAILURES = Counter(
    "criterion_decode_failures_total",
    "Stored criteria that decoded to the unsatisfiable variant",
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)
