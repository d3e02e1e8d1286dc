"""Prometheus metrics for lifecycle actions, trust ledger growth and notifications"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
transition_counter = Counter(
    "layaway_transition_total",
    "Financing request lifecycle actions",
    ["action", "outcome"],  # outcome: ok | refused | error
)

trust_increment_counter = Counter(
    "layaway_trust_increment_total",
    "Delivered layaways credited to the trust ledger",
)

trust_stars_counter = Counter(
    "layaway_trust_stars_awarded",
    "Star ratings frozen onto delivered requests",
    ["stars"],
)

# Notification metrics
notification_failure_counter = Counter(
    "layaway_notification_failures_total",
    "Delivery notices that could not be sent",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(action: str, outcome: str) -> None:
    transition_counter.labels(action=action, outcome=outcome).inc()


def record_delivery(trust_stars: int) -> None:
    """Count a trust ledger credit and the star rating it produced"""
    trust_increment_counter.inc()
    trust_stars_counter.labels(stars=str(trust_stars)).inc()
