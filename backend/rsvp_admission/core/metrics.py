"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Admission metrics
admission_requests = Counter(
    'rsvp_admission_requests_total',
    'Admission transitions by final outcome',
    ['result']  # confirmed, waitlisted, declined, removed, rejected, conflict, error
)

admission_latency = Histogram(
    'rsvp_admission_latency_seconds',
    'Latency of one admission unit including retries',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

admission_retries = Counter(
    'rsvp_admission_retry_attempts_total',
    'Admission transactions retried after a conflicting write'
)

waitlist_redirects = Counter(
    'rsvp_waitlist_redirects_total',
    'Confirm requests redirected to the waitlist because the event was full'
)

waitlist_renumbers = Counter(
    'rsvp_waitlist_renumber_total',
    'Waitlist renumbering passes',
    ['trigger']  # leave, recalculate, remove
)

confirmed_count_clamps = Counter(
    'rsvp_confirmed_count_clamped_total',
    'Counter decrements clamped at zero (data drift)'
)

# Collaborator metrics
tier_lookup_failures = Counter(
    'rsvp_tier_lookup_failures_total',
    'Priority tier lookups that fell back to the default tier'
)

slot_freed_published = Counter(
    'rsvp_slot_freed_published_total',
    'Slot freed facts handed to the promotion notifier',
    ['reason']  # waitlist_left, capacity_released
)

redis_connection_errors = Counter(
    'rsvp_redis_connection_errors_total',
    'Redis connection errors'
)

redis_circuit_breaker_open = Gauge(
    'rsvp_redis_circuit_breaker_open',
    'Redis circuit breaker state (1=open, 0=closed)'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_admission(result: str):
    """Record admission outcome."""
    admission_requests.labels(result=result).inc()


def record_renumber(trigger: str):
    """Record a waitlist renumbering pass. Trigger: leave, recalculate, remove"""
    waitlist_renumbers.labels(trigger=trigger).inc()


def record_slot_freed(reason: str):
    slot_freed_published.labels(reason=reason).inc()
