"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Registration metrics
registration_attempts = Counter(
    'registration_attempts_total',
    'Total registration attempts',
    ['outcome']  # success, conflict, rejected, error
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Registration request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

registration_cancellations = Counter(
    'registration_cancellations_total',
    'Registrations cancelled and released back to inventory'
)

payment_status_transitions = Counter(
    'payment_status_transitions_total',
    'Payment status transitions applied',
    ['from_status', 'to_status']
)

# Storage metrics
commit_retries = Counter(
    'registration_commit_retries_total',
    'Atomic commit retries after transient storage faults',
    ['operation']  # register, cancel
)

invariant_violations = Counter(
    'invariant_violations_total',
    'Counter invariants that would have been broken',
    ['counter']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration_attempt(outcome: str):
    """Record registration attempt. Outcome: success, conflict, rejected, error"""
    registration_attempts.labels(outcome=outcome).inc()


def record_payment_transition(from_status: str, to_status: str):
    payment_status_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_commit_retry(operation: str):
    commit_retries.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
