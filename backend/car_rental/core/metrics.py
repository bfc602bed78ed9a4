"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking creation attempts',
    ['status']  # success or the error kind (conflict, invalid_input, not_found, ...)
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking creation latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status and payment transitions',
    ['field', 'target', 'result']  # status/payment, target value, applied/rejected
)

availability_checks = Counter(
    'availability_checks_total',
    'Availability checks by outcome',
    ['result']  # available, unavailable
)

# Database metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Database retry attempts due to version conflicts',
    ['operation']  # create, status, payment
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# Lock metrics
redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)

lock_wait_latency = Histogram(
    'car_lock_wait_seconds',
    'Time spent waiting for the per-car booking lock',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success or an error kind."""
    booking_attempts.labels(status=status).inc()


def record_transition(field: str, target: str, applied: bool):
    result = "applied" if applied else "rejected"
    booking_transitions.labels(field=field, target=target, result=result).inc()


def record_availability(available: bool):
    availability_checks.labels(result="available" if available else "unavailable").inc()


def record_db_retry(operation: str):
    db_retries.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
