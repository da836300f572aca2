"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking mutation attempts',
    ['operation', 'status']  # status: success, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking mutation latency',
    ['operation'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Availability metrics
availability_checks = Counter(
    'availability_checks_total',
    'Availability checks by resolution path',
    ['path', 'result']  # path: primary, fallback; result: available, unavailable
)

availability_fallbacks = Counter(
    'availability_fallbacks_total',
    'Primary predicate failures that triggered the fallback scan'
)

# Remote store metrics
remote_call_retries = Counter(
    'remote_call_retries_total',
    'Remote store calls retried after a retryable failure',
    ['operation']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
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

# Convenience functions for instrumentation
def record_booking_attempt(operation: str, status: str):
    """Record booking mutation attempt. Status: success, conflict, error"""
    booking_attempts.labels(operation=operation, status=status).inc()

def record_availability_check(path: str, available: bool):
    result = "available" if available else "unavailable"
    availability_checks.labels(path=path, result=result).inc()

def record_fallback():
    availability_fallbacks.inc()

def record_retry(operation: str):
    remote_call_retries.labels(operation=operation).inc()

def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
