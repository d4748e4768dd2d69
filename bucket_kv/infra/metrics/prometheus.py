"""Prometheus metrics for the key/value backend.

All metrics are registered on the package ``REGISTRY`` so an embedding
application can expose them next to its own:

    from prometheus_client import generate_latest
    from bucket_kv.infra.metrics import REGISTRY

    payload = generate_latest(REGISTRY)
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

REGISTRY = CollectorRegistry()

# Store round trips take from a few milliseconds to tens of seconds
KV_LATENCY_BUCKETS = (0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

# Number of objects merged by a single get
AGGREGATION_SIZE_BUCKETS = (0, 1, 5, 10, 25, 50, 100, 250, 1000)

kv_operations_total = Counter(
    "kv_operations_total",
    "Total key/value operations",
    ["operation", "status"],  # operation: get/set/list, status: success/error
    registry=REGISTRY,
)

kv_operation_duration_seconds = Histogram(
    "kv_operation_duration_seconds",
    "Key/value operation duration in seconds",
    ["operation"],
    buckets=KV_LATENCY_BUCKETS,
    registry=REGISTRY,
)

kv_operation_errors_total = Counter(
    "kv_operation_errors_total",
    "Key/value operation errors by exception type",
    ["operation", "error_type"],
    registry=REGISTRY,
)

kv_aggregation_objects = Histogram(
    "kv_aggregation_objects",
    "Objects merged into the tree returned by get",
    buckets=AGGREGATION_SIZE_BUCKETS,
    registry=REGISTRY,
)

kv_aggregation_skipped_total = Counter(
    "kv_aggregation_skipped_total",
    "Listed objects skipped by get because they are not JSON objects",
    registry=REGISTRY,
)

kv_watch_events_total = Counter(
    "kv_watch_events_total",
    "Events published to watch subscribers",
    ["kind"],  # kind: value/error
    registry=REGISTRY,
)

kv_watch_subscriptions_active = Gauge(
    "kv_watch_subscriptions_active",
    "Watch subscriptions with a live background task",
    registry=REGISTRY,
)


def record_operation_success(operation: str, duration_seconds: float) -> None:
    """Record a successful operation.

    Args:
        operation: Operation name (get, set, list).
        duration_seconds: Time taken.
    """
    kv_operations_total.labels(operation=operation, status="success").inc()
    kv_operation_duration_seconds.labels(operation=operation).observe(duration_seconds)


def record_operation_error(operation: str, error_type: str, duration_seconds: float) -> None:
    """Record a failed operation.

    Args:
        operation: Operation name (get, set, list).
        error_type: Exception class name.
        duration_seconds: Time taken before the failure.
    """
    kv_operations_total.labels(operation=operation, status="error").inc()
    kv_operation_errors_total.labels(operation=operation, error_type=error_type).inc()
    kv_operation_duration_seconds.labels(operation=operation).observe(duration_seconds)
