"""Prometheus metrics."""

from bucket_kv.infra.metrics.prometheus import (
    REGISTRY,
    kv_aggregation_objects,
    kv_aggregation_skipped_total,
    kv_operation_duration_seconds,
    kv_operation_errors_total,
    kv_operations_total,
    kv_watch_events_total,
    kv_watch_subscriptions_active,
    record_operation_error,
    record_operation_success,
)

__all__ = [
    "REGISTRY",
    "kv_aggregation_objects",
    "kv_aggregation_skipped_total",
    "kv_operation_duration_seconds",
    "kv_operation_errors_total",
    "kv_operations_total",
    "kv_watch_events_total",
    "kv_watch_subscriptions_active",
    "record_operation_error",
    "record_operation_success",
]
