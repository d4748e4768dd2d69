"""Key/value operation instrumentation with OpenTelemetry and Prometheus metrics.

Every backend operation runs inside ``track_kv_operation``, which opens a
span named ``kv.<operation>`` and records the operation counters and
latency histogram when the block exits.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import Status, StatusCode

from bucket_kv.infra.metrics import record_operation_error, record_operation_success
from bucket_kv.infra.tracing import get_tracer

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_tracer = get_tracer("bucket_kv")


@asynccontextmanager
async def track_kv_operation(
    operation: str,
    key: str | None = None,
    bucket: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Track a key/value operation with a span and Prometheus metrics.

    The yielded dict can be filled by the caller; its entries are recorded
    on the span as ``kv.result.<name>`` when the block succeeds.

    Args:
        operation: Operation name (get, set, list)
        key: Key the operation acts on
        bucket: Bucket name
        metadata: Additional span attributes

    Yields:
        A context dictionary for result attributes

    Example:
        async with track_kv_operation("get", key="app", bucket="config") as ctx:
            value = await aggregator.aggregate()
            ctx["size_bytes"] = len(value)
    """
    start_time = time.perf_counter()
    context: dict[str, Any] = {}

    span_attributes: dict[str, Any] = {"kv.operation": operation}
    if key is not None:
        span_attributes["kv.key"] = key
    if bucket:
        span_attributes["kv.bucket"] = bucket
    if metadata:
        for k, v in metadata.items():
            span_attributes[f"kv.metadata.{k}"] = str(v)

    with _tracer.start_as_current_span(f"kv.{operation}", attributes=span_attributes) as span:
        try:
            yield context
        except Exception as e:
            record_operation_error(
                operation=operation,
                error_type=type(e).__name__,
                duration_seconds=time.perf_counter() - start_time,
            )
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise

        for k, v in context.items():
            span.set_attribute(f"kv.result.{k}", str(v))
        record_operation_success(
            operation=operation,
            duration_seconds=time.perf_counter() - start_time,
        )
        span.set_status(Status(StatusCode.OK))
