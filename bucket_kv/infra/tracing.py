"""OpenTelemetry tracing helpers.

Only the OpenTelemetry API is used: spans are no-ops until the embedding
application installs a tracer provider.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for creating custom spans.

    Args:
        name: Tracer name, typically __name__ of the module.

    Returns:
        Tracer instance for creating spans.
    """
    return trace.get_tracer(name)


def add_span_event(name: str, attributes: dict[str, Any] | None = None) -> None:
    """Add an event to the current span if one is recording.

    Args:
        name: Event name
        attributes: Event attributes
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name, attributes=attributes or {})
