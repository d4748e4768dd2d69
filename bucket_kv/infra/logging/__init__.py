"""Logging infrastructure.

Structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection (bucket, watch_key, ...)
- QueueHandler + QueueListener for non-blocking I/O
- OpenTelemetry trace correlation

Basic usage:
    from bucket_kv.infra.logging import set_log_context, setup_logging
    import logging

    setup_logging()
    logger = logging.getLogger(__name__)

    set_log_context(bucket="config")
    logger.info("Listing objects")  # Automatically includes bucket
"""

from bucket_kv.infra.logging.config import configure_logging, setup_logging, shutdown
from bucket_kv.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    set_log_context,
)
from bucket_kv.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
