"""CLI utilities for running async operations and formatting output."""

from bucket_kv.cli.utils.async_runner import coro
from bucket_kv.cli.utils.formatters import error, header, info, success, warning

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
    "warning",
]
