"""Context management for structured logging.

Provides automatic context injection into log records using contextvars.
Watch subscriptions set ``bucket`` and ``watch_key`` when their task starts
and clear them when it ends; every record the task emits in between
carries them.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

# Each asyncio task gets its own copy automatically
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current task.

    Args:
        **kwargs: Key-value pairs to add to logging context.

    Example:
        ```python
        set_log_context(bucket="config", watch_key="config/app.json")
        logger.info("Listening")  # Includes bucket and watch_key
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the contextvars log context onto records.

    Attached to the queue handler so records from every logger pass through it.
    Existing record attributes are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for key, value in context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
