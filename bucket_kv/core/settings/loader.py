"""Cached settings loaders.

Each loader builds its settings model once per process. Tests that change
the environment call ``clear_settings_cache()`` afterwards.
"""

from __future__ import annotations

from functools import lru_cache

from .backend import BackendSettings
from .logs import LoggingSettings


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    """Get cached backend settings.

    Returns:
        Validated and frozen BackendSettings instance.
    """
    return BackendSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_settings_cache() -> None:
    """Drop cached settings so the next loader call re-reads the environment."""
    get_backend_settings.cache_clear()
    get_logging_settings.cache_clear()
