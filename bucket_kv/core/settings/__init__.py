"""Pydantic Settings v2 configuration.

- Environment variables (MINIO_*, LOG_*) with optional .env file
- LRU-cached loaders
- Immutable (frozen) settings models
- SecretStr for credentials

Import settings via cached loaders:
    from bucket_kv.core.settings import get_backend_settings

Or build them explicitly (tests, embedding applications):
    from bucket_kv.core.settings import BackendSettings

    settings = BackendSettings(bucket_name="config", root_path="config/")
"""

from __future__ import annotations

from .backend import DEFAULT_NOTIFICATION_EVENTS, BackendSettings
from .loader import clear_settings_cache, get_backend_settings, get_logging_settings
from .logs import LoggingSettings

__all__ = [
    "DEFAULT_NOTIFICATION_EVENTS",
    "BackendSettings",
    "LoggingSettings",
    "clear_settings_cache",
    "get_backend_settings",
    "get_logging_settings",
]
