"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: BackendSettings instances and cache isolation
    - Store Fixtures: an in-memory object store and a backend over it

Helpers shared by test modules (FakeObjectStore, notification builders)
live in ``tests.utils``.
"""

from __future__ import annotations

import os

import pytest

from bucket_kv.core.settings import BackendSettings, clear_settings_cache
from bucket_kv.kv import KVBackend
from tests.utils import FakeObjectStore, make_settings

# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def settings() -> BackendSettings:
    """Fully configured settings: bucket ``cfg``, root path ``cfg/``."""
    return make_settings()


@pytest.fixture(autouse=True)
def _isolate_settings_cache(monkeypatch):
    """Start every test from an empty MINIO_/LOG_ environment and settings cache."""
    for name in list(os.environ):
        if name.startswith(("MINIO_", "LOG_")):
            monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def store() -> FakeObjectStore:
    """Empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def backend(store: FakeObjectStore, settings: BackendSettings) -> KVBackend:
    """Backend over the in-memory store with fully configured settings."""
    return KVBackend.new(settings.endpoints, settings, client=store)
