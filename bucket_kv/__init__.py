"""Key/value configuration backend on top of S3-compatible object storage.

Object keys become configuration keys, object bodies become values, and
bucket notifications become change events:

    from bucket_kv import KVBackend

    async with KVBackend.new(["localhost:9000"]) as backend:
        tree = await backend.get("")
        async for event in backend.watch("config/app.json"):
            ...
"""

from bucket_kv.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    KVBackendError,
    SizeMismatchError,
    StoreError,
    WatchError,
)
from bucket_kv.kv import (
    ChangeEvent,
    ChangeStream,
    KVBackend,
    KVPair,
    ValueUpdated,
    WatchErrorEvent,
    to_logical,
    to_storage,
)

__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "ChangeEvent",
    "ChangeStream",
    "ConfigurationError",
    "DecodeError",
    "KVBackend",
    "KVBackendError",
    "KVPair",
    "SizeMismatchError",
    "StoreError",
    "ValueUpdated",
    "WatchError",
    "WatchErrorEvent",
    "__version__",
    "to_logical",
    "to_storage",
]
