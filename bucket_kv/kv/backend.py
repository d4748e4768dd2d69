"""Key/value backend facade over an S3-compatible bucket.

``KVBackend`` exposes the four operations a configuration layer needs:

- ``get(prefix)``: every JSON object under ``prefix`` merged into one JSON
  document keyed by logical key
- ``set(key, value)``: write one object verbatim
- ``list(prefix)``: every object under ``prefix`` as raw key/value pairs
- ``watch(key)``: a stream of the key's value, re-read on every bucket change

Example:
    ```python
    async with KVBackend.new(["localhost:9000"]) as backend:
        await backend.set("config/app.json", b'{"debug": true}')
        tree = json.loads(await backend.get(""))

        stream = backend.watch("config/app.json")
        async for event in stream:
            ...
    ```
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Self

from bucket_kv.core.exceptions import AuthenticationError, ConfigurationError
from bucket_kv.core.settings import get_backend_settings
from bucket_kv.infra.storage import S3ObjectStoreClient, track_kv_operation
from bucket_kv.kv.aggregator import Aggregator, fetch_pairs
from bucket_kv.kv.watcher import ChangeStream, Watcher

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from bucket_kv.core.settings.backend import BackendSettings
    from bucket_kv.infra.storage.protocol import ObjectStoreClient
    from bucket_kv.kv.types import KVPairs

logger = logging.getLogger(__name__)


class KVBackend:
    """Key/value view of one bucket.

    Build it with ``KVBackend.new``; the constructor itself performs no
    validation. The backend owns its object store client: open it with
    ``startup()`` (or ``async with``) before the first operation.
    """

    def __init__(self, client: ObjectStoreClient, settings: BackendSettings) -> None:
        self.client = client
        self.settings = settings
        self._aggregator = Aggregator(client, settings)
        self._watcher = Watcher(client, settings)

    @classmethod
    def new(
        cls,
        machines: Sequence[str],
        settings: BackendSettings | None = None,
        client: ObjectStoreClient | None = None,
    ) -> Self:
        """Validate the configuration and build a backend for ``machines[0]``.

        Args:
            machines: Object store endpoints; only the first is used
            settings: Backend settings (defaults to the cached environment settings)
            client: Object store client to use instead of an S3ObjectStoreClient

        Returns:
            A backend whose client has not been started yet

        Raises:
            ConfigurationError: If no endpoint is supplied
            AuthenticationError: If the access key or secret key is missing or empty
        """
        settings = settings or get_backend_settings()

        if not machines:
            logger.error("No object store endpoints supplied")
            raise ConfigurationError("No object store endpoints supplied")

        access_key = settings.access_key_id.get_secret_value() if settings.access_key_id else ""
        if not access_key:
            logger.error(
                "Neither MINIO_ACCESS_KEY_ID or a MINIO_ACCESS_KEY_ID/MINIO_SECRET_ACCESS_KEY are set. "
                "Can't auth to minio."
            )
            raise AuthenticationError(metadata={"missing": "access_key_id"})

        secret_key = settings.secret_access_key.get_secret_value() if settings.secret_access_key else ""
        if not secret_key:
            logger.error("MINIO_ACCESS_KEY_ID set but MINIO_SECRET_ACCESS_KEY is empty. Can't auth to minio.")
            raise AuthenticationError(metadata={"missing": "secret_access_key"})

        endpoint = machines[0]
        if client is None:
            client = S3ObjectStoreClient(settings, endpoint)

        logger.debug(
            "Key/value backend created",
            extra={"endpoint": endpoint, "bucket": settings.bucket_name, "backend": client.backend_name},
        )
        return cls(client, settings)

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        await self.client.startup()

    async def shutdown(self) -> None:
        """Stop every live subscription, then close the client."""
        await self._watcher.stop_all()
        await self.client.shutdown()

    async def __aenter__(self) -> Self:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def health_check(self) -> bool:
        return await self.client.health_check()

    @property
    def active_watches(self) -> int:
        """Number of subscriptions still running."""
        return self._watcher.active

    def _require_bucket(self, operation: str) -> str:
        bucket = self.settings.bucket_name
        if not bucket:
            logger.error("No MINIO_BUCKET_NAME are set. Can't reach the Minio bucket.")
            raise ConfigurationError(
                f"Bucket name is required for {operation}",
                metadata={"operation": operation},
            )
        return bucket

    # ========================================================================
    # Operations
    # ========================================================================

    async def get(self, prefix: str) -> bytes:
        """Merge every JSON object under ``prefix`` into one JSON document.

        Objects whose body is not a JSON object are skipped. Keys are
        logical keys (root path and ``.json`` suffix stripped); when two
        objects map to the same key the one listed later wins.

        Args:
            prefix: Storage key prefix to aggregate ("" for the whole bucket)

        Returns:
            Compact JSON encoding of the merged tree, ``b"{}"`` when empty

        Raises:
            ConfigurationError: If the bucket name or root path is not set
            StoreError: If the listing or any read fails
        """
        async with track_kv_operation("get", key=prefix, bucket=self.settings.bucket_name) as ctx:
            value = await self._aggregator.aggregate(prefix)
            ctx["size_bytes"] = len(value)
        return value

    async def set(self, key: str, value: bytes) -> None:
        """Write ``value`` to the object ``key``, exactly as given.

        Raises:
            ConfigurationError: If the bucket name is not set
            StoreError: If the write fails
        """
        bucket = self._require_bucket("set")
        async with track_kv_operation("set", key=key, bucket=bucket) as ctx:
            await self.client.put_object(bucket, key, value, len(value))
            ctx["size_bytes"] = len(value)

    async def list(self, prefix: str) -> KVPairs:
        """Return every object under ``prefix`` with its raw body.

        Keys are storage keys exactly as stored, in listing order.

        Raises:
            ConfigurationError: If the bucket name is not set
            StoreError: If the listing or any read fails
        """
        bucket = self._require_bucket("list")
        async with track_kv_operation("list", key=prefix, bucket=bucket) as ctx:
            pairs = await fetch_pairs(self.client, bucket, prefix)
            ctx["count"] = len(pairs)
        return pairs

    def watch(self, key: str, stop: asyncio.Event | None = None) -> ChangeStream:
        """Subscribe to changes in the bucket, reading ``key`` after each one.

        Returns immediately; a background task fills the stream. A bucket
        notification error or a failed read is delivered as a
        ``WatchErrorEvent`` and the subscription keeps running. Set ``stop``
        (or call ``stream.close()``) to end it.

        Args:
            key: Storage key to read after every change (used verbatim)
            stop: Optional stop signal

        Returns:
            The subscription's ChangeStream
        """
        return self._watcher.subscribe(key, stop)
