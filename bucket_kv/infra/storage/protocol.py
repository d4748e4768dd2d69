"""Object store client protocol and normalized data structures.

The key/value layer only talks to the object store through
``ObjectStoreClient``; ``S3ObjectStoreClient`` is the production
implementation and tests substitute an in-memory one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import unquote_plus

if TYPE_CHECKING:
    import asyncio
    from collections.abc import AsyncIterator, Sequence
    from datetime import datetime


@dataclass(frozen=True)
class ObjectInfo:
    """One entry of a bucket listing.

    Attributes:
        key: Object key
        size_bytes: Object size in bytes
        etag: Entity tag, when the store reports one
        last_modified: Last modification timestamp
    """

    key: str
    size_bytes: int = 0
    etag: str | None = None
    last_modified: datetime | None = None


@dataclass(frozen=True)
class NotificationInfo:
    """One message from the bucket notification stream.

    Either ``records`` holds the S3 event records of the message, or
    ``error`` describes why the message (or the stream) failed.

    Attributes:
        records: S3 event records (``{"eventName": ..., "s3": {...}}``)
        error: Failure carried by this message, if any
    """

    records: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    error: Exception | None = None

    @property
    def keys(self) -> list[str]:
        """Object keys named by the records, URL-decoded."""
        keys: list[str] = []
        for record in self.records:
            key = record.get("s3", {}).get("object", {}).get("key")
            if key:
                keys.append(unquote_plus(key))
        return keys

    @property
    def event_names(self) -> list[str]:
        """Event names of the records (e.g. ``s3:ObjectCreated:Put``)."""
        return [record["eventName"] for record in self.records if "eventName" in record]


class ObjectStoreClient(Protocol):
    """Minimum surface the key/value layer needs from an object store.

    Implementations must be safe for concurrent independent calls; the
    backend shares one client across every operation and subscription.
    """

    @property
    def backend_name(self) -> str:
        """Name of the backend (e.g. 's3')."""
        ...

    async def startup(self) -> None:
        """Open connections."""
        ...

    async def shutdown(self) -> None:
        """Close connections and end notification streams."""
        ...

    async def health_check(self) -> bool:
        """Check connectivity to the store."""
        ...

    def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ObjectInfo]:
        """Iterate over objects whose key starts with ``prefix``.

        Raises:
            StoreError: If the listing fails
        """
        ...

    async def get_object(self, bucket: str, key: str) -> bytes:
        """Read an object's full body.

        Raises:
            SizeMismatchError: If the bytes read differ from the declared size
            StoreError: If the object cannot be read
        """
        ...

    async def put_object(self, bucket: str, key: str, data: bytes, size: int) -> None:
        """Write ``data`` to ``key``.

        Raises:
            StoreError: If the write fails
        """
        ...

    def listen_bucket_notification(
        self,
        bucket: str,
        prefix: str,
        suffix: str,
        events: Sequence[str],
        stop: asyncio.Event,
    ) -> AsyncIterator[NotificationInfo]:
        """Stream bucket notifications until ``stop`` is set or the client closes.

        Failures are yielded as ``NotificationInfo(error=...)``, never raised.
        """
        ...
