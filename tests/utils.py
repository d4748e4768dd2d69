"""Test utilities and helper functions.

Usage:
    from tests.utils import FakeObjectStore, created, make_settings

    store = FakeObjectStore({"cfg/a.json": b'{"x": 1}'})
    store.notify(created("cfg/a.json"))
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from bucket_kv.core.exceptions import ObjectNotFoundError, StoreError
from bucket_kv.core.settings import BackendSettings
from bucket_kv.infra.storage.protocol import NotificationInfo, ObjectInfo

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence


def make_settings(**overrides: Any) -> BackendSettings:
    """Build BackendSettings for tests: bucket ``cfg``, root path ``cfg/``, credentials set."""
    values: dict[str, Any] = {
        "endpoints": ["localhost:9000"],
        "access_key_id": "minio-access",
        "secret_access_key": "minio-secret",
        "bucket_name": "cfg",
        "root_path": "cfg/",
        "watch_reconnect_delay": 0.01,
        "watch_reconnect_max_delay": 0.05,
    }
    values.update(overrides)
    return BackendSettings(**values)


class FakeObjectStore:
    """In-memory ObjectStoreClient.

    Objects are listed in lexicographic key order, like S3. Every call is
    appended to ``calls`` as ``(method, *args)``. Notifications are scripted
    with ``notify()``; ``end_notifications()`` closes the stream.
    """

    backend_name = "fake"

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects: dict[str, bytes] = dict(objects or {})
        self.calls: list[tuple] = []
        self.failing_keys: set[str] = set()
        self.list_error: Exception | None = None
        self.startup_error: Exception | None = None
        self.healthy = True
        self.started = False
        self.closed = False
        self.listen_stops: list[asyncio.Event] = []
        self._notifications: asyncio.Queue[NotificationInfo | None] = asyncio.Queue()

    async def startup(self) -> None:
        self.calls.append(("startup",))
        if self.startup_error is not None:
            raise self.startup_error
        self.started = True

    async def shutdown(self) -> None:
        self.calls.append(("shutdown",))
        self.closed = True
        self._notifications.put_nowait(None)

    async def health_check(self) -> bool:
        self.calls.append(("health_check",))
        return self.healthy

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ObjectInfo]:
        self.calls.append(("list_objects", bucket, prefix, recursive))
        if self.list_error is not None:
            raise self.list_error
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield ObjectInfo(key=key, size_bytes=len(self.objects[key]))

    async def get_object(self, bucket: str, key: str) -> bytes:
        self.calls.append(("get_object", bucket, key))
        if key in self.failing_keys:
            raise StoreError(f"Get failed: {key}", metadata={"key": key})
        if key not in self.objects:
            raise ObjectNotFoundError(f"Get failed: {key} does not exist", metadata={"key": key})
        return self.objects[key]

    async def put_object(self, bucket: str, key: str, data: bytes, size: int) -> None:
        self.calls.append(("put_object", bucket, key, data, size))
        self.objects[key] = data

    async def listen_bucket_notification(
        self,
        bucket: str,
        prefix: str,
        suffix: str,
        events: Sequence[str],
        stop: asyncio.Event,
    ) -> AsyncIterator[NotificationInfo]:
        self.calls.append(("listen_bucket_notification", bucket, prefix, suffix, tuple(events)))
        self.listen_stops.append(stop)
        while not stop.is_set():
            info = await self._notifications.get()
            if info is None:
                return
            yield info

    def notify(self, *infos: NotificationInfo) -> None:
        """Queue notifications for delivery to the listener."""
        for info in infos:
            self._notifications.put_nowait(info)

    def end_notifications(self) -> None:
        """Close the notification stream, as the client does on shutdown."""
        self._notifications.put_nowait(None)

    def method_calls(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


def created(key: str) -> NotificationInfo:
    """Notification for an object put at ``key``."""
    return NotificationInfo(
        records=(
            {
                "eventName": "s3:ObjectCreated:Put",
                "s3": {"bucket": {"name": "cfg"}, "object": {"key": key, "size": 1}},
            },
        )
    )


def removed(key: str) -> NotificationInfo:
    """Notification for an object deleted at ``key``."""
    return NotificationInfo(
        records=(
            {
                "eventName": "s3:ObjectRemoved:Delete",
                "s3": {"bucket": {"name": "cfg"}, "object": {"key": key}},
            },
        )
    )


def failed(error: Exception) -> NotificationInfo:
    """Notification carrying a stream failure."""
    return NotificationInfo(error=error)
