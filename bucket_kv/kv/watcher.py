"""Watch subscriptions: bucket notifications turned into a change stream.

Each call to ``Watcher.subscribe`` starts one background task. The task
listens to the bucket's notification stream and, for every notification,
re-reads the watched key and publishes the result on the subscription's
queue. The caller consumes the queue through a ``ChangeStream``:

    stream = watcher.subscribe("config/app.json")
    async for event in stream:
        if isinstance(event, ValueUpdated):
            reload(event.value)
    ...
    stream.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from bucket_kv.core.exceptions import ConfigurationError, WatchError
from bucket_kv.infra.logging import clear_log_context, set_log_context
from bucket_kv.infra.metrics import kv_watch_events_total, kv_watch_subscriptions_active
from bucket_kv.kv.keys import to_logical
from bucket_kv.kv.types import ChangeEvent, ValueUpdated, WatchErrorEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from bucket_kv.core.settings.backend import BackendSettings
    from bucket_kv.infra.storage.protocol import NotificationInfo, ObjectStoreClient

logger = logging.getLogger(__name__)

# Marks the end of a subscription on its queue
_CLOSED: Any = object()


class ChangeStream:
    """Asynchronous iterator over one subscription's events.

    Iteration ends once the subscription's task has finished and every
    queued event has been consumed.
    """

    def __init__(self, key: str, stop: asyncio.Event, maxsize: int = 0) -> None:
        self.key = key
        self.stop = stop
        self.task: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._done = False
        self._finished = False

    @property
    def closed(self) -> bool:
        """True once every event has been consumed and the subscription has ended."""
        return self._finished

    def close(self) -> None:
        """Stop the subscription. Events already queued are still delivered."""
        self.stop.set()

    async def publish(self, event: ChangeEvent) -> None:
        await self._queue.put(event)

    def publish_nowait(self, event: ChangeEvent) -> None:
        """Queue ``event`` without waiting; raises asyncio.QueueFull when full."""
        self._queue.put_nowait(event)

    def finish(self) -> None:
        """Mark the end of the stream without waiting for queue space."""
        self._done = True
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self

    async def __anext__(self) -> ChangeEvent:
        if self._finished:
            raise StopAsyncIteration
        if self._done and self._queue.empty():
            self._finished = True
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item

    async def collect(self, limit: int | None = None) -> list[ChangeEvent]:
        """Consume events until the stream closes or ``limit`` events are read."""
        events: list[ChangeEvent] = []
        async for event in self:
            events.append(event)
            if limit is not None and len(events) >= limit:
                break
        return events


class Watcher:
    """Starts and tracks watch subscriptions for one object store client."""

    def __init__(self, client: ObjectStoreClient, settings: BackendSettings) -> None:
        self.client = client
        self.settings = settings
        self._streams: set[ChangeStream] = set()

    @property
    def active(self) -> int:
        """Number of subscriptions whose task is still running."""
        return len(self._streams)

    def subscribe(self, key: str, stop: asyncio.Event | None = None) -> ChangeStream:
        """Start watching ``key`` and return its change stream.

        Must be called with a running event loop. When no bucket is
        configured the stream holds a single error event and no task is
        started.

        Args:
            key: Storage key to re-read on every notification (used verbatim)
            stop: Optional stop signal; setting it ends the subscription

        Returns:
            The subscription's ChangeStream
        """
        stop = stop or asyncio.Event()

        if not self.settings.bucket_name:
            logger.warning("Watch requested without a bucket", extra={"key": key})
            stream = ChangeStream(key, stop)
            stream.publish_nowait(
                WatchErrorEvent(ConfigurationError("Bucket name is required for watch", metadata={"key": key}))
            )
            stream.finish()
            kv_watch_events_total.labels(kind="error").inc()
            return stream

        stream = ChangeStream(key, stop, maxsize=self.settings.watch_queue_size)
        stream.task = asyncio.get_running_loop().create_task(
            self._supervise(stream),
            name=f"kv-watch:{key}",
        )
        self._streams.add(stream)
        return stream

    async def stop_all(self) -> None:
        """Stop every live subscription and wait for its task to finish."""
        streams = list(self._streams)
        for stream in streams:
            stream.close()
        tasks = [stream.task for stream in streams if stream.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _supervise(self, stream: ChangeStream) -> None:
        """Run the producer until it ends or the stop signal fires."""
        set_log_context(bucket=self.settings.bucket_name, watch_key=stream.key)
        kv_watch_subscriptions_active.inc()
        logger.info("Watch subscription started")

        producer = asyncio.create_task(self._produce(stream))
        stopper = asyncio.create_task(stream.stop.wait())
        try:
            await asyncio.wait({producer, stopper}, return_when=asyncio.FIRST_COMPLETED)
            if producer.done() and not producer.cancelled() and producer.exception() is not None:
                logger.error("Watch subscription failed", exc_info=producer.exception())
        finally:
            for task in (producer, stopper):
                task.cancel()
            await asyncio.gather(producer, stopper, return_exceptions=True)
            kv_watch_subscriptions_active.dec()
            self._streams.discard(stream)
            stream.finish()
            logger.info("Watch subscription ended")
            clear_log_context()

    async def _produce(self, stream: ChangeStream) -> None:
        """Translate notifications into change events, in arrival order."""
        notifications = self.client.listen_bucket_notification(
            self.settings.bucket_name,
            "",
            "",
            self.settings.notification_events,
            stream.stop,
        )
        async for info in notifications:
            await stream.publish(await self._translate(stream.key, info))

    async def _translate(self, key: str, info: NotificationInfo) -> ChangeEvent:
        if info.error is not None:
            logger.warning("Notification error", extra={"error": str(info.error)})
            kv_watch_events_total.labels(kind="error").inc()
            return WatchErrorEvent(info.error)

        keys = info.keys
        trigger = to_logical(keys[0], self.settings.root_path) if keys else ""

        try:
            value = await self.client.get_object(self.settings.bucket_name, key)
        except Exception as e:
            logger.warning(
                "Failed to re-read watched key",
                extra={"trigger": trigger, "error": str(e)},
            )
            error = WatchError(f"Failed to read {key} after notification: {e}", metadata={"key": key})
            error.__cause__ = e
            kv_watch_events_total.labels(kind="error").inc()
            return WatchErrorEvent(error)

        logger.debug("Watched key updated", extra={"trigger": trigger, "size_bytes": len(value)})
        kv_watch_events_total.labels(kind="value").inc()
        return ValueUpdated(key=key, value=value, trigger=trigger)
