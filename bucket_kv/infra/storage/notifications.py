"""MinIO bucket notification listener.

MinIO publishes bucket events on a long-lived ``GET /{bucket}?events=...``
request that streams one JSON document per line (blank lines are
keep-alives). The S3 API has no equivalent call, so aioboto3 cannot issue
it; the request is signed with botocore's SigV4 signer and streamed with
httpx instead.

Transport failures are yielded as error notifications and the request is
re-opened with exponential backoff until the caller's stop signal fires or
the listener is closed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from bucket_kv.core.exceptions import StoreError, WatchError
from bucket_kv.infra.storage.protocol import NotificationInfo

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Sequence

    from bucket_kv.core.settings.backend import BackendSettings

logger = logging.getLogger(__name__)


def reconnect_delay(attempt: int, initial_delay: float, max_delay: float) -> float:
    """Exponential backoff with jitter for re-opening the stream.

    Args:
        attempt: Consecutive failures so far (0-indexed).
        initial_delay: Delay before the first retry.
        max_delay: Upper bound before jitter.

    Returns:
        Delay in seconds, between 50% and 150% of the capped exponential value.
    """
    delay = min(initial_delay * (2**attempt), max_delay)
    return delay * (0.5 + random.random())


async def _unless_set(awaitable: Awaitable[Any], *events: asyncio.Event) -> asyncio.Task[Any] | None:
    """Run ``awaitable`` until it completes or any of ``events`` is set.

    Returns:
        The finished task when ``awaitable`` completed first, None when an
        event fired and ``awaitable`` was cancelled.
    """
    task = asyncio.ensure_future(awaitable)
    waiters = {task, *(asyncio.ensure_future(event.wait()) for event in events)}
    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    finally:
        leftovers = [waiter for waiter in waiters if not waiter.done()]
        for waiter in leftovers:
            waiter.cancel()
        await asyncio.gather(*leftovers, return_exceptions=True)
    if task.cancelled():
        return None
    return task


async def _read_line(lines: AsyncIterator[str]) -> str | None:
    """Next line of a response, or None at the end of the body."""
    return await anext(lines, None)


class NotificationListener:
    """Streams MinIO bucket notifications for one endpoint.

    Example:
        listener = NotificationListener(settings, "localhost:9000")
        stop = asyncio.Event()
        async for info in listener.listen("config", "", "", events, stop):
            print(info.keys)
    """

    def __init__(
        self,
        settings: BackendSettings,
        endpoint: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the listener.

        Args:
            settings: Backend settings (credentials, region, TLS, backoff).
            endpoint: Endpoint to listen on (``host:port`` or URL).
            transport: Optional httpx transport, used by tests.
        """
        self.settings = settings
        self.base_url = settings.endpoint_url(endpoint)
        self._transport = transport
        self._closed = asyncio.Event()
        self._credentials: Credentials | None = None
        if settings.access_key_id is not None and settings.secret_access_key is not None:
            self._credentials = Credentials(
                settings.access_key_id.get_secret_value(),
                settings.secret_access_key.get_secret_value(),
            )

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """End every stream opened by this listener."""
        self._closed.set()

    def reopen(self) -> None:
        """Allow new streams after ``close()``."""
        self._closed.clear()

    def build_url(
        self,
        bucket: str,
        prefix: str,
        suffix: str,
        events: Sequence[str],
    ) -> str:
        """Build the listen URL with its query string already encoded."""
        params = [("events", event) for event in events]
        params += [("prefix", prefix), ("suffix", suffix)]
        query = urlencode(sorted(params), quote_via=quote, safe="")
        return f"{self.base_url}/{quote(bucket, safe='')}?{query}"

    def sign(self, url: str) -> dict[str, str]:
        """Return SigV4 headers for a GET on ``url``.

        Anonymous access (no credentials) sends the request unsigned.
        """
        if self._credentials is None:
            return {}
        request = AWSRequest(method="GET", url=url)
        S3SigV4Auth(self._credentials, "s3", self.settings.region).add_auth(request)
        return dict(request.headers.items())

    @staticmethod
    def decode(line: str) -> NotificationInfo:
        """Decode one line of the stream into a ``NotificationInfo``."""
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            return NotificationInfo(
                error=WatchError(
                    f"Invalid notification payload: {e}",
                    metadata={"line": line[:200]},
                )
            )
        if not isinstance(payload, dict):
            return NotificationInfo(
                error=WatchError("Notification payload is not an object", metadata={"line": line[:200]})
            )
        return NotificationInfo(records=tuple(payload.get("Records") or ()))

    async def listen(
        self,
        bucket: str,
        prefix: str,
        suffix: str,
        events: Sequence[str],
        stop: asyncio.Event,
    ) -> AsyncIterator[NotificationInfo]:
        """Stream notifications until ``stop`` is set or the listener is closed.

        Args:
            bucket: Bucket to listen on.
            prefix: Object key prefix filter ("" for none).
            suffix: Object key suffix filter ("" for none).
            events: Event classes, e.g. ``s3:ObjectCreated:*``.
            stop: Caller's stop signal.

        Yields:
            One NotificationInfo per non-empty line, or per transport failure.
        """
        url = self.build_url(bucket, prefix, suffix, events)
        timeout = httpx.Timeout(self.settings.timeout, read=None)
        attempt = 0

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=timeout,
            verify=self.settings.verify_ssl,
        ) as http:
            while not (stop.is_set() or self._closed.is_set()):
                error: WatchError | None = None
                try:
                    async with http.stream("GET", url, headers=self.sign(url)) as response:
                        if response.status_code != httpx.codes.OK:
                            body = (await response.aread()).decode("utf-8", "replace")
                            raise StoreError(
                                f"Listen failed with HTTP {response.status_code}",
                                metadata={"bucket": bucket, "status": response.status_code, "body": body[:500]},
                            )
                        logger.debug("Notification stream opened", extra={"bucket": bucket})
                        attempt = 0
                        lines = response.aiter_lines()
                        while True:
                            if stop.is_set() or self._closed.is_set():
                                return
                            read = await _unless_set(_read_line(lines), stop, self._closed)
                            if read is None:
                                return
                            line = read.result()
                            if line is None:
                                break
                            line = line.strip()
                            if not line:
                                continue
                            yield self.decode(line)
                except (httpx.HTTPError, StoreError) as e:
                    error = WatchError(
                        f"Notification stream failed: {e}",
                        metadata={"bucket": bucket, "attempt": attempt},
                    )
                    error.__cause__ = e

                if error is None:
                    # Server closed the stream cleanly; re-open it
                    logger.debug("Notification stream closed by server", extra={"bucket": bucket})
                    await self._sleep(self.settings.watch_reconnect_delay, stop)
                    continue

                logger.warning(
                    "Notification stream failed",
                    extra={"bucket": bucket, "attempt": attempt, "error": str(error)},
                )
                yield NotificationInfo(error=error)
                await self._sleep(
                    reconnect_delay(
                        attempt,
                        self.settings.watch_reconnect_delay,
                        self.settings.watch_reconnect_max_delay,
                    ),
                    stop,
                )
                attempt += 1

    async def _sleep(self, delay: float, stop: asyncio.Event) -> None:
        """Sleep for ``delay`` seconds, waking early on ``stop`` or ``close()``."""
        await _unless_set(asyncio.sleep(delay), stop, self._closed)
