"""S3-compatible object store client.

Implements ``ObjectStoreClient`` for MinIO, AWS S3, LocalStack and other
S3-compatible services using aioboto3 for object I/O and the MinIO listen
API for bucket notifications.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bucket_kv.core.exceptions import (
    ConfigurationError,
    SizeMismatchError,
    StoreError,
    map_boto_error,
)
from bucket_kv.infra.storage.notifications import NotificationListener
from bucket_kv.infra.storage.protocol import NotificationInfo, ObjectInfo

if TYPE_CHECKING:
    import asyncio
    from collections.abc import AsyncIterator, Sequence
    from types import TracebackType

    import httpx

    from bucket_kv.core.settings.backend import BackendSettings

logger = logging.getLogger(__name__)


class S3ObjectStoreClient:
    """Object store client for one S3-compatible endpoint.

    Attributes:
        settings: Backend settings
        endpoint: Endpoint in use (the first one configured)
        backend_name: Name identifier for this client ("s3")
        is_ready: Whether the aioboto3 client is open

    Example:
        client = S3ObjectStoreClient(settings, "localhost:9000")
        await client.startup()
        data = await client.get_object("config", "config/app.json")
        await client.shutdown()
    """

    def __init__(
        self,
        settings: BackendSettings,
        endpoint: str,
        *,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Backend settings with connection parameters
            endpoint: Endpoint address (``host:port`` or URL)
            http_transport: Optional httpx transport for the notification stream

        Raises:
            ConfigurationError: If ``endpoint`` is empty
        """
        if not endpoint:
            msg = "No object store endpoint supplied"
            raise ConfigurationError(msg)

        self.settings = settings
        self.endpoint = endpoint
        self._session = aioboto3.Session()
        self._client: Any = None
        self._client_context: Any = None
        self._listener = NotificationListener(settings, endpoint, transport=http_transport)

    @property
    def backend_name(self) -> str:
        """Backend name identifier."""
        return "s3"

    @property
    def is_ready(self) -> bool:
        """Check if the client is initialized and ready."""
        return self._client is not None

    # ========================================================================
    # Lifecycle Management
    # ========================================================================

    async def startup(self) -> None:
        """Open the aioboto3 client and its connection pool."""
        self._listener.reopen()

        if self._client is not None:
            logger.debug("S3 client already initialized")
            return

        logger.info(
            "Initializing S3 client",
            extra={
                "endpoint": self.settings.endpoint_url(self.endpoint),
                "region": self.settings.region,
                "use_ssl": self.settings.use_ssl,
            },
        )

        try:
            boto_config = Config(
                retries={
                    "max_attempts": self.settings.max_retries,
                    "mode": self.settings.retry_mode,
                },
                connect_timeout=self.settings.timeout,
                read_timeout=self.settings.timeout,
                max_pool_connections=self.settings.max_pool_connections,
                s3={"addressing_style": "path"},
            )
            self._client_context = self._session.client(
                "s3",
                **self.settings.get_boto3_config(self.endpoint),
                config=boto_config,
            )
            self._client = await self._client_context.__aenter__()
        except Exception as e:
            self._client = None
            self._client_context = None
            logger.exception("Failed to initialize S3 client", extra={"error": str(e)})
            raise StoreError(
                f"Failed to initialize S3 client: {e}",
                code="KV_STORE_INITIALIZATION_ERROR",
            ) from e

        logger.info("S3 client initialized successfully")

    async def shutdown(self) -> None:
        """Close notification streams and the aioboto3 client."""
        self._listener.close()

        if self._client_context is None:
            logger.debug("S3 client not initialized, nothing to shutdown")
            return

        logger.info("Shutting down S3 client")
        try:
            await self._client_context.__aexit__(None, None, None)
        except Exception as e:
            logger.warning("Error closing S3 client", extra={"error": str(e)})
        finally:
            self._client = None
            self._client_context = None

    async def __aenter__(self) -> S3ObjectStoreClient:
        await self.startup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def health_check(self, bucket: str | None = None) -> bool:
        """Check connectivity and credentials.

        Args:
            bucket: Bucket to probe (defaults to the configured bucket)

        Returns:
            True if healthy, False otherwise
        """
        if self._client is None:
            return False

        bucket = bucket or self.settings.bucket_name
        try:
            if bucket:
                await self._client.head_bucket(Bucket=bucket)
            else:
                await self._client.list_buckets()
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "S3 health check failed",
                extra={"error": str(e), "bucket": bucket},
            )
            return False

    def _ensure_client(self) -> Any:
        """Return the open aioboto3 client.

        Raises:
            ConfigurationError: If startup() has not been called
        """
        if self._client is None:
            msg = "S3 client not initialized. Call startup() first."
            raise ConfigurationError(msg)
        return self._client

    # ========================================================================
    # Object Operations
    # ========================================================================

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = True,
    ) -> AsyncIterator[ObjectInfo]:
        """Iterate over objects under ``prefix``, following pagination.

        Args:
            bucket: Bucket to list
            prefix: Key prefix ("" for the whole bucket)
            recursive: When False, stop at the first "/" after the prefix

        Yields:
            ObjectInfo for every object, in the store's (lexicographic) order

        Raises:
            StoreError: If a page cannot be fetched
        """
        client = self._ensure_client()
        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if not recursive:
            params["Delimiter"] = "/"

        count = 0
        try:
            paginator = client.get_paginator("list_objects_v2")
            async for page in paginator.paginate(**params):
                for item in page.get("Contents", []):
                    count += 1
                    yield ObjectInfo(
                        key=item["Key"],
                        size_bytes=item.get("Size", 0),
                        etag=item.get("ETag", "").strip('"') or None,
                        last_modified=item.get("LastModified"),
                    )
        except ClientError as e:
            logger.exception("Failed to list objects", extra={"bucket": bucket, "prefix": prefix})
            raise map_boto_error(e, operation="list", bucket=bucket) from e
        except BotoCoreError as e:
            logger.exception("Unexpected error listing objects", extra={"error": str(e)})
            raise StoreError(
                f"Failed to list {bucket}/{prefix}: {e}",
                metadata={"bucket": bucket, "prefix": prefix, "error": str(e)},
            ) from e

        logger.debug(
            "Listed objects",
            extra={"bucket": bucket, "prefix": prefix, "count": count},
        )

    async def get_object(self, bucket: str, key: str) -> bytes:
        """Read an object's body and check it against the declared size.

        Args:
            bucket: Bucket name
            key: Object key

        Returns:
            Object data as bytes

        Raises:
            SizeMismatchError: If fewer or more bytes were read than declared
            StoreError: If the object cannot be read
        """
        client = self._ensure_client()

        try:
            response = await client.get_object(Bucket=bucket, Key=key)
            data_raw = await response["Body"].read()
        except ClientError as e:
            logger.warning(
                "Failed to get object",
                extra={"bucket": bucket, "key": key, "error": str(e)},
            )
            raise map_boto_error(e, operation="get", key=key, bucket=bucket) from e
        except BotoCoreError as e:
            logger.exception("Unexpected error getting object", extra={"error": str(e)})
            raise StoreError(
                f"Failed to get {key}: {e}",
                metadata={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

        data = data_raw if isinstance(data_raw, bytes) else bytes(data_raw)
        expected = response.get("ContentLength")
        if expected is not None and len(data) != expected:
            raise SizeMismatchError(key, expected=expected, actual=len(data), metadata={"bucket": bucket})

        logger.debug(
            "Object fetched",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)},
        )
        return data

    async def put_object(self, bucket: str, key: str, data: bytes, size: int) -> None:
        """Write ``data`` verbatim to ``key``.

        Args:
            bucket: Bucket name
            key: Object key
            data: Object body
            size: Declared body length

        Raises:
            StoreError: If the write fails
        """
        client = self._ensure_client()

        try:
            await client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentLength=size,
            )
        except ClientError as e:
            logger.exception("Failed to put object", extra={"bucket": bucket, "key": key})
            raise map_boto_error(e, operation="put", key=key, bucket=bucket) from e
        except BotoCoreError as e:
            logger.exception("Unexpected error putting object", extra={"error": str(e)})
            raise StoreError(
                f"Failed to put {key}: {e}",
                metadata={"bucket": bucket, "key": key, "error": str(e)},
            ) from e

        logger.info(
            "Object written",
            extra={"bucket": bucket, "key": key, "size_bytes": size},
        )

    def listen_bucket_notification(
        self,
        bucket: str,
        prefix: str,
        suffix: str,
        events: Sequence[str],
        stop: asyncio.Event,
    ) -> AsyncIterator[NotificationInfo]:
        """Stream bucket notifications (MinIO extension).

        Args:
            bucket: Bucket to listen on
            prefix: Key prefix filter ("" for none)
            suffix: Key suffix filter ("" for none)
            events: Event classes to subscribe to
            stop: Stop signal; the stream ends once it is set

        Returns:
            Async iterator of NotificationInfo; errors are yielded, not raised
        """
        return self._listener.listen(bucket, prefix, suffix, events, stop)
