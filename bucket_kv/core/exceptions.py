"""Exception hierarchy for the key/value backend.

Every error raised by this package derives from ``KVBackendError`` so callers
can catch the whole family at once, and each carries a stable ``code`` plus a
``metadata`` dict for structured logging.

Example:
    ```python
    from bucket_kv.core.exceptions import ConfigurationError, map_boto_error

    try:
        await client.put_object(Bucket=bucket, Key=key, Body=body)
    except ClientError as e:
        raise map_boto_error(e, operation="put", key=key) from e
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from botocore.exceptions import ClientError


class KVBackendError(Exception):
    """Base exception for all backend errors.

    Attributes:
        message: Human-readable error message.
        code: Error code identifier for programmatic error handling.
        metadata: Additional context-specific information about the error.
    """

    default_code = "KV_BACKEND_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize backend error.

        Args:
            message: Human-readable error message.
            code: Error code for programmatic handling.
            metadata: Additional error context.
        """
        self.message = message
        self.code = code or self.default_code
        self.metadata = metadata or {}
        super().__init__(message)

    @property
    def type(self) -> str:
        """Error type identifier derived from the code (e.g. ``kv-store-error``)."""
        return self.code.lower().replace("_", "-")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logs and CLI output."""
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "metadata": self.metadata,
        }


class ConfigurationError(KVBackendError):
    """Raised when a required setting is missing.

    Covers the bucket name, the root path (for aggregated reads) and the
    endpoint list. The operation is never attempted.
    """

    default_code = "KV_NOT_CONFIGURED"

    def __init__(
        self,
        message: str = "Backend is not configured",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, metadata=metadata)


class AuthenticationError(KVBackendError):
    """Raised at construction when a credential is missing or empty."""

    default_code = "KV_AUTHENTICATION_ERROR"

    def __init__(
        self,
        message: str = "Can't authenticate to the object store",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, metadata=metadata)


class StoreError(KVBackendError):
    """Failure reported by the underlying object store.

    Network, not-found and permission failures all land here (or in one of
    the subclasses below) and are propagated verbatim to the caller.
    """

    default_code = "KV_STORE_ERROR"


class ObjectNotFoundError(StoreError):
    """The requested object or bucket does not exist."""

    default_code = "KV_OBJECT_NOT_FOUND"


class StorePermissionError(StoreError):
    """The store rejected the credentials or denied the operation."""

    default_code = "KV_PERMISSION_DENIED"


class StoreTimeoutError(StoreError):
    """The store did not answer in time."""

    default_code = "KV_STORE_TIMEOUT"


class SizeMismatchError(StoreError):
    """Bytes read from an object differ from its declared size."""

    default_code = "KV_SIZE_MISMATCH"

    def __init__(
        self,
        key: str,
        expected: int,
        actual: int,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize size mismatch error.

        Args:
            key: Storage key of the object being read.
            expected: Size reported by the object stat.
            actual: Number of bytes actually read.
            metadata: Additional error context.
        """
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=(
                f"The size of object {key} doesn't match the bytes read "
                f"(expected {expected}, read {actual})"
            ),
            metadata={"key": key, "expected": expected, "actual": actual, **(metadata or {})},
        )


class DecodeError(KVBackendError):
    """A listed object's body is not a JSON object.

    Only raised inside aggregation, where it is caught and the entry skipped.
    """

    default_code = "KV_DECODE_ERROR"


class WatchError(KVBackendError):
    """A notification or re-fetch failure inside an active subscription.

    Delivered to subscribers as an event; never raised out of ``watch``.
    """

    default_code = "KV_WATCH_ERROR"


# AWS error codes grouped by the exception they map to.
_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})
_PERMISSION_CODES = frozenset(
    {
        "AccessDenied",
        "ExpiredToken",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "InvalidToken",
        "TokenRefreshRequired",
    }
)
_TIMEOUT_CODES = frozenset({"RequestTimeout", "RequestTimeTooSkewed", "SlowDown"})


def map_boto_error(
    error: ClientError,
    operation: str,
    key: str | None = None,
    bucket: str | None = None,
) -> StoreError:
    """Map a botocore ``ClientError`` to the matching ``StoreError``.

    Args:
        error: The botocore ClientError to map.
        operation: The store operation being performed (``get``, ``put``, ``list``).
        key: Optional object key being operated on.
        bucket: Optional bucket name.

    Returns:
        StoreError subclass carrying the AWS error code and request id.

    Error Code Mappings:
        - NoSuchKey, NoSuchBucket -> ObjectNotFoundError
        - AccessDenied, InvalidAccessKeyId, ... -> StorePermissionError
        - RequestTimeout, SlowDown, ... -> StoreTimeoutError
        - Others -> StoreError
    """
    response = getattr(error, "response", None) or {}
    error_info = response.get("Error", {})
    error_code = error_info.get("Code", "Unknown")
    error_message = error_info.get("Message", str(error))

    metadata: dict[str, Any] = {
        "operation": operation,
        "aws_error_code": error_code,
        "aws_error_message": error_message,
        "request_id": response.get("ResponseMetadata", {}).get("RequestId"),
    }
    if key:
        metadata["key"] = key
    if bucket:
        metadata["bucket"] = bucket
    elif "BucketName" in error_info:
        metadata["bucket"] = error_info["BucketName"]

    message = f"{operation.capitalize()} failed: {error_message}"

    if error_code in _NOT_FOUND_CODES:
        return ObjectNotFoundError(message, metadata=metadata)
    if error_code in _PERMISSION_CODES:
        return StorePermissionError(message, metadata=metadata)
    if error_code in _TIMEOUT_CODES:
        return StoreTimeoutError(
            f"{operation.capitalize()} timed out: {error_message}",
            metadata=metadata,
        )
    return StoreError(message, metadata=metadata)
