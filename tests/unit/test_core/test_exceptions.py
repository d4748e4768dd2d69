"""Unit tests for the backend exception hierarchy."""

from botocore.exceptions import ClientError
import pytest

from bucket_kv.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DecodeError,
    KVBackendError,
    ObjectNotFoundError,
    SizeMismatchError,
    StoreError,
    StorePermissionError,
    StoreTimeoutError,
    WatchError,
    map_boto_error,
)


def _client_error(code: str, **error) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} happened", **error},
            "ResponseMetadata": {"RequestId": "req-42"},
        },
        "GetObject",
    )


@pytest.mark.unit
class TestKVBackendError:
    """Test the base exception."""

    def test_default_code_and_type(self):
        """Test code defaults and the derived type identifier."""
        error = StoreError("boom")

        assert error.code == "KV_STORE_ERROR"
        assert error.type == "kv-store-error"
        assert str(error) == "boom"

    def test_to_dict(self):
        """Test serialization for logs and CLI output."""
        error = KVBackendError("boom", code="CUSTOM", metadata={"key": "a"})

        assert error.to_dict() == {
            "type": "custom",
            "code": "CUSTOM",
            "message": "boom",
            "metadata": {"key": "a"},
        }

    @pytest.mark.parametrize(
        "error_class",
        [ConfigurationError, AuthenticationError, StoreError, DecodeError, WatchError],
    )
    def test_hierarchy(self, error_class):
        """Test that every error can be caught as KVBackendError."""
        assert issubclass(error_class, KVBackendError)

    def test_default_messages(self):
        """Test the default messages of configuration and authentication errors."""
        assert ConfigurationError().message == "Backend is not configured"
        assert AuthenticationError().code == "KV_AUTHENTICATION_ERROR"

    def test_size_mismatch(self):
        """Test SizeMismatchError fields and metadata."""
        error = SizeMismatchError("cfg/a.json", expected=10, actual=4, metadata={"bucket": "cfg"})

        assert isinstance(error, StoreError)
        assert error.metadata == {"key": "cfg/a.json", "expected": 10, "actual": 4, "bucket": "cfg"}
        assert "doesn't match" in error.message


@pytest.mark.unit
class TestMapBotoError:
    """Test translation of botocore ClientErrors."""

    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("NoSuchKey", ObjectNotFoundError),
            ("NoSuchBucket", ObjectNotFoundError),
            ("AccessDenied", StorePermissionError),
            ("SignatureDoesNotMatch", StorePermissionError),
            ("RequestTimeout", StoreTimeoutError),
            ("InternalError", StoreError),
        ],
    )
    def test_mapping(self, code, expected):
        """Test the exception class chosen for each AWS error code."""
        error = map_boto_error(_client_error(code), operation="get", key="cfg/a.json")

        assert type(error) is expected

    def test_metadata(self):
        """Test that AWS details are carried in metadata."""
        error = map_boto_error(_client_error("NoSuchKey"), operation="get", key="cfg/a.json", bucket="cfg")

        assert error.message == "Get failed: NoSuchKey happened"
        assert error.metadata == {
            "operation": "get",
            "aws_error_code": "NoSuchKey",
            "aws_error_message": "NoSuchKey happened",
            "request_id": "req-42",
            "key": "cfg/a.json",
            "bucket": "cfg",
        }

    def test_bucket_from_error_response(self):
        """Test that the bucket name falls back to the error response."""
        error = map_boto_error(_client_error("NoSuchBucket", BucketName="gone"), operation="list")

        assert error.metadata["bucket"] == "gone"
        assert "key" not in error.metadata

    def test_timeout_message(self):
        """Test the timeout message wording."""
        error = map_boto_error(_client_error("SlowDown"), operation="put")

        assert error.message == "Put timed out: SlowDown happened"
