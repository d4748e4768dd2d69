"""Unit tests for Pydantic Settings v2 models and loaders."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from bucket_kv.core.settings import (
    DEFAULT_NOTIFICATION_EVENTS,
    BackendSettings,
    LoggingSettings,
    clear_settings_cache,
    get_backend_settings,
    get_logging_settings,
)


@pytest.mark.unit
class TestBackendSettings:
    """Test suite for BackendSettings."""

    def test_defaults(self):
        """Test BackendSettings default values with an empty environment."""
        settings = BackendSettings()

        assert settings.endpoints == []
        assert settings.bucket_name == ""
        assert settings.root_path == ""
        assert settings.use_ssl is False
        assert settings.access_key_id is None
        assert settings.notification_events == DEFAULT_NOTIFICATION_EVENTS
        assert settings.watch_queue_size == 0
        assert settings.is_bucket_configured is False
        assert settings.has_credentials is False

    def test_frozen(self):
        """Test that BackendSettings instances are immutable."""
        settings = BackendSettings(bucket_name="cfg")

        with pytest.raises(ValidationError):
            settings.bucket_name = "other"

    def test_reads_minio_environment(self, monkeypatch):
        """Test the MINIO_ environment variables."""
        monkeypatch.setenv("MINIO_ACCESS_KEY_ID", "access")
        monkeypatch.setenv("MINIO_SECRET_ACCESS_KEY", "secret")
        monkeypatch.setenv("MINIO_BUCKET_NAME", "config")
        monkeypatch.setenv("MINIO_ROOT_PATH", "config/")
        monkeypatch.setenv("MINIO_USE_SSL", "true")

        settings = BackendSettings()

        assert settings.access_key_id.get_secret_value() == "access"
        assert settings.secret_access_key.get_secret_value() == "secret"
        assert settings.bucket_name == "config"
        assert settings.root_path == "config/"
        assert settings.use_ssl is True
        assert settings.has_credentials is True

    @pytest.mark.parametrize(
        "raw",
        ["minio-a:9000,minio-b:9000", "minio-a:9000, minio-b:9000,", '["minio-a:9000", "minio-b:9000"]'],
    )
    def test_endpoints_from_environment(self, monkeypatch, raw):
        """Test comma-separated and JSON endpoint lists."""
        monkeypatch.setenv("MINIO_ENDPOINTS", raw)

        assert BackendSettings().endpoints == ["minio-a:9000", "minio-b:9000"]

    def test_notification_events_from_environment(self, monkeypatch):
        """Test overriding the subscribed event classes."""
        monkeypatch.setenv("MINIO_NOTIFICATION_EVENTS", "s3:ObjectCreated:Put")

        assert BackendSettings().notification_events == ["s3:ObjectCreated:Put"]

    def test_secrets_hidden_in_repr(self):
        """Test that credentials never appear in the settings repr."""
        settings = BackendSettings(access_key_id="access", secret_access_key="top-secret")

        assert "top-secret" not in repr(settings)

    def test_empty_credentials_not_configured(self):
        """Test that empty strings do not count as credentials."""
        settings = BackendSettings(access_key_id="access", secret_access_key="")

        assert settings.has_credentials is False

    def test_invalid_retry_mode(self):
        """Test retry_mode validation."""
        with pytest.raises(ValidationError):
            BackendSettings(retry_mode="sometimes")

    @pytest.mark.parametrize(
        ("endpoint", "use_ssl", "expected"),
        [
            ("localhost:9000", False, "http://localhost:9000"),
            ("minio.internal:443", True, "https://minio.internal:443"),
            ("https://s3.amazonaws.com/", False, "https://s3.amazonaws.com"),
        ],
    )
    def test_endpoint_url(self, endpoint, use_ssl, expected):
        """Test scheme selection for bare endpoints and passthrough for URLs."""
        assert BackendSettings(use_ssl=use_ssl).endpoint_url(endpoint) == expected

    def test_boto3_config(self):
        """Test the aioboto3 client keyword arguments."""
        settings = BackendSettings(access_key_id="a", secret_access_key="s", region="eu-west-1")

        config = settings.get_boto3_config("localhost:9000")

        assert config == {
            "region_name": "eu-west-1",
            "use_ssl": False,
            "verify": True,
            "endpoint_url": "http://localhost:9000",
            "aws_access_key_id": "a",
            "aws_secret_access_key": "s",
        }

    def test_boto3_config_anonymous(self):
        """Test that missing credentials are left to botocore's own chain."""
        config = BackendSettings().get_boto3_config("localhost:9000")

        assert "aws_access_key_id" not in config


@pytest.mark.unit
class TestLoggingSettings:
    """Test suite for LoggingSettings."""

    def test_defaults(self):
        """Test LoggingSettings default values."""
        settings = LoggingSettings()

        assert settings.level == "INFO"
        assert settings.json_logs is True
        assert settings.file_path is None

    def test_reads_log_environment(self, monkeypatch):
        """Test the LOG_ environment variables."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_JSON_LOGS", "false")

        settings = LoggingSettings()

        assert settings.level == "DEBUG"
        assert settings.json_logs is False

    def test_to_logging_kwargs(self):
        """Test the keyword arguments handed to configure_logging."""
        kwargs = LoggingSettings(level="WARNING").to_logging_kwargs()

        assert kwargs["log_level"] == "WARNING"
        assert kwargs["service_name"] == "bucket-kv"
        assert kwargs["file_path"] is None

    def test_invalid_level(self):
        """Test that unknown levels are rejected."""
        with pytest.raises(ValidationError):
            LoggingSettings(level="LOUD")


@pytest.mark.unit
class TestLoaders:
    """Test cached settings loaders."""

    def test_backend_settings_cached(self):
        """Test that the loader returns the same instance until cleared."""
        assert get_backend_settings() is get_backend_settings()

    def test_clear_cache_rereads_environment(self, monkeypatch):
        """Test that clear_settings_cache picks up environment changes."""
        first = get_backend_settings()
        monkeypatch.setenv("MINIO_BUCKET_NAME", "changed")

        assert get_backend_settings() is first
        clear_settings_cache()
        assert get_backend_settings().bucket_name == "changed"

    def test_logging_settings_cached(self):
        """Test the logging settings loader."""
        assert get_logging_settings() is get_logging_settings()
