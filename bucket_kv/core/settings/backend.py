"""Object store backend settings.

Environment variables use the MINIO_ prefix.
Example: MINIO_ENDPOINTS="localhost:9000"
         MINIO_BUCKET_NAME="config"
         MINIO_ROOT_PATH="config/"
         MINIO_ACCESS_KEY_ID / MINIO_SECRET_ACCESS_KEY

Works against MinIO (bucket notifications included) and any other
S3-compatible service for get/set/list.
"""

from __future__ import annotations

import json
from typing import Annotated, Any

from pydantic import Field, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_NOTIFICATION_EVENTS = ["s3:ObjectCreated:*", "s3:ObjectRemoved:*"]


def _split_list(value: Any) -> list[str]:
    """Parse a JSON list or a comma-separated string into a list of strings."""
    if isinstance(value, str):
        if value.startswith("["):
            return [str(item) for item in json.loads(value)]
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in value] if value else []


class BackendSettings(BaseSettings):
    """Settings for the key/value backend.

    Built once and handed to every component, so no operation reads the
    environment on its own. Missing values are not rejected here: the
    backend decides per operation which of them it needs.
    """

    # ──────────────────────────────────────────────────────────────
    # Connection
    # ──────────────────────────────────────────────────────────────

    endpoints: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Object store endpoints (host:port or URL). Only the first is used.",
    )

    region: str = Field(
        default="us-east-1",
        description="Region used for request signing",
    )

    use_ssl: bool = Field(
        default=False,
        description="Use TLS for the connection (fixed at construction)",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates when use_ssl is enabled",
    )

    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Connect/read timeout in seconds for store operations",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retry attempts handled by botocore",
    )

    retry_mode: str = Field(
        default="standard",
        description="botocore retry mode: standard, adaptive, or legacy",
    )

    max_pool_connections: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of pooled connections",
    )

    # ──────────────────────────────────────────────────────────────
    # Credentials
    # ──────────────────────────────────────────────────────────────

    access_key_id: SecretStr | None = Field(
        default=None,
        description="Access key id",
    )

    secret_access_key: SecretStr | None = Field(
        default=None,
        description="Secret access key",
    )

    # ──────────────────────────────────────────────────────────────
    # Namespace
    # ──────────────────────────────────────────────────────────────

    bucket_name: str = Field(
        default="",
        description="Bucket holding the configuration objects",
    )

    root_path: str = Field(
        default="",
        description="Key prefix stripped when mapping storage keys to logical keys",
    )

    # ──────────────────────────────────────────────────────────────
    # Watch
    # ──────────────────────────────────────────────────────────────

    notification_events: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_NOTIFICATION_EVENTS),
        description="Bucket notification event classes to subscribe to",
    )

    watch_queue_size: int = Field(
        default=0,
        ge=0,
        description="Maximum buffered events per subscription (0 = unbounded)",
    )

    watch_reconnect_delay: float = Field(
        default=1.0,
        gt=0,
        le=60.0,
        description="Initial delay in seconds before re-opening a failed notification stream",
    )

    watch_reconnect_max_delay: float = Field(
        default=30.0,
        gt=0,
        le=600.0,
        description="Upper bound for the notification reconnect delay",
    )

    # ──────────────────────────────────────────────────────────────
    # Validators
    # ──────────────────────────────────────────────────────────────

    @field_validator("endpoints", "notification_events", mode="before")
    @classmethod
    def _parse_list(cls, value: Any) -> list[str]:
        """Accept comma-separated or JSON lists from the environment."""
        return _split_list(value)

    @field_validator("retry_mode")
    @classmethod
    def _validate_retry_mode(cls, value: str) -> str:
        allowed_modes = {"standard", "adaptive", "legacy"}
        if value not in allowed_modes:
            raise ValueError(f"retry_mode must be one of {allowed_modes}, got {value}")
        return value

    # ──────────────────────────────────────────────────────────────
    # Computed Properties
    # ──────────────────────────────────────────────────────────────

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_bucket_configured(self) -> bool:
        """Check whether a bucket name is set."""
        return bool(self.bucket_name)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_credentials(self) -> bool:
        """Check whether both credentials are present and non-empty."""
        return bool(
            self.access_key_id
            and self.access_key_id.get_secret_value()
            and self.secret_access_key
            and self.secret_access_key.get_secret_value()
        )

    # ──────────────────────────────────────────────────────────────
    # Helper Methods
    # ──────────────────────────────────────────────────────────────

    def endpoint_url(self, endpoint: str) -> str:
        """Return ``endpoint`` as a URL, adding the scheme implied by ``use_ssl``.

        Args:
            endpoint: ``host:port`` or a full URL.

        Returns:
            URL usable as a boto3 ``endpoint_url`` and as an httpx base URL.
        """
        if "://" in endpoint:
            return endpoint.rstrip("/")
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{endpoint.rstrip('/')}"

    def get_boto3_config(self, endpoint: str) -> dict[str, Any]:
        """Get keyword arguments for an aioboto3 S3 client.

        Args:
            endpoint: Endpoint the client should talk to.

        Returns:
            Dictionary with region, TLS, credentials and endpoint parameters.
        """
        config: dict[str, Any] = {
            "region_name": self.region,
            "use_ssl": self.use_ssl,
            "verify": self.verify_ssl,
            "endpoint_url": self.endpoint_url(endpoint),
        }
        if self.access_key_id is not None and self.secret_access_key is not None:
            config["aws_access_key_id"] = self.access_key_id.get_secret_value()
            config["aws_secret_access_key"] = self.secret_access_key.get_secret_value()
        return config

    model_config = SettingsConfigDict(
        env_prefix="MINIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )
