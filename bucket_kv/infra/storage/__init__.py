"""Object store access: the client protocol, the S3 client and the MinIO notification listener."""

from bucket_kv.infra.storage.client import S3ObjectStoreClient
from bucket_kv.infra.storage.instrumentation import track_kv_operation
from bucket_kv.infra.storage.notifications import NotificationListener, reconnect_delay
from bucket_kv.infra.storage.protocol import NotificationInfo, ObjectInfo, ObjectStoreClient

__all__ = [
    "NotificationInfo",
    "NotificationListener",
    "ObjectInfo",
    "ObjectStoreClient",
    "S3ObjectStoreClient",
    "reconnect_delay",
    "track_kv_operation",
]
