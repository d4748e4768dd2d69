"""Aggregated reads: many JSON objects merged into one JSON document."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from bucket_kv.core.exceptions import ConfigurationError, DecodeError
from bucket_kv.infra.metrics import kv_aggregation_objects, kv_aggregation_skipped_total
from bucket_kv.infra.tracing import add_span_event
from bucket_kv.kv.keys import to_logical
from bucket_kv.kv.types import KVPair

if TYPE_CHECKING:
    from bucket_kv.core.settings.backend import BackendSettings
    from bucket_kv.infra.storage.protocol import ObjectStoreClient

logger = logging.getLogger(__name__)


def decode_object(pair: KVPair) -> dict[str, Any]:
    """Decode a listed object's body as a JSON object.

    Raises:
        DecodeError: If the body is not UTF-8, not JSON, or not a JSON object
    """
    try:
        decoded = json.loads(pair.value.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Object {pair.key} is not valid JSON: {e}", metadata={"key": pair.key}) from e
    if not isinstance(decoded, dict):
        raise DecodeError(
            f"Object {pair.key} is not a JSON object",
            metadata={"key": pair.key, "json_type": type(decoded).__name__},
        )
    return decoded


async def fetch_pairs(client: ObjectStoreClient, bucket: str, prefix: str) -> list[KVPair]:
    """List every object under ``prefix`` and read its body.

    Any listing or read failure aborts the whole pass.

    Raises:
        StoreError: If the listing or any read fails
    """
    pairs: list[KVPair] = []
    async for info in client.list_objects(bucket, prefix=prefix, recursive=True):
        value = await client.get_object(bucket, info.key)
        pairs.append(KVPair(key=info.key, value=value))
    return pairs


class Aggregator:
    """Builds the merged tree returned by ``KVBackend.get``.

    Objects that do not decode to a JSON object are skipped; every other
    object lands in the tree under its logical key, later objects replacing
    earlier ones with the same key.
    """

    def __init__(self, client: ObjectStoreClient, settings: BackendSettings) -> None:
        self.client = client
        self.settings = settings

    async def aggregate(self, prefix: str) -> bytes:
        """Return the merged tree of every object under ``prefix`` as JSON bytes.

        Raises:
            ConfigurationError: If the bucket name or root path is not set
            StoreError: If the listing or any read fails
        """
        bucket = self.settings.bucket_name
        root_path = self.settings.root_path
        if not bucket or not root_path:
            raise ConfigurationError(
                "Bucket name and root path are required for get",
                metadata={"bucket": bucket, "root_path": root_path},
            )

        pairs = await fetch_pairs(self.client, bucket, prefix)

        tree: dict[str, Any] = {}
        for pair in pairs:
            try:
                value = decode_object(pair)
            except DecodeError as e:
                logger.debug("Skipping object that is not a JSON object", extra={"key": pair.key, "error": e.message})
                kv_aggregation_skipped_total.inc()
                add_span_event("kv.object_skipped", {"kv.key": pair.key})
                continue
            tree[to_logical(pair.key, root_path)] = value

        kv_aggregation_objects.observe(len(tree))
        logger.debug(
            "Aggregated objects",
            extra={"prefix": prefix, "listed": len(pairs), "merged": len(tree)},
        )
        return json.dumps(tree, sort_keys=True, separators=(",", ":")).encode("utf-8")
