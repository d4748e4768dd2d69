"""Key/value operations on top of the object store."""

from bucket_kv.kv.aggregator import Aggregator
from bucket_kv.kv.backend import KVBackend
from bucket_kv.kv.keys import to_logical, to_storage
from bucket_kv.kv.types import ChangeEvent, KVPair, KVPairs, ValueUpdated, WatchErrorEvent
from bucket_kv.kv.watcher import ChangeStream, Watcher

__all__ = [
    "Aggregator",
    "ChangeEvent",
    "ChangeStream",
    "KVBackend",
    "KVPair",
    "KVPairs",
    "ValueUpdated",
    "WatchErrorEvent",
    "Watcher",
    "to_logical",
    "to_storage",
]
