"""Values exchanged with callers of the key/value backend."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class KVPair:
    """One listed object.

    Attributes:
        key: Storage key, exactly as stored
        value: Raw object body
    """

    key: str
    value: bytes


KVPairs = list[KVPair]


@dataclass(frozen=True, slots=True)
class ValueUpdated:
    """The watched key's current value, fetched after a bucket notification.

    Attributes:
        key: Watched key
        value: Value read after the notification
        trigger: Logical key of the object whose notification caused the read
    """

    key: str
    value: bytes
    trigger: str = ""


@dataclass(frozen=True, slots=True)
class WatchErrorEvent:
    """A failure inside a subscription. The subscription keeps running."""

    error: Exception


ChangeEvent = ValueUpdated | WatchErrorEvent
