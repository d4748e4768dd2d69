"""Mapping between storage keys and logical configuration keys.

A storage key such as ``config/service/db.json`` maps to the logical key
``service/db`` when the root path is ``config/``. The mapping is best
effort: it is applied only to keys read back by ``get`` and nothing is
validated.
"""

from __future__ import annotations

JSON_SUFFIX = ".json"


def to_logical(storage_key: str, root_path: str) -> str:
    """Strip the ``.json`` suffix, then the root path, from a storage key.

    Each is removed once, at its first occurrence, and in that order.

    Example:
        >>> to_logical("config/service/db.json", "config/")
        'service/db'
    """
    key = storage_key.replace(JSON_SUFFIX, "", 1)
    if root_path:
        key = key.replace(root_path, "", 1)
    return key


def to_storage(logical_key: str, root_path: str) -> str:
    """Build the conventional storage key for a logical key.

    Example:
        >>> to_storage("service/db", "config/")
        'config/service/db.json'
    """
    return f"{root_path}{logical_key}{JSON_SUFFIX}"
