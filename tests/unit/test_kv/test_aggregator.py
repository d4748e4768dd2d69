"""Unit tests for aggregated reads (KVBackend.get)."""

import json

import pytest

from bucket_kv.core.exceptions import ConfigurationError, DecodeError, StoreError
from bucket_kv.infra.metrics import REGISTRY
from bucket_kv.kv import KVBackend, KVPair
from bucket_kv.kv.aggregator import Aggregator, decode_object
from tests.utils import FakeObjectStore, make_settings


def _skipped() -> float:
    return REGISTRY.get_sample_value("kv_aggregation_skipped_total") or 0.0


@pytest.mark.unit
class TestDecodeObject:
    """Test suite for decode_object."""

    def test_json_object(self):
        """Test that a JSON object body decodes to a dict."""
        assert decode_object(KVPair("cfg/a.json", b'{"x": 1}')) == {"x": 1}

    @pytest.mark.parametrize(
        "body",
        [b"not json", b"[1, 2]", b'"text"', b"42", b"null", b"\xff\xfe", b""],
    )
    def test_rejects_non_objects(self, body):
        """Test that anything but a UTF-8 JSON object raises DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            decode_object(KVPair("cfg/bad.json", body))

        assert exc_info.value.metadata["key"] == "cfg/bad.json"


@pytest.mark.unit
class TestAggregate:
    """Test suite for Aggregator.aggregate through the backend facade."""

    async def test_merges_objects_under_logical_keys(self, backend, store):
        """Test the merged tree for two well-formed objects."""
        store.objects.update({"cfg/a.json": b'{"x":1}', "cfg/b.json": b'{"y":2}'})

        result = await backend.get("")

        assert json.loads(result) == {"a": {"x": 1}, "b": {"y": 2}}

    async def test_output_is_compact_and_sorted(self, backend, store):
        """Test that the JSON encoding is deterministic."""
        store.objects.update({"cfg/b.json": b'{"z": 1, "a": 2}', "cfg/a.json": b"{}"})

        assert await backend.get("") == b'{"a":{},"b":{"a":2,"z":1}}'

    async def test_only_malformed_bodies_yield_empty_object(self, backend, store):
        """Test that a prefix holding only malformed objects returns '{}'."""
        store.objects.update(
            {
                "cfg/a.json": b"not json",
                "cfg/b.json": b"[1, 2, 3]",
                "cfg/c.json": b"\xff\xfe\xfd",
            }
        )

        assert await backend.get("") == b"{}"

    async def test_empty_prefix_listing_yields_empty_object(self, backend):
        """Test that an empty listing returns '{}'."""
        assert await backend.get("cfg/") == b"{}"

    async def test_malformed_entries_are_skipped_and_counted(self, backend, store):
        """Test tolerant aggregation keeps the good entries and counts the bad ones."""
        store.objects.update({"cfg/good.json": b'{"ok": true}', "cfg/bad.json": b"{"})
        before = _skipped()

        result = await backend.get("")

        assert json.loads(result) == {"good": {"ok": True}}
        assert _skipped() == before + 1

    async def test_duplicate_logical_keys_keep_later_value(self, backend, store):
        """Test that the later of two objects mapping to one logical key wins."""
        # Listing order is lexicographic: "cfg/a" comes before "cfg/a.json"
        store.objects.update({"cfg/a": b'{"v": "first"}', "cfg/a.json": b'{"v": "second"}'})

        result = json.loads(await backend.get(""))

        assert result == {"a": {"v": "second"}}

    async def test_key_outside_root_path(self, backend, store):
        """Test that keys without the root path are still included, minus the suffix."""
        store.objects.update({"other/x.json": b'{"n": 1}'})

        assert json.loads(await backend.get("other/")) == {"other/x": {"n": 1}}

    async def test_prefix_limits_listing(self, backend, store):
        """Test that only objects under the prefix are read."""
        store.objects.update({"cfg/a/1.json": b'{"i": 1}', "cfg/b/2.json": b'{"i": 2}'})

        result = json.loads(await backend.get("cfg/a/"))

        assert result == {"a/1": {"i": 1}}
        assert store.method_calls("list_objects") == [("list_objects", "cfg", "cfg/a/", True)]
        assert store.method_calls("get_object") == [("get_object", "cfg", "cfg/a/1.json")]

    async def test_fetch_failure_aborts(self, backend, store):
        """Test that a failed read of any listed object fails the whole get."""
        store.objects.update({"cfg/a.json": b'{"x":1}', "cfg/b.json": b'{"y":2}'})
        store.failing_keys.add("cfg/b.json")

        with pytest.raises(StoreError):
            await backend.get("")

    async def test_listing_failure_propagates(self, backend, store):
        """Test that a listing error reaches the caller unchanged."""
        store.list_error = StoreError("List failed: boom")

        with pytest.raises(StoreError, match="boom"):
            await backend.get("")


@pytest.mark.unit
class TestAggregateConfiguration:
    """Test that get refuses to run without its settings."""

    @pytest.mark.parametrize(
        "overrides",
        [{"bucket_name": ""}, {"root_path": ""}, {"bucket_name": "", "root_path": ""}],
    )
    async def test_missing_settings_raise_before_io(self, overrides):
        """Test ConfigurationError with zero store calls."""
        store = FakeObjectStore({"cfg/a.json": b"{}"})
        backend = KVBackend.new(["localhost:9000"], make_settings(**overrides), client=store)

        with pytest.raises(ConfigurationError):
            await backend.get("")

        assert store.calls == []

    async def test_aggregator_used_directly(self):
        """Test the Aggregator without the facade."""
        store = FakeObjectStore({"cfg/a.json": b'{"x": 1}'})
        aggregator = Aggregator(store, make_settings())

        assert await aggregator.aggregate("") == b'{"a":{"x":1}}'
