"""
Unit tests for RedisStore.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from fixtures.fake_clients import FakeRedis
from fixtures.fake_clock import FakeClock

from envcache.exceptions import StorageError
from envcache.stores.redis_store import RedisStore


class TestRedisStore:
    """Tests for Redis-backed storage."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def client(self, clock):
        return FakeRedis(clock=clock)

    @pytest.fixture
    def store(self, client):
        return RedisStore(client, key_prefix="app")

    def test_make_key(self, store):
        assert store._make_key("user:1") == "app:user:1"

    def test_make_key_without_prefix(self, client):
        assert RedisStore(client, key_prefix="")._make_key("user:1") == "user:1"

    def test_write_read(self, store, client):
        assert store.write("k", b"\xffblob", ttl=60) is True

        assert store.read("k") == b"\xffblob"
        assert client.ttl("app:k") == 60

    def test_write_without_ttl(self, store, client):
        store.write("k", b"v")

        assert client.ttl("app:k") == -1

    def test_native_expiry(self, store, clock):
        store.write("k", b"v", ttl=10)
        clock.advance(11)

        assert store.read("k") is None

    def test_read_missing(self, store):
        assert store.read("absent") is None

    def test_delete(self, store):
        store.write("k", b"v")

        assert store.delete("k") is True
        assert store.delete("k") is False

    def test_clear_scoped_to_prefix(self, store, client):
        store.write("a", b"1")
        store.write("b", b"2")
        client.set("other:a", b"foreign")
        client.set("unprefixed", b"foreign")

        assert store.clear() is True

        assert client.keys() == ["other:a", "unprefixed"]
        assert "FLUSHDB" not in client.calls

    def test_clear_large_namespace(self, store, client):
        for i in range(250):
            store.write(f"k{i}", b"v")

        store.clear()

        assert client.keys() == []

    def test_clear_without_prefix_flushes(self, client):
        store = RedisStore(client, key_prefix="")
        store.write("a", b"1")
        client.set("other", b"x")

        store.clear()

        assert client.keys() == []
        assert "FLUSHDB" in client.calls

    def test_backend_failure(self, store, client):
        client.fail = True

        with pytest.raises(StorageError) as exc_info:
            store.read("k")

        assert exc_info.value.context == {"backend": "redis", "key": "k"}
        with pytest.raises(StorageError):
            store.delete("k")
        with pytest.raises(StorageError):
            store.clear()
