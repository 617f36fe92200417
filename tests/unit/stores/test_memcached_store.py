"""
Unit tests for MemcachedStore.
"""

import hashlib

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from fixtures.fake_clients import FakeMemcacheClient
from fixtures.fake_clock import FakeClock

from envcache.exceptions import StorageError
from envcache.stores.memcached import MAX_KEY_LENGTH, MAX_RELATIVE_EXPIRE, MemcachedStore


class TestMemcachedStore:
    """Tests for Memcached-backed storage."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def client(self, clock):
        return FakeMemcacheClient(clock=clock)

    @pytest.fixture
    def store(self, client):
        return MemcachedStore(client, key_prefix="test:")

    def test_write_read(self, store, client):
        assert store.write("k", b"blob", ttl=60) is True

        assert store.read("k") == b"blob"
        assert client.keys() == ["test:k"]

    def test_read_missing(self, store):
        assert store.read("absent") is None

    def test_native_expiry(self, store, client, clock):
        store.write("k", b"v", ttl=30)
        assert client.expires["test:k"] == 30

        clock.advance(31)

        assert store.read("k") is None

    def test_long_ttl_not_sent_as_timestamp(self, store, client):
        store.write("k", b"v", ttl=MAX_RELATIVE_EXPIRE + 1)

        assert client.expires["test:k"] == 0

    def test_delete(self, store):
        store.write("k", b"v")

        assert store.delete("k") is True
        assert store.delete("k") is False

    def test_unsafe_keys_hashed(self, store, client):
        store.write("has space", b"a")
        store.write("x" * 300, b"b")

        for key in client.keys():
            assert " " not in key
            assert len(key) <= MAX_KEY_LENGTH
            assert key.startswith("test:")
        assert store.read("has space") == b"a"
        assert store.read("x" * 300) == b"b"

    def test_digest_shaped_key_does_not_collide(self, store, client):
        digest = hashlib.sha256("has space".encode("utf-8")).hexdigest()

        store.write("has space", b"hashed")
        store.write(digest, b"verbatim")
        store.write(f"h:{digest}", b"marked")

        assert len(client.keys()) == 3
        assert store.read("has space") == b"hashed"
        assert store.read(digest) == b"verbatim"
        assert store.read(f"h:{digest}") == b"marked"

    def test_clear(self, store):
        store.write("a", b"1")
        store.write("b", b"2")

        assert store.clear() is True

        assert store.read("a") is None
        assert store.read("b") is None

    def test_backend_failure(self, store, client):
        client.fail = True

        with pytest.raises(StorageError) as exc_info:
            store.write("k", b"v")

        assert exc_info.value.context == {"backend": "memcached", "key": "k"}
        with pytest.raises(StorageError):
            store.read("k")
        with pytest.raises(StorageError):
            store.clear()
        assert store.get_stats()["errors"] == 3
