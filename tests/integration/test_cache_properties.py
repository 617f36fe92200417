"""
Integration tests for cache behaviour across every backend.

The same properties must hold over filesystem, relational (SQLite),
Memcached and Redis stores:
- Round trip in every serialization format
- TTL expiry removes the entry
- Eviction keeps at most max_size entries, oldest first
- Tampered entries read as misses
- The wrapped data key survives restarts; a wrong master key loses entries
- Delete is idempotent; clear leaves foreign data alone
"""

import pytest
from sqlalchemy import text

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from fixtures.fake_clients import FakeMemcacheClient, FakeRedis
from fixtures.fake_clock import FakeClock
from fixtures.sample_values import SAMPLE_VALUES

from envcache.cache.manager import Cache
from envcache.config.config_loader import StoreSettings
from envcache.crypto.key_vault import KeyVault
from envcache.crypto.provider import AESGCMProvider
from envcache.database.connection import DatabaseManager
from envcache.stores.factory import key_location_for
from envcache.stores.filesystem import FilesystemStore
from envcache.stores.memcached import MemcachedStore
from envcache.stores.redis_store import RedisStore
from envcache.stores.relational import RelationalStore


class Backend:
    """One storage location that several Cache instances can share."""

    def __init__(self, kind, tmp_path):
        self.kind = kind
        self.tmp_path = tmp_path
        self.clock = FakeClock()
        self.settings = StoreSettings(
            type=kind,
            path=str(tmp_path / "cache"),
            secure_dir=str(tmp_path / "secure"),
        )
        self.database = None
        self.client = None
        if kind == "relational":
            self.database = DatabaseManager(url=f"sqlite:///{tmp_path / 'cache.db'}")
        elif kind == "memcached":
            self.client = FakeMemcacheClient(clock=self.clock)
        elif kind == "redis":
            self.client = FakeRedis(clock=self.clock)

    def make_store(self):
        if self.kind == "filesystem":
            return FilesystemStore(self.settings.path)
        if self.kind == "relational":
            return RelationalStore(self.database)
        if self.kind == "memcached":
            return MemcachedStore(self.client)
        return RedisStore(self.client)

    def make_cache(self, master_key="integration-key", **kwargs):
        crypto = AESGCMProvider()
        store = self.make_store()
        vault = KeyVault(master_key, crypto, key_location_for(store, self.settings))
        return Cache(store, vault, crypto, clock=self.clock, **kwargs)

    def close(self):
        if self.database is not None:
            self.database.dispose()


@pytest.fixture(params=["filesystem", "relational", "memcached", "redis"])
def backend(request, tmp_path):
    backend = Backend(request.param, tmp_path)
    yield backend
    backend.close()


class TestRoundTrip:
    """Values come back equal in every format."""

    @pytest.mark.parametrize("fmt", ["json", "xml", "yaml"])
    def test_all_sample_values(self, backend, fmt):
        cache = backend.make_cache(format=fmt)

        for name, value in SAMPLE_VALUES.items():
            cache.set(name, value)

        for name, value in SAMPLE_VALUES.items():
            assert cache.lookup(name) == (value, True), name

    def test_stored_none_distinguished_from_miss(self, backend):
        cache = backend.make_cache()
        cache.set("empty", None)

        assert cache.lookup("empty") == (None, True)
        assert cache.lookup("absent") == (None, False)


class TestExpiry:
    """Entries past their TTL are gone."""

    def test_expired_entry_removed(self, backend):
        cache = backend.make_cache()
        cache.set("k", "v", ttl=10)

        backend.clock.advance(5)
        assert cache.get("k") == "v"

        backend.clock.advance(6)
        assert cache.lookup("k") == (None, False)
        assert cache.store.read("k") is None


class TestEviction:
    """FIFO eviction bound."""

    def test_oldest_evicted(self, backend):
        cache = backend.make_cache(max_size=3)
        for key in ("a", "b", "c", "d"):
            cache.set(key, key)

        assert cache.lookup("a") == (None, False)
        assert cache.store.read("a") is None
        assert [cache.get(k) for k in ("b", "c", "d")] == ["b", "c", "d"]


class TestIntegrity:
    """Tamper detection and key persistence."""

    def test_tampered_blob_is_miss(self, backend):
        cache = backend.make_cache()
        cache.set("k", {"balance": 100})
        blob = bytearray(cache.store.read("k"))
        blob[-1] ^= 0x01
        cache.store.write("k", bytes(blob), 600)

        assert cache.lookup("k") == (None, False)
        assert cache.store.read("k") is None

    def test_key_survives_restart(self, backend):
        backend.make_cache().set("k", "persisted")

        assert backend.make_cache().get("k") == "persisted"

    def test_wrong_master_key_loses_entries(self, backend):
        backend.make_cache(master_key="first").set("k", "v")

        cache = backend.make_cache(master_key="second")

        assert cache.lookup("k") == (None, False)
        cache.set("k", "fresh")
        assert cache.get("k") == "fresh"


class TestDeleteAndClear:
    """Delete idempotence and clear scoping."""

    def test_delete_idempotent(self, backend):
        cache = backend.make_cache()
        cache.set("k", 1)

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.lookup("k") == (None, False)

    def test_clear_removes_entries(self, backend):
        cache = backend.make_cache()
        for key in ("a", "b", "c"):
            cache.set(key, key)

        cache.clear()

        for key in ("a", "b", "c"):
            assert cache.lookup(key) == (None, False)

    def test_clear_keeps_foreign_data(self, backend):
        cache = backend.make_cache()
        cache.set("a", 1)

        if backend.kind == "filesystem":
            foreign = backend.tmp_path / "cache" / "keep.txt"
            foreign.write_text("x")
            cache.clear()
            assert foreign.exists()
        elif backend.kind == "relational":
            with backend.database.engine.begin() as conn:
                conn.execute(text("CREATE TABLE app (id INTEGER PRIMARY KEY)"))
                conn.execute(text("INSERT INTO app (id) VALUES (1)"))
            cache.clear()
            with backend.database.engine.connect() as conn:
                assert conn.execute(text("SELECT COUNT(*) FROM app")).scalar() == 1
        elif backend.kind == "redis":
            backend.client.set("other:key", b"x")
            cache.clear()
            assert backend.client.get("other:key") == b"x"
        else:
            # Memcached instances are dedicated to the cache
            cache.clear()

        assert cache.lookup("a") == (None, False)

    def test_usable_after_clear(self, backend):
        cache = backend.make_cache()
        cache.set("a", 1)
        cache.clear()

        cache.set("a", 2)

        assert cache.get("a") == 2
