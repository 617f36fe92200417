"""
Unit tests for StoreFactory and create_cache wiring.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from fixtures.fake_clients import FakeMemcacheClient, FakeRedis
from fixtures.fake_clock import FakeClock

from envcache.cache.manager import Cache
from envcache.config.config_loader import Config
from envcache.crypto.key_vault import FileKeyLocation, RelationalKeyLocation
from envcache.exceptions import ConfigError
from envcache.stores.factory import StoreFactory, create_cache, key_location_for, start_sweeper
from envcache.stores.filesystem import FilesystemStore
from envcache.stores.memcached import MemcachedStore
from envcache.stores.redis_store import RedisStore
from envcache.stores.relational import RelationalStore


def make_config(tmp_path, **cache_overrides):
    return Config(**{
        "cache": {"master_key": "factory-test-key", **cache_overrides},
        "store": {
            "path": str(tmp_path / "cache"),
            "secure_dir": str(tmp_path / "secure"),
            "database": {"url": f"sqlite:///{tmp_path / 'cache.db'}"},
        },
    })


class TestStoreFactory:
    """Store construction from settings."""

    def test_list_types(self):
        assert {"filesystem", "relational", "memcached", "redis"} <= set(StoreFactory.list_types())

    def test_filesystem(self, tmp_path):
        config = make_config(tmp_path)

        store = StoreFactory.create(config.store)

        assert isinstance(store, FilesystemStore)
        assert store.cache_dir == tmp_path / "cache"

    def test_relational(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "relational"

        store = StoreFactory.create(config.store)

        assert isinstance(store, RelationalStore)
        store.database.dispose()

    def test_redis_client_not_connected_eagerly(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "redis"
        config.store.redis.key_prefix = "svc"

        store = StoreFactory.create(config.store)

        assert isinstance(store, RedisStore)
        assert store.key_prefix == "svc"

    def test_memcached_client_not_connected_eagerly(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "memcached"

        store = StoreFactory.create(config.store)

        assert isinstance(store, MemcachedStore)

    def test_unknown_type(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "floppy"

        with pytest.raises(ConfigError):
            StoreFactory.create(config.store)

    def test_register_custom(self, tmp_path):
        client = FakeRedis()
        StoreFactory.register("fake-redis", lambda settings: RedisStore(client, key_prefix="x"))
        try:
            config = make_config(tmp_path)
            config.store.type = "fake-redis"

            store = StoreFactory.create(config.store)

            assert isinstance(store, RedisStore)
        finally:
            StoreFactory._builders.pop("fake-redis", None)


class TestKeyLocation:
    """Where the wrapped DEK is kept per store."""

    def test_file_location_for_network_stores(self, tmp_path):
        config = make_config(tmp_path)

        location = key_location_for(MemcachedStore(FakeMemcacheClient()), config.store)

        assert isinstance(location, FileKeyLocation)
        assert location.secure_dir == tmp_path / "secure"

    def test_table_location_for_relational(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "relational"
        store = StoreFactory.create(config.store)

        assert isinstance(key_location_for(store, config.store), RelationalKeyLocation)
        store.database.dispose()


class TestCreateCache:
    """End-to-end wiring from Config."""

    def test_filesystem_cache(self, tmp_path):
        cache = create_cache(make_config(tmp_path, default_ttl=30, max_size=2, format="yaml"))

        cache.set("k", {"v": 1})

        assert isinstance(cache, Cache)
        assert cache.get("k") == {"v": 1}
        assert cache.format == "yaml"
        assert cache.max_size == 2
        assert (tmp_path / "secure" / "cache_key").exists()

    def test_relational_cache_keeps_key_in_table(self, tmp_path):
        config = make_config(tmp_path)
        config.store.type = "relational"

        cache = create_cache(config)
        cache.set("k", "v")

        assert cache.get("k") == "v"
        assert not (tmp_path / "secure").exists()
        cache.store.database.dispose()

    def test_prebuilt_store_and_clock(self, tmp_path):
        clock = FakeClock()
        store = RedisStore(FakeRedis(clock=clock))

        cache = create_cache(make_config(tmp_path), store=store, clock=clock)
        cache.set("k", 1, ttl=5)
        clock.advance(6)

        assert cache.store is store
        assert cache.get("k") is None

    def test_cipher_and_compression_settings(self, tmp_path):
        cache = create_cache(make_config(
            tmp_path,
            cipher="chacha20-poly1305",
            compression={"enabled": True, "threshold": 10},
        ))
        cache.set("k", "x" * 500)

        assert cache.get("k") == "x" * 500
        assert cache.get_stats()["cipher"] == "chacha20-poly1305"

    def test_unknown_cipher(self, tmp_path):
        with pytest.raises(ConfigError):
            create_cache(make_config(tmp_path, cipher="rot13"))

    def test_production_requires_master_key(self, tmp_path):
        with pytest.raises(ConfigError):
            create_cache(make_config(tmp_path, master_key=None, mode="production"))

    def test_development_uses_default_master_key(self, tmp_path):
        cache = create_cache(make_config(tmp_path, master_key=None))
        cache.set("k", 1)

        assert cache.get("k") == 1


class TestStartSweeper:
    """Background sweep wiring."""

    def test_disabled_by_default(self, tmp_path):
        config = make_config(tmp_path)

        assert start_sweeper(create_cache(config), config) is None

    def test_enabled(self, tmp_path):
        config = make_config(tmp_path, sweep_interval=30)

        sweeper = start_sweeper(create_cache(config), config)
        try:
            assert sweeper.is_running
            assert sweeper.interval == 30
        finally:
            sweeper.stop(timeout=5)
