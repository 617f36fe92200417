"""
Store Factory
Creates cache stores and fully wired Cache instances from configuration
"""

from typing import Callable, Dict, Optional

import redis
from loguru import logger
from pymemcache.client.base import Client as MemcacheClient

from envcache.cache.compression import PayloadCompressor
from envcache.cache.manager import Cache
from envcache.cache.sweeper import ExpirySweeper
from envcache.config.config_loader import Config, StoreSettings, get_config, resolve_master_key
from envcache.crypto.key_vault import FileKeyLocation, KeyLocation, KeyVault, RelationalKeyLocation
from envcache.crypto.provider import get_crypto_provider
from envcache.database.connection import DatabaseManager
from envcache.exceptions import ConfigError
from envcache.stores.base import CacheStore, StoreType
from envcache.stores.filesystem import FilesystemStore
from envcache.stores.memcached import MemcachedStore
from envcache.stores.redis_store import RedisStore
from envcache.stores.relational import RelationalStore


def _build_filesystem(settings: StoreSettings) -> CacheStore:
    return FilesystemStore(settings.path)


def _build_relational(settings: StoreSettings) -> CacheStore:
    db = settings.database
    return RelationalStore(DatabaseManager(url=db.url, echo=db.echo, pool_size=db.pool_size))


def _build_memcached(settings: StoreSettings) -> CacheStore:
    mc = settings.memcached
    client = MemcacheClient(
        (mc.host, mc.port),
        connect_timeout=mc.connect_timeout,
        timeout=mc.timeout,
    )
    return MemcachedStore(client, key_prefix=mc.key_prefix)


def _build_redis(settings: StoreSettings) -> CacheStore:
    rc = settings.redis
    client = redis.Redis(
        host=rc.host,
        port=rc.port,
        db=rc.db,
        password=rc.password or None,
        socket_timeout=rc.socket_timeout,
        socket_connect_timeout=rc.socket_connect_timeout,
        decode_responses=False,  # Blobs are binary
    )
    return RedisStore(client, key_prefix=rc.key_prefix)


class StoreFactory:
    """
    Factory for cache stores.

    Supports:
    - Filesystem
    - Relational (any SQLAlchemy URL)
    - Memcached
    - Redis
    - Custom stores (via registration)

    Example:
        settings = StoreSettings(type="redis")
        store = StoreFactory.create(settings)
    """

    # Registry of store types to builders
    _builders: Dict[str, Callable[[StoreSettings], CacheStore]] = {
        StoreType.FILESYSTEM.value: _build_filesystem,
        StoreType.RELATIONAL.value: _build_relational,
        StoreType.MEMCACHED.value: _build_memcached,
        StoreType.REDIS.value: _build_redis,
    }

    @classmethod
    def register(cls, store_type: str, builder: Callable[[StoreSettings], CacheStore]) -> None:
        """
        Register a custom store builder.

        Args:
            store_type: Type identifier used in store.type
            builder: Callable taking StoreSettings and returning a CacheStore
        """
        cls._builders[store_type] = builder
        logger.info(f"Registered store: {store_type}")

    @classmethod
    def create(cls, settings: StoreSettings) -> CacheStore:
        """
        Create a store from configuration.

        Raises:
            ConfigError: Unknown store type
        """
        builder = cls._builders.get(settings.type)
        if builder is None:
            raise ConfigError(
                f"Unknown store type: {settings.type}",
                context={"available": cls.list_types()},
            )
        return builder(settings)

    @classmethod
    def list_types(cls):
        """List registered store types."""
        return sorted(cls._builders)


def key_location_for(store: CacheStore, settings: StoreSettings) -> KeyLocation:
    """
    Where the wrapped data key lives for a store.

    Relational stores keep it in the `cache_vault` table next to the cache
    table; every other store keeps it in the secure directory, since
    Memcached and Redis clears may flush the whole instance.
    """
    if isinstance(store, RelationalStore):
        return RelationalKeyLocation(store.database)
    return FileKeyLocation(settings.secure_dir)


def create_cache(
    config: Optional[Config] = None,
    store: Optional[CacheStore] = None,
    **cache_kwargs,
) -> Cache:
    """
    Build a Cache from configuration.

    Args:
        config: Configuration (global ConfigLoader config if None)
        store: Pre-built store; built from config.store if None
        **cache_kwargs: Extra Cache arguments (e.g. clock)

    Returns:
        Ready-to-use Cache
    """
    config = config or get_config()
    settings = config.cache

    crypto = get_crypto_provider(settings.cipher)
    store = store or StoreFactory.create(config.store)
    vault = KeyVault(
        master_key=resolve_master_key(settings),
        crypto=crypto,
        location=key_location_for(store, config.store),
    )
    compressor = PayloadCompressor(
        enabled=settings.compression.enabled,
        level=settings.compression.level,
        threshold=settings.compression.threshold,
    )

    return Cache(
        store=store,
        key_vault=vault,
        crypto=crypto,
        default_ttl=settings.default_ttl,
        max_size=settings.max_size,
        format=settings.format,
        compressor=compressor,
        hash_keys=settings.hash_keys,
        **cache_kwargs,
    )


def start_sweeper(cache: Cache, config: Optional[Config] = None) -> Optional[ExpirySweeper]:
    """
    Start a background expiry sweep if cache.sweep_interval is positive.

    Returns:
        The running sweeper, or None when sweeping is disabled
    """
    config = config or get_config()
    interval = config.cache.sweep_interval
    if interval <= 0:
        return None

    sweeper = ExpirySweeper(cache, interval=interval)
    sweeper.start()
    return sweeper
