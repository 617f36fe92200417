"""
envcache storage backends

Every store implements the CacheStore blob contract:
- FilesystemStore: one file per entry in a dedicated directory
- RelationalStore: one row per entry in the `cache` table (SQLAlchemy)
- MemcachedStore: dedicated Memcached instance (pymemcache)
- RedisStore: Redis namespace (redis-py)
"""

from envcache.stores.base import CacheStore, StoreType
from envcache.stores.filesystem import FilesystemStore, sanitize_key
from envcache.stores.relational import RelationalStore
from envcache.stores.memcached import MemcachedStore
from envcache.stores.redis_store import RedisStore
from envcache.stores.factory import StoreFactory, create_cache, key_location_for, start_sweeper

__all__ = [
    "CacheStore",
    "StoreType",
    "FilesystemStore",
    "sanitize_key",
    "RelationalStore",
    "MemcachedStore",
    "RedisStore",
    "StoreFactory",
    "create_cache",
    "key_location_for",
    "start_sweeper",
]
