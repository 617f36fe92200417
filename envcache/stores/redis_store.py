"""
Redis Cache Store
Stores blobs in Redis through a synchronous redis-py client

Features:
- Keys namespaced as <prefix>:<key>
- Entry TTL mirrored as the Redis key expiry
- clear() deletes only the namespace (SCAN + DEL), or FLUSHDB with no prefix
"""

from typing import Optional

import redis
from loguru import logger

from envcache.exceptions import StorageError
from envcache.stores.base import CacheStore, StoreType


class RedisStore(CacheStore):
    """
    Cache store backed by Redis.

    Example:
        client = redis.Redis(host="localhost", port=6379, db=0, socket_timeout=5)
        store = RedisStore(client, key_prefix="envcache")
    """

    store_type = StoreType.REDIS

    def __init__(self, client: "redis.Redis", key_prefix: str = "envcache"):
        super().__init__()
        self._client = client
        self.key_prefix = key_prefix
        logger.info(f"RedisStore initialized (prefix={key_prefix!r})")

    def _make_key(self, key: str) -> str:
        """Create full key with prefix"""
        if not self.key_prefix:
            return key
        return f"{self.key_prefix}:{key}"

    def _fail(self, action: str, error: Exception, key: Optional[str] = None) -> StorageError:
        self._stats["errors"] += 1
        context = {"backend": "redis"}
        if key is not None:
            context["key"] = key
        logger.error(f"Redis {action} error: {error}")
        return StorageError(f"Redis {action} failed: {error}", context=context)

    def write(self, key: str, blob: bytes, ttl: Optional[int] = None) -> bool:
        try:
            result = self._client.set(self._make_key(key), blob, ex=ttl if ttl else None)
        except redis.RedisError as e:
            raise self._fail("SET", e, key) from e

        if result:
            self._stats["writes"] += 1
        return bool(result)

    def read(self, key: str) -> Optional[bytes]:
        self._stats["reads"] += 1
        try:
            return self._client.get(self._make_key(key))
        except redis.RedisError as e:
            raise self._fail("GET", e, key) from e

    def delete(self, key: str) -> bool:
        try:
            deleted = self._client.delete(self._make_key(key))
        except redis.RedisError as e:
            raise self._fail("DELETE", e, key) from e

        if deleted:
            self._stats["deletes"] += 1
        return deleted > 0

    def clear(self) -> bool:
        try:
            if not self.key_prefix:
                return bool(self._client.flushdb())

            # Use SCAN to find keys (safer than KEYS for large datasets)
            count = 0
            batch = []
            for full_key in self._client.scan_iter(match=f"{self.key_prefix}:*", count=100):
                batch.append(full_key)
                if len(batch) >= 100:
                    count += self._client.delete(*batch)
                    batch = []
            if batch:
                count += self._client.delete(*batch)
        except redis.RedisError as e:
            raise self._fail("CLEAR", e) from e

        logger.debug(f"Removed {count} keys under prefix {self.key_prefix!r}")
        return True
