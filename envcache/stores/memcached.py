"""
Memcached Cache Store
Stores blobs in a dedicated Memcached instance through pymemcache

The entry TTL is also passed as the Memcached expiry, so the server drops
entries on its own. The cache's TTL check stays authoritative.
"""

import hashlib
import socket
from typing import Optional

from loguru import logger
from pymemcache.exceptions import MemcacheError

from envcache.exceptions import StorageError
from envcache.stores.base import CacheStore, StoreType

# Memcached protocol limit
MAX_KEY_LENGTH = 250

# Marks digest keys; reserved at the start of caller keys
HASH_MARKER = "h:"

# Memcached treats expiry values above 30 days as absolute unix timestamps
MAX_RELATIVE_EXPIRE = 60 * 60 * 24 * 30


class MemcachedStore(CacheStore):
    """
    Cache store backed by Memcached.

    Example:
        from pymemcache.client.base import Client
        client = Client(("localhost", 11211), connect_timeout=5, timeout=5)
        store = MemcachedStore(client)
    """

    store_type = StoreType.MEMCACHED

    def __init__(self, client, key_prefix: str = "envcache:"):
        super().__init__()
        self._client = client
        self.key_prefix = key_prefix
        logger.info(f"MemcachedStore initialized (prefix={key_prefix!r})")

    def _make_key(self, key: str) -> str:
        """
        Prefix the key; hash keys Memcached cannot carry verbatim.

        Hashed keys are HASH_MARKER plus the SHA-256 hex digest. Caller keys
        that already start with HASH_MARKER are hashed as well, so a verbatim
        key never equals the hashed form of another key.
        """
        full_key = f"{self.key_prefix}{key}"
        if (
            key.startswith(HASH_MARKER)
            or len(full_key.encode("utf-8")) > MAX_KEY_LENGTH
            or any(c.isspace() or ord(c) < 33 or ord(c) > 126 for c in full_key)
        ):
            digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
            return f"{self.key_prefix}{HASH_MARKER}{digest}"
        return full_key

    def _fail(self, action: str, error: Exception, key: Optional[str] = None) -> StorageError:
        self._stats["errors"] += 1
        context = {"backend": "memcached"}
        if key is not None:
            context["key"] = key
        logger.error(f"Memcached {action} error: {error}")
        return StorageError(f"Memcached {action} failed: {error}", context=context)

    def write(self, key: str, blob: bytes, ttl: Optional[int] = None) -> bool:
        expire = ttl if ttl and ttl <= MAX_RELATIVE_EXPIRE else 0
        try:
            result = self._client.set(self._make_key(key), blob, expire=expire, noreply=False)
        except (MemcacheError, socket.error) as e:
            raise self._fail("SET", e, key) from e

        if result:
            self._stats["writes"] += 1
        return bool(result)

    def read(self, key: str) -> Optional[bytes]:
        self._stats["reads"] += 1
        try:
            return self._client.get(self._make_key(key))
        except (MemcacheError, socket.error) as e:
            raise self._fail("GET", e, key) from e

    def delete(self, key: str) -> bool:
        try:
            result = self._client.delete(self._make_key(key), noreply=False)
        except (MemcacheError, socket.error) as e:
            raise self._fail("DELETE", e, key) from e

        if result:
            self._stats["deletes"] += 1
        return bool(result)

    def clear(self) -> bool:
        # Memcached cannot enumerate keys; the instance is assumed dedicated
        try:
            return bool(self._client.flush_all(noreply=False))
        except (MemcacheError, socket.error) as e:
            raise self._fail("FLUSH_ALL", e) from e
