"""
Cache Orchestrator for envcache
Encrypted key/value cache with TTL expiry and FIFO eviction over any store

Data flow:
- set: encode {created_at, ttl, data} -> compress -> encrypt with DEK
       -> store.write -> enqueue key -> evict oldest keys past max_size
- get: store.read -> decrypt -> decompress -> decode -> TTL check
       -> value, or a miss (expired and corrupt entries are deleted)

TTL, encryption and eviction live here only; stores just persist blobs.

Expiry is checked lazily on read. Expired entries stay in the backend until
read again, swept by sweep_expired(), or evicted (Memcached and Redis also
expire them natively).

Thread safety: a single re-entrant lock per Cache serialises the
write -> enqueue -> evict sequence and the read -> delete-on-expiry
sequence, so concurrent callers cannot double-evict or interleave writes
to the same key through one instance. Separate Cache instances (or
processes) sharing a backend are not coordinated.
"""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple, TYPE_CHECKING

from loguru import logger

from envcache.cache.codecs import CodecRegistry, SerializationCodec, default_registry
from envcache.cache.compression import PayloadCompressor
from envcache.cache.eviction import EvictionQueue
from envcache.crypto.key_vault import KeyVault
from envcache.crypto.provider import CryptoProvider
from envcache.exceptions import CacheError, ConfigError, CryptoError, StorageError

if TYPE_CHECKING:
    from envcache.stores.base import CacheStore

# Results of inspecting a stored entry
_LIVE = "live"
_MISSING = "missing"
_EXPIRED = "expired"
_CORRUPT = "corrupt"


class Cache:
    """
    Encrypted cache over a pluggable CacheStore.

    Usage:
    ```python
    cache = Cache(
        store=FilesystemStore("./storage/cache"),
        key_vault=KeyVault(master_key, crypto, FileKeyLocation("./storage/secure")),
        crypto=crypto,
        default_ttl=600,
        max_size=100,
    )
    cache.set("user:1", {"name": "Ada"}, ttl=60)
    value, found = cache.lookup("user:1")
    ```
    """

    def __init__(
        self,
        store: "CacheStore",
        key_vault: KeyVault,
        crypto: CryptoProvider,
        default_ttl: int = 600,
        max_size: int = 100,
        format: str = "json",
        codecs: Optional[CodecRegistry] = None,
        compressor: Optional[PayloadCompressor] = None,
        hash_keys: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        if not isinstance(default_ttl, int) or default_ttl <= 0:
            raise ConfigError("default_ttl must be a positive integer", context={"default_ttl": default_ttl})
        if not isinstance(max_size, int) or max_size <= 0:
            raise ConfigError("max_size must be a positive integer", context={"max_size": max_size})

        self._store = store
        self._vault = key_vault
        self._crypto = crypto
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._codecs = codecs or default_registry()
        self._compressor = compressor or PayloadCompressor()
        self.hash_keys = hash_keys
        self._clock = clock

        self._queue = EvictionQueue()
        self._lock = threading.RLock()
        self._codec: SerializationCodec = self._codecs.get(format)
        self._store.bind_format(self._codec.extension)

        self._stats = {
            "sets": 0,
            "hits": 0,
            "misses": 0,
            "expired": 0,
            "corrupt": 0,
            "deletes": 0,
            "evictions": 0,
            "eviction_failures": 0,
        }

        logger.info(
            f"Cache initialized (store={store.describe()}, format={format}, "
            f"cipher={crypto.name}, default_ttl={default_ttl}, max_size={max_size})"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a value.

        Args:
            key: Non-empty cache key
            value: JSON-representable value (mappings, sequences, scalars, None)
            ttl: Seconds to live; None, 0 or negative uses default_ttl

        Returns:
            True once the entry is written

        Raises:
            ValueError: Invalid key, ttl or value
            CacheError: Encryption or backend write failed
        """
        self._validate_key(key)
        ttl = self._resolve_ttl(ttl)

        with self._lock:
            entry = {"created_at": int(self._clock()), "ttl": ttl, "data": value}
            payload = self._compressor.compress(self._codec.encode(entry))
            storage_key = self._storage_key(key)

            try:
                blob = self._crypto.encrypt(payload, self._data_key())
                written = self._store.write(storage_key, blob, ttl)
            except CacheError as e:
                logger.error(f"Cache write failed for key {key}: {e}")
                raise CacheError(
                    f"Failed to write cache entry: {e.message}",
                    context={**e.context, "key": key, "operation": "set"},
                ) from e

            if not written:
                logger.error(f"Backend rejected write for key {key}")
                raise CacheError(
                    "Backend rejected cache write",
                    context={"key": key, "operation": "set", "store": self._store.describe()},
                )

            self._stats["sets"] += 1
            self._queue.enqueue(key)
            self._evict()

        logger.debug(f"Cache SET {key} (ttl={ttl})")
        return True

    def lookup(self, key: str) -> Tuple[Any, bool]:
        """
        Fetch a value.

        Returns:
            (value, True) on a hit, (None, False) on a miss. Expired,
            tampered and undecodable entries are deleted and reported
            as misses.

        Raises:
            ValueError: Invalid key
            CacheError: Backend read or delete failed
        """
        self._validate_key(key)

        with self._lock:
            state, value = self._inspect(key, operation="get")

            if state == _LIVE:
                self._stats["hits"] += 1
                logger.debug(f"Cache HIT {key}")
                return value, True

            self._stats["misses"] += 1
            logger.debug(f"Cache MISS {key} ({state})")
            return None, False

    def get(self, key: str, default: Any = None) -> Any:
        """Fetch a value, or default on a miss."""
        value, found = self.lookup(key)
        return value if found else default

    def delete(self, key: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if an entry was removed, False if none existed

        Raises:
            ValueError: Invalid key
            CacheError: Backend delete failed
        """
        self._validate_key(key)

        with self._lock:
            deleted = self._remove(key, operation="delete")

        if deleted:
            self._stats["deletes"] += 1
        return deleted

    def clear(self) -> bool:
        """
        Remove every cache-managed entry from the store.

        Raises:
            CacheError: Backend clear failed
        """
        with self._lock:
            try:
                result = self._store.clear()
            except StorageError as e:
                raise CacheError(
                    f"Failed to clear cache: {e.message}",
                    context={**e.context, "operation": "clear"},
                ) from e
            self._queue.clear()

        logger.info(f"Cache cleared ({self._store.describe()})")
        return result

    def set_format(self, name: str) -> None:
        """
        Switch serialization format for subsequent reads and writes.

        Raises:
            ConfigError: Unknown format name
        """
        codec = self._codecs.get(name)
        with self._lock:
            self._codec = codec
            self._store.bind_format(codec.extension)
        logger.info(f"Cache format set to {name}")

    def get_format(self) -> str:
        return self._codec.name

    @property
    def format(self) -> str:
        return self._codec.name

    @property
    def store(self) -> "CacheStore":
        return self._store

    def sweep_expired(self) -> int:
        """
        Delete expired and corrupt entries among the keys this cache wrote.

        Returns:
            Number of entries removed
        """
        removed = 0
        for key in self._queue.snapshot():
            with self._lock:
                if key not in self._queue:
                    continue
                state, _ = self._inspect(key, operation="sweep")
            if state in (_EXPIRED, _CORRUPT):
                removed += 1

        if removed:
            logger.info(f"Expiry sweep removed {removed} entries")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            "store": self._store.describe(),
            "format": self._codec.name,
            "cipher": self._crypto.name,
            "queue_length": len(self._queue),
            "max_size": self.max_size,
            **self._stats,
            "hit_rate": self._stats["hits"] / lookups if lookups > 0 else 0,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("Cache key must be a non-empty string")

    def _resolve_ttl(self, ttl: Optional[int]) -> int:
        if ttl is None:
            return self.default_ttl
        if isinstance(ttl, bool) or not isinstance(ttl, int):
            raise ValueError(f"ttl must be an integer or None, got {type(ttl).__name__}")
        if ttl <= 0:
            logger.debug(f"Non-positive ttl {ttl}, using default {self.default_ttl}")
            return self.default_ttl
        return ttl

    def _data_key(self) -> bytes:
        return self._vault.get_data_key()

    def _storage_key(self, key: str) -> str:
        """Identifier the store sees for a cache key."""
        if not self.hash_keys:
            return key
        return self._crypto.keyed_hash(key.encode("utf-8"), self._data_key()).hex()

    def _inspect(self, key: str, operation: str) -> Tuple[str, Any]:
        """
        Read and validate an entry, deleting it if expired or corrupt.

        Returns:
            (state, value); value is only meaningful when state is live
        """
        try:
            storage_key = self._storage_key(key)
            blob = self._store.read(storage_key)
        except CacheError as e:
            raise CacheError(
                f"Failed to read cache entry: {e.message}",
                context={**e.context, "key": key, "operation": operation},
            ) from e

        if blob is None:
            self._queue.discard(key)
            return _MISSING, None

        try:
            payload = self._crypto.decrypt(blob, self._data_key())
            entry = self._codec.decode(self._compressor.decompress(payload))
        except (CryptoError, ValueError) as e:
            logger.warning(f"Dropping unreadable cache entry {key}: {e}")
            self._stats["corrupt"] += 1
            self._remove(key, operation=operation)
            return _CORRUPT, None

        if self._clock() - entry["created_at"] > entry["ttl"]:
            self._stats["expired"] += 1
            self._remove(key, operation=operation)
            return _EXPIRED, None

        return _LIVE, entry["data"]

    def _remove(self, key: str, operation: str) -> bool:
        self._queue.discard(key)
        try:
            return self._store.delete(self._storage_key(key))
        except CacheError as e:
            raise CacheError(
                f"Failed to delete cache entry: {e.message}",
                context={**e.context, "key": key, "operation": operation},
            ) from e

    def _evict(self) -> None:
        """Delete the oldest entries until the queue fits max_size."""
        while len(self._queue) > self.max_size:
            oldest = self._queue.dequeue()
            try:
                self._store.delete(self._storage_key(oldest))
                self._stats["evictions"] += 1
                logger.debug(f"Evicted cache entry {oldest}")
            except CacheError as e:
                # Never fails the set that triggered it
                self._stats["eviction_failures"] += 1
                logger.warning(f"Failed to evict cache entry {oldest}: {e}")
