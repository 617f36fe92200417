"""
Base Cache Store Interface
Defines the raw blob contract every storage backend implements

Stores know nothing about TTL checks, encryption or eviction; the Cache
orchestrator does all of that once for every backend. A store persists an
opaque encrypted blob under a key.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional


class StoreType(str, Enum):
    """Supported store types."""
    FILESYSTEM = "filesystem"
    RELATIONAL = "relational"
    MEMCACHED = "memcached"
    REDIS = "redis"


class CacheStore(ABC):
    """
    Abstract base class for cache stores.

    Contract:
    - write() overwrites, and is idempotent
    - read() returns None on a miss; a miss is not an error
    - delete() of a missing key returns False without raising
    - clear() removes only cache-owned data at the storage location
    - backend I/O failures raise StorageError

    The store borrows its connection handle (client, engine, directory) and
    never closes it; that is the caller's job.
    """

    store_type: StoreType

    def __init__(self):
        self._stats = {
            "reads": 0,
            "writes": 0,
            "deletes": 0,
            "errors": 0,
        }

    @abstractmethod
    def write(self, key: str, blob: bytes, ttl: Optional[int] = None) -> bool:
        """
        Store blob under key, replacing any existing value.

        Args:
            key: Cache key
            blob: Encrypted payload
            ttl: Entry TTL in seconds, for backends that record or enforce it

        Returns:
            True if the backend accepted the write
        """
        ...

    @abstractmethod
    def read(self, key: str) -> Optional[bytes]:
        """Return the blob stored under key, or None."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key. Returns False if nothing was stored under it."""
        ...

    @abstractmethod
    def clear(self) -> bool:
        """Remove every cache-owned entry."""
        ...

    def bind_format(self, extension: str) -> None:
        """Called when the cache's serialization format changes."""
        pass

    def describe(self) -> str:
        """Short human-readable location, for logs."""
        return self.store_type.value

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            "store": self.store_type.value,
            **self._stats,
        }
