"""
envcache - Encrypted Pluggable Cache
Envelope-encrypted key/value cache with TTL expiry and FIFO eviction
over filesystem, relational, Memcached and Redis backends

Version: 1.0.0
"""

from envcache.cache.manager import Cache
from envcache.config.config_loader import Config, ConfigLoader
from envcache.exceptions import CacheError, ConfigError, CryptoError, StorageError
from envcache.stores.factory import StoreFactory, create_cache

__version__ = "1.0.0"
__all__ = [
    "Cache",
    "Config",
    "ConfigLoader",
    "StoreFactory",
    "create_cache",
    "CacheError",
    "ConfigError",
    "CryptoError",
    "StorageError",
]
