"""
envcache configuration
"""

from envcache.config.config_loader import (
    Config,
    CacheSettings,
    CompressionConfig,
    StoreSettings,
    DatabaseConfig,
    MemcachedConfig,
    RedisConfig,
    LoggingConfig,
    ConfigLoader,
    INSECURE_MASTER_KEY,
    get_config,
    resolve_master_key,
)

__all__ = [
    "Config",
    "CacheSettings",
    "CompressionConfig",
    "StoreSettings",
    "DatabaseConfig",
    "MemcachedConfig",
    "RedisConfig",
    "LoggingConfig",
    "ConfigLoader",
    "INSECURE_MASTER_KEY",
    "get_config",
    "resolve_master_key",
]
