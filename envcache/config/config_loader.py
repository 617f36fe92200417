"""
Configuration Loader for envcache
Loads and manages configuration from YAML files
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from loguru import logger

from envcache.exceptions import ConfigError


INSECURE_MASTER_KEY = "default_master_key"


class CompressionConfig(BaseModel):
    """Payload compression configuration."""
    enabled: bool = False
    level: int = 6
    threshold: int = 1024  # Only compress payloads larger than this


class CacheSettings(BaseModel):
    """Cache orchestrator configuration."""
    default_ttl: int = 600
    max_size: int = 100
    format: str = "json"
    cipher: str = "aes-gcm"
    master_key: Optional[str] = None
    mode: str = "development"  # development | production
    hash_keys: bool = False
    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    sweep_interval: float = 0.0  # 0 = no background sweep


class DatabaseConfig(BaseModel):
    """Relational store configuration."""
    url: str = "sqlite:///./storage/cache.db"
    echo: bool = False
    pool_size: int = 5


class MemcachedConfig(BaseModel):
    """Memcached store configuration."""
    host: str = "localhost"
    port: int = 11211
    connect_timeout: float = 5.0
    timeout: float = 5.0
    key_prefix: str = "envcache:"


class RedisConfig(BaseModel):
    """Redis store configuration."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    key_prefix: str = "envcache"


class StoreSettings(BaseModel):
    """Backend selection and connection settings."""
    type: str = "filesystem"  # filesystem | relational | memcached | redis
    path: str = "./storage/cache"
    secure_dir: str = "./storage/secure"
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    memcached: MemcachedConfig = Field(default_factory=MemcachedConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)


class LoggingConfig(BaseModel):
    """Logging sink configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    rotation: str = "10 MB"


class Config(BaseModel):
    """Main configuration model."""
    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def resolve_master_key(settings: CacheSettings) -> str:
    """
    Return the master key to wrap the data-encryption key with.

    Production mode requires an explicit key. Development mode falls back
    to an insecure placeholder so local runs and tests work unconfigured.
    """
    if settings.master_key:
        return settings.master_key

    if settings.mode == "production":
        raise ConfigError(
            "A master key is required in production mode",
            context={"setting": "cache.master_key", "env": "ENVCACHE_MASTER_KEY"},
        )

    logger.warning(
        "No master key configured, using the insecure default. "
        "Set cache.master_key or ENVCACHE_MASTER_KEY before production use."
    )
    return INSECURE_MASTER_KEY


class ConfigLoader:
    """Configuration loader and manager."""

    _instance: Optional['ConfigLoader'] = None
    _config: Optional[Config] = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._config is None:
            self._config_path = config_path or self._find_config_path()
            self._load_config()

    def _find_config_path(self) -> Optional[str]:
        """Find configuration file path."""
        possible_paths = [
            os.environ.get("ENVCACHE_CONFIG_PATH", ""),
            "./config/config.yaml",
            "./config.yaml",
            str(Path(__file__).parent.parent.parent / "config" / "config.yaml"),
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return path

        return None

    def _load_config(self) -> None:
        """Load configuration from YAML file, then apply environment overrides."""
        if self._config_path is None:
            logger.info("No configuration file found, using defaults")
            self._config = Config()
        else:
            try:
                with open(self._config_path, 'r', encoding='utf-8') as f:
                    raw_config = yaml.safe_load(f) or {}
                self._config = Config(**raw_config)
                logger.info(f"Configuration loaded from {self._config_path}")
            except (OSError, yaml.YAMLError, ValueError) as e:
                raise ConfigError(
                    f"Failed to load configuration: {e}",
                    context={"path": self._config_path},
                ) from e

        master_key = os.environ.get("ENVCACHE_MASTER_KEY")
        if master_key:
            self._config.cache.master_key = master_key

    @property
    def config(self) -> Config:
        """Get configuration."""
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key."""
        keys = key.split('.')
        value = self._config

        try:
            for k in keys:
                if hasattr(value, k):
                    value = getattr(value, k)
                elif isinstance(value, dict):
                    value = value[k]
                else:
                    return default
            return value
        except (KeyError, AttributeError):
            return default

    def reload(self) -> None:
        """Reload configuration."""
        self._load_config()

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance."""
        cls._instance = None
        cls._config = None


def get_config() -> Config:
    """Get global configuration instance."""
    return ConfigLoader().config
