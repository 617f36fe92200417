"""
Filesystem Cache Store
One file per entry in a dedicated cache directory

File name: <key or sanitized key~digest>.<format extension>
"""

import hashlib
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Union

from loguru import logger

from envcache.exceptions import ConfigError, StorageError
from envcache.stores.base import CacheStore, StoreType

# Extensions clear() treats as cache-managed
MANAGED_EXTENSIONS = ("json", "xml", "yaml", "cache")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Longest key kept verbatim; longer keys are hashed
MAX_VERBATIM_LENGTH = 128
# Readable prefix kept in front of the digest of a hashed name
HASHED_PREFIX_LENGTH = 100
# Never survives _UNSAFE_CHARS, so hashed names cannot equal verbatim ones
HASH_MARKER = "~"


def sanitize_key(key: str) -> str:
    """
    Make a cache key safe to use as a file name.

    Keys made only of letters, digits, '.', '_' and '-' that do not start
    with a dot and fit MAX_VERBATIM_LENGTH are used as-is. Any other key
    maps to its sanitized text (truncated), HASH_MARKER and the first 32 hex
    digits of the SHA-256 of the raw key, so distinct keys never share a
    file and the name length stays bounded.
    """
    safe = _UNSAFE_CHARS.sub("_", key).lstrip(".")
    if safe == key and len(key) <= MAX_VERBATIM_LENGTH:
        return key
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
    return f"{safe[:HASHED_PREFIX_LENGTH]}{HASH_MARKER}{digest}"


class FilesystemStore(CacheStore):
    """
    Cache store backed by a directory.

    The directory is created at construction if missing. Existence and
    writability are checked again before every write.
    """

    store_type = StoreType.FILESYSTEM

    def __init__(
        self,
        cache_dir: Union[str, Path],
        extension: str = "json",
        managed_extensions: Iterable[str] = MANAGED_EXTENSIONS,
    ):
        super().__init__()
        self.cache_dir = Path(cache_dir)
        self.extension = extension
        self.managed_extensions = tuple(managed_extensions)

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(
                f"Cache directory cannot be created: {e}",
                context={"path": str(self.cache_dir)},
            ) from e

        if not os.access(self.cache_dir, os.W_OK):
            raise ConfigError(
                "Cache directory is not writable",
                context={"path": str(self.cache_dir)},
            )

        logger.info(f"FilesystemStore initialized at {self.cache_dir}")

    def bind_format(self, extension: str) -> None:
        self.extension = extension

    def describe(self) -> str:
        return f"filesystem:{self.cache_dir}"

    def path_for(self, key: str) -> Path:
        """File path that holds key under the current format."""
        return self.cache_dir / f"{sanitize_key(key)}.{self.extension}"

    def _validate_directory(self) -> None:
        if not self.cache_dir.is_dir():
            raise StorageError(
                "Cache directory does not exist",
                context={"backend": "filesystem", "path": str(self.cache_dir)},
            )
        if not os.access(self.cache_dir, os.W_OK):
            raise StorageError(
                "Cache directory is not writable",
                context={"backend": "filesystem", "path": str(self.cache_dir)},
            )

    def write(self, key: str, blob: bytes, ttl: Optional[int] = None) -> bool:
        self._validate_directory()
        path = self.path_for(key)

        try:
            # Write to a temp file and rename, so readers never see a partial entry
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-")
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(blob)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            self._stats["errors"] += 1
            raise StorageError(
                f"Failed to write cache file: {e}",
                context={"backend": "filesystem", "key": key, "path": str(path)},
            ) from e

        self._stats["writes"] += 1
        return True

    def read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        self._stats["reads"] += 1

        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            self._stats["errors"] += 1
            raise StorageError(
                f"Failed to read cache file: {e}",
                context={"backend": "filesystem", "key": key, "path": str(path)},
            ) from e

        return data or None

    def delete(self, key: str) -> bool:
        path = self.path_for(key)

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            self._stats["errors"] += 1
            raise StorageError(
                f"Failed to delete cache file: {e}",
                context={"backend": "filesystem", "key": key, "path": str(path)},
            ) from e

        self._stats["deletes"] += 1
        return True

    def clear(self) -> bool:
        removed = 0
        try:
            for path in self.cache_dir.iterdir():
                if path.is_file() and path.suffix.lstrip(".") in self.managed_extensions:
                    path.unlink()
                    removed += 1
        except OSError as e:
            self._stats["errors"] += 1
            raise StorageError(
                f"Failed to clear cache directory: {e}",
                context={"backend": "filesystem", "path": str(self.cache_dir)},
            ) from e

        logger.debug(f"Removed {removed} cache files from {self.cache_dir}")
        return True
