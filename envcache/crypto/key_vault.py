"""
Key Vault for envcache
Envelope encryption for the cache's data-encryption key (DEK)

The DEK encrypts cache payloads. It is itself stored only in wrapped form,
encrypted under sha256(master_key), at a location separate from ordinary
cache entries:
- FileKeyLocation: a single file in a dedicated secure directory
- RelationalKeyLocation: a row in the `cache_vault` table

If the wrapped DEK is missing, or cannot be unwrapped (wrong master key,
corrupt file), a new DEK is generated and persisted in its place. Entries
encrypted under the old DEK are then unreadable and age out as cache misses.
This is an accepted data-loss tradeoff: a cache is advisory storage.
"""

import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from envcache.crypto.provider import CryptoProvider
from envcache.database.connection import DatabaseManager
from envcache.database.models import VaultKey
from envcache.exceptions import CryptoError, StorageError


class KeyLocation(ABC):
    """Persisted location of the wrapped DEK."""

    @abstractmethod
    def load(self) -> Optional[bytes]:
        """Return the wrapped DEK, or None if none has been stored."""
        ...

    @abstractmethod
    def save(self, wrapped_key: bytes) -> None:
        """Persist the wrapped DEK, replacing any previous one."""
        ...


class FileKeyLocation(KeyLocation):
    """Wrapped DEK kept in `<secure_dir>/<filename>`."""

    def __init__(self, secure_dir: Union[str, Path], filename: str = "cache_key"):
        self.secure_dir = Path(secure_dir)
        self.path = self.secure_dir / filename

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StorageError(
                f"Failed to read wrapped key: {e}",
                context={"backend": "filesystem", "path": str(self.path)},
            ) from e

    def save(self, wrapped_key: bytes) -> None:
        try:
            self.secure_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.secure_dir, prefix=".key-")
            with os.fdopen(fd, 'wb') as f:
                f.write(wrapped_key)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(
                f"Failed to persist wrapped key: {e}",
                context={"backend": "filesystem", "path": str(self.path)},
            ) from e


class RelationalKeyLocation(KeyLocation):
    """Wrapped DEK kept as a named row in the `cache_vault` table."""

    def __init__(self, database: DatabaseManager, name: str = "cache"):
        self._db = database
        self.name = name

    def load(self) -> Optional[bytes]:
        try:
            with self._db.session_scope() as session:
                row = session.get(VaultKey, self.name)
                return bytes(row.wrapped_key) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read wrapped key: {e}",
                context={"backend": "relational", "name": self.name},
            ) from e

    def save(self, wrapped_key: bytes) -> None:
        try:
            with self._db.session_scope() as session:
                session.merge(VaultKey(
                    name=self.name,
                    wrapped_key=wrapped_key,
                    created_at=int(time.time()),
                ))
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to persist wrapped key: {e}",
                context={"backend": "relational", "name": self.name},
            ) from e


class KeyVault:
    """
    Owns the data-encryption key for one cache.

    The DEK is loaded or generated at most once per vault instance, under a
    lock, so concurrent first use cannot produce two different keys.

    Usage:
    ```python
    vault = KeyVault(
        master_key=os.environ["ENVCACHE_MASTER_KEY"],
        crypto=get_crypto_provider("aes-gcm"),
        location=FileKeyLocation("./storage/secure"),
    )
    dek = vault.get_data_key()
    ```
    """

    def __init__(
        self,
        master_key: str,
        crypto: CryptoProvider,
        location: KeyLocation,
    ):
        if not master_key:
            raise CryptoError("Master key must not be empty")

        self._crypto = crypto
        self._location = location
        self._wrapping_key = crypto.derive_key(master_key)
        self._data_key: Optional[bytes] = None
        self._lock = threading.Lock()

    def get_data_key(self) -> bytes:
        """Return the DEK, loading or generating it on first use."""
        if self._data_key is not None:
            return self._data_key

        with self._lock:
            if self._data_key is None:
                wrapped = self._location.load()
                if wrapped is not None:
                    self._data_key = self._unwrap(wrapped)
                if self._data_key is None:
                    self._data_key = self._generate()
        return self._data_key

    def _unwrap(self, wrapped: bytes) -> Optional[bytes]:
        """Unwrap a persisted DEK. Returns None if it cannot be used."""
        try:
            data_key = self._crypto.decrypt(wrapped, self._wrapping_key)
        except CryptoError as e:
            logger.warning(
                f"Stored data key could not be unwrapped ({e.message}); "
                f"generating a new one. Existing cache entries become unreadable."
            )
            return None

        if len(data_key) != self._crypto.key_size:
            logger.warning("Stored data key has the wrong length; generating a new one")
            return None

        logger.info("Loaded data-encryption key from key vault")
        return data_key

    def _generate(self) -> bytes:
        """Generate, wrap and persist a new DEK."""
        data_key = self._crypto.generate_key()
        self._location.save(self._crypto.encrypt(data_key, self._wrapping_key))
        logger.info("Generated new data-encryption key")
        return data_key
