"""
Crypto Providers for envcache
Authenticated symmetric encryption primitives used by the cache and key vault

Each provider wraps an AEAD cipher from the `cryptography` package:
- aes-gcm: AES-256-GCM
- chacha20-poly1305: ChaCha20-Poly1305 (IETF)

Ciphertext layout: nonce (12 bytes) || ciphertext || tag (16 bytes)
"""

import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from typing import Dict, Type

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from loguru import logger

from envcache.exceptions import ConfigError, CryptoError


class CryptoProvider(ABC):
    """
    Abstract interface for authenticated encryption.

    Implementations must raise CryptoError on wrong key length, malformed
    input and authentication failure. They never return unauthenticated data.
    """

    name: str = ""
    key_size: int = 32
    nonce_size: int = 12
    tag_size: int = 16

    @abstractmethod
    def _cipher(self, key: bytes):
        """Build the AEAD primitive for a key."""
        ...

    def _check_key(self, key: bytes) -> None:
        if not isinstance(key, (bytes, bytearray)) or len(key) != self.key_size:
            raise CryptoError(
                f"Invalid key length for {self.name}",
                context={"expected": self.key_size, "actual": len(key) if key else 0},
            )

    def encrypt(self, plaintext: bytes, key: bytes) -> bytes:
        """
        Encrypt and authenticate plaintext.

        Args:
            plaintext: Data to encrypt
            key: Symmetric key of key_size bytes

        Returns:
            nonce || ciphertext || tag
        """
        self._check_key(key)
        nonce = self.random_bytes(self.nonce_size)
        return nonce + self._cipher(key).encrypt(nonce, bytes(plaintext), None)

    def decrypt(self, ciphertext: bytes, key: bytes) -> bytes:
        """
        Verify and decrypt data produced by encrypt().

        Raises:
            CryptoError: Wrong key length, truncated input, or tag mismatch
        """
        self._check_key(key)
        if not ciphertext or len(ciphertext) < self.nonce_size + self.tag_size:
            raise CryptoError(
                "Ciphertext is too short",
                context={"cipher": self.name, "length": len(ciphertext or b"")},
            )

        nonce, body = ciphertext[:self.nonce_size], ciphertext[self.nonce_size:]
        try:
            return self._cipher(key).decrypt(nonce, bytes(body), None)
        except InvalidTag as e:
            raise CryptoError(
                "Authentication failed: data was tampered with or the key is wrong",
                context={"cipher": self.name},
            ) from e

    def random_bytes(self, n: int) -> bytes:
        """Return n cryptographically secure random bytes."""
        try:
            return secrets.token_bytes(n)
        except (OSError, NotImplementedError) as e:
            raise CryptoError("Secure random source unavailable", context={"n": n}) from e

    def generate_key(self) -> bytes:
        """Generate a fresh key for this cipher."""
        return self.random_bytes(self.key_size)

    @staticmethod
    def keyed_hash(data: bytes, key: bytes) -> bytes:
        """HMAC-SHA256 of data, used to derive opaque storage identifiers."""
        return hmac.new(key, data, hashlib.sha256).digest()

    @staticmethod
    def derive_key(secret: str) -> bytes:
        """Derive a fixed-length 32-byte key from an arbitrary-length secret."""
        return hashlib.sha256(secret.encode('utf-8')).digest()


class AESGCMProvider(CryptoProvider):
    """AES-256-GCM provider."""

    name = "aes-gcm"

    def _cipher(self, key: bytes) -> AESGCM:
        return AESGCM(bytes(key))


class ChaCha20Poly1305Provider(CryptoProvider):
    """ChaCha20-Poly1305 provider."""

    name = "chacha20-poly1305"

    def _cipher(self, key: bytes) -> ChaCha20Poly1305:
        return ChaCha20Poly1305(bytes(key))


_PROVIDERS: Dict[str, Type[CryptoProvider]] = {
    AESGCMProvider.name: AESGCMProvider,
    ChaCha20Poly1305Provider.name: ChaCha20Poly1305Provider,
}


def available_ciphers() -> list:
    """Names of the registered ciphers."""
    return sorted(_PROVIDERS)


def get_crypto_provider(name: str = "aes-gcm") -> CryptoProvider:
    """
    Create a crypto provider by cipher name.

    Raises:
        ConfigError: Unknown cipher name
    """
    provider_class = _PROVIDERS.get(name)
    if provider_class is None:
        raise ConfigError(
            f"Unsupported cipher: {name}",
            context={"available": available_ciphers()},
        )
    logger.debug(f"Using crypto provider: {name}")
    return provider_class()
