"""
envcache crypto: AEAD providers and envelope key management
"""

from envcache.crypto.provider import (
    CryptoProvider,
    AESGCMProvider,
    ChaCha20Poly1305Provider,
    available_ciphers,
    get_crypto_provider,
)
from envcache.crypto.key_vault import (
    KeyVault,
    KeyLocation,
    FileKeyLocation,
    RelationalKeyLocation,
)

__all__ = [
    "CryptoProvider",
    "AESGCMProvider",
    "ChaCha20Poly1305Provider",
    "available_ciphers",
    "get_crypto_provider",
    "KeyVault",
    "KeyLocation",
    "FileKeyLocation",
    "RelationalKeyLocation",
]
