"""
Exception hierarchy for envcache

All errors raised by the cache derive from CacheError, which carries an
optional structured context dict for logging and debugging.
"""

from typing import Any, Dict, Optional


class CacheError(Exception):
    """
    Base exception surfaced to cache callers.

    Attributes:
        message: Human-readable error message
        context: Structured context (key, operation, backend, ...)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigError(CacheError):
    """
    Raised when configuration is invalid or unusable.

    Examples:
        - Unknown serialization format, cipher or store type
        - Cache directory missing and not creatable
        - Master key missing in production mode
    """
    pass


class CryptoError(CacheError):
    """
    Raised by crypto providers and the key vault.

    Examples:
        - Key of the wrong length
        - Authentication tag mismatch (tampered data or wrong key)
        - Secure random source unavailable
    """
    pass


class StorageError(CacheError):
    """
    Raised by cache stores when the backend fails.

    Context should include:
        - backend: The store type
        - key: The cache key being accessed, if any
    """
    pass
