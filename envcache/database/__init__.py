"""
envcache relational persistence
"""

from envcache.database.connection import DatabaseManager
from envcache.database.models import Base, CacheRecord, VaultKey

__all__ = [
    "DatabaseManager",
    "Base",
    "CacheRecord",
    "VaultKey",
]
