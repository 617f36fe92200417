"""
Database Models for envcache
SQLAlchemy ORM models for the relational cache backend
"""

from sqlalchemy import Column, Integer, LargeBinary, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheRecord(Base):
    """One cache entry. cache_data holds the encrypted, serialized blob."""

    __tablename__ = 'cache'

    id = Column(Integer, primary_key=True, autoincrement=True)
    cache_key = Column(String(255), nullable=False, unique=True, index=True)
    cache_data = Column(LargeBinary, nullable=False)
    timestamp = Column(Integer, nullable=False)
    ttl = Column(Integer, nullable=False)

    def to_dict(self):
        return {
            'cache_key': self.cache_key,
            'timestamp': self.timestamp,
            'ttl': self.ttl,
            'size_bytes': len(self.cache_data) if self.cache_data else 0,
        }


class VaultKey(Base):
    """Wrapped data-encryption key, kept apart from ordinary cache rows."""

    __tablename__ = 'cache_vault'

    name = Column(String(64), primary_key=True)
    wrapped_key = Column(LargeBinary, nullable=False)
    created_at = Column(Integer, nullable=False)
