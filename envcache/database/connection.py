"""
Database Connection Manager for envcache
Handles engine construction and session management for the relational store
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session as SQLSession
from sqlalchemy.pool import StaticPool
from loguru import logger

from envcache.database.models import Base


class DatabaseManager:
    """
    Database connection and session manager.

    Either builds its own engine from a URL, or borrows an engine owned by
    the caller. A borrowed engine is never disposed here.
    """

    def __init__(
        self,
        url: str = "sqlite:///./storage/cache.db",
        echo: bool = False,
        pool_size: int = 5,
        engine: Optional[Engine] = None,
    ):
        self._owns_engine = engine is None
        self._engine = engine if engine is not None else self._create_engine(url, echo, pool_size)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        self.create_tables()
        logger.info(f"Database initialized at {self._engine.url!r}")

    @staticmethod
    def _create_engine(url: str, echo: bool, pool_size: int) -> Engine:
        """Create an engine, with SQLite-specific connection settings."""
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                # One shared connection, otherwise each session sees an empty DB
                kwargs["poolclass"] = StaticPool
            engine = create_engine(url, echo=echo, **kwargs)

            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            return engine

        return create_engine(url, echo=echo, pool_size=pool_size, pool_pre_ping=True)

    @property
    def engine(self) -> Engine:
        """Get SQLAlchemy engine."""
        return self._engine

    def create_tables(self) -> None:
        """Create the cache tables. Other tables in the database are untouched."""
        Base.metadata.create_all(self._engine)

    def get_session(self) -> SQLSession:
        """Get a new database session."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[SQLSession, None, None]:
        """Context manager for database sessions with automatic commit/rollback."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Dispose the engine if this manager created it."""
        if self._owns_engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
