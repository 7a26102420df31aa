"""Database connection pooling using SQLAlchemy.

Provides centralized database connection management with connection pooling
for the voiceprint store. Any SQLAlchemy URL is accepted; SQLite is the default.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator, Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.sql import Executable
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool

from app.config import Config
from core.exceptions import DatabaseError, DuplicateActiveVoiceprintError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

ACTIVE_VOICEPRINT_INDEX = "uq_voiceprints_active_user"


def _is_active_voiceprint_conflict(error: IntegrityError) -> bool:
    """True when the one-active-template-per-user index was violated.

    PostgreSQL names the index; SQLite names the indexed column instead.
    Must match the index name in repositories/sql/schema.py.
    """
    diag = getattr(error.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == ACTIVE_VOICEPRINT_INDEX:
        return True
    message = str(error.orig)
    return ACTIVE_VOICEPRINT_INDEX in message or "UNIQUE constraint failed: voiceprints.user_id" in message


class DatabasePool:
    """Centralized database connection pool manager.

    Uses SQLAlchemy's QueuePool for efficient connection reuse. In-memory
    SQLite URLs get a StaticPool so every checkout sees the same database.
    """

    # Pool configuration (can be overridden via env vars)
    POOL_SIZE = Config.DB_POOL_SIZE  # Number of connections to keep in pool
    MAX_OVERFLOW = Config.DB_MAX_OVERFLOW  # Max connections beyond pool_size
    POOL_TIMEOUT = Config.DB_POOL_TIMEOUT  # Seconds to wait for available connection
    POOL_RECYCLE = Config.DB_POOL_RECYCLE  # Recycle connections after 30 minutes
    POOL_PRE_PING = True  # Test connections before using

    _instance: Optional["DatabasePool"] = None
    _engine: Optional[Engine] = None
    _initialized: bool = False

    def __new__(cls) -> "DatabasePool":
        """Singleton pattern for global database pool."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def initialize(
        cls,
        url: Optional[str] = None,
        pool_size: int = POOL_SIZE,
        max_overflow: int = MAX_OVERFLOW,
        pool_timeout: int = POOL_TIMEOUT,
        pool_recycle: int = POOL_RECYCLE,
        create_schema: bool = Config.DB_CREATE_SCHEMA,
    ) -> None:
        """Initialize the database connection pool.

        Args:
            url: SQLAlchemy database URL (defaults to Config.DATABASE_URL)
            pool_size: Number of connections to maintain in pool
            max_overflow: Maximum overflow connections
            pool_timeout: Seconds to wait for connection
            pool_recycle: Recycle connections after this many seconds
            create_schema: Create missing tables and indexes after connecting

        Raises:
            DatabaseError: If initialization fails
        """
        if cls._initialized:
            logger.warning("Database pool already initialized, skipping")
            return

        url = url or Config.DATABASE_URL
        is_sqlite = url.startswith("sqlite")

        try:
            if is_sqlite and (url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url):
                cls._engine = create_engine(
                    url,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                    future=True,
                )
            else:
                connect_args = {"check_same_thread": False} if is_sqlite else {}
                cls._engine = create_engine(
                    url,
                    poolclass=QueuePool,
                    pool_size=pool_size,
                    max_overflow=max_overflow,
                    pool_timeout=pool_timeout,
                    pool_recycle=pool_recycle,
                    pool_pre_ping=cls.POOL_PRE_PING,
                    connect_args=connect_args,
                    echo=False,  # Set to True for SQL debugging
                    future=True,
                )

            # Test connection
            with cls._engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            if create_schema:
                from repositories.sql.schema import metadata

                metadata.create_all(cls._engine)

            cls._initialized = True
            logger.info(
                "Database connection pool initialized | dialect=%s | pool_size=%d | "
                "max_overflow=%d | create_schema=%s",
                cls._engine.dialect.name, pool_size, max_overflow, create_schema
            )

        except Exception as e:
            logger.error(
                "Failed to initialize database pool | error=%s | type=%s",
                str(e), type(e).__name__
            )
            if cls._engine is not None:
                cls._engine.dispose()
                cls._engine = None
            raise DatabaseError(f"Failed to initialize database pool: {e}") from e

    @classmethod
    def get_engine(cls) -> Optional[Engine]:
        """Get the SQLAlchemy engine.

        Returns:
            Engine instance or None if not initialized
        """
        return cls._engine

    @classmethod
    @contextmanager
    def get_connection(cls) -> Generator["Connection", None, None]:
        """Get a connection from the pool.

        Usage:
            with DatabasePool.get_connection() as conn:
                result = conn.execute(text("SELECT * FROM voiceprints"))

        Yields:
            SQLAlchemy Connection object

        Raises:
            DuplicateActiveVoiceprintError: When a user would get a second active voiceprint
            DatabaseError: If pool not initialized or connection fails
        """
        if not cls._initialized or cls._engine is None:
            raise DatabaseError("Database pool not initialized")

        try:
            with cls._engine.connect() as connection:
                yield connection
        except IntegrityError as e:
            logger.warning(f"Constraint violation | error={e.orig}")
            if _is_active_voiceprint_conflict(e):
                raise DuplicateActiveVoiceprintError(f"Constraint violation: {e.orig}") from e
            raise DatabaseError(f"Constraint violation: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(
                "Database connection error | error=%s | type=%s",
                str(e), type(e).__name__
            )
            raise DatabaseError(f"Database connection error: {e}") from e

    @staticmethod
    def _statement(query: Union[str, Executable]) -> Executable:
        return text(query) if isinstance(query, str) else query

    @classmethod
    def execute_query(
        cls,
        query: Union[str, Executable],
        params: Optional[dict] = None,
    ) -> list[dict]:
        """Execute a query and return results as list of dicts.

        Args:
            query: SQL query string (use :param_name for parameters) or a
                SQLAlchemy Core statement
            params: Optional dict of parameter values

        Returns:
            List of row dictionaries

        Raises:
            DatabaseError: If query fails
        """
        try:
            with cls.get_connection() as conn:
                result = conn.execute(cls._statement(query), params or {})
                return [dict(row) for row in result.mappings().all()]
        except DatabaseError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Query execution error: {e}")
            raise DatabaseError(f"Query execution error: {e}") from e

    @classmethod
    def execute_scalar(
        cls,
        query: Union[str, Executable],
        params: Optional[dict] = None,
    ) -> Any:
        """Execute a query and return the first column of the first row."""
        try:
            with cls.get_connection() as conn:
                return conn.execute(cls._statement(query), params or {}).scalar()
        except DatabaseError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Scalar query error: {e}")
            raise DatabaseError(f"Scalar query error: {e}") from e

    @classmethod
    def execute_update(
        cls,
        query: Union[str, Executable],
        params: Optional[dict] = None,
    ) -> int:
        """Execute an update/insert/delete and return rows affected.

        Args:
            query: SQL query string (use :param_name for parameters) or a
                SQLAlchemy Core statement
            params: Optional dict of parameter values

        Returns:
            Number of rows affected

        Raises:
            DuplicateActiveVoiceprintError: When a user would get a second active voiceprint
            DatabaseError: If query fails
        """
        try:
            with cls.get_connection() as conn:
                result = conn.execute(cls._statement(query), params or {})
                conn.commit()
                return result.rowcount
        except DatabaseError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Update execution error: {e}")
            raise DatabaseError(f"Update execution error: {e}") from e

    @classmethod
    def execute_insert(cls, statement: Executable) -> int:
        """Execute an INSERT and return the new row's primary key.

        Raises:
            DuplicateActiveVoiceprintError: When a user would get a second active voiceprint
            DatabaseError: If insert fails
        """
        try:
            with cls.get_connection() as conn:
                result = conn.execute(statement)
                conn.commit()
                return int(result.inserted_primary_key[0])
        except DatabaseError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Insert execution error: {e}")
            raise DatabaseError(f"Insert execution error: {e}") from e

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if the database pool is initialized."""
        return cls._initialized

    @classmethod
    def get_pool_status(cls) -> dict:
        """Get current pool status for monitoring.

        Returns:
            Dict with pool statistics
        """
        if not cls._initialized or cls._engine is None:
            return {"initialized": False}

        pool = cls._engine.pool
        if not isinstance(pool, QueuePool):
            return {"initialized": True, "pool": type(pool).__name__}
        return {
            "initialized": True,
            "pool": type(pool).__name__,
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }

    @classmethod
    def shutdown(cls) -> None:
        """Shutdown the connection pool and release all connections."""
        if cls._engine is not None:
            logger.info("Shutting down database connection pool...")
            cls._engine.dispose()
            cls._engine = None
            cls._initialized = False
            logger.info("Database connection pool shutdown complete")


# Convenience function for getting singleton instance
def get_database_pool() -> DatabasePool:
    """Get the database pool singleton instance."""
    return DatabasePool()
