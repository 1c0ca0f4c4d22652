"""Database Session Manager - async engine, per-call sessions, error mapping.

Invariants:
    - A session that exits with an exception is rolled back before it closes
    - SQLAlchemy failures leave this module as PersistenceError (core/errors.py);
      domain errors raised inside a session pass through unchanged
    - pool_pre_ping on every engine; pool sizing only for server databases

Design Decisions:
    - Module singleton db_manager set up by the FastAPI lifespan, read through
      get_db_manager() so tests can override the dependency
    - expire_on_commit=False: records are built from ORM rows after commit
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from secret_santa.core.errors import PersistenceError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors.
_SQL_ERRORS: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def _to_persistence_error(exc: SQLAlchemyError) -> PersistenceError:
    for error_type, message, operation in _SQL_ERRORS:
        if isinstance(exc, error_type):
            return PersistenceError(message, operation)
    return PersistenceError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the engine and hands out auto-rollback sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine: AsyncEngine = create_async_engine(database_url, **options)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_factory(
        cls, engine: AsyncEngine, session_factory: async_sessionmaker[AsyncSession],
    ) -> "DatabaseSessionManager":
        """Wrap an existing engine/factory pair (test fixtures, scripts)."""
        manager = cls.__new__(cls)
        manager.engine = engine
        manager._session_factory = session_factory
        return manager

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = _to_persistence_error(e)
            logger.error(
                f"{error.message}: {e}",
                extra={"error_code": error.code},
            )
            raise error from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """SELECT 1 round trip, for the readiness probe."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    logger.info("Database engine initialized")
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    """FastAPI dependency for the session manager."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager
