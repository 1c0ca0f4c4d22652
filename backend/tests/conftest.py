"""Root conftest - shared test configuration and in-memory database fixtures.

Invariants:
    - Tests never reach a real identity provider or PostgreSQL
    - Every test using the database gets a fresh in-memory SQLite schema

Design Decisions:
    - StaticPool: one shared connection, so the in-memory database survives
      across the sessions opened by SqlAlchemyStorage
"""

import os

# Ensure tests don't accidentally use real credentials
os.environ.setdefault("IDENTITY_SERVICE_KEY", "service-role-test-fake-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from secret_santa.db.base import Base
import secret_santa.models  # noqa: F401
from secret_santa.infrastructure.database import DatabaseSessionManager
from secret_santa.infrastructure.sql_storage import SqlAlchemyStorage


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db_manager(test_engine, test_session_factory):
    return DatabaseSessionManager.from_factory(test_engine, test_session_factory)


@pytest.fixture
async def sql_storage(test_db_manager):
    return SqlAlchemyStorage(test_db_manager)
