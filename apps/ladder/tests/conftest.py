"""
Shared pytest configuration for ladder tests.

By default every test gets its own SQLite database file (aiosqlite). Set
TEST_DATABASE_URL to run against PostgreSQL instead.

SAFETY: a non-SQLite TEST_DATABASE_URL must name a database containing
"test". Tables are dropped after every test, so pointing the suite at a
development or production database would destroy it.
"""

import asyncio
import os

# Must be set before the app is imported so the rate limiter is a no-op
os.environ.setdefault("ENV", "test")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from ladder.database import db
from ladder.database.db import Base, get_db_session
from ladder.services.snapshot_cache import get_snapshot_cache


def _resolve_test_database_url(tmp_path) -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if a non-SQLite URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        return f"sqlite+aiosqlite:///{tmp_path / 'ladder_test.db'}"

    if url.startswith("sqlite"):
        return url

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n"
            f"{'=' * 70}"
        )
    return url


def _make_engine(url: str):
    # NullPool: no connection outlives the event loop that opened it
    return create_async_engine(url, echo=False, poolclass=NullPool)


async def _create_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _drop_tables(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(autouse=True)
def reset_snapshot_cache():
    """The snapshot cache is process-wide; never let one test see another's data."""
    get_snapshot_cache().invalidate()
    yield
    get_snapshot_cache().invalidate()


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine with all tables."""
    engine = _make_engine(_resolve_test_database_url(tmp_path))
    await _create_tables(engine)

    # Code that opens its own sessions (db.AsyncSessionLocal()) uses the test database
    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    await _drop_tables(engine)


@pytest_asyncio.fixture
async def db_session(test_engine):
    """A session against the test database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def client(tmp_path):
    """
    FastAPI TestClient with get_db_session pointed at a fresh test database.

    Not used as a context manager, so the startup award job does not run.
    """
    from fastapi.testclient import TestClient
    from ladder.api.main import app

    engine = _make_engine(_resolve_test_database_url(tmp_path))
    asyncio.run(_create_tables(engine))
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db_session, None)
        asyncio.run(_drop_tables(engine))
