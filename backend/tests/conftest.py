"""
Pytest fixtures for testing.
"""
import os

# Keep the app's default engine away from a file database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module BEFORE app to allow override
import app.database
from app.database import Base
from app.config import Settings, settings
# Import ALL models so Base.metadata knows about all tables
from app.models import Employer, ATSType, Department

# Now import app (after we can override database)
from app.main import app as fastapi_app
from app.services.department_classifier import DepartmentCache


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-secret"


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """
    Fresh in-memory database per test, swapped into app.database so the
    API, the collector and the telemetry sink all write to it.
    """
    # StaticPool: one shared connection, so every session sees the same in-memory DB
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    app.database.use_sqlite_transactions(test_engine)

    # Tables first, then swap the engine in
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    original_engine = app.database.engine
    original_sessionmaker = app.database.AsyncSessionLocal

    app.database.engine = test_engine
    app.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    session = app.database.AsyncSessionLocal()

    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            print(f"Warning: Failed to close session: {e}")

        try:
            async with test_engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            print(f"Warning: Failed to drop tables: {e}")

        try:
            await test_engine.dispose()
        except Exception as e:
            print(f"Warning: Failed to dispose engine: {e}")

        app.database.engine = original_engine
        app.database.AsyncSessionLocal = original_sessionmaker


@pytest.fixture
def session_factory(db: AsyncSession):
    """Sessionmaker bound to the test database."""
    return app.database.AsyncSessionLocal


@pytest.fixture
def test_settings() -> Settings:
    """Collector settings without delays or backoff."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        collector_delay_seconds=0,
        count_update_backoff_seconds=0,
    )


@pytest.fixture
def api_secret(monkeypatch) -> str:
    """Configure the shared secret for the trigger endpoints."""
    monkeypatch.setattr(settings, "api_secret", TEST_SECRET)
    return TEST_SECRET


@pytest.fixture
def department_cache() -> DepartmentCache:
    """Fresh cache, also installed on the app for the duration of the test."""
    original = fastapi_app.state.department_cache
    cache = DepartmentCache()
    fastapi_app.state.department_cache = cache
    yield cache
    fastapi_app.state.department_cache = original


@pytest_asyncio.fixture
async def async_client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing endpoints.

    The db fixture already replaced app.database.engine with test engine,
    so all endpoints will automatically use the test database.
    """
    transport = ASGITransport(app=fastapi_app)

    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True  # Follow 307 redirects for trailing slashes
    ) as client:
        yield client

    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def departments(db: AsyncSession) -> list:
    """Small taxonomy in a fixed order."""
    rows = [
        Department(name="Engineering", keywords=["developer", "backend", "platform"]),
        Department(name="Sales", keywords=["account executive", "business development"]),
        Department(name="Marketing", keywords=["growth", "seo", "brand"]),
    ]
    for row in rows:
        db.add(row)
        await db.flush()
    await db.commit()
    return rows


@pytest_asyncio.fixture
async def ashby_employer(db: AsyncSession) -> Employer:
    employer = Employer(
        name="Acme",
        ats_type=ATSType.ASHBY,
        board_identifier="acme",
        board_url="https://jobs.ashbyhq.com/acme",
        status="active",
        total_jobs_count=0,
        previous_jobs_count=0,
    )
    db.add(employer)
    await db.commit()
    await db.refresh(employer)
    return employer


@pytest_asyncio.fixture
async def greenhouse_employer(db: AsyncSession) -> Employer:
    employer = Employer(
        name="Globex",
        ats_type=ATSType.GREENHOUSE,
        board_identifier="globex",
        status="active",
        total_jobs_count=0,
        previous_jobs_count=0,
    )
    db.add(employer)
    await db.commit()
    await db.refresh(employer)
    return employer
