"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. Point
THINGSTORE_TEST_DATABASE_URL at a disposable database; the schema is dropped
and recreated for every test. Without it the tests are skipped.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from thingstore.db import Base, Settings, create_engine, create_session_factory, session_scope

DATABASE_URL = os.getenv("THINGSTORE_TEST_DATABASE_URL")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires database)",
    )


@pytest.fixture(scope="session")
def integration_db_settings() -> Settings:
    if not DATABASE_URL:
        pytest.skip("THINGSTORE_TEST_DATABASE_URL is not set")
    return Settings(POSTGRES_URL=DATABASE_URL, POOL_SIZE=2)


@pytest_asyncio.fixture
async def session(integration_db_settings: Settings) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session over a freshly created schema."""
    engine = create_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        async with session_scope(create_session_factory(engine)) as s:
            yield s
    finally:
        await engine.dispose()
