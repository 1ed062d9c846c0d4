"""
Shared test fixtures for integration tests.

This file provides fixtures that need a real PostgreSQL database,
unlike component-specific fixtures in src/checkup/{component}/tests/conftest.py.

Set CHECKUP_TEST_DATABASE_URL to run them; otherwise they are skipped.
Every table is truncated before each test.
"""
import os

import pytest
import pytest_asyncio

from checkup.storage import Database, DatabaseConfig

TABLES = ("alerts", "update_history", "metrics", "applications", "services", "notification_settings")


@pytest.fixture(scope="session")
def database_url():
    """Get test database URL from environment."""
    url = os.environ.get("CHECKUP_TEST_DATABASE_URL")
    if not url:
        pytest.skip("CHECKUP_TEST_DATABASE_URL not set")
    return url


@pytest_asyncio.fixture
async def db(database_url):
    """
    Fresh database connection for each test.

    Applies the schema, empties every table, and closes the pool after
    the test.
    """
    database = Database(DatabaseConfig(url=database_url, min_connections=1, max_connections=5))
    await database.initialize()
    await database.apply_schema()
    await database.execute(f"TRUNCATE {', '.join(TABLES)} RESTART IDENTITY CASCADE")

    yield database

    await database.close()


@pytest.fixture
def insert_service(db):
    """Insert a services row and return its id."""
    async def _insert(name="api", type="http", host="10.0.0.1", port=None, config=None):
        return await db.fetchval(
            """
            INSERT INTO services (name, type, host, port, config)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id
            """,
            name, type, host, port, config,
        )
    return _insert


@pytest.fixture
def insert_application(db):
    """Insert an applications row and return its id."""
    async def _insert(name="grafana", provider="github", repository="grafana/grafana",
                      current_version=None, latest_version=None):
        return await db.fetchval(
            """
            INSERT INTO applications (name, provider, repository, current_version, latest_version)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id
            """,
            name, provider, repository, current_version, latest_version,
        )
    return _insert
