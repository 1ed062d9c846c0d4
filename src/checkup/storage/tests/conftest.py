"""
Storage layer unit-test fixtures.

Repositories are exercised against a mocked Database; rows come back as
plain dicts, which convert to models the same way asyncpg Records do.
Tests against a real PostgreSQL live in tests/integration.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from checkup.storage.repositories import (
    AlertRepository,
    ArtifactRepository,
    MeasurementRepository,
    NotificationChannelRepository,
    TargetRepository,
    VersionHistoryRepository,
)


@pytest.fixture
def mock_db():
    """Mock database for unit tests."""
    db = MagicMock()
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.executemany = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=0)
    return db


@pytest.fixture
def target_repository(mock_db):
    return TargetRepository(mock_db)


@pytest.fixture
def measurement_repository(mock_db):
    return MeasurementRepository(mock_db)


@pytest.fixture
def artifact_repository(mock_db):
    return ArtifactRepository(mock_db)


@pytest.fixture
def history_repository(mock_db):
    return VersionHistoryRepository(mock_db)


@pytest.fixture
def alert_repository(mock_db):
    return AlertRepository(mock_db)


@pytest.fixture
def channel_repository(mock_db):
    return NotificationChannelRepository(mock_db)
