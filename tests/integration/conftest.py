"""
Integration test fixtures.

These tests run the repositories and loops against a real PostgreSQL
database to verify the SQL they rely on: the partial unique index
behind alert deduplication, retention deletes and status stamping.
"""
import pytest

from checkup.storage.repositories import (
    AlertRepository,
    ArtifactRepository,
    MeasurementRepository,
    NotificationChannelRepository,
    TargetRepository,
    VersionHistoryRepository,
)

# Mark all tests in this directory as integration tests
pytestmark = pytest.mark.integration


@pytest.fixture
def repos(db):
    """Every repository bound to the test database."""
    return {
        "targets": TargetRepository(db),
        "measurements": MeasurementRepository(db),
        "artifacts": ArtifactRepository(db),
        "history": VersionHistoryRepository(db),
        "alerts": AlertRepository(db),
        "channels": NotificationChannelRepository(db),
    }
