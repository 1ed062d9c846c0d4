"""
Application and update history repositories.

Handles:
- applications: tracked artifacts (version status fields only)
- update_history: append-only audit trail of detected version transitions
"""
from __future__ import annotations

from datetime import datetime

from checkup.storage.models import TrackedArtifact, VersionHistoryEntry
from checkup.storage.repositories.base import BaseRepository, deleted_count


class ArtifactRepository(BaseRepository[TrackedArtifact]):
    """Repository for tracked applications."""

    table_name = "applications"
    model_class = TrackedArtifact

    async def record_check(
        self,
        artifact_id: int,
        latest_version: str,
        update_available: bool,
        checked_at: datetime,
    ) -> None:
        """Store the result of a successful version fetch."""
        query = """
            UPDATE applications
            SET latest_version = $2, update_available = $3, last_check = $4
            WHERE id = $1
        """
        await self.db.execute(query, artifact_id, latest_version, update_available, checked_at)

    async def touch_last_check(self, artifact_id: int, checked_at: datetime) -> None:
        """Stamp last_check only, leaving version fields alone (failed fetch)."""
        query = "UPDATE applications SET last_check = $2 WHERE id = $1"
        await self.db.execute(query, artifact_id, checked_at)


class VersionHistoryRepository(BaseRepository[VersionHistoryEntry]):
    """Repository for version transitions."""

    table_name = "update_history"
    model_class = VersionHistoryEntry

    async def record(self, entry: VersionHistoryEntry) -> VersionHistoryEntry:
        query = """
            INSERT INTO update_history (application_id, old_version, new_version, detected_at)
            VALUES ($1, $2, $3, $4)
            RETURNING *
        """
        record = await self.db.fetchrow(
            query,
            entry.application_id,
            entry.old_version,
            entry.new_version,
            entry.detected_at,
        )
        return self._record_to_model(record) if record else entry

    async def get_recent(self, limit: int = 50) -> list[VersionHistoryEntry]:
        query = """
            SELECT * FROM update_history
            ORDER BY detected_at DESC
            LIMIT $1
        """
        records = await self.db.fetch(query, limit)
        return self._records_to_models(records)

    async def get_for_application(
        self, application_id: int, limit: int = 50
    ) -> list[VersionHistoryEntry]:
        query = """
            SELECT * FROM update_history
            WHERE application_id = $1
            ORDER BY detected_at DESC
            LIMIT $2
        """
        records = await self.db.fetch(query, application_id, limit)
        return self._records_to_models(records)

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Drop history entries detected before cutoff. Returns rows deleted."""
        status = await self.db.execute(
            "DELETE FROM update_history WHERE detected_at < $1", cutoff
        )
        return deleted_count(status)
