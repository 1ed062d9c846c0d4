"""
Service and metric repositories.

Handles:
- services: registered monitoring targets (status fields only)
- metrics: append-only measurement samples
"""
from __future__ import annotations

from datetime import datetime
from typing import Sequence

from checkup.storage.models import Measurement, MonitoredTarget, TargetState
from checkup.storage.repositories.base import BaseRepository, deleted_count


class TargetRepository(BaseRepository[MonitoredTarget]):
    """
    Repository for monitored services.

    The monitor never creates or deletes services; it only stamps
    status and last_check.
    """

    table_name = "services"
    model_class = MonitoredTarget

    async def update_status(
        self, target_id: int, state: TargetState, checked_at: datetime
    ) -> None:
        """Record the outcome of a health check."""
        query = """
            UPDATE services
            SET status = $2, last_check = $3
            WHERE id = $1
        """
        await self.db.execute(query, target_id, TargetState(state).value, checked_at)


class MeasurementRepository(BaseRepository[Measurement]):
    """Repository for metric samples."""

    table_name = "metrics"
    model_class = Measurement

    async def record(self, samples: Sequence[Measurement]) -> int:
        """Insert samples in one round trip. Returns number written."""
        if not samples:
            return 0
        query = """
            INSERT INTO metrics (service_id, metric_name, metric_value, unit, timestamp)
            VALUES ($1, $2, $3, $4, $5)
        """
        await self.db.executemany(
            query,
            [
                (s.service_id, s.metric_name, s.metric_value, s.unit, s.timestamp)
                for s in samples
            ],
        )
        return len(samples)

    async def get_recent(self, service_id: int, limit: int = 100) -> list[Measurement]:
        """Most recent samples for a service, newest first."""
        query = """
            SELECT * FROM metrics
            WHERE service_id = $1
            ORDER BY timestamp DESC
            LIMIT $2
        """
        records = await self.db.fetch(query, service_id, limit)
        return self._records_to_models(records)

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Drop samples recorded before cutoff. Returns rows deleted."""
        status = await self.db.execute("DELETE FROM metrics WHERE timestamp < $1", cutoff)
        return deleted_count(status)
