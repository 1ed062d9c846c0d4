"""
Alert and notification settings repositories.

CRITICAL: Alert creation relies on the partial unique index
uq_alerts_open_per_source (source_type, source_id, type) WHERE NOT resolved.
The insert uses ON CONFLICT DO NOTHING against that index, so two
concurrent raisers for the same source can never both create a row.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from checkup.storage.models import Alert, NotificationChannelConfig
from checkup.storage.repositories.base import BaseRepository


class AlertRepository(BaseRepository[Alert]):
    """Repository for operator alerts."""

    table_name = "alerts"
    model_class = Alert

    async def find_open(
        self, source_type: str, source_id: int, alert_type: str
    ) -> Optional[Alert]:
        """Return the unresolved alert for this source and kind, if any."""
        query = """
            SELECT * FROM alerts
            WHERE source_type = $1 AND source_id = $2 AND type = $3 AND NOT resolved
            LIMIT 1
        """
        record = await self.db.fetchrow(query, source_type, source_id, alert_type)
        return self._record_to_model(record)

    async def create_if_absent(self, alert: Alert) -> Optional[Alert]:
        """
        Insert the alert unless an unresolved one already exists.

        Returns the stored alert, or None when deduplicated.
        """
        query = """
            INSERT INTO alerts
            (type, title, message, severity, source_type, source_id, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (source_type, source_id, type) WHERE NOT resolved
            DO NOTHING
            RETURNING *
        """
        record = await self.db.fetchrow(
            query,
            alert.type,
            alert.title,
            alert.message,
            alert.severity.value,
            alert.source_type,
            alert.source_id,
            alert.created_at,
        )
        return self._record_to_model(record)

    async def acknowledge(self, alert_id: int) -> Optional[Alert]:
        query = """
            UPDATE alerts
            SET acknowledged = TRUE, acknowledged_at = $2
            WHERE id = $1
            RETURNING *
        """
        record = await self.db.fetchrow(query, alert_id, datetime.now(timezone.utc))
        return self._record_to_model(record)

    async def resolve(self, alert_id: int) -> Optional[Alert]:
        query = """
            UPDATE alerts
            SET resolved = TRUE, resolved_at = $2
            WHERE id = $1
            RETURNING *
        """
        record = await self.db.fetchrow(query, alert_id, datetime.now(timezone.utc))
        return self._record_to_model(record)

    async def count_open(self) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM alerts WHERE NOT resolved")


class NotificationChannelRepository(BaseRepository[NotificationChannelConfig]):
    """Read-only access to notification_settings."""

    table_name = "notification_settings"
    model_class = NotificationChannelConfig

    async def list_enabled(self) -> list[NotificationChannelConfig]:
        query = "SELECT * FROM notification_settings WHERE enabled ORDER BY id"
        records = await self.db.fetch(query)
        return self._records_to_models(records)
