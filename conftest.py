"""
Shared unit-test fixtures.

In-memory stand-ins for the repositories, so monitoring and core tests
run without PostgreSQL. They mirror the repository method signatures
used by the loops, including the alert dedup rule enforced in SQL by
uq_alerts_open_per_source.

Component-specific fixtures live in src/checkup/{component}/tests/conftest.py.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from checkup.storage.models import (
    Alert,
    Measurement,
    MonitoredTarget,
    NotificationChannelConfig,
    TargetState,
    TrackedArtifact,
    VersionHistoryEntry,
)


# =============================================================================
# In-memory repositories
# =============================================================================


class InMemoryTargetRepository:
    def __init__(self) -> None:
        self.rows: Dict[int, MonitoredTarget] = {}
        self.status_updates: List[tuple] = []
        self.fail_on_update: set = set()

    def add(self, target: MonitoredTarget) -> MonitoredTarget:
        self.rows[target.id] = target
        return target

    async def list_all(self) -> List[MonitoredTarget]:
        return [self.rows[k] for k in sorted(self.rows)]

    async def get(self, target_id: int) -> Optional[MonitoredTarget]:
        return self.rows.get(target_id)

    async def update_status(
        self, target_id: int, state: TargetState, checked_at: datetime
    ) -> None:
        if target_id in self.fail_on_update:
            raise ConnectionError("database unavailable")
        self.status_updates.append((target_id, state, checked_at))
        if target_id in self.rows:
            self.rows[target_id] = self.rows[target_id].model_copy(
                update={"status": TargetState(state), "last_check": checked_at}
            )


class InMemoryMeasurementRepository:
    def __init__(self) -> None:
        self.rows: List[Measurement] = []

    async def record(self, samples: Sequence[Measurement]) -> int:
        self.rows.extend(samples)
        return len(samples)

    async def get_recent(self, service_id: int, limit: int = 100) -> List[Measurement]:
        rows = [m for m in self.rows if m.service_id == service_id]
        return sorted(rows, key=lambda m: m.timestamp, reverse=True)[:limit]

    async def delete_older_than(self, cutoff: datetime) -> int:
        before = len(self.rows)
        self.rows = [m for m in self.rows if m.timestamp >= cutoff]
        return before - len(self.rows)

    def for_target(self, service_id: int) -> Dict[str, Measurement]:
        return {m.metric_name: m for m in self.rows if m.service_id == service_id}


class InMemoryArtifactRepository:
    def __init__(self) -> None:
        self.rows: Dict[int, TrackedArtifact] = {}
        self.fail_on_record = False

    def add(self, artifact: TrackedArtifact) -> TrackedArtifact:
        self.rows[artifact.id] = artifact
        return artifact

    async def list_all(self) -> List[TrackedArtifact]:
        return [self.rows[k] for k in sorted(self.rows)]

    async def get(self, artifact_id: int) -> Optional[TrackedArtifact]:
        return self.rows.get(artifact_id)

    async def record_check(
        self,
        artifact_id: int,
        latest_version: str,
        update_available: bool,
        checked_at: datetime,
    ) -> None:
        if self.fail_on_record:
            raise ConnectionError("database unavailable")
        self.rows[artifact_id] = self.rows[artifact_id].model_copy(update={
            "latest_version": latest_version,
            "update_available": update_available,
            "last_check": checked_at,
        })

    async def touch_last_check(self, artifact_id: int, checked_at: datetime) -> None:
        self.rows[artifact_id] = self.rows[artifact_id].model_copy(
            update={"last_check": checked_at}
        )


class InMemoryVersionHistoryRepository:
    def __init__(self) -> None:
        self.rows: List[VersionHistoryEntry] = []

    async def record(self, entry: VersionHistoryEntry) -> VersionHistoryEntry:
        stored = entry.model_copy(update={"id": len(self.rows) + 1})
        self.rows.append(stored)
        return stored

    async def get_recent(self, limit: int = 50) -> List[VersionHistoryEntry]:
        return sorted(self.rows, key=lambda e: e.detected_at, reverse=True)[:limit]

    async def get_for_application(
        self, application_id: int, limit: int = 50
    ) -> List[VersionHistoryEntry]:
        rows = [e for e in self.rows if e.application_id == application_id]
        return sorted(rows, key=lambda e: e.detected_at, reverse=True)[:limit]

    async def delete_older_than(self, cutoff: datetime) -> int:
        before = len(self.rows)
        self.rows = [e for e in self.rows if e.detected_at >= cutoff]
        return before - len(self.rows)


class InMemoryAlertRepository:
    """Applies the same open-alert uniqueness rule as the partial index."""

    def __init__(self) -> None:
        self.rows: List[Alert] = []

    def _open(self, source_type, source_id, alert_type) -> Optional[Alert]:
        for alert in self.rows:
            if (
                not alert.resolved
                and alert.source_type == source_type
                and alert.source_id == source_id
                and alert.type == alert_type
            ):
                return alert
        return None

    async def find_open(
        self, source_type: str, source_id: int, alert_type: str
    ) -> Optional[Alert]:
        return self._open(source_type, source_id, alert_type)

    async def create_if_absent(self, alert: Alert) -> Optional[Alert]:
        # NULL sources never conflict, matching PostgreSQL unique index semantics
        if alert.source_type is not None and alert.source_id is not None:
            if self._open(alert.source_type, alert.source_id, alert.type) is not None:
                return None
        stored = alert.model_copy(update={"id": len(self.rows) + 1})
        self.rows.append(stored)
        return stored

    async def get(self, alert_id: int) -> Optional[Alert]:
        for alert in self.rows:
            if alert.id == alert_id:
                return alert
        return None

    async def acknowledge(self, alert_id: int) -> Optional[Alert]:
        return self._update(alert_id, acknowledged=True, acknowledged_at=datetime.now(timezone.utc))

    async def resolve(self, alert_id: int) -> Optional[Alert]:
        return self._update(alert_id, resolved=True, resolved_at=datetime.now(timezone.utc))

    async def count_open(self) -> int:
        return sum(1 for a in self.rows if not a.resolved)

    def _update(self, alert_id: int, **fields) -> Optional[Alert]:
        for i, alert in enumerate(self.rows):
            if alert.id == alert_id:
                self.rows[i] = alert.model_copy(update=fields)
                return self.rows[i]
        return None


class InMemoryChannelRepository:
    def __init__(self) -> None:
        self.rows: List[NotificationChannelConfig] = []

    def add(self, channel: NotificationChannelConfig) -> NotificationChannelConfig:
        self.rows.append(channel)
        return channel

    async def list_enabled(self) -> List[NotificationChannelConfig]:
        return [c for c in self.rows if c.enabled]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def target_repo():
    return InMemoryTargetRepository()


@pytest.fixture
def measurement_repo():
    return InMemoryMeasurementRepository()


@pytest.fixture
def artifact_repo():
    return InMemoryArtifactRepository()


@pytest.fixture
def history_repo():
    return InMemoryVersionHistoryRepository()


@pytest.fixture
def alert_repo():
    return InMemoryAlertRepository()


@pytest.fixture
def channel_repo():
    return InMemoryChannelRepository()


@pytest.fixture
def make_target():
    """Factory for MonitoredTarget rows."""
    def _make(id: int = 1, name: Optional[str] = None, type: str = "http", **fields):
        return MonitoredTarget(
            id=id,
            name=name or f"service-{id}",
            type=type,
            host=fields.pop("host", "10.0.0.%d" % id),
            **fields,
        )
    return _make


@pytest.fixture
def make_artifact():
    """Factory for TrackedArtifact rows."""
    def _make(id: int = 1, name: Optional[str] = None, provider: str = "github", **fields):
        fields.setdefault("repository", "owner/project")
        return TrackedArtifact(
            id=id,
            name=name or f"app-{id}",
            provider=provider,
            **fields,
        )
    return _make
