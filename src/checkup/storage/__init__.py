"""
Storage Layer - Async PostgreSQL database and repositories.

Built on asyncpg. The relational store is owned jointly with the CRUD
layer; the monitoring core only reads registries and writes status,
measurements, history and alerts.

Public API:
    Database, DatabaseConfig - Connection pool management

    Models:
        MonitoredTarget, Measurement, TargetState
        TrackedArtifact, VersionHistoryEntry
        Alert, AlertKind, AlertSeverity, SourceKind
        NotificationChannelConfig, ChannelKind

    Repositories:
        TargetRepository, MeasurementRepository
        ArtifactRepository, VersionHistoryRepository
        AlertRepository, NotificationChannelRepository
"""
from checkup.storage.database import Database, DatabaseConfig
from checkup.storage.models import (
    Alert,
    AlertKind,
    AlertSeverity,
    ChannelKind,
    Measurement,
    MonitoredTarget,
    NotificationChannelConfig,
    SourceKind,
    TargetState,
    TrackedArtifact,
    VersionHistoryEntry,
)
from checkup.storage.repositories import (
    AlertRepository,
    ArtifactRepository,
    MeasurementRepository,
    NotificationChannelRepository,
    TargetRepository,
    VersionHistoryRepository,
)

__all__ = [
    # Database
    "Database",
    "DatabaseConfig",
    # Service models & repos
    "MonitoredTarget",
    "Measurement",
    "TargetState",
    "TargetRepository",
    "MeasurementRepository",
    # Application models & repos
    "TrackedArtifact",
    "VersionHistoryEntry",
    "ArtifactRepository",
    "VersionHistoryRepository",
    # Alert models & repos
    "Alert",
    "AlertKind",
    "AlertSeverity",
    "SourceKind",
    "NotificationChannelConfig",
    "ChannelKind",
    "AlertRepository",
    "NotificationChannelRepository",
]
