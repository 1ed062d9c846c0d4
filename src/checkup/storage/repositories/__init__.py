"""
Repository exports.
"""
from checkup.storage.repositories.alert_repo import (
    AlertRepository,
    NotificationChannelRepository,
)
from checkup.storage.repositories.artifact_repo import (
    ArtifactRepository,
    VersionHistoryRepository,
)
from checkup.storage.repositories.target_repo import (
    MeasurementRepository,
    TargetRepository,
)

__all__ = [
    # Services
    "TargetRepository",
    "MeasurementRepository",
    # Applications
    "ArtifactRepository",
    "VersionHistoryRepository",
    # Alerts
    "AlertRepository",
    "NotificationChannelRepository",
]
