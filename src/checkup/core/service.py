"""
MonitoringService - owns every scheduler for the lifetime of the process.

Handles:
- Health monitor loop
- Update checker loop
- Retention sweeps
- Notification drain on shutdown

Also the entry point for on-demand checks requested by the API layer.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from checkup.monitoring.alerting import AlertManager
from checkup.monitoring.health_monitor import HealthMonitor, TargetCheckResult
from checkup.monitoring.notifications import NotificationDispatcher
from checkup.monitoring.retention import RetentionSweeper
from checkup.monitoring.update_checker import ArtifactCheckResult, UpdateChecker
from checkup.probes import default_probe_registry
from checkup.storage.repositories import (
    AlertRepository,
    ArtifactRepository,
    MeasurementRepository,
    NotificationChannelRepository,
    TargetRepository,
    VersionHistoryRepository,
)
from checkup.versions import default_version_registry

if TYPE_CHECKING:
    from checkup.config import Settings
    from checkup.storage.database import Database

logger = logging.getLogger(__name__)


class CheckInProgressError(RuntimeError):
    """Raised when a full update check is requested while one is running."""

    pass


class MonitoringService:
    """
    Process-wide monitoring context.

    Created once at boot, started with start() and torn down with stop().
    Components are explicit attributes, never module-level state.

    Usage:
        service = MonitoringService.from_database(db, settings)
        await service.start()
        # ... process runs ...
        result = await service.check_target_now(4)
        await service.stop()
    """

    def __init__(
        self,
        health_monitor: HealthMonitor,
        update_checker: UpdateChecker,
        retention: RetentionSweeper,
        alert_manager: AlertManager,
    ) -> None:
        self.health_monitor = health_monitor
        self.update_checker = update_checker
        self.retention = retention
        self.alert_manager = alert_manager
        self._running = False

    @classmethod
    def from_database(cls, db: "Database", settings: "Settings") -> "MonitoringService":
        """Wire every component against one database."""
        targets = TargetRepository(db)
        measurements = MeasurementRepository(db)
        artifacts = ArtifactRepository(db)
        history = VersionHistoryRepository(db)

        alert_manager = AlertManager(
            AlertRepository(db),
            NotificationChannelRepository(db),
            dispatcher=NotificationDispatcher(),
            config=settings.alerting_config(),
        )
        health_monitor = HealthMonitor(
            targets,
            measurements,
            alert_manager,
            registry=default_probe_registry(settings.probe_timeout_seconds),
            config=settings.health_monitor_config(),
        )
        update_checker = UpdateChecker(
            artifacts,
            history,
            alert_manager,
            registry=default_version_registry(
                timeout=settings.version_fetch_timeout_seconds,
                user_agent=settings.user_agent,
                github_token=settings.github_token,
            ),
            config=settings.update_checker_config(),
        )
        retention = RetentionSweeper(measurements, history, settings.retention_config())
        return cls(health_monitor, update_checker, retention, alert_manager)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start all schedulers."""
        if self._running:
            logger.warning("MonitoringService already running")
            return

        logger.info("Starting monitoring service...")
        self._running = True
        await self.health_monitor.start()
        await self.update_checker.start()
        await self.retention.start()
        logger.info("Monitoring service started")

    async def stop(self) -> None:
        """Stop schedulers in reverse order, then drain notifications."""
        if not self._running:
            return

        logger.info("Stopping monitoring service...")
        self._running = False

        for name, component in (
            ("retention sweeper", self.retention),
            ("update checker", self.update_checker),
            ("health monitor", self.health_monitor),
        ):
            try:
                await component.stop()
            except Exception as e:
                logger.warning(f"Error stopping {name}: {e}")

        await self.alert_manager.drain()
        logger.info("Monitoring service stopped")

    async def check_target_now(self, target_id: int) -> TargetCheckResult:
        """
        Probe one service immediately.

        Raises:
            TargetNotFoundError: If no service has this id
        """
        return await self.health_monitor.check_target_by_id(target_id)

    async def check_artifact_now(self, artifact_id: int) -> ArtifactCheckResult:
        """
        Check one application immediately.

        Raises:
            ArtifactNotFoundError: If no application has this id
        """
        return await self.update_checker.check_artifact_by_id(artifact_id)

    async def check_all_artifacts_now(self) -> List[ArtifactCheckResult]:
        """
        Check every application immediately.

        Raises:
            CheckInProgressError: If a full update check is already running
        """
        results: Optional[List[ArtifactCheckResult]] = await self.update_checker.run_once()
        if results is None:
            raise CheckInProgressError("An update check is already in progress")
        return results
