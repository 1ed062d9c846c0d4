"""
Alert Manager: deduplicated alert creation and notification fan-out.

Deduplication is stateful in the database, not in memory: at most one
unresolved alert exists per (source_type, source_id, type). Resolving
the alert re-arms it.

Fan-out is fire-and-forget relative to raise_alert(): delivery runs in
a background task, each channel independently, and channel failures are
logged and never reach the caller.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from checkup.monitoring.notifications import (
    NotificationDispatcher,
    NotificationMessage,
    priority_for,
)
from checkup.storage.models import (
    Alert,
    AlertKind,
    AlertSeverity,
    NotificationChannelConfig,
    SourceKind,
    TargetState,
)

if TYPE_CHECKING:
    from checkup.storage.models import MonitoredTarget, TrackedArtifact
    from checkup.storage.repositories import AlertRepository, NotificationChannelRepository

logger = logging.getLogger(__name__)


@dataclass
class AlertingConfig:
    """Configuration for alert fan-out."""

    # How long stop() waits for in-flight notifications before cancelling
    shutdown_grace_seconds: float = 5.0


class AlertManager:
    """
    Raises alerts with per-source deduplication.

    Usage:
        manager = AlertManager(alert_repo, channel_repo)

        alert = await manager.raise_alert(
            kind="service_down",
            title="Service api offline",
            message="...",
            severity=AlertSeverity.CRITICAL,
            source_kind="service",
            source_id=7,
        )
        # alert is None when an unresolved one already exists

        await manager.drain()  # on shutdown
    """

    def __init__(
        self,
        alert_repo: "AlertRepository",
        channel_repo: "NotificationChannelRepository",
        dispatcher: Optional[NotificationDispatcher] = None,
        config: Optional[AlertingConfig] = None,
    ) -> None:
        self._alerts = alert_repo
        self._channels = channel_repo
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._config = config or AlertingConfig()
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def raise_alert(
        self,
        kind: str,
        title: str,
        message: str,
        severity: AlertSeverity | str,
        source_kind: Optional[str],
        source_id: Optional[int],
    ) -> Optional[Alert]:
        """
        Create an alert unless an unresolved one exists for this source.

        Returns:
            The new Alert, or None if deduplicated
        """
        if source_kind is not None and source_id is not None:
            existing = await self._alerts.find_open(source_kind, source_id, kind)
            if existing is not None:
                logger.debug(f"Deduplicated alert: {source_kind}:{source_id}:{kind}")
                return None

        created = await self._alerts.create_if_absent(Alert(
            type=kind,
            title=title,
            message=message,
            severity=AlertSeverity(severity),
            source_type=source_kind,
            source_id=source_id,
        ))
        if created is None:
            # Lost the race against a concurrent raiser
            logger.debug(f"Deduplicated alert on insert: {source_kind}:{source_id}:{kind}")
            return None

        logger.info(f"Alert created: {created.title}")
        self._schedule_notifications(created)
        return created

    async def alert_service_down(
        self, target: "MonitoredTarget", state: TargetState
    ) -> Optional[Alert]:
        """Raise service_down for an offline (critical) or erroring (warning) target."""
        offline = TargetState(state) == TargetState.OFFLINE
        wording = "offline" if offline else "in error"
        return await self.raise_alert(
            kind=AlertKind.SERVICE_DOWN.value,
            title=f"Service {target.name} {wording}",
            message=f"Service {target.name} ({target.host}:{target.port}) is {wording}.",
            severity=AlertSeverity.CRITICAL if offline else AlertSeverity.WARNING,
            source_kind=SourceKind.SERVICE.value,
            source_id=target.id,
        )

    async def alert_update_available(
        self, artifact: "TrackedArtifact", new_version: str
    ) -> Optional[Alert]:
        return await self.raise_alert(
            kind=AlertKind.UPDATE_AVAILABLE.value,
            title=f"Update available: {artifact.name}",
            message=f"A new version of {artifact.name} is available: {new_version}",
            severity=AlertSeverity.INFO,
            source_kind=SourceKind.APPLICATION.value,
            source_id=artifact.id,
        )

    def _schedule_notifications(self, alert: Alert) -> None:
        task = asyncio.create_task(self.notify(alert), name=f"notify_alert_{alert.id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    def _accepts(channel: NotificationChannelConfig, alert_type: str) -> bool:
        """Channels may restrict themselves to a list of alert kinds."""
        wanted = channel.config.get("alert_types")
        if isinstance(wanted, str):
            wanted = [wanted]
        return not wanted or alert_type in wanted

    async def notify(self, alert: Alert) -> Dict[Any, bool]:
        """
        Deliver an alert to every enabled channel.

        Returns:
            Mapping of channel id to delivery success
        """
        try:
            channels = await self._channels.list_enabled()
        except Exception as e:
            logger.error(f"Could not load notification channels: {e}")
            return {}

        channels = [c for c in channels if self._accepts(c, alert.type)]
        if not channels:
            return {}

        note = NotificationMessage(
            title=alert.title,
            message=alert.message,
            priority=priority_for(alert.severity),
            alert_type=alert.type,
        )
        async with self._dispatcher.client() as client:
            outcomes: List[bool] = await asyncio.gather(
                *(self._deliver(channel, note, client) for channel in channels)
            )
        return {channel.id: ok for channel, ok in zip(channels, outcomes)}

    async def _deliver(
        self, channel: NotificationChannelConfig, note: NotificationMessage, client
    ) -> bool:
        try:
            await self._dispatcher.send(channel.type, channel.config, note, client)
            return True
        except Exception as e:
            logger.error(f"{channel.type.value} notification failed: {e}")
            return False

    async def send_test_notification(self, kind: str, config: Dict[str, Any]) -> None:
        """
        Send a test message through one channel configuration.

        Raises:
            NotificationError: If delivery fails, so the caller can report it
        """
        note = NotificationMessage(
            title="Notification test",
            message=f"This is a {kind} test notification from CheckUp. "
                    f"If you received it, the configuration works.",
            priority="low",
            alert_type="test",
        )
        async with self._dispatcher.client() as client:
            await self._dispatcher.send(kind, config, note, client)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait briefly for in-flight notifications, then cancel the rest."""
        if not self._pending:
            return

        grace = self._config.shutdown_grace_seconds if timeout is None else timeout
        pending = list(self._pending)
        _, still_running = await asyncio.wait(pending, timeout=grace)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} undelivered notifications")
            await asyncio.gather(*still_running, return_exceptions=True)


