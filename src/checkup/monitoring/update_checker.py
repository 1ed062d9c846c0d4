"""
Update Checker loop.

Every tick:
    1. Snapshot all tracked applications
    2. Fetch each upstream version SEQUENTIALLY, pausing between items
       (GitHub and Docker Hub rate-limit anonymous clients)
    3. Decide availability with a three-way string comparison
    4. On a new version: append history, store it, raise update_available

A failed fetch still stamps last_check so failures can be told apart from
never-checked applications; version fields are left untouched.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional

import httpx

from checkup.storage.models import TrackedArtifact, VersionHistoryEntry
from checkup.versions import (
    VersionInfo,
    VersionProviderRegistry,
    default_version_registry,
    is_update_available,
)

if TYPE_CHECKING:
    from checkup.monitoring.alerting import AlertManager
    from checkup.storage.repositories import ArtifactRepository, VersionHistoryRepository

logger = logging.getLogger(__name__)


class ArtifactNotFoundError(LookupError):
    """Raised when an on-demand check names an application that does not exist."""

    pass


@dataclass
class UpdateCheckerConfig:
    """Configuration for the update checker loop."""

    interval_hours: float = 6
    start_delay_seconds: float = 10
    # Pause between applications within a tick
    item_delay_seconds: float = 1
    fetch_timeout_seconds: float = 10

    @property
    def interval_seconds(self) -> float:
        return self.interval_hours * 3600


@dataclass
class ArtifactCheckResult:
    """Outcome of checking one application, as reported to callers."""

    artifact_id: int
    name: str
    latest_version: Optional[str] = None
    update_available: bool = False
    new_version_detected: bool = False
    release_date: Optional[str] = None
    release_notes: Optional[str] = None
    error: Optional[str] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "name": self.name,
            "latest_version": self.latest_version,
            "update_available": self.update_available,
            "new_version_detected": self.new_version_detected,
            "release_date": self.release_date,
            "release_notes": self.release_notes,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
        }


class UpdateChecker:
    """
    Periodically checks every tracked application for new versions.

    Usage:
        checker = UpdateChecker(artifact_repo, history_repo, alert_manager)
        await checker.start()
        ...
        results = await checker.run_once()  # check everything now
        ...
        await checker.stop()
    """

    def __init__(
        self,
        artifact_repo: "ArtifactRepository",
        history_repo: "VersionHistoryRepository",
        alert_manager: "AlertManager",
        registry: Optional[VersionProviderRegistry] = None,
        config: Optional[UpdateCheckerConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._artifacts = artifact_repo
        self._history = history_repo
        self._alerts = alert_manager
        self._config = config or UpdateCheckerConfig()
        self._registry = registry or default_version_registry(self._config.fetch_timeout_seconds)

        self._client = client
        self._owns_client = client is None

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._tick_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        return self._tick_lock.locked()

    async def start(self) -> None:
        """Start the periodic loop."""
        if self._running:
            logger.warning("UpdateChecker already running")
            return

        self._running = True
        self._stop_event.clear()
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True

        self._task = asyncio.create_task(self._run_loop(), name="update_checker")
        logger.info(
            f"Started update checker "
            f"(interval={self._config.interval_hours}h, "
            f"first check in {self._config.start_delay_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop scheduling ticks. An in-flight tick is cancelled."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

        logger.info("Update checker stopped")

    async def _wait(self, seconds: float) -> bool:
        """Sleep up to seconds. Returns True if a stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run_loop(self) -> None:
        if await self._wait(self._config.start_delay_seconds):
            return

        while self._running:
            try:
                logger.info("Checking applications for updates...")
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in update checker tick: {e}")

            if await self._wait(self._config.interval_seconds):
                break

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient() as client:
            yield client

    async def run_once(self) -> Optional[List[ArtifactCheckResult]]:
        """
        Check every application, one at a time.

        Returns:
            One result per application, or None if a tick was already running
        """
        if self._tick_lock.locked():
            logger.warning("Previous update check still running, skipping tick")
            return None

        async with self._tick_lock:
            try:
                artifacts = await self._artifacts.list_all()
            except Exception as e:
                logger.error(f"Could not load applications: {e}")
                return []

            logger.info(f"Checking {len(artifacts)} applications...")
            results: List[ArtifactCheckResult] = []
            async with self._client_scope() as client:
                for index, artifact in enumerate(artifacts):
                    if index > 0 and self._config.item_delay_seconds > 0:
                        # Outside the loop there is no stop request to honour
                        if not self._running:
                            await asyncio.sleep(self._config.item_delay_seconds)
                        elif await self._wait(self._config.item_delay_seconds):
                            logger.info("Stop requested, abandoning update check")
                            break
                    results.append(await self._check(artifact, client))

            updates = sum(1 for r in results if r.new_version_detected)
            logger.info(f"Update check finished ({updates} new versions)")
            return results

    async def check_artifact(self, artifact: TrackedArtifact) -> ArtifactCheckResult:
        """Check a single application now, outside the schedule."""
        async with self._client_scope() as client:
            return await self._check(artifact, client)

    async def check_artifact_by_id(self, artifact_id: int) -> ArtifactCheckResult:
        """
        Load and check a single application.

        Raises:
            ArtifactNotFoundError: If no application has this id
        """
        artifact = await self._artifacts.get(artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError(f"Application {artifact_id} not found")
        return await self.check_artifact(artifact)

    async def _fetch(self, artifact: TrackedArtifact, client: httpx.AsyncClient) -> VersionInfo:
        adapter = self._registry.get(artifact.provider)
        return await asyncio.wait_for(
            adapter.fetch_version(artifact, client),
            timeout=self._config.fetch_timeout_seconds,
        )

    async def _check(
        self, artifact: TrackedArtifact, client: httpx.AsyncClient
    ) -> ArtifactCheckResult:
        """Check one application. Never raises except on cancellation."""
        result = ArtifactCheckResult(artifact_id=artifact.id, name=artifact.name)

        try:
            info = await self._fetch(artifact, client)
        except asyncio.TimeoutError:
            result.error = f"Version fetch timed out after {self._config.fetch_timeout_seconds}s"
        except Exception as e:
            result.error = str(e) or type(e).__name__

        if result.error is None and not info.version:
            result.error = "Provider returned an empty version"

        if result.error is not None:
            logger.error(f"Error checking {artifact.name}: {result.error}")
            try:
                await self._artifacts.touch_last_check(artifact.id, result.checked_at)
            except Exception as e:
                logger.error(f"Could not stamp last check of {artifact.name}: {e}")
            return result

        result.latest_version = info.version
        result.release_date = info.release_date
        result.release_notes = info.release_notes
        result.update_available = is_update_available(
            artifact.current_version, artifact.latest_version, info.version
        )

        try:
            await self._artifacts.record_check(
                artifact.id, info.version, result.update_available, result.checked_at
            )
        except Exception as e:
            # Leave history and alerts for the next tick, which will retry
            logger.error(f"Could not store version of {artifact.name}: {e}")
            result.error = f"Storage error: {e}"
            return result

        if result.update_available and info.version != artifact.latest_version:
            result.new_version_detected = True
            await self._record_transition(artifact, info.version, result.checked_at)
            logger.info(f"New version available for {artifact.name}: {info.version}")
        else:
            logger.info(f"{artifact.name}: up to date ({info.version})")

        return result

    async def _record_transition(
        self, artifact: TrackedArtifact, new_version: str, detected_at: datetime
    ) -> None:
        entry = VersionHistoryEntry(
            application_id=artifact.id,
            old_version=artifact.latest_version or artifact.current_version,
            new_version=new_version,
            detected_at=detected_at,
        )
        try:
            await self._history.record(entry)
        except Exception as e:
            logger.error(f"Could not record version history of {artifact.name}: {e}")

        try:
            await self._alerts.alert_update_available(artifact, new_version)
        except Exception as e:
            logger.error(f"Could not raise update alert for {artifact.name}: {e}")
