"""
Health Monitor loop.

Every tick:
    1. Snapshot all registered services
    2. Probe them concurrently, each bounded by a per-call timeout
    3. Persist status, last_check and measurements
    4. Raise service_down for offline/error outcomes

A probe that raises or times out yields state=error with no metrics.
Nothing that happens to one service (probe, storage or alert failure)
stops the others from being processed.
"""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional

import aiohttp

from checkup.probes import MetricSample, ProbeOutcome, ProbeRegistry, default_probe_registry
from checkup.storage.models import Measurement, MonitoredTarget, TargetState

if TYPE_CHECKING:
    from checkup.monitoring.alerting import AlertManager
    from checkup.storage.repositories import MeasurementRepository, TargetRepository

logger = logging.getLogger(__name__)

RESPONSE_TIME_METRIC = "response_time"

DOWN_STATES = (TargetState.OFFLINE, TargetState.ERROR)


class TargetNotFoundError(LookupError):
    """Raised when an on-demand check names a service that does not exist."""

    pass


@dataclass
class HealthMonitorConfig:
    """Configuration for the health monitor loop."""

    interval_seconds: float = 120  # 2 minutes
    start_delay_seconds: float = 5
    probe_timeout_seconds: float = 10
    # Extra time the overall per-service bound allows beyond the probe's own
    # timeout, so probes get to classify their own timeouts first
    timeout_grace_seconds: float = 1
    # None = probe every service at once
    max_concurrency: Optional[int] = None


@dataclass
class TargetCheckResult:
    """Outcome of checking one service, as reported to callers."""

    target_id: int
    name: str
    state: TargetState
    response_time_ms: Optional[float] = None
    metrics: List[MetricSample] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "name": self.name,
            "state": self.state.value,
            "response_time_ms": self.response_time_ms,
            "metrics": {m.name: m.value for m in self.metrics},
            "message": self.message,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
        }


class HealthMonitor:
    """
    Periodically probes every registered service.

    Usage:
        monitor = HealthMonitor(target_repo, measurement_repo, alert_manager)
        await monitor.start()
        ...
        result = await monitor.check_target_by_id(3)  # on demand
        ...
        await monitor.stop()
    """

    def __init__(
        self,
        target_repo: "TargetRepository",
        measurement_repo: "MeasurementRepository",
        alert_manager: "AlertManager",
        registry: Optional[ProbeRegistry] = None,
        config: Optional[HealthMonitorConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._targets = target_repo
        self._measurements = measurement_repo
        self._alerts = alert_manager
        self._config = config or HealthMonitorConfig()
        self._registry = registry or default_probe_registry(self._config.probe_timeout_seconds)
        self._overall_timeout = (
            self._config.probe_timeout_seconds + self._config.timeout_grace_seconds
        )

        self._session = session
        self._owns_session = session is None

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._tick_lock = asyncio.Lock()
        self._semaphore = (
            asyncio.Semaphore(self._config.max_concurrency)
            if self._config.max_concurrency
            else None
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_busy(self) -> bool:
        """Whether a tick is currently in progress."""
        return self._tick_lock.locked()

    async def start(self) -> None:
        """Start the periodic loop."""
        if self._running:
            logger.warning("HealthMonitor already running")
            return

        self._running = True
        self._stop_event.clear()
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

        self._task = asyncio.create_task(self._run_loop(), name="health_monitor")
        logger.info(
            f"Started health monitor "
            f"(interval={self._config.interval_seconds}s, "
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

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

        logger.info("Health monitor stopped")

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
                logger.debug("Checking services...")
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in health monitor tick: {e}")

            if await self._wait(self._config.interval_seconds):
                break

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Shared session while running, a throwaway one for ad-hoc checks."""
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def run_once(self) -> Optional[List[TargetCheckResult]]:
        """
        Run one tick over all services.

        Returns:
            One result per service, or None if a tick was already running
        """
        if self._tick_lock.locked():
            logger.warning("Previous health check still running, skipping tick")
            return None

        async with self._tick_lock:
            try:
                targets = await self._targets.list_all()
            except Exception as e:
                logger.error(f"Could not load services: {e}")
                return []

            if not targets:
                return []

            async with self._session_scope() as session:
                results = await asyncio.gather(
                    *(self._check_bounded(target, session) for target in targets)
                )

            down = sum(1 for r in results if r.state in DOWN_STATES)
            logger.info(f"Checked {len(results)} services ({down} down)")
            return list(results)

    async def _check_bounded(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> TargetCheckResult:
        if self._semaphore is None:
            return await self._check(target, session)
        async with self._semaphore:
            return await self._check(target, session)

    async def check_target(self, target: MonitoredTarget) -> TargetCheckResult:
        """Check a single service now, outside the schedule."""
        async with self._session_scope() as session:
            return await self._check(target, session)

    async def check_target_by_id(self, target_id: int) -> TargetCheckResult:
        """
        Load and check a single service.

        Raises:
            TargetNotFoundError: If no service has this id
        """
        target = await self._targets.get(target_id)
        if target is None:
            raise TargetNotFoundError(f"Service {target_id} not found")
        return await self.check_target(target)

    async def _probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> tuple[ProbeOutcome, Optional[float], Optional[str]]:
        """Run the probe for target. Never raises except on cancellation."""
        start = time.monotonic()
        try:
            probe = self._registry.get(target.type)
            outcome = await asyncio.wait_for(
                probe.probe(target, session),
                timeout=self._overall_timeout,
            )
        except asyncio.TimeoutError:
            error = f"Check timed out after {self._overall_timeout}s"
            return ProbeOutcome(TargetState.ERROR, message=error), None, error
        except Exception as e:
            logger.error(f"Error checking {target.name}: {e}")
            return ProbeOutcome(TargetState.ERROR, message=str(e)), None, str(e)

        return outcome, (time.monotonic() - start) * 1000, None

    async def _check(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> TargetCheckResult:
        outcome, response_ms, error = await self._probe(target, session)
        result = TargetCheckResult(
            target_id=target.id,
            name=target.name,
            state=outcome.state,
            response_time_ms=response_ms,
            metrics=list(outcome.metrics),
            message=outcome.message,
            error=error,
        )

        await self._persist(target, result)

        if result.state in DOWN_STATES:
            try:
                await self._alerts.alert_service_down(target, result.state)
            except Exception as e:
                logger.error(f"Could not raise alert for {target.name}: {e}")

        if response_ms is None:
            logger.info(f"{target.name}: {result.state.value}")
        else:
            logger.info(f"{target.name}: {result.state.value} ({response_ms:.0f}ms)")
        return result

    async def _persist(self, target: MonitoredTarget, result: TargetCheckResult) -> None:
        """Write status and measurements. Storage errors are logged, not raised."""
        try:
            await self._targets.update_status(target.id, result.state, result.checked_at)
        except Exception as e:
            logger.error(f"Could not update status of {target.name}: {e}")

        samples = []
        if result.response_time_ms is not None:
            samples.append(Measurement(
                service_id=target.id,
                metric_name=RESPONSE_TIME_METRIC,
                metric_value=result.response_time_ms,
                unit="ms",
                timestamp=result.checked_at,
            ))
        samples.extend(
            Measurement(
                service_id=target.id,
                metric_name=m.name,
                metric_value=m.value,
                unit=m.unit,
                timestamp=result.checked_at,
            )
            for m in result.metrics
        )

        try:
            await self._measurements.record(samples)
        except Exception as e:
            logger.error(f"Could not record metrics of {target.name}: {e}")
