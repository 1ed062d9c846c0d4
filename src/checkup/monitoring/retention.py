"""
Retention sweeps for append-only tables.

Two wall-clock schedules (local time):
    - metrics: daily at measurement_sweep_hour, keeps measurement_retention_days
    - update_history: weekly on history_sweep_weekday at history_sweep_hour,
      keeps history_retention_days

Cutoffs are computed from the current UTC time. A sweep that fails is
logged and retried at the next scheduled run.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

if TYPE_CHECKING:
    from checkup.storage.repositories import MeasurementRepository, VersionHistoryRepository

logger = logging.getLogger(__name__)


@dataclass
class RetentionConfig:
    """Configuration for retention sweeps."""

    measurement_retention_days: int = 7
    history_retention_days: int = 30
    measurement_sweep_hour: int = 2
    # Monday=0 ... Sunday=6
    history_sweep_weekday: int = 6
    history_sweep_hour: int = 3


def next_daily_run(now: datetime, hour: int) -> datetime:
    """Next occurrence of hour:00 strictly after now."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def next_weekly_run(now: datetime, weekday: int, hour: int) -> datetime:
    """Next occurrence of weekday at hour:00 strictly after now."""
    candidate = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    candidate += timedelta(days=(weekday - now.weekday()) % 7)
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


class RetentionSweeper:
    """
    Deletes old measurements and version history on a schedule.

    Usage:
        sweeper = RetentionSweeper(measurement_repo, history_repo)
        await sweeper.start()
        ...
        deleted = await sweeper.sweep_measurements()  # on demand
        ...
        await sweeper.stop()
    """

    def __init__(
        self,
        measurement_repo: "MeasurementRepository",
        history_repo: "VersionHistoryRepository",
        config: Optional[RetentionConfig] = None,
    ) -> None:
        self._measurements = measurement_repo
        self._history = history_repo
        self._config = config or RetentionConfig()

        self._running = False
        self._tasks: List[asyncio.Task] = []
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    async def sweep_measurements(self, now: Optional[datetime] = None) -> int:
        """Delete measurements older than the retention window. Returns rows deleted."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._config.measurement_retention_days)
        deleted = await self._measurements.delete_older_than(cutoff)
        logger.info(f"Metrics cleanup: deleted {deleted} samples older than {cutoff.isoformat()}")
        return deleted

    async def sweep_history(self, now: Optional[datetime] = None) -> int:
        """Delete version history older than the retention window. Returns rows deleted."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._config.history_retention_days)
        deleted = await self._history.delete_older_than(cutoff)
        logger.info(f"History cleanup: deleted {deleted} entries older than {cutoff.isoformat()}")
        return deleted

    async def start(self) -> None:
        """Schedule both sweeps."""
        if self._running:
            logger.warning("RetentionSweeper already running")
            return

        self._running = True
        self._stop_event.clear()

        cfg = self._config
        self._tasks = [
            asyncio.create_task(
                self._schedule(
                    "metrics cleanup",
                    lambda now: next_daily_run(now, cfg.measurement_sweep_hour),
                    self.sweep_measurements,
                ),
                name="retention_metrics",
            ),
            asyncio.create_task(
                self._schedule(
                    "history cleanup",
                    lambda now: next_weekly_run(now, cfg.history_sweep_weekday, cfg.history_sweep_hour),
                    self.sweep_history,
                ),
                name="retention_history",
            ),
        ]
        logger.info(
            f"Scheduled retention sweeps "
            f"(metrics daily at {cfg.measurement_sweep_hour:02d}:00, "
            f"history weekly on day {cfg.history_sweep_weekday} at {cfg.history_sweep_hour:02d}:00)"
        )

    async def stop(self) -> None:
        """Cancel scheduled sweeps."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        logger.info("Retention sweeps stopped")

    async def _schedule(
        self,
        label: str,
        next_run: Callable[[datetime], datetime],
        sweep: Callable[[], Awaitable[int]],
    ) -> None:
        while self._running:
            now = datetime.now().astimezone()
            due = next_run(now)
            delay = (due - now).total_seconds()
            logger.debug(f"Next {label} at {due.isoformat()}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in {label}: {e}")
