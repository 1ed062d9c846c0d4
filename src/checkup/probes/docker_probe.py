"""
Container runtime probe (Docker Engine API).

Queries /version, then the container inventory. A failing inventory
call after a successful /version still counts as online, just without
container metrics.
"""
from __future__ import annotations

import logging

import aiohttp

from checkup.probes.base import MetricSample, ProbeOutcome, target_port
from checkup.storage.models import MonitoredTarget, TargetState

logger = logging.getLogger(__name__)


class DockerProbe:
    """Probe a Docker Engine API endpoint."""

    kind = "docker"
    default_port = 2376

    def __init__(self, timeout: float = 10.0, inventory_timeout: float = 5.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._inventory_timeout = aiohttp.ClientTimeout(total=inventory_timeout)

    def base_url(self, target: MonitoredTarget) -> str:
        return f"http://{target.host}:{target_port(target, self.default_port)}"

    async def probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> ProbeOutcome:
        base = self.base_url(target)

        try:
            async with session.get(f"{base}/version", timeout=self._timeout) as response:
                response.raise_for_status()
                version_info = await response.json()
        except Exception as e:
            logger.debug(f"Docker /version failed for {target.name}: {e}")
            return ProbeOutcome(TargetState.OFFLINE, message=f"Docker API unreachable: {e}")

        engine_version = (version_info or {}).get("Version", "unknown")
        outcome = ProbeOutcome(TargetState.ONLINE, message=f"Docker {engine_version}")

        try:
            async with session.get(
                f"{base}/containers/json",
                params={"all": "true"},
                timeout=self._inventory_timeout,
            ) as response:
                response.raise_for_status()
                containers = await response.json()
        except Exception as e:
            logger.warning(f"Could not list containers for {target.name}: {e}")
            return outcome

        containers = containers or []
        outcome.metrics = [
            MetricSample("containers_total", len(containers)),
            MetricSample(
                "containers_running",
                sum(1 for c in containers if c.get("State") == "running"),
            ),
            MetricSample(
                "containers_stopped",
                sum(1 for c in containers if c.get("State") == "exited"),
            ),
        ]
        return outcome
