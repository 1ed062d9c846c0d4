"""
Hypervisor cluster probe (Proxmox VE API).

Authenticates with an API token, checks /cluster/status, then reads
/nodes for capacity metrics. Node-list failure is non-fatal: the
cluster is still reported online with whatever metrics were gathered.

Resource averages cover online nodes only. With no online nodes the
averages are omitted rather than reported as zero.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import aiohttp

from checkup.probes.base import MetricSample, ProbeError, ProbeOutcome, target_port
from checkup.storage.models import MonitoredTarget, TargetState

logger = logging.getLogger(__name__)


def summarize_nodes(nodes: List[Dict[str, Any]]) -> List[MetricSample]:
    """
    Turn a /nodes payload into cluster metrics.

    cpu is a 0..1 fraction; mem/disk are byte counts against maxmem/maxdisk.
    """
    online = [n for n in nodes if n.get("status") == "online"]
    metrics = [
        MetricSample("nodes_count", len(nodes)),
        MetricSample("nodes_online", len(online)),
    ]
    if not online:
        return metrics

    count = len(online)
    cpu = sum((n.get("cpu") or 0) * 100 for n in online) / count
    memory = sum((n.get("mem") or 0) / (n.get("maxmem") or 1) * 100 for n in online) / count
    disk = sum((n.get("disk") or 0) / (n.get("maxdisk") or 1) * 100 for n in online) / count

    metrics.extend([
        MetricSample("avg_cpu_usage", cpu, "%"),
        MetricSample("avg_memory_usage", memory, "%"),
        MetricSample("avg_disk_usage", disk, "%"),
    ])
    return metrics


class ProxmoxProbe:
    """Probe a Proxmox VE cluster through its REST API."""

    kind = "proxmox"
    default_port = 8006

    def __init__(self, timeout: float = 10.0, verify_tls: bool = False) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        # Proxmox ships self-signed certificates by default
        self._ssl = None if verify_tls else False

    def base_url(self, target: MonitoredTarget) -> str:
        return f"https://{target.host}:{target_port(target, self.default_port)}/api2/json"

    def auth_headers(self, target: MonitoredTarget) -> Dict[str, str]:
        if not target.token:
            raise ProbeError("Proxmox password authentication is not supported; configure an API token")
        return {"Authorization": f"PVEAPIToken={target.username}:{target.token}"}

    async def _get(
        self, session: aiohttp.ClientSession, url: str, headers: Dict[str, str]
    ) -> Any:
        async with session.get(
            url, headers=headers, timeout=self._timeout, ssl=self._ssl
        ) as response:
            response.raise_for_status()
            return await response.json()

    async def probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> ProbeOutcome:
        base = self.base_url(target)

        try:
            headers = self.auth_headers(target)
            await self._get(session, f"{base}/cluster/status", headers)
        except Exception as e:
            logger.error(f"Proxmox check failed for {target.name}: {e}")
            return ProbeOutcome(TargetState.OFFLINE, message=f"Proxmox API unreachable: {e}")

        outcome = ProbeOutcome(TargetState.ONLINE, message="Cluster reachable")

        try:
            payload = await self._get(session, f"{base}/nodes", headers)
            nodes = payload.get("data") if isinstance(payload, dict) else None
            if nodes:
                outcome.metrics = summarize_nodes(nodes)
        except Exception as e:
            logger.warning(f"Could not read Proxmox nodes for {target.name}: {e}")
        return outcome
