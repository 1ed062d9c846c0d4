"""
HTTP reachability probe.

status < 400          -> online
400 <= status < 500   -> warning
connection refused    -> offline
timeout               -> offline
anything else         -> error (5xx, DNS failure, TLS failure, ...)
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from checkup.probes.base import ProbeOutcome, target_port
from checkup.storage.models import MonitoredTarget, TargetState

logger = logging.getLogger(__name__)


class HttpProbe:
    """GET http://host:port and classify the response."""

    kind = "http"
    default_port = 80

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def url_for(self, target: MonitoredTarget) -> str:
        if target.host.startswith(("http://", "https://")):
            return target.host
        return f"http://{target.host}:{target_port(target, self.default_port)}"

    async def probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> ProbeOutcome:
        url = self.url_for(target)
        try:
            async with session.get(url, timeout=self._timeout) as response:
                status = response.status
        except asyncio.TimeoutError:
            return ProbeOutcome(TargetState.OFFLINE, message=f"Timed out connecting to {url}")
        except aiohttp.ClientConnectorError as e:
            if isinstance(e.os_error, (ConnectionRefusedError, TimeoutError)):
                return ProbeOutcome(TargetState.OFFLINE, message=f"Connection refused by {url}")
            return ProbeOutcome(TargetState.ERROR, message=f"Cannot connect to {url}: {e}")
        except aiohttp.ClientError as e:
            return ProbeOutcome(TargetState.ERROR, message=f"HTTP error for {url}: {e}")

        if status < 400:
            return ProbeOutcome(TargetState.ONLINE, message=f"HTTP {status}")
        if status < 500:
            return ProbeOutcome(TargetState.WARNING, message=f"HTTP {status}")
        return ProbeOutcome(TargetState.ERROR, message=f"HTTP {status}")
