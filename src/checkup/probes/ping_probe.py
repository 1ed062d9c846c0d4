"""
Lightweight reachability probe: a bare TCP connect to host:port.
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from checkup.probes.base import ProbeOutcome, target_port
from checkup.storage.models import MonitoredTarget, TargetState

logger = logging.getLogger(__name__)


class PingProbe:
    """Online if a TCP connection can be opened, offline otherwise."""

    kind = "ping"
    default_port = 80

    def __init__(self, timeout: float = 5.0) -> None:
        self._timeout = timeout

    async def probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> ProbeOutcome:
        port = target_port(target, self.default_port)
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(target.host, port),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, OSError) as e:
            return ProbeOutcome(
                TargetState.OFFLINE,
                message=f"{target.host}:{port} unreachable: {str(e) or type(e).__name__}",
            )

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Ignoring close error for {target.host}:{port}: {e}")
        return ProbeOutcome(TargetState.ONLINE, message=f"{target.host}:{port} reachable")
