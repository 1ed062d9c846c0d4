"""
Probe adapter contract.

A probe checks one monitored target and reports a normalized outcome:
a TargetState plus zero or more numeric metric samples. Probes recover
their own transport errors and map them to a state; anything they raise
is treated by the monitor as state=error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, runtime_checkable

import aiohttp

from checkup.storage.models import MonitoredTarget, TargetState


class ProbeError(Exception):
    """Raised by a probe when a target cannot be evaluated at all."""

    pass


@dataclass
class MetricSample:
    """One numeric reading reported by a probe."""

    name: str
    value: float
    unit: str = ""


@dataclass
class ProbeOutcome:
    """Normalized result of probing a target."""

    state: TargetState
    metrics: List[MetricSample] = field(default_factory=list)
    message: str = ""

    def metric(self, name: str) -> Optional[MetricSample]:
        """Look up a reported metric by name."""
        for sample in self.metrics:
            if sample.name == name:
                return sample
        return None


@runtime_checkable
class ProbeAdapter(Protocol):
    """
    Protocol every probe adapter implements.

    kind is the services.type tag the adapter is registered under.
    """

    kind: str

    async def probe(
        self, target: MonitoredTarget, session: aiohttp.ClientSession
    ) -> ProbeOutcome:
        ...


def target_port(target: MonitoredTarget, default: int) -> int:
    return target.port or default
