"""
Probe registry: maps a services.type tag to its probe adapter.

Looked up once per target per tick. Unknown tags raise
UnknownAdapterError, which the monitor records as state=error.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .base import ProbeAdapter
from .docker_probe import DockerProbe
from .http_probe import HttpProbe
from .ping_probe import PingProbe
from .proxmox_probe import ProxmoxProbe


class UnknownAdapterError(LookupError):
    """Raised when no probe is registered for a target kind."""

    pass


class DuplicateAdapterError(Exception):
    """Raised when registering a second probe for the same kind."""

    pass


class ProbeRegistry:
    """
    Registry for probe lookup by kind.

    Usage:
        registry = ProbeRegistry([HttpProbe(), PingProbe()])
        probe = registry.get("http")
    """

    def __init__(self, probes: Optional[Iterable[ProbeAdapter]] = None) -> None:
        self._probes: Dict[str, ProbeAdapter] = {}
        for probe in probes or ():
            self.register(probe)

    def register(self, probe: ProbeAdapter) -> None:
        """
        Register a probe under its kind.

        Raises:
            DuplicateAdapterError: If the kind is already taken
        """
        if probe.kind in self._probes:
            raise DuplicateAdapterError(f"Probe '{probe.kind}' is already registered")
        self._probes[probe.kind] = probe

    def get(self, kind: str) -> ProbeAdapter:
        """
        Get the probe for a target kind.

        Raises:
            UnknownAdapterError: If no probe handles this kind
        """
        if kind not in self._probes:
            available = ", ".join(self.list_all()) or "(none)"
            raise UnknownAdapterError(f"Unsupported service type '{kind}'. Available: {available}")
        return self._probes[kind]

    def list_all(self) -> List[str]:
        return sorted(self._probes.keys())

    def __contains__(self, kind: str) -> bool:
        return kind in self._probes

    def __len__(self) -> int:
        return len(self._probes)


def default_probe_registry(timeout: float = 10.0) -> ProbeRegistry:
    """Registry with every built-in probe, sharing one per-call timeout."""
    return ProbeRegistry([
        HttpProbe(timeout=timeout),
        DockerProbe(timeout=timeout, inventory_timeout=min(timeout, 5.0)),
        ProxmoxProbe(timeout=timeout),
        PingProbe(timeout=min(timeout, 5.0)),
    ])
