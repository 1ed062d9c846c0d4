"""
Probe Adapters - one checker per monitored target type.

    - HttpProbe: HTTP status classification
    - DockerProbe: Docker Engine version + container inventory
    - ProxmoxProbe: Proxmox cluster status + node capacity averages
    - PingProbe: TCP reachability

Every probe returns a ProbeOutcome (TargetState + MetricSample list).
"""

from .base import MetricSample, ProbeAdapter, ProbeError, ProbeOutcome
from .docker_probe import DockerProbe
from .http_probe import HttpProbe
from .ping_probe import PingProbe
from .proxmox_probe import ProxmoxProbe, summarize_nodes
from .registry import (
    DuplicateAdapterError,
    ProbeRegistry,
    UnknownAdapterError,
    default_probe_registry,
)

__all__ = [
    "MetricSample",
    "ProbeAdapter",
    "ProbeError",
    "ProbeOutcome",
    "HttpProbe",
    "DockerProbe",
    "ProxmoxProbe",
    "PingProbe",
    "summarize_nodes",
    "ProbeRegistry",
    "UnknownAdapterError",
    "DuplicateAdapterError",
    "default_probe_registry",
]
