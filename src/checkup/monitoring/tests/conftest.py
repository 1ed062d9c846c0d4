"""
Monitoring layer test fixtures.

Loops run against the in-memory repositories from the root conftest,
scripted probe/version adapters, and an httpx.MockTransport standing in
for notification endpoints.
"""
import asyncio
from typing import Callable, Dict, List

import httpx
import pytest

from checkup.monitoring.alerting import AlertingConfig, AlertManager
from checkup.monitoring.health_monitor import HealthMonitorConfig
from checkup.monitoring.notifications import NotificationDispatcher
from checkup.monitoring.update_checker import UpdateCheckerConfig
from checkup.probes import ProbeOutcome, ProbeRegistry
from checkup.storage.models import TargetState
from checkup.versions import VersionInfo, VersionProviderRegistry


# =============================================================================
# Scripted adapters
# =============================================================================


class ScriptedProbe:
    """
    Probe whose behaviour per target id is a callable returning an outcome.

    Unscripted targets are online.
    """

    kind = "scripted"

    def __init__(self) -> None:
        self.script: Dict[int, Callable] = {}
        self.calls: List[int] = []

    async def probe(self, target, session):
        self.calls.append(target.id)
        behaviour = self.script.get(target.id)
        if behaviour is None:
            return ProbeOutcome(TargetState.ONLINE, message="ok")
        result = behaviour()
        if asyncio.iscoroutine(result):
            result = await result
        return result


class ScriptedVersions:
    """Version adapter answering from a per-artifact table."""

    provider = "scripted"

    def __init__(self) -> None:
        self.versions: Dict[int, object] = {}
        self.calls: List[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.delay = 0.0

    async def fetch_version(self, artifact, client):
        self.calls.append(artifact.id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            answer = self.versions.get(artifact.id)
            if isinstance(answer, Exception):
                raise answer
            return VersionInfo(version=answer or "")
        finally:
            self.in_flight -= 1


@pytest.fixture
def scripted_probe():
    return ScriptedProbe()


@pytest.fixture
def probe_registry(scripted_probe):
    return ProbeRegistry([scripted_probe])


@pytest.fixture
def scripted_versions():
    return ScriptedVersions()


@pytest.fixture
def version_registry(scripted_versions):
    return VersionProviderRegistry([scripted_versions])


# =============================================================================
# Configs
# =============================================================================


@pytest.fixture
def fast_monitor_config():
    """Short timeouts and no start delay for fast tests."""
    return HealthMonitorConfig(
        interval_seconds=0.05,
        start_delay_seconds=0,
        probe_timeout_seconds=0.2,
        timeout_grace_seconds=0.05,
    )


@pytest.fixture
def fast_checker_config():
    return UpdateCheckerConfig(
        interval_hours=1,
        start_delay_seconds=0,
        item_delay_seconds=0,
        fetch_timeout_seconds=0.2,
    )


# =============================================================================
# Notifications
# =============================================================================


@pytest.fixture
def notification_requests():
    """Requests received by the mock notification endpoints."""
    return []


@pytest.fixture
def failing_hosts():
    """Hostnames whose endpoints answer 500."""
    return set()


@pytest.fixture
def dispatcher(notification_requests, failing_hosts):
    def handler(request: httpx.Request) -> httpx.Response:
        notification_requests.append(request)
        if request.url.host in failing_hosts:
            return httpx.Response(500)
        return httpx.Response(200, json={"ok": True})

    return NotificationDispatcher(
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.fixture
def alert_manager(alert_repo, channel_repo, dispatcher):
    return AlertManager(
        alert_repo,
        channel_repo,
        dispatcher=dispatcher,
        config=AlertingConfig(shutdown_grace_seconds=0.5),
    )
