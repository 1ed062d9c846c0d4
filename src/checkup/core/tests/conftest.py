"""
Core layer test fixtures.

The service is assembled from mocked components so lifecycle ordering
can be asserted without running any loop.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from checkup.core import MonitoringService


@pytest.fixture
def call_order():
    """Names of component methods in the order they were awaited."""
    return []


def _component(name, call_order):
    component = MagicMock()

    async def start():
        call_order.append(f"{name}.start")

    async def stop():
        call_order.append(f"{name}.stop")

    component.start = AsyncMock(side_effect=start)
    component.stop = AsyncMock(side_effect=stop)
    return component


@pytest.fixture
def components(call_order):
    alert_manager = MagicMock()

    async def drain(timeout=None):
        call_order.append("alerts.drain")

    alert_manager.drain = AsyncMock(side_effect=drain)
    return {
        "health_monitor": _component("monitor", call_order),
        "update_checker": _component("checker", call_order),
        "retention": _component("retention", call_order),
        "alert_manager": alert_manager,
    }


@pytest.fixture
def service(components):
    return MonitoringService(**components)
