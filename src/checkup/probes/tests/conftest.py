"""
Probe layer test fixtures.

Probes only ever call session.get(...) as an async context manager, so
the aiohttp session is replaced by a MagicMock whose get() returns
canned responses.
"""
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest


def _response_cm(status=200, json_data=None):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data)
    if status >= 400:
        response.raise_for_status = MagicMock(
            side_effect=aiohttp.ClientResponseError(
                request_info=MagicMock(), history=(), status=status
            )
        )
    else:
        response.raise_for_status = MagicMock()

    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=response)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


@pytest.fixture
def http_response():
    """Factory: async context manager yielding a response with status/json."""
    return _response_cm


@pytest.fixture
def mock_session():
    """Session whose get() returns 200 with an empty body unless reconfigured."""
    session = MagicMock(spec=aiohttp.ClientSession)
    session.get = MagicMock(return_value=_response_cm(200, {}))
    return session


@pytest.fixture
def routed_session():
    """
    Factory: session answering by URL suffix.

    Values are either (status, json) tuples or exceptions to raise.
    """
    def _make(routes):
        session = MagicMock(spec=aiohttp.ClientSession)

        def get(url, **kwargs):
            for suffix, answer in routes.items():
                if url.endswith(suffix):
                    if isinstance(answer, BaseException):
                        raise answer
                    status, body = answer
                    return _response_cm(status, body)
            raise AssertionError(f"Unexpected URL {url}")

        session.get = MagicMock(side_effect=get)
        return session
    return _make
