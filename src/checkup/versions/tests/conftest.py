"""
Version adapter test fixtures.

Upstream APIs are replaced by httpx.MockTransport handlers; each test
describes the routes it expects and inspects the captured requests.
"""
import httpx
import pytest
import pytest_asyncio


@pytest.fixture
def routes():
    """Mapping of URL path -> httpx.Response (or exception) for the mock upstream."""
    return {}


@pytest.fixture
def captured():
    """Requests seen by the mock upstream, in order."""
    return []


@pytest_asyncio.fixture
async def client(routes, captured):
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        answer = routes.get(request.url.path)
        if answer is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(answer, Exception):
            raise answer
        return answer

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
        yield c
