"""Shared fixtures for proxy and offline cache tests."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from mapsketch.config import get_api_key
from mapsketch.proxy.main import app
from mapsketch.proxy.routes import get_http_client

API_KEY = "SECRET123"


class FakeUpstream:
    """MockTransport handler recording requests and replying via ``reply``."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.reply = lambda request: httpx.Response(200)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)


class FakeNetwork:
    """Async fetch callable standing in for the browser network.

    Each successful fetch returns a body "<path>#<n>" so tests can tell fresh
    responses from stored ones.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.online = True
        self.delay = 0.0
        self.status_code = 200

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.online:
            raise httpx.ConnectError("network down", request=request)
        return httpx.Response(
            self.status_code,
            content=f"{request.url.path}#{len(self.requests)}".encode(),
            headers={"Content-Type": "text/plain"},
            request=request,
        )


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(upstream):
    """Proxy TestClient wired to the fake upstream and a fixed API key."""

    async def override_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http_client:
            yield http_client

    app.dependency_overrides[get_http_client] = override_http_client
    app.dependency_overrides[get_api_key] = lambda: API_KEY
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def network():
    return FakeNetwork()
