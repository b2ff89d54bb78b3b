"""Pytest configuration for blockpool-client tests."""

import json
from collections.abc import Callable

import httpx
import pytest

from blockpool_client.core.config import ENV_DEBUG, ENV_NETWORK, ENV_SERVER_URL, ClientConfig

BASE_URL = "http://rpc.test"


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeServer:
    """
    Scripted RPC server behind ``httpx.MockTransport``.

    ``rpc`` handles ``/api/mcp`` posts and returns an ``httpx.Response``;
    the health and session endpoints succeed unless overridden. Hooks may
    be coroutine functions for responses that should take a while.

    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.results: dict[str, object] = {}
        self.rpc: Callable[[httpx.Request], httpx.Response] | None = None
        self.health: Callable[[httpx.Request], httpx.Response] | None = None
        self.session_create: Callable[[httpx.Request], httpx.Response] | None = None
        self.sse: Callable[[httpx.Request], httpx.Response] | None = None

    def count(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    def rpc_methods(self) -> list[str]:
        return [json.loads(r.content)["method"] for r in self.requests if r.url.path == "/api/mcp"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/health":
            if self.health is not None:
                return self.health(request)
            return httpx.Response(200, json={"status": "ok"})
        if path == "/session/create":
            if self.session_create is not None:
                return self.session_create(request)
            return httpx.Response(200, json={"success": True})
        if path == "/session/close":
            return httpx.Response(200, json={"success": True})
        if path == "/sse" and self.sse is not None:
            return self.sse(request)
        if path == "/api/mcp":
            if self.rpc is not None:
                return self.rpc(request)
            body = json.loads(request.content)
            result = self.results.get(body["method"], {"ok": True})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of config tests."""
    for name in (ENV_SERVER_URL, ENV_NETWORK, ENV_DEBUG):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def config():
    """Fast config: no backoff waits, two retries."""
    return ClientConfig.model_validate(
        {
            "server": {"url": BASE_URL, "timeout_ms": 2_000, "max_retries": 2, "retry_delay_ms": 0},
            "max_reconnect_attempts": 3,
        }
    )
