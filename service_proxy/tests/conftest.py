"""
Shared fixtures for proxy service tests.
"""

from typing import Callable, List, Optional, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from service_proxy.app.main import ProxyService
from service_proxy.app.routing import AllowRule
from service_proxy.app.settings import ProxySettings


PROXY_KEY = "test-secret"

TEST_ROUTES = [
    AllowRule(mount_prefix="/catalog", upstream_base="https://catalog.example"),
    AllowRule(mount_prefix="/games", upstream_base="https://games.example"),
]


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Async sleep stand-in that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


Behaviour = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class MockUpstream:
    """In-process upstream built on httpx.MockTransport.

    Plays queued behaviours in order (a response, an exception to raise, or a
    callable) and falls back to a default 200 JSON response.
    """

    def __init__(self, *, status_code: int = 200, body: bytes = b'{"data": []}',
                 content_type: Optional[str] = "application/json"):
        self.requests: List[httpx.Request] = []
        self.queue: List[Behaviour] = []
        self.status_code = status_code
        self.body = body
        self.content_type = content_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.queue:
            behaviour = self.queue.pop(0)
            if isinstance(behaviour, Exception):
                raise behaviour
            if callable(behaviour) and not isinstance(behaviour, httpx.Response):
                return behaviour(request)
            return behaviour
        headers = {"content-type": self.content_type} if self.content_type else {}
        return httpx.Response(self.status_code, content=self.body, headers=headers)

    def fail_with(self, *errors: Exception) -> None:
        self.queue.extend(errors)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_settings(**overrides) -> ProxySettings:
    values = {
        "proxy_key": PROXY_KEY,
        "routes": list(TEST_ROUTES),
        "log_level": "warning",
        "security_headers": True,
    }
    values.update(overrides)
    return ProxySettings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def upstream():
    return MockUpstream()


@pytest.fixture
def make_service(upstream, clock, sleep):
    """Factory building a ProxyService wired to the mock upstream."""

    def _make(**overrides) -> ProxyService:
        return ProxyService(
            make_settings(**overrides),
            transport=upstream.transport,
            clock=clock,
            sleep=sleep,
            rand=lambda: 0.5,
        )

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def client(service):
    return TestClient(service.app)


@pytest.fixture
def auth_headers():
    return {"x-proxy-key": PROXY_KEY}
