import json

import httpx
import pytest

from space_api.cache import TTLCache
from space_api.config import Settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class Upstreams:
    """httpx.MockTransport handler routing on URL path prefixes."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, path_prefix, payload=None, status_code=200, content=None,
            content_type="application/json"):
        self.routes[path_prefix] = (payload, status_code, content, content_type)

    def count(self, path_prefix):
        return sum(1 for request in self.calls if request.url.path.startswith(path_prefix))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        # longest prefix wins
        for prefix in sorted(self.routes, key=len, reverse=True):
            if request.url.path.startswith(prefix):
                payload, status_code, content, content_type = self.routes[prefix]
                if content is None:
                    content = json.dumps(payload).encode()
                return httpx.Response(status_code, content=content,
                                      headers={"content-type": content_type})
        return httpx.Response(404, json={"error": "not stubbed"})

    @property
    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=60, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        nasa_api_key="test-nasa-key",
        n2yo_api_key="test-n2yo-key",
        refresh_on_startup=False,
        log_level="WARNING",
    )


@pytest.fixture
def upstreams():
    return Upstreams()
