# Shared fixtures: a fake upstream built on httpx.MockTransport and a factory
# for TestClients talking to a proxy wired to it.
import os
import sys
from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from cors_proxy.settings import ProxySettings  # noqa: E402


def unread_response(
    status_code: int, content: bytes = b"", headers=None
) -> httpx.Response:
    # Response(content=...) is read eagerly; aiter_raw needs an unread stream
    return httpx.Response(status_code, headers=headers, stream=httpx.ByteStream(content))


class FakeUpstream:
    """Records every forwarded request and answers with a configurable response."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: (
            unread_response(200, b"upstream body", {"content-type": "text/plain"})
        )
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond_with(self, status_code: int, content: bytes = b"", headers=None) -> None:
        self.handler = lambda request: unread_response(status_code, content, headers)

    def fail_with(self, exc_type) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc_type("simulated failure", request=request)

        self.handler = _raise

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request reached the upstream"
        return self.requests[-1]


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_client(upstream):
    """Build a TestClient for a proxy configured with the given settings."""
    from cors_proxy.server import create_app

    def _make(settings: Optional[ProxySettings] = None) -> TestClient:
        app = create_app(settings or ProxySettings(), transport=upstream.transport)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
