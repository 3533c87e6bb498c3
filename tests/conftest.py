"""Shared fixtures: an ApiClient wired to an in-process fake Luskad API."""

import socket

import httpx
import pytest

from core.api import ApiClient

BASE_URL = "https://luskad.test/api/v1"
API_KEY = "test-key"


class FakeLuskad:
    """httpx.MockTransport handler that records requests and serves canned responses.

    routes maps a URL path to (status_code, Response kwargs), or to an
    exception to raise.
    Unknown paths answer 404.
    """

    def __init__(self):
        self.requests = []
        self.routes = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(route, Exception):
            raise route
        status_code, kwargs = route
        return httpx.Response(status_code, **kwargs)

    def reply(self, path, status_code=200, **kwargs):
        self.routes["/api/v1" + path] = (status_code, kwargs)

    def fail(self, path, exc):
        self.routes["/api/v1" + path] = exc


@pytest.fixture
def fake_api():
    return FakeLuskad()


@pytest.fixture
def api(fake_api):
    return ApiClient(BASE_URL, API_KEY, transport=httpx.MockTransport(fake_api))


@pytest.fixture
def hold_ports():
    """Return a function that occupies `count` consecutive ports on 127.0.0.1.

    It returns the first port of the run; the sockets stay bound and listening
    until the test ends.
    """
    held = []

    def hold(count):
        for _ in range(50):
            spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            spare.bind(("127.0.0.1", 0))
            first = spare.getsockname()[1]
            spare.close()
            if first + count > 65535:
                continue
            run = []
            try:
                for port in range(first, first + count):
                    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                    run.append(sock)
                    sock.bind(("127.0.0.1", port))
                    sock.listen(1)
            except OSError:
                for sock in run:
                    sock.close()
                continue
            held.extend(run)
            return first
        raise RuntimeError(f"could not find {count} consecutive free ports")

    yield hold
    for sock in held:
        sock.close()
