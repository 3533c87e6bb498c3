"""Tests for tools/http_server.py: port fallback, socket options and the startup log line."""

import logging
import socket

import pytest
import uvicorn

from tools import http_server
from tools.http_server import PortUnavailableError, bind_first_free_port, serve_http


@pytest.fixture
def busy_port():
    """A port on 127.0.0.1 held by a listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


class TestPortFallback:

    def test_free_port_is_used_as_is(self):
        spare = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        spare.bind(("127.0.0.1", 0))
        port = spare.getsockname()[1]
        spare.close()

        sock = bind_first_free_port("127.0.0.1", port)
        try:
            assert sock.getsockname()[1] == port
        finally:
            sock.close()

    def test_busy_port_falls_back_to_a_later_one(self, busy_port):
        sock = bind_first_free_port("127.0.0.1", busy_port)
        try:
            assert sock.getsockname()[1] in range(busy_port + 1, busy_port + 11)
        finally:
            sock.close()

    def test_no_attempts_left(self, busy_port):
        with pytest.raises(PortUnavailableError):
            bind_first_free_port("127.0.0.1", busy_port, max_attempts=0)

    def test_port_unavailable_is_an_os_error(self):
        assert issubclass(PortUnavailableError, OSError)


class TestServeHttp:

    @pytest.mark.asyncio
    async def test_logs_the_port_actually_bound(self, hold_ports, monkeypatch, caplog):
        busy = hold_ports(2)
        served = []

        async def fake_serve(self, sockets=None):
            served.append(sockets[0].getsockname()[1])
            sockets[0].close()

        monkeypatch.setattr(uvicorn.Server, "serve", fake_serve)
        caplog.set_level(logging.INFO, logger="tools.http_server")

        await serve_http(object(), "127.0.0.1", busy)

        bound = served[0]
        assert bound in range(busy + 2, busy + 11)
        assert f"Port {busy} is in use, trying port {busy + 1}..." in caplog.text
        assert f"running on HTTP at http://localhost:{bound}/mcp" in caplog.text


class _RecordingSocket(socket.socket):
    """socket.socket that remembers which options were set on it."""

    options = []

    def setsockopt(self, level, option, value):
        type(self).options.append(option)
        super().setsockopt(level, option, value)


class TestReuseAddress:

    @pytest.fixture(autouse=True)
    def recording_socket(self, monkeypatch):
        _RecordingSocket.options = []
        monkeypatch.setattr(http_server.socket, "socket", _RecordingSocket)

    @pytest.mark.parametrize("reuse", [True, False])
    def test_reuse_address_follows_platform_switch(self, monkeypatch, reuse):
        monkeypatch.setattr(http_server, "_REUSE_ADDRESS", reuse)

        sock = http_server.bind_first_free_port("127.0.0.1", 0)
        sock.close()

        assert (socket.SO_REUSEADDR in _RecordingSocket.options) is reuse

    def test_fallback_without_reuse_address(self, monkeypatch, busy_port):
        monkeypatch.setattr(http_server, "_REUSE_ADDRESS", False)

        sock = http_server.bind_first_free_port("127.0.0.1", busy_port)
        try:
            assert sock.getsockname()[1] in range(busy_port + 1, busy_port + 11)
        finally:
            sock.close()
