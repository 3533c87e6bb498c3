# =============================================================================
# tools/http_server.py  -  HTTP Listener (uvicorn + port fallback)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Finds a free port and runs the ASGI app from tools/http_app.py on it.
#
# PORT FALLBACK:
#   If the configured port is taken, try the next one, then the next, up to
#   PORT_FALLBACK_ATTEMPTS ports past the configured one.  We bind the socket
#   ourselves and hand it to uvicorn, so the port we log is the port that is
#   actually serving.  Any bind error other than "address in use" is fatal.
# =============================================================================

import errno
import logging
import os
import socket

import uvicorn

logger = logging.getLogger(__name__)

PORT_FALLBACK_ATTEMPTS = 10

# Windows reports a busy port as WSAEADDRINUSE rather than EADDRINUSE.
_ADDRESS_IN_USE = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}

# On Windows SO_REUSEADDR lets two sockets share a busy port.
_REUSE_ADDRESS = os.name != "nt"


class PortUnavailableError(OSError):
    """Raised when no port in the fallback range could be bound."""


def bind_first_free_port(
    host: str, port: int, max_attempts: int = PORT_FALLBACK_ATTEMPTS
) -> socket.socket:
    """Bind a listening TCP socket on `port`, or the first free port after it.

    Tries port, port + 1, ..., port + max_attempts.

    Raises:
        PortUnavailableError: every port in the range is in use.
        OSError: binding failed for any other reason.
    """
    last_port = port + max_attempts
    for candidate in range(port, last_port + 1):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        if _REUSE_ADDRESS:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, candidate))
        except OSError as exc:
            sock.close()
            if exc.errno not in _ADDRESS_IN_USE:
                raise
            if candidate < last_port:
                logger.warning("Port %d is in use, trying port %d...", candidate, candidate + 1)
            continue
        sock.listen(socket.SOMAXCONN)
        sock.setblocking(False)
        return sock

    raise PortUnavailableError(
        errno.EADDRINUSE, f"No free port between {port} and {last_port}"
    )


async def serve_http(app, host: str, port: int) -> None:
    """Bind (with fallback) and serve `app` until the process is stopped."""
    sock = bind_first_free_port(host, port)
    bound_port = sock.getsockname()[1]
    logger.info(
        "Luskad MCP Server running on HTTP at http://localhost:%d/mcp "
        "and legacy SSE at /sse",
        bound_port,
    )
    config = uvicorn.Config(app, log_level="info")
    server = uvicorn.Server(config)
    await server.serve(sockets=[sock])
