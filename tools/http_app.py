# =============================================================================
# tools/http_app.py  -  HTTP Transport Router (ASGI)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Serves the MCP tools over HTTP.  One ASGI app, dispatching on exact path
#   and method:
#
#     OPTIONS  *            ->  200, empty body (CORS preflight)
#     *        /mcp         ->  Streamable HTTP, stateless: new server per request
#     GET      /sse         ->  legacy SSE stream, opens a session
#     POST     /messages    ->  legacy SSE message for ?sessionId=<id>
#     *        /ping        ->  200 "pong"
#     anything else         ->  404
#
#   Every response carries permissive CORS headers.
#
# WHY A PURE ASGI APP (not BaseHTTPMiddleware / Starlette routes):
#   The SSE and streamable responses are long-lived streams.  Wrapping send()
#   directly lets us add headers and know whether the response has started
#   without buffering anything.
#
# ERRORS:
#   Session problems are the client's fault: 400 with a short body.
#   Anything unexpected is logged; the client gets a 500 if nothing has been
#   sent yet, otherwise the connection just ends.
# =============================================================================

import logging
from typing import Callable, Optional

import anyio
import mcp.types as types
from fastmcp import FastMCP
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.server.transport_security import TransportSecuritySettings
from mcp.shared.message import ServerMessageMetadata, SessionMessage
from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import Message, Receive, Scope, Send

from tools.sessions import SessionTable

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
SSE_PATH = "/sse"
MESSAGE_PATH = "/messages"
PING_PATH = "/ping"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS,DELETE",
    "Access-Control-Allow-Headers": "Content-Type, MCP-Session-Id, mcp-session-id",
}

ServerFactory = Callable[[], FastMCP]


class _CorsSend:
    """send() wrapper: adds CORS headers and remembers whether the response started."""

    def __init__(self, send: Send):
        self._send = send
        self.response_started = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.response_started = True
            headers = MutableHeaders(scope=message)
            for name, value in CORS_HEADERS.items():
                headers[name] = value
        await self._send(message)


class McpHttpApp:
    """ASGI app exposing a fresh FastMCP server per HTTP connection.

    Args:
        server_factory: Builds a new FastMCP server (all tools registered).
        sessions: Legacy SSE session table; one is created if not given.
        message_path: Where legacy SSE clients POST their messages.
    """

    def __init__(
        self,
        server_factory: ServerFactory,
        sessions: Optional[SessionTable] = None,
        message_path: str = MESSAGE_PATH,
    ):
        self.server_factory = server_factory
        self.sessions = sessions if sessions is not None else SessionTable()
        self.message_path = message_path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        cors_send = _CorsSend(send)
        try:
            await self._route(scope, receive, cors_send)
        except Exception:
            logger.exception("Error handling %s %s", scope["method"], scope["path"])
            if not cors_send.response_started:
                response = PlainTextResponse("Internal Server Error", status_code=500)
                await response(scope, receive, cors_send)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _route(self, scope: Scope, receive: Receive, send: Send) -> None:
        method = scope["method"]
        path = scope["path"]

        if method == "OPTIONS":
            response: Response = Response(status_code=200)
        elif path == MCP_PATH:
            await self._handle_streamable_http(scope, receive, send)
            return
        elif path == SSE_PATH and method == "GET":
            await self._handle_sse(scope, receive, send)
            return
        elif path == self.message_path and method == "POST":
            await self._handle_post_message(scope, receive, send)
            return
        elif path == PING_PATH:
            response = PlainTextResponse("pong")
        else:
            response = PlainTextResponse("Not found", status_code=404)
        await response(scope, receive, send)

    # -------------------------------------------------------------------------
    # Streamable HTTP (/mcp)
    # -------------------------------------------------------------------------
    # A new server and a new stateless session manager for every request; both
    # are dropped when the response is finished.  No session id is issued.
    async def _handle_streamable_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        server = self.server_factory()
        session_manager = StreamableHTTPSessionManager(
            app=server._mcp_server,
            stateless=True,
            security_settings=TransportSecuritySettings(enable_dns_rebinding_protection=False),
        )
        async with session_manager.run():
            await session_manager.handle_request(scope, receive, send)

    # -------------------------------------------------------------------------
    # Legacy SSE (/sse + /messages)
    # -------------------------------------------------------------------------
    async def _handle_sse(self, scope: Scope, receive: Receive, send: Send) -> None:
        server = self.server_factory()
        message_path = scope.get("root_path", "").rstrip("/") + self.message_path
        session = self.sessions.open(message_path)
        try:
            async with anyio.create_task_group() as tg:

                async def stream_events() -> None:
                    await EventSourceResponse(session.events())(scope, receive, send)
                    # The client went away: end the server's input.
                    await session.close()

                tg.start_soon(stream_events)
                await server._mcp_server.run(
                    session.read_stream,
                    session.write_stream,
                    server._mcp_server.create_initialization_options(),
                )
                tg.cancel_scope.cancel()
        finally:
            self.sessions.remove(session.session_id)

    async def _handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.query_params.get("sessionId")
        if not session_id:
            response = PlainTextResponse("Missing sessionId parameter", status_code=400)
            await response(scope, receive, send)
            return

        session = self.sessions.get(session_id)
        if session is None:
            logger.warning("No transport found for sessionId: %s", session_id)
            response = PlainTextResponse(
                f"No transport found for sessionId: {session_id}", status_code=400
            )
            await response(scope, receive, send)
            return

        body = await request.body()
        try:
            message = types.jsonrpc_message_adapter.validate_json(body, by_name=False)
        except ValidationError as err:
            logger.warning("Could not parse message for session %s: %s", session_id, err)
            response = PlainTextResponse("Could not parse message", status_code=400)
            await response(scope, receive, send)
            await session.deliver(err)
            return

        response = PlainTextResponse("Accepted", status_code=202)
        await response(scope, receive, send)
        metadata = ServerMessageMetadata(request_context=request)
        await session.deliver(SessionMessage(message, metadata=metadata))
