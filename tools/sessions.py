# =============================================================================
# tools/sessions.py  -  Legacy SSE Sessions
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Holds the one piece of state shared between HTTP connections: the table
#   that links a legacy SSE stream (GET /sse) to the messages a client later
#   POSTs to /messages?sessionId=<id>.
#
# THE LIFECYCLE:
#   1. GET /sse        ->  SessionTable.open() creates a LegacySseSession
#                          with a fresh id and stores it.
#   2. First event     ->  "endpoint", data "/messages?sessionId=<id>".
#   3. POST /messages  ->  SessionTable.get(id) finds the session and
#                          deliver() hands the JSON-RPC message to the
#                          FastMCP server reading session.read_stream.
#   4. Server replies  ->  written to session.write_stream, streamed back to
#                          the client as "message" events.
#   5. GET closes      ->  SessionTable.remove(id).  This is the only cleanup
#                          trigger; there is no idle timeout.
#
# CONCURRENCY:
#   The table is only touched from the asyncio event loop, so a plain dict
#   is enough.
# =============================================================================

import logging
from typing import AsyncIterator, Optional, Union
from uuid import uuid4

import anyio
from mcp.shared.message import SessionMessage

logger = logging.getLogger(__name__)


class LegacySseSession:
    """Streams connecting one SSE client to one FastMCP server instance.

    read_stream / write_stream are the pair handed to the server's run();
    events() is the body of the client's event stream.
    """

    def __init__(self, session_id: str, message_path: str):
        self.session_id = session_id
        self.endpoint = f"{message_path}?sessionId={session_id}"
        self._incoming, self.read_stream = anyio.create_memory_object_stream[
            Union[SessionMessage, Exception]
        ](0)
        self.write_stream, self._outgoing = anyio.create_memory_object_stream[SessionMessage](0)

    async def events(self) -> AsyncIterator[dict]:
        yield {"event": "endpoint", "data": self.endpoint}
        async with self._outgoing:
            async for session_message in self._outgoing:
                yield {
                    "event": "message",
                    "data": session_message.message.model_dump_json(
                        by_alias=True, exclude_unset=True
                    ),
                }

    async def deliver(self, item: Union[SessionMessage, Exception]) -> None:
        """Pass a client message (or a parse error) to the server.

        A message that races the stream closing is dropped with a warning.
        """
        try:
            await self._incoming.send(item)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.warning("SSE session %s closed before message was delivered", self.session_id)

    async def close(self) -> None:
        """End the session; the server sees end-of-stream and returns."""
        await self._incoming.aclose()
        await self._outgoing.aclose()


class SessionTable:
    """Live legacy SSE sessions keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, LegacySseSession] = {}

    def open(self, message_path: str) -> LegacySseSession:
        session = LegacySseSession(uuid4().hex, message_path)
        self._sessions[session.session_id] = session
        logger.info("SSE session %s opened (%d active)", session.session_id, len(self))
        return session

    def get(self, session_id: str) -> Optional[LegacySseSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("SSE session %s closed (%d active)", session_id, len(self))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
