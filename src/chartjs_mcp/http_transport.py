"""
Streamable HTTP transport with per-session transports.

Each MCP client gets its own StreamableHTTPServerTransport, keyed by the
session id the client echoes back in the ``mcp-session-id`` header:

- POST without a session header opens a new session if it carries an
  initialize request
- any request with a known session header is forwarded to its transport
- everything else is rejected with a JSON-RPC "no valid session" error

A session is dropped from the registry as soon as its transport closes
(DELETE from the client, server loop ending, or shutdown).
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional
from uuid import uuid4

import anyio
import uvicorn
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

NO_SESSION_ERROR = {
    "jsonrpc": "2.0",
    "error": {
        "code": -32000,
        "message": "Bad Request: No valid session. Send an initialization request first.",
    },
    "id": None,
}

HEALTH_STATUS = {"status": "ok", "transport": "streamable-http"}
NOT_FOUND = {"error": "Not Found"}
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def is_initialize_request(body: bytes) -> bool:
    """True if body is a JSON-RPC initialize message, or a batch holding one."""
    try:
        message = json.loads(body)
    except ValueError:
        return False

    messages = message if isinstance(message, list) else [message]
    return any(isinstance(m, dict) and m.get("method") == "initialize" for m in messages)


class SessionRegistry:
    """Owns the session id -> transport table for streamable HTTP.

    Session server loops run inside the task group opened by run(); the
    registry must be running before it can handle requests.
    """

    def __init__(
        self,
        server: Server,
        transport_factory: Optional[Callable[[str], StreamableHTTPServerTransport]] = None,
        json_response: bool = False,
    ):
        self._server = server
        self._json_response = json_response
        self._transport_factory = transport_factory or self._new_transport
        self._transports: dict[str, StreamableHTTPServerTransport] = {}
        self._task_group: Optional[TaskGroup] = None

    def __len__(self) -> int:
        return len(self._transports)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._transports

    def get(self, session_id: str) -> Optional[StreamableHTTPServerTransport]:
        return self._transports.get(session_id)

    def _new_transport(self, session_id: str) -> StreamableHTTPServerTransport:
        return StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self._json_response,
        )

    @asynccontextmanager
    async def run(self):
        """Run the registry; closes every open session on exit."""
        if self._task_group is not None:
            raise RuntimeError("SessionRegistry is already running")

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            try:
                yield self
            finally:
                await self.close_all()
                tg.cancel_scope.cancel()
                self._task_group = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.handle_request(scope, receive, send)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._task_group is None:
            raise RuntimeError("SessionRegistry is not running. Use 'async with registry.run()'.")

        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)

        if session_id and session_id in self._transports:
            transport = self._transports[session_id]
            await transport.handle_request(scope, receive, send)
            # DELETE terminates the transport; forget it without waiting for its loop
            if transport.is_terminated and self._transports.get(session_id) is transport:
                del self._transports[session_id]
                logger.info("Session %s terminated by client", session_id)
        elif not session_id and request.method == "POST":
            await self._open_session(scope, receive, send)
        else:
            logger.debug("Rejected %s request with session %r", request.method, session_id)
            response = JSONResponse(NO_SESSION_ERROR, status_code=400)
            await response(scope, receive, send)

    async def _open_session(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        body = await request.body()
        if not is_initialize_request(body):
            logger.debug("Rejected POST without session: not an initialize request")
            response = JSONResponse(NO_SESSION_ERROR, status_code=400)
            await response(scope, receive, send)
            return

        body_sent = False

        async def replay_receive() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        session_id = uuid4().hex
        transport = self._transport_factory(session_id)
        # Registered before the next await so a second request cannot race it
        self._transports[session_id] = transport
        await self._task_group.start(self._run_session, session_id, transport)

        status: Optional[int] = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start" and status is None:
                status = message["status"]
            await send(message)

        await transport.handle_request(scope, replay_receive, send_wrapper)

        if status is None or not 200 <= status < 300:
            # Initialization was refused; the client never learns this id
            if self._transports.get(session_id) is transport:
                logger.debug("Discarding session %s after status %s", session_id, status)
                await self.close(session_id)
        else:
            logger.info("Opened session %s", session_id)

    async def _run_session(
        self,
        session_id: str,
        transport: StreamableHTTPServerTransport,
        *,
        task_status: TaskStatus = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        try:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                    stateless=False,
                )
        except Exception:
            logger.exception("Session %s failed", session_id)
        finally:
            if self._transports.get(session_id) is transport:
                del self._transports[session_id]
            logger.info("Closed session %s", session_id)

    async def close(self, session_id: str) -> None:
        """Terminate a session's transport and forget it."""
        transport = self._transports.pop(session_id, None)
        if transport is not None:
            await transport.terminate()

    async def close_all(self) -> None:
        for session_id in list(self._transports):
            await self.close(session_id)


def create_app(registry: SessionRegistry) -> Starlette:
    """Build the ASGI app serving /mcp and /health."""

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(HEALTH_STATUS)

    async def not_found(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(NOT_FOUND, status_code=404)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with registry.run():
            yield

    return Starlette(
        routes=[
            Route("/mcp", endpoint=registry),
            Route("/health", endpoint=health, methods=ALL_METHODS),
        ],
        exception_handlers={404: not_found},
        lifespan=lifespan,
    )


class ChartHTTPServer(uvicorn.Server):
    """uvicorn server that closes MCP sessions before its listening sockets."""

    def __init__(self, config: uvicorn.Config, registry: SessionRegistry):
        super().__init__(config)
        self.registry = registry

    async def shutdown(self, sockets=None) -> None:
        logger.info("Shutting down server...")
        await self.registry.close_all()
        await super().shutdown(sockets=sockets)


def run_http_server(server: Server, host: str, port: int, log_level: str = "info") -> None:
    """Serve the MCP server over streamable HTTP until interrupted."""
    registry = SessionRegistry(server)
    config = uvicorn.Config(create_app(registry), host=host, port=port, log_level=log_level.lower())
    http_server = ChartHTTPServer(config, registry)

    logger.info("ChartJS MCP Server running with streamable-http transport on http://%s:%d/mcp", host, port)
    http_server.run()
