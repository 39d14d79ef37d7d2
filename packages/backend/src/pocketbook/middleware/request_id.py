"""Request ID middleware — unique ID per request or socket for tracing.

Learn: Every HTTP request and every WebSocket session gets a UUID, either
from the incoming X-Request-ID header or auto-generated. It is bound to
structlog's contextvars so all log entries for that request (or for the
whole lifetime of a socket) carry it. HTTP responses echo it back.

Written as plain ASGI rather than BaseHTTPMiddleware, which only sees
HTTP and would leave WebSocket logs uncorrelated.
"""

import uuid

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER = "X-Request-ID"


class RequestIdMiddleware:
    """Generate and propagate a unique request ID."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(HEADER) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_id)
