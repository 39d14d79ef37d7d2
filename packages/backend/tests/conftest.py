"""Test fixtures — a fresh RealtimeHub per test, fake sockets, HTTP client.

Learn: The realtime core never touches a real network socket directly;
it only calls `await socket.send_text(...)`. FakeSocket records those
frames so tests can assert exactly who received what.

The HTTP client talks to the ASGI app in-process (httpx ASGITransport).
ASGITransport does not run the lifespan, so the `client` fixture
installs and starts the test's hub itself.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pocketbook.main import create_app
from pocketbook.realtime.hub import RealtimeHub


class FakeSocket:
    """Records frames sent to it; can be told to fail every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("socket closed by peer")
        self.sent.append(json.loads(data))

    @property
    def events(self) -> list[tuple[str, object]]:
        return [(m["event"], m["data"]) for m in self.sent if "event" in m]


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def open_connection(hub):
    """Factory: open a connection on the hub, optionally authenticated.

    Returns (connection, socket).
    """

    def _open(user_id=None, *, fail=False):
        socket = FakeSocket(fail=fail)
        connection = hub.lifecycle.connect(socket)
        if user_id is not None:
            hub.lifecycle.authenticate(connection, user_id)
        return connection, socket

    return _open


@pytest.fixture
def app(hub):
    app = create_app()
    app.state.realtime = hub
    return app


@pytest_asyncio.fixture()
async def client(app, hub):
    """HTTP client against the app, with the test's hub started."""
    await hub.start()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await hub.stop()
