"""Connection lifecycle tests — connect → authenticate → disconnect.

Learn: These walk the end-to-end scenarios with fake sockets:
multi-tab fan-out, disconnect cleanup, user isolation, and the
move policy for a socket that re-authenticates as someone else.
"""

import pytest

from pocketbook.auth.jwt import create_access_token
from pocketbook.events.types import user_channel
from pocketbook.realtime.connection import ConnectionState
from pocketbook.realtime.hub import RealtimeHub


# ═══════════════════════════════════════════════════════════
# Scenarios
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_two_tabs_then_one_disconnects(hub, open_connection):
    """connect A, auth A, connect B, auth B → both get it; drop A → only B."""
    conn_a, sock_a = open_connection()
    assert hub.lifecycle.authenticate(conn_a, "user-1")
    conn_b, sock_b = open_connection()
    assert hub.lifecycle.authenticate(conn_b, "user-1")

    await hub.dispatcher.dispatch("user-1", "category:created", {"id": "c1"})
    assert sock_a.events == [("category:created", {"id": "c1"})]
    assert sock_b.events == [("category:created", {"id": "c1"})]

    hub.lifecycle.disconnect(conn_a)
    delivered = await hub.dispatcher.dispatch("user-1", "category:created", {"id": "c1"})

    assert delivered == 1
    assert len(sock_a.events) == 1
    assert len(sock_b.events) == 2


@pytest.mark.asyncio
async def test_users_are_isolated(hub, open_connection):
    _, sock_1 = open_connection("user-1")
    _, sock_2 = open_connection("user-2")

    await hub.dispatcher.dispatch("user-1", "expense:created", {"id": "e1"})

    assert sock_1.events == [("expense:created", {"id": "e1"})]
    assert sock_2.events == []


@pytest.mark.asyncio
async def test_reauthenticate_as_other_user_moves(hub, open_connection):
    """A socket re-authenticating as user-2 stops receiving user-1 events."""
    conn, sock = open_connection("user-1")

    assert hub.lifecycle.authenticate(conn, "user-2")

    assert hub.registry.connections_for("user-1") == frozenset()
    assert hub.registry.connections_for("user-2") == {conn.id}
    assert hub.local.members(user_channel("user-1")) == []
    assert conn.user_id == "user-2"

    await hub.dispatcher.dispatch("user-1", "expense:created", {"id": "e1"})
    await hub.dispatcher.dispatch("user-2", "expense:created", {"id": "e2"})
    assert sock.events == [("expense:created", {"id": "e2"})]


# ═══════════════════════════════════════════════════════════
# Authenticate edge cases
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize("credential", ["", None, 42])
def test_malformed_authenticate_ignored(hub, open_connection, credential):
    conn, _ = open_connection()

    assert hub.lifecycle.authenticate(conn, credential) is False
    assert conn.state == ConnectionState.CONNECTED
    assert len(hub.registry) == 0


def test_authenticate_after_disconnect_ignored(hub, open_connection):
    conn, _ = open_connection()
    hub.lifecycle.disconnect(conn)

    assert hub.lifecycle.authenticate(conn, "user-1") is False
    assert hub.registry.users() == []
    assert conn.state == ConnectionState.DISCONNECTED


# ═══════════════════════════════════════════════════════════
# Disconnect
# ═══════════════════════════════════════════════════════════


def test_disconnect_never_authenticated_is_noop(hub, open_connection):
    conn, _ = open_connection()
    _, _ = open_connection("user-1")

    hub.lifecycle.disconnect(conn)

    assert conn.state == ConnectionState.DISCONNECTED
    assert hub.registry.users() == ["user-1"]


def test_disconnect_twice_is_safe(hub, open_connection):
    conn, _ = open_connection("user-1")

    hub.lifecycle.disconnect(conn)
    hub.lifecycle.disconnect(conn)

    assert hub.registry.users() == []
    assert hub.local.channels() == []


def test_last_disconnect_prunes_channel(hub, open_connection):
    conn_a, _ = open_connection("user-1")
    conn_b, _ = open_connection("user-1")

    hub.lifecycle.disconnect(conn_a)
    assert hub.local.channels() == ["user:user-1"]

    hub.lifecycle.disconnect(conn_b)
    assert hub.local.channels() == []
    assert hub.registry.connections_for("user-1") == frozenset()


# ═══════════════════════════════════════════════════════════
# Signed-token mode
# ═══════════════════════════════════════════════════════════


class TestSignedTokens:
    """With require_signed_token the credential must be a valid JWT."""

    @pytest.fixture
    def hub(self):
        return RealtimeHub(require_signed_token=True)

    def test_token_authenticates_as_sub(self, hub, open_connection):
        conn, _ = open_connection()

        assert hub.lifecycle.authenticate(conn, create_access_token("user-1"))
        assert hub.registry.connections_for("user-1") == {conn.id}

    def test_raw_user_id_rejected(self, hub, open_connection):
        conn, _ = open_connection()

        assert hub.lifecycle.authenticate(conn, "user-1") is False
        assert hub.registry.users() == []

    def test_expired_token_rejected(self, hub, open_connection):
        conn, _ = open_connection()
        token = create_access_token("user-1", expires_minutes=-1)

        assert hub.lifecycle.authenticate(conn, token) is False
