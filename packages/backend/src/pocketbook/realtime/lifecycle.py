"""Connection lifecycle — connect, authenticate, disconnect.

Learn: Each socket walks one path:

    connected ──authenticate──▶ authenticated ──close──▶ disconnected
        └───────────────────close──────────────────────────┘

Only authenticated connections appear in the registry. A socket that
never authenticates costs a transport slot but no registry memory, and
its disconnect is a no-op unregister.

Registry and transport membership are updated together here so the
user channel always matches the registry (moves included).
"""

from typing import Optional

import structlog

from pocketbook.auth.jwt import TokenError, user_id_from_token
from pocketbook.events.types import user_channel
from pocketbook.realtime.connection import Connection, TextSocket
from pocketbook.realtime.registry import ConnectionRegistry
from pocketbook.realtime.transport import GroupTransport

logger = structlog.get_logger()


class ConnectionLifecycle:
    """Handlers invoked by the WebSocket endpoint."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: GroupTransport,
        *,
        require_signed_token: bool = False,
    ):
        self.registry = registry
        self.transport = transport
        self.require_signed_token = require_signed_token

    def connect(self, socket: TextSocket) -> Connection:
        connection = Connection(socket=socket)
        logger.info("realtime.connection_opened", connection_id=connection.id)
        return connection

    def authenticate(self, connection: Connection, credential: Optional[str]) -> bool:
        """Bind the connection to a user. Returns False when ignored.

        Empty or invalid credentials are silently ignored; the socket
        simply stays unauthenticated.
        """
        if not credential or not isinstance(credential, str) or connection.is_closed:
            return False

        user_id = self._resolve_user(credential)
        if not user_id:
            return False

        previous = self.registry.register(user_id, connection.id)
        if previous is not None:
            self.transport.leave(user_channel(previous), connection)
            logger.info(
                "realtime.connection_moved",
                connection_id=connection.id,
                from_user=previous,
                to_user=user_id,
            )

        self.transport.join(user_channel(user_id), connection)
        connection.mark_authenticated(user_id)
        logger.info(
            "realtime.connection_authenticated",
            connection_id=connection.id,
            user_id=user_id,
        )
        return True

    def disconnect(self, connection: Connection) -> None:
        if connection.is_closed:
            return

        user_id = self.registry.unregister(connection.id)
        if user_id is not None:
            self.transport.leave(user_channel(user_id), connection)
        connection.mark_disconnected()
        logger.info(
            "realtime.connection_closed",
            connection_id=connection.id,
            user_id=user_id,
        )

    def _resolve_user(self, credential: str) -> Optional[str]:
        if not self.require_signed_token:
            return credential
        try:
            return user_id_from_token(credential)
        except TokenError as e:
            logger.info("realtime.authenticate_rejected", error=str(e))
            return None
