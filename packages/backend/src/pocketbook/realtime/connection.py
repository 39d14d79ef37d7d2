"""One live WebSocket session from a single browser tab or device."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol


class TextSocket(Protocol):
    async def send_text(self, data: str) -> None: ...


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


@dataclass(eq=False)
class Connection:
    """Transport-owned socket wrapper.

    The registry only ever stores ``id``; the socket itself stays here.
    """

    socket: TextSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: Optional[str] = None
    state: ConnectionState = ConnectionState.CONNECTED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_authenticated(self) -> bool:
        return self.state == ConnectionState.AUTHENTICATED

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.DISCONNECTED

    def mark_authenticated(self, user_id: str) -> None:
        if self.is_closed:
            return
        self.user_id = user_id
        self.state = ConnectionState.AUTHENTICATED

    def mark_disconnected(self) -> None:
        self.state = ConnectionState.DISCONNECTED

    async def send(self, message: dict[str, Any]) -> None:
        await self.socket.send_text(json.dumps(message, default=str))
