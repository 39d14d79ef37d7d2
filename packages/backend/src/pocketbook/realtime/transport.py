"""Group-addressable delivery — "send to every socket in a channel".

Learn: The dispatcher never iterates sockets itself. It hands a message
to a GroupTransport for a channel name, and the transport decides how
to reach the members:

- LocalGroupTransport: in-process rooms, one asyncio send per member
- RedisBackplaneTransport (pubsub.py): publish once, every worker
  process delivers to the members it holds locally

A slow or broken socket must not hold up its siblings, so members are
sent to concurrently and failures are logged, never raised.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import structlog

from pocketbook.realtime.connection import Connection

logger = structlog.get_logger()


class GroupTransport(ABC):
    """Channel membership + fan-out capability."""

    # True when emit() reaches sockets held by other processes, so a
    # local registry miss does not mean the user is offline.
    spans_processes: bool = False

    @abstractmethod
    def join(self, channel: str, connection: Connection) -> None: ...

    @abstractmethod
    def leave(self, channel: str, connection: Connection) -> None: ...

    @abstractmethod
    async def emit(self, channel: str, message: dict[str, Any]) -> int:
        """Deliver message to the channel. Returns the delivery count."""


class LocalGroupTransport(GroupTransport):
    """In-process rooms keyed by channel name."""

    def __init__(self):
        self._rooms: dict[str, dict[str, Connection]] = {}
        self.send_failures = 0

    def join(self, channel: str, connection: Connection) -> None:
        self._rooms.setdefault(channel, {})[connection.id] = connection

    def leave(self, channel: str, connection: Connection) -> None:
        room = self._rooms.get(channel)
        if room is None:
            return
        room.pop(connection.id, None)
        if not room:
            del self._rooms[channel]

    def members(self, channel: str) -> list[Connection]:
        return list(self._rooms.get(channel, {}).values())

    def channels(self) -> list[str]:
        return list(self._rooms)

    async def emit(self, channel: str, message: dict[str, Any]) -> int:
        members = self.members(channel)
        if not members:
            return 0

        results = await asyncio.gather(
            *(member.send(message) for member in members),
            return_exceptions=True,
        )

        delivered = 0
        for member, result in zip(members, results):
            if isinstance(result, BaseException):
                self.send_failures += 1
                logger.warning(
                    "realtime.send_failed",
                    channel=channel,
                    connection_id=member.id,
                    error=str(result),
                )
            else:
                delivered += 1
        return delivered
