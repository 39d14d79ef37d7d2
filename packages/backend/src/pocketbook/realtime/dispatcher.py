"""Event dispatcher — deliver one domain event to all of a user's sockets.

Learn: Delivery is best-effort and at-most-once:
- user offline → dropped (not queued, not retried)
- one socket fails → logged, siblings still get the event
- nothing here ever raises back into the write that triggered it

The client may see its own echo before or after the HTTP response for
the write. Consumers treat every event as "refresh this", so duplicates
and reordering are harmless.
"""

import asyncio
import threading
from concurrent.futures import Future
from dataclasses import asdict, dataclass
from typing import Any, Optional, Union

import structlog

from pocketbook.events.types import (
    DomainEvent,
    EventName,
    UnknownEventError,
    user_channel,
)
from pocketbook.realtime.registry import ConnectionRegistry
from pocketbook.realtime.transport import GroupTransport

logger = structlog.get_logger()


@dataclass
class DispatcherStats:
    """Runtime counters for monitoring."""
    dispatched: int = 0
    delivered: int = 0
    dropped_offline: int = 0
    send_failures: int = 0
    rejected: int = 0


class EventDispatcher:
    """Routes (user_id, event, payload) to the user's channel.

    The registry is read-only from here; only the lifecycle handlers
    mutate it.
    """

    def __init__(self, registry: ConnectionRegistry, transport: GroupTransport):
        self.registry = registry
        self.transport = transport
        self.stats = DispatcherStats()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: set[asyncio.Task] = set()
        # Futures scheduled from worker threads; guarded by _futures_lock
        self._futures: set[Future] = set()
        self._futures_lock = threading.Lock()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the server loop so worker threads can notify()."""
        self._loop = loop

    async def dispatch(
        self,
        user_id: str,
        event_name: Union[str, EventName],
        payload: Any,
    ) -> int:
        """Deliver the event to every live connection of user_id.

        Returns the number of deliveries. Raises UnknownEventError for
        names outside EventName; delivery problems are never raised.
        """
        event = DomainEvent.create(event_name, payload)

        if not self.transport.spans_processes and not self.registry.connections_for(user_id):
            self.stats.dropped_offline += 1
            logger.debug("realtime.dispatch_offline", user_id=user_id, event_name=event.name.value)
            return 0

        self.stats.dispatched += 1
        try:
            delivered = await self.transport.emit(user_channel(user_id), event.to_message())
        except Exception as e:
            self.stats.send_failures += 1
            logger.warning(
                "realtime.dispatch_failed",
                user_id=user_id,
                event_name=event.name.value,
                error=str(e),
            )
            return 0

        self.stats.delivered += delivered
        logger.debug(
            "realtime.dispatched",
            user_id=user_id,
            event_name=event.name.value,
            delivered=delivered,
        )
        return delivered

    def notify(
        self,
        user_id: str,
        event_name: Union[str, EventName],
        payload: Any,
    ) -> Optional[Union[asyncio.Task, Future]]:
        """Fire-and-forget entry point for the API layer.

        Call only after the write is committed. Safe from the event loop
        or from a worker thread; never raises. Returns the scheduled
        task/future (mostly useful in tests), or None when dropped.
        """
        try:
            DomainEvent.create(event_name, payload)
        except UnknownEventError as e:
            self.stats.rejected += 1
            logger.warning("realtime.notify_rejected", user_id=user_id, error=str(e))
            return None

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(self.dispatch(user_id, event_name, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return task

        if self._loop is not None and self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(
                self.dispatch(user_id, event_name, payload), self._loop
            )
            with self._futures_lock:
                self._futures.add(future)
            future.add_done_callback(self._forget_future)
            return future

        logger.warning("realtime.notify_no_loop", user_id=user_id, event_name=event_name)
        return None

    async def drain(self) -> None:
        """Wait for outstanding notify() deliveries to finish (shutdown, tests).

        Covers tasks created on the loop and futures scheduled from
        worker threads. Must be awaited on the bound loop.
        """
        with self._futures_lock:
            futures = list(self._futures)
        waiting = list(self._pending) + [asyncio.wrap_future(f) for f in futures]
        if waiting:
            await asyncio.gather(*waiting, return_exceptions=True)

    def _forget_future(self, future: Future) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    def get_stats(self) -> dict[str, int]:
        stats = asdict(self.stats)
        stats["send_failures"] += getattr(self.transport, "send_failures", 0)
        return stats
