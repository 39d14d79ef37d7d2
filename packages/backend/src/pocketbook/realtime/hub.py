"""RealtimeHub — builds and owns the realtime components for one process.

Learn: Created once in the FastAPI lifespan and stored on app.state,
then handed to whoever needs it (WebSocket endpoint, notify API, the
domain layer). No module-level globals, so tests build their own hub.
"""

import asyncio
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from pocketbook.config import Settings
from pocketbook.realtime.dispatcher import EventDispatcher
from pocketbook.realtime.lifecycle import ConnectionLifecycle
from pocketbook.realtime.pubsub import RedisBackplaneTransport, create_redis
from pocketbook.realtime.registry import ConnectionRegistry
from pocketbook.realtime.transport import GroupTransport, LocalGroupTransport

logger = structlog.get_logger()


class RealtimeHub:
    """Registry + transport + dispatcher + lifecycle, wired together."""

    def __init__(
        self,
        *,
        backplane: str = "memory",
        redis_url: Optional[str] = None,
        require_signed_token: bool = False,
        auth_timeout_seconds: float = 0,
    ):
        self.backplane = backplane
        self.redis_url = redis_url
        self.auth_timeout_seconds = auth_timeout_seconds
        self.redis: Optional[aioredis.Redis] = None

        self.registry = ConnectionRegistry()
        self.local = LocalGroupTransport()
        self.transport: GroupTransport = self.local
        self.dispatcher = EventDispatcher(self.registry, self.transport)
        self.lifecycle = ConnectionLifecycle(
            self.registry,
            self.transport,
            require_signed_token=require_signed_token,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RealtimeHub":
        return cls(
            backplane=settings.realtime_backplane,
            redis_url=settings.redis_url,
            require_signed_token=settings.require_signed_token,
            auth_timeout_seconds=settings.auth_timeout_seconds,
        )

    @property
    def backplane_active(self) -> bool:
        return isinstance(self.transport, RedisBackplaneTransport)

    async def start(self) -> None:
        self.dispatcher.bind_loop(asyncio.get_running_loop())

        if self.backplane != "redis":
            return

        try:
            self.redis = await create_redis(self.redis_url)
        except Exception as e:
            # Single-process delivery still works without Redis
            logger.warning("pocketbook.redis_unavailable", url=self.redis_url, error=str(e))
            return

        transport = RedisBackplaneTransport(self.redis, local=self.local)
        try:
            await transport.start()
        except Exception as e:
            logger.warning("pocketbook.redis_subscribe_failed", error=str(e))
            await transport.stop()
            await self.redis.aclose()
            self.redis = None
            return
        self._use_transport(transport)
        logger.info("pocketbook.redis_connected", url=self.redis_url)

    async def stop(self) -> None:
        await self.dispatcher.drain()
        try:
            if isinstance(self.transport, RedisBackplaneTransport):
                await self.transport.stop()
        finally:
            self._use_transport(self.local)
            if self.redis is not None:
                await self.redis.aclose()
                self.redis = None

    def notify(self, user_id: str, event_name: str, payload: Any) -> None:
        """Shortcut for the domain layer: fire-and-forget dispatch."""
        self.dispatcher.notify(user_id, event_name, payload)

    async def check_backplane(self) -> str:
        if self.backplane != "redis":
            return "disabled"
        if self.redis is None:
            return "error: not connected"
        try:
            await self.redis.ping()
        except Exception as e:
            return f"error: {e}"
        if self.backplane_active and self.transport.listener_error:
            return f"error: subscription lost ({self.transport.listener_error})"
        return "ok"

    def stats(self) -> dict[str, Any]:
        return {
            "backplane": self.backplane if self.backplane_active else "memory",
            "registry": self.registry.snapshot(),
            "channels": len(self.local.channels()),
            "dispatcher": self.dispatcher.get_stats(),
        }

    def _use_transport(self, transport: GroupTransport) -> None:
        self.transport = transport
        self.dispatcher.transport = transport
        self.lifecycle.transport = transport
