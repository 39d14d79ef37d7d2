"""Redis pub/sub backplane — fan-out across worker processes.

Learn: Redis pub/sub is fire-and-forget. If no one is listening, the message
is lost. That's fine for live dashboard updates (the client re-fetches on
reconnect). With several uvicorn workers, a user's tabs may be spread over
processes; publishing through Redis lets whichever process handled the
write reach all of them.

Channel naming: pocketbook:events:user:{user_id}
Every process PSUBSCRIBEs to pocketbook:events:user:* and re-emits each
message to the sockets it holds locally.
"""

import asyncio
import json
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from pocketbook.events.types import USER_CHANNEL_PREFIX
from pocketbook.realtime.connection import Connection
from pocketbook.realtime.transport import GroupTransport, LocalGroupTransport

logger = structlog.get_logger()

CHANNEL_PREFIX = "pocketbook:events:"


async def create_redis(url: str) -> aioredis.Redis:
    """Open a Redis connection pool and verify it answers."""
    redis = aioredis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await redis.ping()
    except Exception:
        await redis.aclose()
        raise
    return redis


class RedisBackplaneTransport(GroupTransport):
    """Publishes through Redis; delivers to local members on receipt.

    If the subscription drops, the listener logs it, records the error
    (reported by the health check) and re-subscribes with backoff.
    """

    spans_processes = True

    def __init__(
        self,
        redis: aioredis.Redis,
        local: Optional[LocalGroupTransport] = None,
        *,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ):
        self.redis = redis
        self.local = local or LocalGroupTransport()
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self.listener_error: Optional[str] = None
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None

    def join(self, channel: str, connection: Connection) -> None:
        self.local.join(channel, connection)

    def leave(self, channel: str, connection: Connection) -> None:
        self.local.leave(channel, connection)

    @property
    def send_failures(self) -> int:
        return self.local.send_failures

    async def emit(self, channel: str, message: dict[str, Any]) -> int:
        """Publish to Redis. Returns the number of subscribed processes."""
        payload = json.dumps(message, default=str)
        return await self.redis.publish(f"{CHANNEL_PREFIX}{channel}", payload)

    async def start(self) -> None:
        await self._subscribe()
        self._listener = asyncio.create_task(self._listen())
        logger.info("realtime.backplane_subscribed", prefix=CHANNEL_PREFIX)

    async def stop(self) -> None:
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("realtime.backplane_listener_error", error=str(e))
            self._listener = None
        await self._close_pubsub(unsubscribe=True)

    async def _subscribe(self) -> None:
        self._pubsub = self.redis.pubsub()
        await self._pubsub.psubscribe(f"{CHANNEL_PREFIX}{USER_CHANNEL_PREFIX}*")

    async def _close_pubsub(self, unsubscribe: bool = False) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            if unsubscribe:
                await pubsub.punsubscribe()
        except Exception as e:
            logger.warning("realtime.backplane_unsubscribe_failed", error=str(e))
        finally:
            try:
                await pubsub.aclose()
            except Exception as e:
                logger.warning("realtime.backplane_close_failed", error=str(e))

    async def _listen(self) -> None:
        delay = self.retry_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    self.listener_error = None
                    delay = self.retry_delay
                    logger.info("realtime.backplane_resubscribed")
                async for message in self._pubsub.listen():
                    if message["type"] != "pmessage":
                        continue
                    await self.deliver(message["channel"], message["data"])
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.listener_error = str(e) or type(e).__name__
                logger.warning(
                    "realtime.backplane_listener_failed",
                    error=self.listener_error,
                    retry_in=delay,
                )
                await self._close_pubsub()
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_retry_delay)

    async def deliver(self, redis_channel: str, data: str) -> int:
        """Hand one backplane message to the local members of its channel."""
        channel = redis_channel[len(CHANNEL_PREFIX):]
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("realtime.backplane_bad_payload", channel=redis_channel)
            return 0
        return await self.local.emit(channel, payload)
