"""Redis transport for cross-process messaging."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Optional, Tuple

import redis.asyncio as redis

from ..contracts import AutomationMessage
from .base import BaseTransport, is_due

logger = logging.getLogger(__name__)

# (topic, message json)
RawMessage = Tuple[str, str]


class RedisTransport(BaseTransport[RawMessage]):
    """Redis-based transport for distributed messaging.

    Ready messages live in a list. Delivery moves a message atomically to a
    per-topic processing list and stamps its delivery time in an
    ``:inflight`` sorted set; both entries are removed on ack. Messages left
    in flight longer than ``visibility_timeout`` (their worker died before
    acking) are moved back to the ready list by :meth:`recover`, which runs
    when a subscription starts and then once per timeout period. Delayed
    messages wait in a sorted set scored by their ``not_before`` timestamp.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        prefix: str = "fieldflow",
        visibility_timeout: float = 300.0,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.prefix = prefix
        self.visibility_timeout = visibility_timeout
        self._redis: Optional[Any] = None

    def _key(self, topic: str, suffix: str = "") -> str:
        key = f"{self.prefix}:{topic}"
        return f"{key}:{suffix}" if suffix else key

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        # Test connection
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def publish(self, topic: str, message: AutomationMessage) -> None:
        """Publish message to the ready list, or the delayed set if not yet due."""
        if not self._redis:
            await self.connect()

        message_json = message.to_json()
        if not is_due(message):
            await self._redis.zadd(
                self._key(topic, "delayed"),
                {message_json: message.not_before.timestamp()},
            )
        else:
            await self._redis.lpush(self._key(topic), message_json)

    async def _promote_due(self, topic: str) -> None:
        delayed_key = self._key(topic, "delayed")
        due = await self._redis.zrangebyscore(delayed_key, 0, time.time())
        for message_json in due:
            # Only the worker that wins the ZREM moves the message.
            if await self._redis.zrem(delayed_key, message_json):
                await self._redis.lpush(self._key(topic), message_json)

    async def recover(self, topic: str) -> int:
        """Requeue messages whose delivery is older than ``visibility_timeout``.

        Returns the number of messages moved back to the ready list.
        """
        if not self._redis:
            await self.connect()

        processing = self._key(topic, "processing")
        inflight = self._key(topic, "inflight")
        cutoff = time.time() - self.visibility_timeout
        recovered = 0
        for message_json in await self._redis.lrange(processing, 0, -1):
            delivered_at = await self._redis.zscore(inflight, message_json)
            if delivered_at is None:
                # Moved by a worker that has not stamped it yet; judge it next time.
                await self._redis.zadd(inflight, {message_json: time.time()}, nx=True)
                continue
            if delivered_at > cutoff:
                continue
            # Only the caller that wins the LREM requeues the message.
            if await self._redis.lrem(processing, 1, message_json):
                await self._redis.zrem(inflight, message_json)
                await self._redis.lpush(self._key(topic), message_json)
                recovered += 1
        if recovered:
            logger.warning(f"Requeued {recovered} unacknowledged message(s) on {topic}")
        return recovered

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessage, AutomationMessage]]:
        """Subscribe to messages from Redis queue."""
        if not self._redis:
            await self.connect()

        queue_name = self._key(topic)
        processing = self._key(topic, "processing")
        inflight = self._key(topic, "inflight")
        loop = asyncio.get_event_loop()
        start_time = loop.time() if lifespan else None

        await self.recover(topic)
        last_recovery = loop.time()

        while True:
            if lifespan and start_time:
                elapsed = loop.time() - start_time
                if elapsed >= lifespan:
                    break

            if loop.time() - last_recovery >= self.visibility_timeout:
                await self.recover(topic)
                last_recovery = loop.time()

            await self._promote_due(topic)
            message_json = await self._redis.blmove(
                queue_name, processing, timeout=1, src="RIGHT", dest="LEFT"
            )

            if message_json:
                await self._redis.zadd(inflight, {message_json: time.time()})
                try:
                    message = AutomationMessage.model_validate(json.loads(message_json))
                except (json.JSONDecodeError, ValueError) as e:
                    logger.error(f"Dropping unparseable message on {topic}: {e}")
                    await self._settle(topic, message_json)
                    continue
                yield (topic, message_json), message

            # Brief sleep to prevent busy waiting when no messages
            await asyncio.sleep(0.01)

    async def _settle(self, topic: str, message_json: str) -> None:
        await self._redis.lrem(self._key(topic, "processing"), 1, message_json)
        await self._redis.zrem(self._key(topic, "inflight"), message_json)

    async def ack(self, raw_message: RawMessage) -> None:
        """Remove the message from the processing list."""
        topic, message_json = raw_message
        await self._settle(topic, message_json)

    async def nack(self, raw_message: RawMessage, requeue: bool = True) -> None:
        topic, message_json = raw_message
        await self._settle(topic, message_json)
        if requeue:
            await self._redis.lpush(self._key(topic), message_json)
