"""In-memory transport for testing."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import AsyncIterator, Deque, Dict, List, Optional, Tuple

from ..contracts import AutomationMessage
from .base import BaseTransport, is_due

RawMessage = Tuple[str, AutomationMessage]


class InMemoryTransport(BaseTransport[RawMessage]):
    """Simple in-process queue for unit tests."""

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._queues: Dict[str, Deque[RawMessage]] = defaultdict(deque)
        self._delayed: Dict[str, List[Tuple[datetime, int, RawMessage]]] = defaultdict(list)
        self._counter = itertools.count()
        self._lock = asyncio.Lock()
        self._poll_interval = poll_interval

    async def publish(self, topic: str, message: AutomationMessage) -> None:
        """Publish message to in-memory queue."""
        raw = (message.to_json(), message)
        async with self._lock:
            if not is_due(message):
                heapq.heappush(
                    self._delayed[topic], (message.not_before, next(self._counter), raw)
                )
            else:
                self._queues[topic].append(raw)

    def _promote_due(self, topic: str) -> None:
        delayed = self._delayed[topic]
        now = datetime.now(timezone.utc)
        while delayed and delayed[0][0] <= now:
            _, _, raw = heapq.heappop(delayed)
            self._queues[topic].append(raw)

    def pending(self, topic: str) -> int:
        """Number of ready plus delayed messages on ``topic``."""
        return len(self._queues[topic]) + len(self._delayed[topic])

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessage, AutomationMessage]]:
        """Subscribe to messages from topic.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep connection open. If None, runs indefinitely.
        """
        start_time = asyncio.get_event_loop().time() if lifespan else None

        while True:
            if lifespan and start_time:
                elapsed = asyncio.get_event_loop().time() - start_time
                if elapsed >= lifespan:
                    break

            async with self._lock:
                self._promote_due(topic)
                raw_message = self._queues[topic].popleft() if self._queues[topic] else None
            if raw_message is not None:
                yield raw_message, raw_message[1]
                continue

            await asyncio.sleep(self._poll_interval)

    async def ack(self, raw_message: RawMessage) -> None:
        """No-op acknowledgment for in-memory transport."""
        pass
