"""Base transport interface for automation messaging."""

from __future__ import annotations

import abc
from datetime import datetime, timezone
from typing import AsyncIterator, Generic, Optional, Tuple, TypeVar

from ..contracts import AutomationMessage

RawMessageT = TypeVar("RawMessageT")


def is_due(message: AutomationMessage, now: Optional[datetime] = None) -> bool:
    """Whether ``message`` may be delivered at ``now`` (default: current UTC time)."""
    if message.not_before is None:
        return True
    return message.not_before <= (now or datetime.now(timezone.utc))


class BaseTransport(Generic[RawMessageT], metaclass=abc.ABCMeta):
    """Abstract base transport for the automation queue.

    Delivery is at least once: a message is handed to a subscriber until it
    is acked. Messages for which :func:`is_due` is false are held back and
    only delivered once their ``not_before`` has passed.
    """

    async def connect(self) -> None:
        """Open connection to broker (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to broker (no-op by default)."""
        pass

    @abc.abstractmethod
    async def publish(self, topic: str, message: AutomationMessage) -> None:
        """Queue ``message`` on ``topic``, deferred while it is not yet due."""
        raise NotImplementedError

    @abc.abstractmethod
    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Tuple[RawMessageT, AutomationMessage]]:
        """Yield ``(raw message, AutomationMessage)`` pairs that are due.

        Args:
            topic: The topic to subscribe to
            lifespan: Maximum time in seconds to keep consuming. If None, runs indefinitely.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def ack(self, raw_message: RawMessageT) -> None:
        """Acknowledge successful processing."""
        raise NotImplementedError

    async def nack(self, raw_message: RawMessageT, requeue: bool = True) -> None:
        """Negatively acknowledge (default to ack if unsupported)."""
        await self.ack(raw_message)
