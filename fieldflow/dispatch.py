"""Publishing of status transitions and deferred timeout checks."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Protocol

from .constants import DEFAULT_TOPIC
from .contracts import AutomationMessage, TimeoutCheck, TransitionEvent
from .models import utcnow
from .transports import BaseTransport

logger = logging.getLogger(__name__)


class TimeoutScheduler(Protocol):
    async def schedule(self, check: TimeoutCheck) -> None:
        """Arrange for ``check`` to be processed at ``check.due_at``."""


class TransitionDispatcher:
    """Entry point for the work-order write path.

    Each persisted status change becomes one message on the automation
    topic; workers pick it up and run the transition processor.
    """

    def __init__(self, transport: BaseTransport, topic: str = DEFAULT_TOPIC) -> None:
        self._transport = transport
        self._topic = topic

    async def notify_status_change(
        self,
        tenant_id: str,
        work_order_id: str,
        old_status: Optional[str],
        new_status: str,
        occurred_at: Optional[datetime] = None,
    ) -> Optional[str]:
        """Publish a transition for background processing.

        Returns:
            Correlation identifier of the published message, or ``None`` when
            there was nothing to publish or publishing failed. Failures are
            logged and never raised: automation must not break the write.
        """
        if old_status == new_status:
            return None

        event = TransitionEvent(
            tenant_id=tenant_id,
            work_order_id=work_order_id,
            old_status=old_status,
            new_status=new_status,
            occurred_at=occurred_at or utcnow(),
        )
        message = AutomationMessage.for_transition(event)
        try:
            await self._transport.publish(self._topic, message)
        except Exception as e:
            logger.error(
                f"Failed to publish transition {old_status!r} -> {new_status!r} "
                f"for WO {work_order_id} (tenant {tenant_id}): {e}"
            )
            return None
        logger.info(
            f"Published transition for WO {work_order_id} "
            f"correlation_id={message.correlation_id}"
        )
        return message.correlation_id


class TransportTimeoutScheduler:
    """Schedules timeout checks as delayed messages on the automation topic."""

    def __init__(self, transport: BaseTransport, topic: str = DEFAULT_TOPIC) -> None:
        self._transport = transport
        self._topic = topic

    async def schedule(self, check: TimeoutCheck) -> None:
        message = AutomationMessage.for_timeout(check)
        await self._transport.publish(self._topic, message)
        logger.info(
            f"Scheduled timeout of trigger {check.trigger_id} for WO "
            f"{check.work_order_id} at {check.due_at.isoformat()}"
        )
