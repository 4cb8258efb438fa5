"""Background worker consuming automation messages."""

from __future__ import annotations

import logging
from typing import Optional

from .config import AutomationConfig
from .constants import DEFAULT_TOPIC
from .contracts import AutomationMessage
from .models import TransitionReport
from .processor import TransitionProcessor
from .runs import RunLog
from .transports import BaseTransport
from .utils.retry import retry_at

logger = logging.getLogger(__name__)


class AutomationWorker:
    """Executes transitions and timeout checks by listening to transport messages.

    Action failures are already isolated by the processor; anything that
    escapes it (store outage, malformed data) is retried by republishing the
    message with exponential backoff until ``max_attempts`` is reached.
    Retries are safe because every action is keyed for idempotency.
    """

    def __init__(
        self,
        transport: BaseTransport,
        processor: TransitionProcessor,
        runs: Optional[RunLog] = None,
        topic: str = DEFAULT_TOPIC,
        config: Optional[AutomationConfig] = None,
    ) -> None:
        self._transport = transport
        self._processor = processor
        self._runs = runs
        self._topic = topic
        self._config = config or AutomationConfig()

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Start listening for automation messages on the configured topic."""
        async for raw_message, message in self._transport.subscribe(
            self._topic, lifespan=lifespan
        ):
            await self.handle_message(message)
            await self._transport.ack(raw_message)

    async def handle_message(self, message: AutomationMessage) -> Optional[TransitionReport]:
        """Process one message; returns ``None`` when processing failed."""
        await self._record_started(message)
        try:
            report = await self._process(message)
        except Exception as e:
            await self._handle_failure(message, e)
            return None

        status = "skipped" if report.skipped else "completed"
        await self._record_finished(message, status, report=report)
        return report

    async def _process(self, message: AutomationMessage) -> TransitionReport:
        if message.kind == "timeout":
            return await self._processor.process_timeout(message.timeout)
        event = message.transition
        return await self._processor.process_transition(
            event.tenant_id,
            event.work_order_id,
            event.old_status,
            event.new_status,
            occurred_at=event.occurred_at,
        )

    async def _handle_failure(self, message: AutomationMessage, error: Exception) -> None:
        context = (
            f"{message.kind} message {message.message_id} "
            f"(correlation_id={message.correlation_id}, tenant {message.tenant_id}, "
            f"WO {message.work_order_id}, attempt {message.attempt})"
        )
        if message.attempt < self._config.max_attempts:
            retry = message.bump_attempt(
                not_before=retry_at(message.attempt, self._config.retry_backoff_base)
            )
            try:
                await self._transport.publish(self._topic, retry)
            except Exception as publish_error:
                logger.error(f"Could not requeue {context}: {publish_error}")
            else:
                logger.warning(f"Processing failed for {context}: {error}; retry scheduled")
                await self._record_finished(message, "retrying", error=str(error))
                return

        logger.error(
            f"Giving up on {context} after {message.attempt} attempts: {error}",
            exc_info=error,
        )
        await self._record_finished(message, "failed", error=str(error))

    async def _record_started(self, message: AutomationMessage) -> None:
        if self._runs is None:
            return
        try:
            await self._runs.mark_started(message)
        except Exception as e:
            logger.error(f"Could not record start of run {message.correlation_id}: {e}")

    async def _record_finished(
        self,
        message: AutomationMessage,
        status: str,
        report: Optional[TransitionReport] = None,
        error: Optional[str] = None,
    ) -> None:
        if self._runs is None:
            return
        try:
            await self._runs.mark_finished(message, status, report=report, error=error)
        except Exception as e:
            logger.error(f"Could not record result of run {message.correlation_id}: {e}")
