"""Customer notification action."""

from __future__ import annotations

import logging

from ..constants import NOTIFICATIONS
from ..errors import DuplicateDocument
from ..models import ActionDescriptor, ExecutionResult, Notification, WorkOrderSnapshot
from ..persistence import DocumentStore
from .base import ActionContext, ActionHandler

logger = logging.getLogger(__name__)


class NotifyCustomerHandler(ActionHandler):
    action_type = "notify_customer"

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def execute(
        self,
        descriptor: ActionDescriptor,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        context: ActionContext,
    ) -> ExecutionResult:
        if not work_order.customer_id:
            logger.warning(
                f"WO {work_order.id} (tenant {tenant_id}) has no customer; "
                f"notification for trigger {context.trigger_id} skipped"
            )
            return ExecutionResult(
                success=False,
                skipped=True,
                error=f"Work order {work_order.id} has no customer to notify",
            )

        notification_id = f"ntf_{context.idempotency_key}"
        if await self._store.get(NOTIFICATIONS, notification_id) is not None:
            return ExecutionResult(success=True, duplicate=True, document_id=notification_id)

        message = descriptor.params.get("message") or (
            f"Your work order #{work_order.work_order_number} has been updated "
            f"to '{context.status_name}'."
        )
        notification = Notification(
            id=notification_id,
            tenant_id=tenant_id,
            customer_id=work_order.customer_id,
            user_id=None,
            message=message,
            is_read=False,
            related_entity={"type": "work_order", "id": work_order.id},
            trigger_id=context.trigger_id,
            idempotency_key=context.idempotency_key,
        )
        try:
            await self._store.create(NOTIFICATIONS, notification.model_dump(mode="json"))
        except DuplicateDocument:
            return ExecutionResult(success=True, duplicate=True, document_id=notification_id)
        logger.info(
            f"Queued notification for customer {work_order.customer_id}: \"{message}\""
        )
        return ExecutionResult(success=True, document_id=notification_id)
