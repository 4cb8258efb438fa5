"""Action execution with per-action failure isolation."""

from __future__ import annotations

import logging

from .actions import ActionContext, ActionRegistry
from .models import ActionDescriptor, ExecutionResult, WorkOrderSnapshot

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Dispatches action descriptors to registered handlers.

    ``execute`` never raises: handler failures and unknown action types are
    logged and reported through the returned :class:`ExecutionResult`.
    """

    def __init__(self, registry: ActionRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ActionRegistry:
        return self._registry

    async def execute(
        self,
        action: ActionDescriptor,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        context: ActionContext,
    ) -> ExecutionResult:
        handler = self._registry.get(action.type)
        if handler is None:
            logger.warning(
                f"Unhandled action type '{action.type}' for trigger {context.trigger_id} "
                f"(tenant {tenant_id}, WO {work_order.id}); skipping"
            )
            return ExecutionResult(
                success=False,
                skipped=True,
                error=f"Unhandled action type: {action.type}",
            )

        logger.info(
            f"Executing action {action.type} for trigger {context.trigger_id} "
            f"on WO {work_order.id}"
        )
        try:
            return await handler.execute(action, work_order, tenant_id, context)
        except Exception as e:
            logger.exception(
                f"Action {action.type} failed for tenant {tenant_id}, WO {work_order.id}, "
                f"trigger {context.trigger_id}, idempotency_key {context.idempotency_key}: {e}"
            )
            return ExecutionResult(success=False, error=f"{type(e).__name__}: {e}")
