"""Work-order reads for automation and the status write path that feeds it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .constants import WORK_ORDERS
from .errors import StatusNotFound, WorkOrderNotFound
from .models import WorkOrderSnapshot, utcnow
from .persistence import DocumentStore
from .statuses import StatusRegistry

if TYPE_CHECKING:
    from .dispatch import TransitionDispatcher

logger = logging.getLogger(__name__)


class WorkOrderRepository:
    """Tenant-checked access to work-order documents.

    Snapshots are always read fresh; nothing here caches.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_snapshot(
        self, tenant_id: str, work_order_id: str
    ) -> Optional[WorkOrderSnapshot]:
        doc = await self._store.get(WORK_ORDERS, work_order_id)
        if doc is None or doc.get("tenant_id") != tenant_id:
            return None
        return WorkOrderSnapshot.from_document(doc)


class WorkOrderService:
    """Owns work-order status writes and hands each change to automation."""

    def __init__(
        self,
        store: DocumentStore,
        statuses: StatusRegistry,
        dispatcher: "TransitionDispatcher",
    ) -> None:
        self._store = store
        self._statuses = statuses
        self._dispatcher = dispatcher
        self._repository = WorkOrderRepository(store)

    async def get_snapshot(self, tenant_id: str, work_order_id: str) -> WorkOrderSnapshot:
        snapshot = await self._repository.get_snapshot(tenant_id, work_order_id)
        if snapshot is None:
            raise WorkOrderNotFound("Work order not found or access denied")
        return snapshot

    async def change_status(
        self,
        tenant_id: str,
        work_order_id: str,
        new_status: str,
        user_id: Optional[str] = None,
    ) -> WorkOrderSnapshot:
        """Persist a status change, then publish it for automation.

        Publishing happens after the write succeeds and can never make this
        call fail. Setting the current status again writes nothing.
        """
        current = await self.get_snapshot(tenant_id, work_order_id)
        if current.status == new_status:
            return current
        if not await self._statuses.status_exists(tenant_id, new_status):
            raise StatusNotFound(f"Status '{new_status}' not found for tenant {tenant_id}")

        changed_at = utcnow()
        await self._store.update(
            WORK_ORDERS,
            work_order_id,
            {
                "status": new_status,
                "status_changed_at": changed_at.isoformat(),
                "updated_at": changed_at.isoformat(),
                "updated_by": user_id,
            },
        )
        logger.info(
            f"WO {work_order_id} (tenant {tenant_id}) moved "
            f"'{current.status}' -> '{new_status}'"
        )

        await self._dispatcher.notify_status_change(
            tenant_id, work_order_id, current.status, new_status, occurred_at=changed_at
        )
        return await self.get_snapshot(tenant_id, work_order_id)
