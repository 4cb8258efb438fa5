"""Tenant-scoped registry of workflow statuses."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from .constants import WORK_ORDERS, WORKFLOW_STATUSES, WORKFLOW_TRIGGERS
from .errors import ConfigurationError, StatusInUse, StatusNotFound
from .models import StatusGroup, WorkflowStatus
from .persistence import DocumentStore

logger = logging.getLogger(__name__)

# Seed data applied when a tenant is provisioned.
DEFAULT_WORKFLOW_STATUSES: List[Dict[str, Any]] = [
    {"name": "New", "color": "#888888", "group": StatusGroup.START, "is_final_step": False, "sort_order": 10},
    {"name": "Scheduled", "color": "#3b82f6", "group": StatusGroup.ACTIVE, "is_final_step": False, "sort_order": 20},
    {"name": "In Progress", "color": "#a855f7", "group": StatusGroup.ACTIVE, "is_final_step": False, "sort_order": 30},
    {"name": "On Hold", "color": "#f59e0b", "group": StatusGroup.ACTIVE, "is_final_step": False, "sort_order": 40},
    {"name": "Completed", "color": "#22c55e", "group": StatusGroup.FINAL, "is_final_step": True, "sort_order": 50},
    {"name": "Invoiced", "color": "#14b8a6", "group": StatusGroup.FINAL, "is_final_step": True, "sort_order": 60},
    {"name": "Cancelled", "color": "#ef4444", "group": StatusGroup.CANCELLED, "is_final_step": True, "sort_order": 70},
]

_IMMUTABLE_FIELDS = {"id", "tenant_id"}


def _to_status(doc: Dict[str, Any]) -> WorkflowStatus:
    return WorkflowStatus.model_validate(doc)


class StatusRegistry:
    """Reads and edits the ordered status set of each tenant.

    Every query is filtered by ``tenant_id``; documents fetched by id are
    checked for ownership before they are returned or changed.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list_statuses(self, tenant_id: str) -> List[WorkflowStatus]:
        docs = await self._store.find(WORKFLOW_STATUSES, {"tenant_id": tenant_id})
        statuses = [_to_status(doc) for doc in docs]
        return sorted(statuses, key=lambda s: (s.sort_order, s.name))

    async def get_status(self, tenant_id: str, name: str) -> WorkflowStatus:
        docs = await self._store.find(
            WORKFLOW_STATUSES, {"tenant_id": tenant_id, "name": name}
        )
        if not docs:
            raise StatusNotFound(f"Status '{name}' not found for tenant {tenant_id}")
        return _to_status(docs[0])

    async def status_exists(self, tenant_id: str, name: str) -> bool:
        docs = await self._store.find(
            WORKFLOW_STATUSES, {"tenant_id": tenant_id, "name": name}
        )
        return bool(docs)

    async def create_status(self, status: WorkflowStatus) -> WorkflowStatus:
        if await self.status_exists(status.tenant_id, status.name):
            raise ConfigurationError(
                f"Status '{status.name}' already exists for tenant {status.tenant_id}"
            )
        doc = status.model_dump(mode="json", exclude={"id"})
        status_id = await self._store.create(WORKFLOW_STATUSES, doc)
        logger.info(f"Created workflow status '{status.name}' for tenant {status.tenant_id}")
        return status.model_copy(update={"id": status_id})

    async def update_status(
        self, tenant_id: str, status_id: str, changes: Dict[str, Any]
    ) -> WorkflowStatus:
        current = await self._owned(tenant_id, status_id)
        changes = {k: v for k, v in changes.items() if k not in _IMMUTABLE_FIELDS}
        try:
            updated = WorkflowStatus.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

        if updated.name != current.name:
            if await self.status_exists(tenant_id, updated.name):
                raise ConfigurationError(
                    f"Status '{updated.name}' already exists for tenant {tenant_id}"
                )
            if await self._is_referenced(tenant_id, current.name):
                raise StatusInUse(
                    f"Status '{current.name}' is referenced and cannot be renamed"
                )

        await self._store.update(
            WORKFLOW_STATUSES,
            status_id,
            updated.model_dump(mode="json", exclude=_IMMUTABLE_FIELDS),
        )
        return updated

    async def delete_status(self, tenant_id: str, status_id: str) -> None:
        current = await self._owned(tenant_id, status_id)
        if await self._is_referenced(tenant_id, current.name):
            raise StatusInUse(
                f"Status '{current.name}' is still used by work orders or triggers"
            )
        await self._store.delete(WORKFLOW_STATUSES, status_id)
        logger.info(f"Deleted workflow status '{current.name}' for tenant {tenant_id}")

    async def seed_defaults(self, tenant_id: str) -> List[WorkflowStatus]:
        """Create the default status set unless the tenant already has one."""
        existing = await self.list_statuses(tenant_id)
        if existing:
            logger.info(
                f"Tenant {tenant_id} already has {len(existing)} statuses; skipping seed"
            )
            return existing
        created = [
            await self.create_status(WorkflowStatus(tenant_id=tenant_id, **data))
            for data in DEFAULT_WORKFLOW_STATUSES
        ]
        logger.info(f"Seeded {len(created)} workflow statuses for tenant {tenant_id}")
        return created

    # ------------------------------------------------------------------
    async def _owned(self, tenant_id: str, status_id: str) -> WorkflowStatus:
        doc = await self._store.get(WORKFLOW_STATUSES, status_id)
        if doc is None or doc.get("tenant_id") != tenant_id:
            raise StatusNotFound("Workflow status not found or access denied")
        return _to_status(doc)

    async def _is_referenced(self, tenant_id: str, name: str) -> bool:
        work_orders = await self._store.find(
            WORK_ORDERS, {"tenant_id": tenant_id, "status": name}
        )
        if work_orders:
            return True
        triggers = await self._store.find(
            WORKFLOW_TRIGGERS, {"tenant_id": tenant_id, "status_name": name}
        )
        return bool(triggers)
