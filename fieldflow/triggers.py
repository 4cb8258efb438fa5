"""Tenant-scoped storage of workflow triggers."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .constants import WORKFLOW_TRIGGERS
from .errors import TriggerConfigurationError, TriggerNotFound
from .models import TriggerEvent, WorkflowTrigger, utcnow
from .persistence import DocumentStore
from .statuses import StatusRegistry

logger = logging.getLogger(__name__)

# Fields the caller may never change once a trigger exists.
_PROTECTED_FIELDS = {"id", "tenant_id", "created_at", "created_by"}


def _to_trigger(doc: Dict[str, Any]) -> WorkflowTrigger:
    return WorkflowTrigger.model_validate(doc)


class TriggerStore:
    """Validated CRUD plus the lookup used by the transition processor."""

    def __init__(self, store: DocumentStore, statuses: StatusRegistry) -> None:
        self._store = store
        self._statuses = statuses

    async def find_triggers(
        self, tenant_id: str, status_name: str, event: TriggerEvent
    ) -> List[WorkflowTrigger]:
        """Return the active triggers bound to ``(status_name, event)``.

        No matching trigger is the common case and yields an empty list.
        """
        docs = await self._store.find(
            WORKFLOW_TRIGGERS,
            {
                "tenant_id": tenant_id,
                "status_name": status_name,
                "trigger_event": TriggerEvent(event).value,
            },
        )
        triggers = []
        for doc in docs:
            try:
                trigger = _to_trigger(doc)
            except ValidationError as exc:
                logger.warning(
                    f"Ignoring malformed trigger {doc.get('id')} for tenant {tenant_id}: {exc}"
                )
                continue
            if trigger.is_active:
                triggers.append(trigger)
        return triggers

    async def get_trigger(self, tenant_id: str, trigger_id: str) -> WorkflowTrigger:
        doc = await self._store.get(WORKFLOW_TRIGGERS, trigger_id)
        if doc is None or doc.get("tenant_id") != tenant_id:
            raise TriggerNotFound("Workflow trigger not found or access denied")
        return _to_trigger(doc)

    async def list_triggers(
        self, tenant_id: str, status_name: Optional[str] = None
    ) -> List[WorkflowTrigger]:
        filters: Dict[str, Any] = {"tenant_id": tenant_id}
        if status_name:
            filters["status_name"] = status_name
        docs = await self._store.find(WORKFLOW_TRIGGERS, filters)
        return sorted((_to_trigger(d) for d in docs), key=lambda t: t.name)

    async def create_trigger(
        self, tenant_id: str, data: Dict[str, Any], created_by: Optional[str] = None
    ) -> WorkflowTrigger:
        payload = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
        payload.update(tenant_id=tenant_id, created_at=utcnow(), created_by=created_by)
        trigger = self._validate(payload)
        await self._ensure_status(tenant_id, trigger.status_name)

        trigger_id = await self._store.create(WORKFLOW_TRIGGERS, trigger.to_document())
        logger.info(
            f"Created trigger '{trigger.name}' ({trigger.event.value} {trigger.status_name}) "
            f"for tenant {tenant_id}"
        )
        return trigger.model_copy(update={"id": trigger_id})

    async def update_trigger(
        self,
        tenant_id: str,
        trigger_id: str,
        changes: Dict[str, Any],
        updated_by: Optional[str] = None,
    ) -> WorkflowTrigger:
        current = await self.get_trigger(tenant_id, trigger_id)
        changes = {k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS}
        if "event" in changes:
            changes["trigger_event"] = changes.pop("event")
        merged = current.model_dump(by_alias=True)
        merged.update(changes)
        merged.update(updated_at=utcnow(), updated_by=updated_by)
        trigger = self._validate(merged)
        if trigger.status_name != current.status_name:
            await self._ensure_status(tenant_id, trigger.status_name)

        await self._store.update(WORKFLOW_TRIGGERS, trigger_id, trigger.to_document())
        return trigger

    async def delete_trigger(self, tenant_id: str, trigger_id: str) -> None:
        await self.get_trigger(tenant_id, trigger_id)
        await self._store.delete(WORKFLOW_TRIGGERS, trigger_id)
        logger.info(f"Deleted trigger {trigger_id} for tenant {tenant_id}")

    # ------------------------------------------------------------------
    @staticmethod
    def _validate(payload: Dict[str, Any]) -> WorkflowTrigger:
        try:
            return WorkflowTrigger.model_validate(payload)
        except ValidationError as exc:
            raise TriggerConfigurationError(str(exc)) from exc

    async def _ensure_status(self, tenant_id: str, status_name: str) -> None:
        if not await self._statuses.status_exists(tenant_id, status_name):
            raise TriggerConfigurationError(
                f"Unknown status '{status_name}' for tenant {tenant_id}"
            )
