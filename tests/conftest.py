"""Shared helpers for building a wired automation stack in tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from fieldflow.actions import ActionRegistry, build_default_registry
from fieldflow.constants import INVOICES, NOTIFICATIONS, TIME_ENTRIES, WORK_ORDERS
from fieldflow.dispatch import TransportTimeoutScheduler
from fieldflow.execute import ActionExecutor
from fieldflow.models import WorkflowTrigger
from fieldflow.persistence import DocumentStore, InMemoryDocumentStore
from fieldflow.processor import TransitionProcessor
from fieldflow.statuses import StatusRegistry
from fieldflow.transports.inmemory import InMemoryTransport
from fieldflow.triggers import TriggerStore
from fieldflow.workorders import WorkOrderRepository


class WorkflowHarness:
    """In-memory store, registries and processor with seeding shortcuts."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        actions: Optional[ActionRegistry] = None,
    ) -> None:
        self.store = store or InMemoryDocumentStore()
        self.statuses = StatusRegistry(self.store)
        self.triggers = TriggerStore(self.store, self.statuses)
        self.actions = actions or build_default_registry(self.store)
        self.executor = ActionExecutor(self.actions)
        self.transport = InMemoryTransport(poll_interval=0.01)
        self.processor = TransitionProcessor(
            self.triggers,
            WorkOrderRepository(self.store),
            self.executor,
            timeout_scheduler=TransportTimeoutScheduler(self.transport),
        )

    async def seed(self, tenant_id: str = "t1") -> None:
        await self.statuses.seed_defaults(tenant_id)

    async def add_work_order(
        self, tenant_id: str = "t1", status: str = "Scheduled", **fields: Any
    ) -> str:
        doc = {
            "tenant_id": tenant_id,
            "customer_id": "cust-1",
            "status": status,
            "work_order_number": "WO-1001",
            **fields,
        }
        return await self.store.create(WORK_ORDERS, doc)

    async def add_time_entry(
        self,
        work_order_id: str,
        hours: float,
        tenant_id: str = "t1",
        notes: Optional[str] = None,
    ) -> str:
        return await self.store.create(
            TIME_ENTRIES,
            {
                "tenant_id": tenant_id,
                "work_order_id": work_order_id,
                "user_id": "tech-1",
                "duration_hours": hours,
                "notes": notes,
            },
        )

    async def add_trigger(
        self,
        status_name: str,
        action_type: str,
        event: str = "on_enter",
        params: Optional[Dict[str, Any]] = None,
        conditions: Optional[List[Dict[str, Any]]] = None,
        tenant_id: str = "t1",
        name: Optional[str] = None,
        **extra: Any,
    ) -> WorkflowTrigger:
        data = {
            "name": name or f"{action_type} on {event} {status_name}",
            "status_name": status_name,
            "trigger_event": event,
            "conditions": conditions or [],
            "action": {"type": action_type, "params": params or {}},
            **extra,
        }
        return await self.triggers.create_trigger(tenant_id, data, created_by="admin-1")

    async def invoices(self, tenant_id: str = "t1") -> List[Dict[str, Any]]:
        return await self.store.find(INVOICES, {"tenant_id": tenant_id})

    async def notifications(self, tenant_id: str = "t1") -> List[Dict[str, Any]]:
        return await self.store.find(NOTIFICATIONS, {"tenant_id": tenant_id})


@pytest.fixture
def harness() -> WorkflowHarness:
    return WorkflowHarness()


@pytest.fixture
def make_harness():
    """Factory for harnesses with a custom store or action registry."""
    return WorkflowHarness
