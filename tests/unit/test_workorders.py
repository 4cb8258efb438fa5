"""Work-order status write path tests."""

import pytest

from fieldflow.constants import DEFAULT_TOPIC, WORK_ORDERS
from fieldflow.contracts import AutomationMessage
from fieldflow.dispatch import TransitionDispatcher
from fieldflow.errors import StatusNotFound, WorkOrderNotFound
from fieldflow.transports.inmemory import InMemoryTransport
from fieldflow.workorders import WorkOrderService


class RecordingTransport(InMemoryTransport):
    def __init__(self):
        super().__init__(poll_interval=0.01)
        self.published = []

    async def publish(self, topic: str, message: AutomationMessage) -> None:
        self.published.append((topic, message))
        await super().publish(topic, message)


class BrokenTransport(InMemoryTransport):
    async def publish(self, topic: str, message: AutomationMessage) -> None:
        raise ConnectionError("broker down")


def _service(harness, transport):
    return WorkOrderService(harness.store, harness.statuses, TransitionDispatcher(transport))


@pytest.mark.asyncio
async def test_change_status_persists_and_publishes(harness):
    await harness.seed()
    wo_id = await harness.add_work_order(status="Scheduled")
    transport = RecordingTransport()
    service = _service(harness, transport)

    snapshot = await service.change_status("t1", wo_id, "Completed", user_id="tech-1")

    assert snapshot.status == "Completed"
    assert snapshot.status_changed_at is not None
    doc = await harness.store.get(WORK_ORDERS, wo_id)
    assert doc["updated_by"] == "tech-1"

    [(topic, message)] = transport.published
    assert topic == DEFAULT_TOPIC
    assert message.kind == "transition"
    assert message.transition.old_status == "Scheduled"
    assert message.transition.new_status == "Completed"
    assert message.transition.occurred_at == snapshot.status_changed_at


@pytest.mark.asyncio
async def test_same_status_writes_and_publishes_nothing(harness):
    await harness.seed()
    wo_id = await harness.add_work_order(status="Scheduled")
    transport = RecordingTransport()
    service = _service(harness, transport)

    snapshot = await service.change_status("t1", wo_id, "Scheduled")

    assert snapshot.status == "Scheduled"
    assert snapshot.status_changed_at is None
    assert transport.published == []


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(harness):
    await harness.seed()
    wo_id = await harness.add_work_order(status="Scheduled")
    service = _service(harness, RecordingTransport())

    with pytest.raises(StatusNotFound):
        await service.change_status("t1", wo_id, "Archived")
    assert (await harness.store.get(WORK_ORDERS, wo_id))["status"] == "Scheduled"


@pytest.mark.asyncio
async def test_foreign_tenant_cannot_change_status(harness):
    await harness.seed("t1")
    await harness.seed("t2")
    wo_id = await harness.add_work_order(tenant_id="t1")
    service = _service(harness, RecordingTransport())

    with pytest.raises(WorkOrderNotFound):
        await service.change_status("t2", wo_id, "Completed")


@pytest.mark.asyncio
async def test_publish_failure_does_not_fail_write(harness):
    await harness.seed()
    wo_id = await harness.add_work_order(status="Scheduled")
    service = _service(harness, BrokenTransport())

    snapshot = await service.change_status("t1", wo_id, "Completed")

    assert snapshot.status == "Completed"


@pytest.mark.asyncio
async def test_dispatcher_returns_correlation_id():
    transport = RecordingTransport()
    dispatcher = TransitionDispatcher(transport)

    correlation_id = await dispatcher.notify_status_change("t1", "wo-1", None, "New")
    assert correlation_id == transport.published[0][1].correlation_id
    assert await dispatcher.notify_status_change("t1", "wo-1", "New", "New") is None
    assert await TransitionDispatcher(BrokenTransport()).notify_status_change(
        "t1", "wo-1", "New", "Scheduled"
    ) is None
