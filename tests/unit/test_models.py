"""Model validation tests."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from fieldflow.contracts import AutomationMessage, TimeoutCheck, TransitionEvent
from fieldflow.models import StatusGroup, TriggerEvent, WorkflowStatus, WorkflowTrigger


def _trigger(**overrides):
    data = {
        "tenant_id": "t1",
        "name": "Draft invoice",
        "status_name": "Completed",
        "trigger_event": "on_enter",
        "action": {"type": "create_invoice_draft"},
    }
    data.update(overrides)
    return WorkflowTrigger.model_validate(data)


def test_on_timeout_requires_duration():
    with pytest.raises(ValidationError, match="require timeout_duration"):
        _trigger(trigger_event="on_timeout")


def test_duration_rejected_for_non_timeout_events():
    with pytest.raises(ValidationError, match="only valid for on_timeout"):
        _trigger(trigger_event="on_exit", timeout_duration=600)


def test_on_timeout_accepts_seconds_and_iso_durations():
    assert _trigger(trigger_event="on_timeout", timeout_duration=1800).timeout_duration == timedelta(minutes=30)
    assert _trigger(trigger_event="on_timeout", timeout_duration="PT2H").timeout_duration == timedelta(hours=2)


def test_unknown_event_rejected():
    with pytest.raises(ValidationError):
        _trigger(trigger_event="on_update")


def test_trigger_document_uses_stored_field_names():
    trigger = WorkflowTrigger(
        tenant_id="t1",
        name="Exit hook",
        status_name="Scheduled",
        event=TriggerEvent.ON_EXIT,
        action={"type": "notify_customer", "params": {"message": "hi"}},
    )
    doc = trigger.to_document()
    assert doc["trigger_event"] == "on_exit"
    assert "event" not in doc
    assert "id" not in doc
    assert WorkflowTrigger.model_validate(doc).event is TriggerEvent.ON_EXIT


def test_unknown_action_type_survives_loading():
    trigger = _trigger(action={"type": "send_sms", "params": {"to": "+1"}})
    assert trigger.action.type == "send_sms"


def test_final_group_requires_final_step():
    with pytest.raises(ValidationError, match="final steps"):
        WorkflowStatus(tenant_id="t1", name="Done", group=StatusGroup.FINAL, is_final_step=False)
    cancelled = WorkflowStatus(tenant_id="t1", name="Void", group="cancelled", is_final_step=True)
    assert cancelled.group is StatusGroup.CANCELLED


def test_message_requires_payload_for_kind():
    with pytest.raises(ValidationError):
        AutomationMessage(kind="transition")


def test_bump_attempt_keeps_correlation():
    event = TransitionEvent(
        tenant_id="t1", work_order_id="wo-1", old_status="New", new_status="Scheduled"
    )
    msg = AutomationMessage.for_transition(event)
    retry_at = datetime.now(timezone.utc) + timedelta(seconds=5)
    bumped = msg.bump_attempt(not_before=retry_at)
    assert bumped.attempt == msg.attempt + 1
    assert bumped.message_id != msg.message_id
    assert bumped.correlation_id == msg.correlation_id
    assert bumped.not_before == retry_at
    assert bumped.transition == event


def test_timeout_message_is_delayed_until_due():
    entered = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    check = TimeoutCheck(
        tenant_id="t1",
        work_order_id="wo-1",
        status_name="On Hold",
        trigger_id="trg-1",
        entered_at=entered,
        due_at=entered + timedelta(hours=4),
    )
    msg = AutomationMessage.for_timeout(check)
    restored = AutomationMessage.from_json(msg.to_json())
    assert restored.kind == "timeout"
    assert restored.not_before == check.due_at
    assert restored.timeout.entered_at == entered
    assert restored.tenant_id == "t1"
    assert restored.work_order_id == "wo-1"
