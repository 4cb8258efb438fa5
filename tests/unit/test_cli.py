import asyncio

import pytest
from typer.testing import CliRunner

import fieldflow.persistence as persistence
from fieldflow.cli import app
from fieldflow.contracts import AutomationMessage, TransitionEvent
from fieldflow.persistence import InMemoryDocumentStore
from fieldflow.runs import RunLog
from fieldflow.statuses import StatusRegistry
from fieldflow.triggers import TriggerStore


@pytest.fixture
def store(monkeypatch, tmp_path) -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    monkeypatch.setattr(persistence, "_store_instance", store)
    monkeypatch.setenv("FIELDFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("FIELDFLOW_TRANSPORT", raising=False)
    return store


def test_statuses_seed_and_list(store):
    runner = CliRunner()
    result = runner.invoke(app, ["statuses", "seed", "t1"])
    assert result.exit_code == 0, f"Output: {result.stdout}"
    assert "Tenant t1 has 7 statuses" in result.stdout

    result = runner.invoke(app, ["statuses", "list", "t1"])
    assert result.exit_code == 0, f"Output: {result.stdout}"
    lines = result.stdout.strip().splitlines()
    assert lines[0].split("\t")[1] == "New"
    assert "Completed\tfinal (final)" in result.stdout

    result = runner.invoke(app, ["statuses", "list", "t2"])
    assert "No statuses found" in result.stdout


def test_triggers_list(store):
    statuses = StatusRegistry(store)
    triggers = TriggerStore(store, statuses)
    asyncio.run(statuses.seed_defaults("t1"))
    trigger = asyncio.run(
        triggers.create_trigger(
            "t1",
            {
                "name": "Draft invoice",
                "status_name": "Completed",
                "trigger_event": "on_enter",
                "action": {"type": "create_invoice_draft"},
                "is_active": False,
            },
        )
    )

    runner = CliRunner()
    result = runner.invoke(app, ["triggers", "list", "t1"])
    assert result.exit_code == 0, f"Output: {result.stdout}"
    assert trigger.id in result.stdout
    assert "on_enter Completed\tcreate_invoice_draft [inactive]" in result.stdout

    result = runner.invoke(app, ["triggers", "list", "t2"])
    assert "No triggers found" in result.stdout


def test_runs_list_and_show(store):
    runs = RunLog(store)
    message = AutomationMessage.for_transition(
        TransitionEvent(
            tenant_id="t1", work_order_id="wo-1", old_status="Scheduled", new_status="Completed"
        )
    )
    asyncio.run(runs.mark_started(message))
    asyncio.run(runs.mark_finished(message, "failed", error="store unavailable"))

    runner = CliRunner()
    result = runner.invoke(app, ["runs", "list", "--tenant-id", "t1"])
    assert result.exit_code == 0, f"Output: {result.stdout}"
    assert f"{message.correlation_id}\ttransition\tfailed" in result.stdout

    result = runner.invoke(app, ["runs", "show", message.correlation_id])
    assert result.exit_code == 0, f"Output: {result.stdout}"
    assert "failed (attempt 1)" in result.stdout
    assert "Error: store unavailable" in result.stdout

    result_missing = runner.invoke(app, ["runs", "show", "missing-id"])
    assert result_missing.exit_code == 1
    assert "Run not found" in result_missing.stdout


def test_runs_list_empty(store):
    result = CliRunner().invoke(app, ["runs", "list"])
    assert result.exit_code == 0
    assert "No runs found" in result.stdout
