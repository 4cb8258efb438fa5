"""Command line interface for running fieldflow workers and inspecting state."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from fieldflow.engine import build_engine

app = typer.Typer(help="CLI for fieldflow workflow automation")

# Command groups
worker_app = typer.Typer(help="Commands for running automation workers")
statuses_app = typer.Typer(help="Commands for tenant workflow statuses")
triggers_app = typer.Typer(help="Commands for tenant workflow triggers")
runs_app = typer.Typer(help="Commands for inspecting automation runs")

app.add_typer(worker_app, name="worker")
app.add_typer(statuses_app, name="statuses")
app.add_typer(triggers_app, name="triggers")
app.add_typer(runs_app, name="runs")


@app.callback()
def main() -> None:
    """fieldflow CLI entry point."""
    pass


@worker_app.command("run")
def worker_run(lifespan: Optional[float] = None) -> None:
    """
    Run an automation worker.

    Consumes status transitions and timeout checks from the configured
    transport and executes the matching triggers.

    Args:
        lifespan: Worker timeout in seconds (default: run indefinitely)

    Example:
        fieldflow worker run
        fieldflow worker run --lifespan 300
    """
    engine = build_engine()
    logging.basicConfig(
        level=engine.config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    typer.echo(f"Starting worker on topic: {engine.config.transport.topic}")
    asyncio.run(engine.worker.start(lifespan=lifespan))


@statuses_app.command("list")
def statuses_list(tenant_id: str) -> None:
    """List a tenant's workflow statuses in workflow order."""
    engine = build_engine()
    statuses = asyncio.run(engine.statuses.list_statuses(tenant_id))
    if not statuses:
        typer.echo("No statuses found")
        return
    for status in statuses:
        final = " (final)" if status.is_final_step else ""
        typer.echo(f"{status.sort_order}\t{status.name}\t{status.group.value}{final}")


@statuses_app.command("seed")
def statuses_seed(tenant_id: str) -> None:
    """Create the default workflow statuses for a new tenant."""
    engine = build_engine()
    statuses = asyncio.run(engine.statuses.seed_defaults(tenant_id))
    typer.echo(f"Tenant {tenant_id} has {len(statuses)} statuses")


@triggers_app.command("list")
def triggers_list(tenant_id: str) -> None:
    """List a tenant's triggers with their status binding and action."""
    engine = build_engine()
    triggers = asyncio.run(engine.triggers.list_triggers(tenant_id))
    if not triggers:
        typer.echo("No triggers found")
        return
    for trigger in triggers:
        state = "" if trigger.is_active else " [inactive]"
        typer.echo(
            f"{trigger.id}\t{trigger.name}\t{trigger.event.value} "
            f"{trigger.status_name}\t{trigger.action.type}{state}"
        )


@runs_app.command("list")
def runs_list(tenant_id: Optional[str] = None) -> None:
    """
    List automation runs with their status.

    Example:
        fieldflow runs list
        # Output: 4f0c...    transition    completed
    """
    engine = build_engine()
    runs = asyncio.run(engine.runs.list_runs(tenant_id))
    if not runs:
        typer.echo("No runs found")
        return
    for run in runs:
        typer.echo(f"{run.id}\t{run.kind}\t{run.status}")


@runs_app.command("show")
def runs_show(run_id: str) -> None:
    """Show one run with per-trigger outcomes."""
    engine = build_engine()
    run = asyncio.run(engine.runs.get_run(run_id))
    if run is None:
        typer.echo("Run not found")
        raise typer.Exit(code=1)
    typer.echo(f"Run {run.id}: {run.status} (attempt {run.attempt})")
    typer.echo(f"Tenant {run.tenant_id}, work order {run.work_order_id}")
    if run.error:
        typer.echo(f"Error: {run.error}")
    for outcome in (run.report or {}).get("outcomes", []):
        result = outcome.get("result") or {}
        state = "fired" if outcome.get("fired") else "not fired"
        detail = result.get("error") or (outcome.get("warning") or {}).get("reason") or ""
        typer.echo(
            f"- {outcome['trigger_name']} [{outcome['action_type']}]: {state}"
            + (f" ({detail})" if detail else "")
        )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
