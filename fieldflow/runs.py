"""Run records: one document per automation message correlation id."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .constants import AUTOMATION_RUNS
from .contracts import AutomationMessage
from .models import TransitionReport, utcnow
from .persistence import DocumentStore


class RunRecord(BaseModel):
    """Persisted outcome of processing one transition or timeout."""

    id: str
    tenant_id: str
    work_order_id: str
    kind: str
    status: str = "in_progress"  # in_progress, completed, skipped, retrying, failed
    attempt: int = 1
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    report: Optional[Dict[str, Any]] = None


class RunLog:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def mark_started(self, message: AutomationMessage) -> None:
        existing = await self._store.get(AUTOMATION_RUNS, message.correlation_id)
        if existing is not None:
            await self._store.update(
                AUTOMATION_RUNS,
                message.correlation_id,
                {"status": "in_progress", "attempt": message.attempt},
            )
            return
        record = RunRecord(
            id=message.correlation_id,
            tenant_id=message.tenant_id,
            work_order_id=message.work_order_id,
            kind=message.kind,
            attempt=message.attempt,
        )
        await self._store.create(AUTOMATION_RUNS, record.model_dump(mode="json"))

    async def mark_finished(
        self,
        message: AutomationMessage,
        status: str,
        report: Optional[TransitionReport] = None,
        error: Optional[str] = None,
    ) -> None:
        await self._store.update(
            AUTOMATION_RUNS,
            message.correlation_id,
            {
                "status": status,
                "completed_at": utcnow().isoformat(),
                "error": error,
                "report": report.model_dump(mode="json") if report else None,
            },
        )

    async def get_run(self, run_id: str) -> Optional[RunRecord]:
        doc = await self._store.get(AUTOMATION_RUNS, run_id)
        return RunRecord.model_validate(doc) if doc else None

    async def list_runs(self, tenant_id: Optional[str] = None) -> List[RunRecord]:
        filters = {"tenant_id": tenant_id} if tenant_id else {}
        docs = await self._store.find(AUTOMATION_RUNS, filters)
        runs = [RunRecord.model_validate(d) for d in docs]
        return sorted(runs, key=lambda r: r.started_at)
