"""Base action handler interface."""

from __future__ import annotations

import abc
import hashlib
from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel

from ..models import ActionDescriptor, ExecutionResult, WorkOrderSnapshot


def idempotency_key(work_order_id: str, trigger_id: str, transition_at: datetime) -> str:
    """Deterministic key for one logical action execution."""
    raw = f"{work_order_id}:{trigger_id}:{transition_at.isoformat()}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


class ActionContext(BaseModel):
    """Transition details a handler may need beyond the work order itself."""

    trigger_id: str
    trigger_name: Optional[str] = None
    status_name: str
    transition_at: datetime
    idempotency_key: str

    @classmethod
    def build(
        cls,
        work_order_id: str,
        trigger_id: str,
        status_name: str,
        transition_at: datetime,
        trigger_name: Optional[str] = None,
    ) -> "ActionContext":
        return cls(
            trigger_id=trigger_id,
            trigger_name=trigger_name,
            status_name=status_name,
            transition_at=transition_at,
            idempotency_key=idempotency_key(work_order_id, trigger_id, transition_at),
        )


class ActionHandler(metaclass=abc.ABCMeta):
    """Performs one kind of side effect for a fired trigger.

    Implementations must be idempotent with respect to
    ``context.idempotency_key``: a redelivered execution has to find the
    record created by the first one instead of creating a second.
    """

    action_type: ClassVar[str]

    @abc.abstractmethod
    async def execute(
        self,
        descriptor: ActionDescriptor,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        context: ActionContext,
    ) -> ExecutionResult:
        raise NotImplementedError
