"""Domain models for workflow statuses, triggers and work-order snapshots."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusGroup(str, Enum):
    START = "start"
    ACTIVE = "active"
    FINAL = "final"
    CANCELLED = "cancelled"


class TriggerEvent(str, Enum):
    ON_ENTER = "on_enter"
    ON_EXIT = "on_exit"
    ON_TIMEOUT = "on_timeout"


class ConditionOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class WorkflowStatus(BaseModel):
    """A named step in a tenant's work-order workflow."""

    id: Optional[str] = None
    tenant_id: str
    name: str
    color: str = "#888888"
    description: Optional[str] = None
    group: StatusGroup
    is_final_step: bool = False
    sort_order: int = 0

    @model_validator(mode="after")
    def _final_group_is_final_step(self) -> "WorkflowStatus":
        if self.group is StatusGroup.FINAL and not self.is_final_step:
            raise ValueError("statuses in the 'final' group must be final steps")
        return self


class Condition(BaseModel):
    """Predicate comparing one snapshot field against a value."""

    id: Optional[str] = None
    field: str
    operator: ConditionOperator
    value: Any = None


class ActionDescriptor(BaseModel):
    """Action type plus free-form parameters.

    ``type`` is deliberately a plain string: unknown types must survive
    loading so the executor can skip them with a warning.
    """

    type: str
    params: Dict[str, Any] = Field(default_factory=dict)


class WorkflowTrigger(BaseModel):
    """Rule binding a status lifecycle event to a single action."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    tenant_id: str
    name: str
    status_name: str
    event: TriggerEvent = Field(alias="trigger_event")
    timeout_duration: Optional[timedelta] = None
    conditions: List[Condition] = Field(default_factory=list)
    action: ActionDescriptor
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @model_validator(mode="after")
    def _timeout_duration_matches_event(self) -> "WorkflowTrigger":
        if self.event is TriggerEvent.ON_TIMEOUT:
            if self.timeout_duration is None:
                raise ValueError("on_timeout triggers require timeout_duration")
            if self.timeout_duration <= timedelta(0):
                raise ValueError("timeout_duration must be positive")
        elif self.timeout_duration is not None:
            raise ValueError("timeout_duration is only valid for on_timeout triggers")
        return self

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


class WorkOrderSnapshot(BaseModel):
    """Read-only view of a work order handed to conditions and actions.

    Fields beyond the core identifiers are kept as extras so conditions can
    address anything the work-order document carries.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    tenant_id: str
    customer_id: Optional[str] = None
    location_id: Optional[str] = None
    status: str
    work_order_number: Optional[str] = None
    status_changed_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WorkOrderSnapshot":
        return cls.model_validate(doc)


class TimeEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    work_order_id: Optional[str] = None
    user_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_hours: Optional[float] = None
    notes: Optional[str] = None

    def billable_hours(self) -> float:
        if self.duration_hours is not None:
            return self.duration_hours
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds() / 3600
        return 0.0


class InvoiceLineItem(BaseModel):
    id: str
    description: str
    quantity: float
    unit_price: float
    item_type: str = "labor"


class Invoice(BaseModel):
    id: Optional[str] = None
    tenant_id: str
    customer_id: Optional[str] = None
    location_id: Optional[str] = None
    invoice_number: str
    status: str = "draft"
    issue_date: datetime
    due_date: datetime
    line_items: List[InvoiceLineItem] = Field(default_factory=list)
    subtotal: float
    tax_amount: float = 0
    discount_amount: float = 0
    total_amount: float
    amount_paid: float = 0
    amount_due: float
    related_work_order_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    created_by: str
    trigger_id: Optional[str] = None
    idempotency_key: Optional[str] = None


class Notification(BaseModel):
    id: Optional[str] = None
    tenant_id: str
    customer_id: Optional[str] = None
    user_id: Optional[str] = None
    type: str = "work_order_status_update"
    message: str
    is_read: bool = False
    related_entity: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    trigger_id: Optional[str] = None
    idempotency_key: Optional[str] = None


class ExecutionResult(BaseModel):
    """Outcome of a single action execution."""

    success: bool
    error: Optional[str] = None
    skipped: bool = False
    duplicate: bool = False
    document_id: Optional[str] = None


class AutomationWarning(BaseModel):
    """Structured warning for a trigger that could not be evaluated or run."""

    tenant_id: str
    work_order_id: str
    trigger_id: Optional[str] = None
    reason: str


class TriggerOutcome(BaseModel):
    trigger_id: Optional[str] = None
    trigger_name: str
    event: TriggerEvent
    action_type: str
    fired: bool = False
    result: Optional[ExecutionResult] = None
    warning: Optional[AutomationWarning] = None


class TransitionReport(BaseModel):
    """Per-transition aggregate of trigger outcomes, used for run records."""

    tenant_id: str
    work_order_id: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    event: Optional[TriggerEvent] = None
    skipped: bool = False
    skip_reason: Optional[str] = None
    outcomes: List[TriggerOutcome] = Field(default_factory=list)
    scheduled_timeouts: int = 0

    @property
    def warnings(self) -> List[AutomationWarning]:
        return [o.warning for o in self.outcomes if o.warning is not None]

    @property
    def failed(self) -> List[TriggerOutcome]:
        return [
            o
            for o in self.outcomes
            if o.result is not None and not o.result.success and not o.result.skipped
        ]
