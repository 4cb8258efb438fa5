"""Message contracts exchanged between the write path and automation workers."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .models import utcnow


class TransitionEvent(BaseModel):
    """A persisted work-order status change.

    ``old_status`` is ``None`` when the work order was created directly in
    ``new_status``.
    """

    tenant_id: str
    work_order_id: str
    old_status: Optional[str] = None
    new_status: str
    occurred_at: datetime = Field(default_factory=utcnow)


class TimeoutCheck(BaseModel):
    """Deferred re-check for a single ``on_timeout`` trigger."""

    tenant_id: str
    work_order_id: str
    status_name: str
    trigger_id: str
    entered_at: datetime
    due_at: datetime


class AutomationMessage(BaseModel):
    """Envelope exchanged over the bus."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    attempt: int = 1
    not_before: Optional[datetime] = None
    kind: Literal["transition", "timeout"]
    transition: Optional[TransitionEvent] = None
    timeout: Optional[TimeoutCheck] = None

    @model_validator(mode="after")
    def _payload_matches_kind(self) -> "AutomationMessage":
        if self.kind == "transition" and self.transition is None:
            raise ValueError("transition messages require a transition payload")
        if self.kind == "timeout" and self.timeout is None:
            raise ValueError("timeout messages require a timeout payload")
        return self

    @classmethod
    def for_transition(cls, event: TransitionEvent) -> "AutomationMessage":
        return cls(kind="transition", transition=event)

    @classmethod
    def for_timeout(cls, check: TimeoutCheck) -> "AutomationMessage":
        return cls(kind="timeout", timeout=check, not_before=check.due_at)

    @property
    def tenant_id(self) -> str:
        payload = self.transition or self.timeout
        return payload.tenant_id

    @property
    def work_order_id(self) -> str:
        payload = self.transition or self.timeout
        return payload.work_order_id

    def bump_attempt(self, not_before: Optional[datetime] = None) -> "AutomationMessage":
        """Return a copy for redelivery with a fresh message id.

        The correlation id is kept so every attempt lands in the same run record.
        """
        return self.model_copy(
            update={
                "message_id": str(uuid.uuid4()),
                "attempt": self.attempt + 1,
                "not_before": not_before,
            }
        )

    def to_json(self) -> str:
        """Serialize message to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "AutomationMessage":
        """Deserialize message from JSON."""
        return cls.model_validate_json(data)
