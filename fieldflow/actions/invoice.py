"""Draft invoice creation from a work order's time entries."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List

from ..config import AutomationConfig
from ..constants import INVOICES, SYSTEM_ACTOR, TIME_ENTRIES
from ..errors import DuplicateDocument
from ..models import (
    ActionDescriptor,
    ExecutionResult,
    Invoice,
    InvoiceLineItem,
    TimeEntry,
    WorkOrderSnapshot,
    utcnow,
)
from ..persistence import DocumentStore
from .base import ActionContext, ActionHandler

logger = logging.getLogger(__name__)


class CreateInvoiceDraftHandler(ActionHandler):
    """Bill every time entry on the work order as a labor line.

    ``params.unit_price`` overrides the configured labor rate and
    ``params.due_in_days`` the configured payment term.
    """

    action_type = "create_invoice_draft"

    def __init__(self, store: DocumentStore, config: AutomationConfig | None = None) -> None:
        self._store = store
        self._config = config or AutomationConfig()

    async def execute(
        self,
        descriptor: ActionDescriptor,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        context: ActionContext,
    ) -> ExecutionResult:
        invoice_id = f"inv_{context.idempotency_key}"
        if await self._store.get(INVOICES, invoice_id) is not None:
            return self._duplicate(invoice_id, work_order, context)

        params = descriptor.params
        unit_price = float(params.get("unit_price", self._config.default_labor_rate))
        due_in_days = int(params.get("due_in_days", self._config.invoice_due_days))

        entries = await self._store.find(
            TIME_ENTRIES, {"tenant_id": tenant_id, "work_order_id": work_order.id}
        )
        line_items = self._line_items(entries, unit_price)
        subtotal = round(sum(item.quantity * item.unit_price for item in line_items), 2)

        issue_date = utcnow()
        invoice = Invoice(
            id=invoice_id,
            tenant_id=tenant_id,
            customer_id=work_order.customer_id,
            location_id=work_order.location_id,
            invoice_number=await self._next_invoice_number(tenant_id),
            status="draft",
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=due_in_days),
            line_items=line_items,
            subtotal=subtotal,
            tax_amount=0,
            discount_amount=0,
            total_amount=subtotal,
            amount_paid=0,
            amount_due=subtotal,
            related_work_order_ids=[work_order.id],
            created_at=issue_date,
            created_by=SYSTEM_ACTOR,
            trigger_id=context.trigger_id,
            idempotency_key=context.idempotency_key,
        )
        try:
            await self._store.create(INVOICES, invoice.model_dump(mode="json"))
        except DuplicateDocument:
            # Another delivery won the insert; this attempt leaves a gap in the sequence.
            return self._duplicate(invoice_id, work_order, context)
        logger.info(
            f"Drafted invoice {invoice.invoice_number} ({len(line_items)} lines, "
            f"total {subtotal:.2f}) for WO #{work_order.work_order_number}"
        )
        return ExecutionResult(success=True, document_id=invoice_id)

    @staticmethod
    def _duplicate(
        invoice_id: str, work_order: WorkOrderSnapshot, context: ActionContext
    ) -> ExecutionResult:
        logger.info(
            f"Invoice {invoice_id} already drafted for WO {work_order.id} "
            f"(trigger {context.trigger_id}); skipping duplicate"
        )
        return ExecutionResult(success=True, duplicate=True, document_id=invoice_id)

    @staticmethod
    def _line_items(entries: List[Dict[str, Any]], unit_price: float) -> List[InvoiceLineItem]:
        items = []
        for doc in entries:
            entry = TimeEntry.model_validate(doc)
            items.append(
                InvoiceLineItem(
                    id=f"time_{entry.id}",
                    description=f"Technician Labor: {entry.notes or 'General Labor'}",
                    quantity=round(entry.billable_hours(), 2),
                    unit_price=unit_price,
                    item_type="labor",
                )
            )
        return items

    async def _next_invoice_number(self, tenant_id: str) -> str:
        # Per-tenant counter: unique even under concurrent drafting.
        sequence = await self._store.next_sequence(f"invoice_number:{tenant_id}")
        return f"{self._config.invoice_number_prefix}{sequence:06d}"
