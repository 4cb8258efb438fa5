"""Transition processing: trigger selection, condition gating and dispatch."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple

from .actions import ActionContext
from .conditions import ConditionEvaluator
from .contracts import TimeoutCheck
from .errors import ConditionEvaluationError, TriggerNotFound
from .execute import ActionExecutor
from .models import (
    AutomationWarning,
    TransitionReport,
    TriggerEvent,
    TriggerOutcome,
    WorkflowTrigger,
    WorkOrderSnapshot,
    utcnow,
)
from .triggers import TriggerStore
from .workorders import WorkOrderRepository

if TYPE_CHECKING:
    from .dispatch import TimeoutScheduler

logger = logging.getLogger(__name__)


class TransitionProcessor:
    """Reacts to work-order status transitions.

    For a transition ``old -> new`` the processor loads the ``on_exit``
    triggers of ``old`` and the ``on_enter`` triggers of ``new``, evaluates
    each trigger's conditions against a freshly read work-order snapshot and
    executes the actions of those that qualify. Triggers run concurrently
    and independently: a failure in one is recorded in the report and never
    stops the others.

    When a ``timeout_scheduler`` is configured, entering a status also
    schedules one deferred check per ``on_timeout`` trigger of that status;
    :meth:`process_timeout` handles those checks once they come due.
    """

    def __init__(
        self,
        triggers: TriggerStore,
        work_orders: WorkOrderRepository,
        executor: ActionExecutor,
        evaluator: Optional[ConditionEvaluator] = None,
        timeout_scheduler: Optional["TimeoutScheduler"] = None,
    ) -> None:
        self._triggers = triggers
        self._work_orders = work_orders
        self._executor = executor
        self._evaluator = evaluator or ConditionEvaluator()
        self._timeout_scheduler = timeout_scheduler

    async def process_transition(
        self,
        tenant_id: str,
        work_order_id: str,
        old_status: Optional[str],
        new_status: str,
        occurred_at: Optional[datetime] = None,
    ) -> TransitionReport:
        report = TransitionReport(
            tenant_id=tenant_id,
            work_order_id=work_order_id,
            old_status=old_status,
            new_status=new_status,
        )
        if old_status == new_status:
            logger.debug(f"WO {work_order_id} stayed in '{new_status}'; nothing to process")
            report.skipped = True
            report.skip_reason = "no status change"
            return report

        logger.info(
            f"Processing triggers for WO {work_order_id} (tenant {tenant_id}): "
            f"{old_status!r} -> {new_status!r}"
        )

        exit_triggers: List[WorkflowTrigger] = []
        if old_status is not None:
            exit_triggers = await self._triggers.find_triggers(
                tenant_id, old_status, TriggerEvent.ON_EXIT
            )
        enter_triggers = await self._triggers.find_triggers(
            tenant_id, new_status, TriggerEvent.ON_ENTER
        )
        timeout_triggers: List[WorkflowTrigger] = []
        if self._timeout_scheduler is not None:
            timeout_triggers = await self._triggers.find_triggers(
                tenant_id, new_status, TriggerEvent.ON_TIMEOUT
            )

        if not (exit_triggers or enter_triggers or timeout_triggers):
            logger.info("No triggers found.")
            return report

        work_order = await self._work_orders.get_snapshot(tenant_id, work_order_id)
        if work_order is None:
            logger.error(f"Work order {work_order_id} not found for tenant {tenant_id}")
            report.skipped = True
            report.skip_reason = "work order not found"
            return report

        # Transition time is the persisted status_changed_at unless given explicitly.
        occurred_at = occurred_at or work_order.status_changed_at or utcnow()

        candidates: List[Tuple[WorkflowTrigger, str]] = [
            (t, old_status) for t in exit_triggers
        ] + [(t, new_status) for t in enter_triggers]
        report.outcomes = list(
            await asyncio.gather(
                *(
                    self._run_trigger(trigger, status, work_order, tenant_id, occurred_at)
                    for trigger, status in candidates
                )
            )
        )

        for trigger in timeout_triggers:
            if await self._schedule_timeout(trigger, work_order, tenant_id, occurred_at):
                report.scheduled_timeouts += 1

        fired = sum(1 for o in report.outcomes if o.fired)
        logger.info(
            f"Transition for WO {work_order_id} done: {len(candidates)} candidates, "
            f"{fired} fired, {len(report.failed)} failed, "
            f"{report.scheduled_timeouts} timeouts scheduled"
        )
        return report

    async def process_timeout(self, check: TimeoutCheck) -> TransitionReport:
        """Run a due ``on_timeout`` trigger if the work order never left the status."""
        report = TransitionReport(
            tenant_id=check.tenant_id,
            work_order_id=check.work_order_id,
            new_status=check.status_name,
            event=TriggerEvent.ON_TIMEOUT,
        )

        work_order = await self._work_orders.get_snapshot(
            check.tenant_id, check.work_order_id
        )
        stale_reason = self._stale_reason(check, work_order)
        if stale_reason is None:
            try:
                trigger = await self._triggers.get_trigger(check.tenant_id, check.trigger_id)
            except TriggerNotFound:
                stale_reason = "trigger deleted"
            else:
                if (
                    not trigger.is_active
                    or trigger.event is not TriggerEvent.ON_TIMEOUT
                    or trigger.status_name != check.status_name
                ):
                    stale_reason = "trigger no longer applies"

        if stale_reason is not None:
            logger.warning(
                f"Discarding timeout of trigger {check.trigger_id} for WO "
                f"{check.work_order_id} (tenant {check.tenant_id}): {stale_reason}"
            )
            report.skipped = True
            report.skip_reason = stale_reason
            return report

        outcome = await self._run_trigger(
            trigger, check.status_name, work_order, check.tenant_id, check.entered_at
        )
        report.outcomes.append(outcome)
        return report

    # ------------------------------------------------------------------
    async def _run_trigger(
        self,
        trigger: WorkflowTrigger,
        status_name: str,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        transition_at: datetime,
    ) -> TriggerOutcome:
        outcome = TriggerOutcome(
            trigger_id=trigger.id,
            trigger_name=trigger.name,
            event=trigger.event,
            action_type=trigger.action.type,
        )

        try:
            satisfied = self._evaluator.evaluate(trigger.conditions, work_order)
        except ConditionEvaluationError as e:
            outcome.warning = self._warn(trigger, work_order, tenant_id, e.reason)
            return outcome
        except Exception as e:
            logger.exception(f"Unexpected error evaluating trigger {trigger.id}")
            outcome.warning = self._warn(
                trigger, work_order, tenant_id, f"{type(e).__name__}: {e}"
            )
            return outcome

        if not satisfied:
            logger.info(f"Conditions not met for trigger '{trigger.name}' ({trigger.id})")
            return outcome

        context = ActionContext.build(
            work_order.id, trigger.id, status_name, transition_at, trigger.name
        )
        result = await self._executor.execute(trigger.action, work_order, tenant_id, context)
        outcome.fired = True
        outcome.result = result
        if result.skipped:
            outcome.warning = AutomationWarning(
                tenant_id=tenant_id,
                work_order_id=work_order.id,
                trigger_id=trigger.id,
                reason=result.error or "action skipped",
            )
        return outcome

    @staticmethod
    def _warn(
        trigger: WorkflowTrigger,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        reason: str,
    ) -> AutomationWarning:
        warning = AutomationWarning(
            tenant_id=tenant_id,
            work_order_id=work_order.id,
            trigger_id=trigger.id,
            reason=reason,
        )
        logger.warning(
            f"Trigger {trigger.id} not fired for WO {work_order.id} "
            f"(tenant {tenant_id}): {reason}"
        )
        return warning

    @staticmethod
    def _stale_reason(
        check: TimeoutCheck, work_order: Optional[WorkOrderSnapshot]
    ) -> Optional[str]:
        if work_order is None:
            return "work order not found"
        if work_order.status != check.status_name:
            return "status changed before timeout elapsed"
        if (
            work_order.status_changed_at is not None
            and work_order.status_changed_at != check.entered_at
        ):
            return "status re-entered after timeout was scheduled"
        return None

    async def _schedule_timeout(
        self,
        trigger: WorkflowTrigger,
        work_order: WorkOrderSnapshot,
        tenant_id: str,
        entered_at: datetime,
    ) -> bool:
        check = TimeoutCheck(
            tenant_id=tenant_id,
            work_order_id=work_order.id,
            status_name=trigger.status_name,
            trigger_id=trigger.id,
            entered_at=entered_at,
            due_at=entered_at + trigger.timeout_duration,
        )
        try:
            await self._timeout_scheduler.schedule(check)
        except Exception as e:
            logger.error(
                f"Failed to schedule timeout of trigger {trigger.id} for WO "
                f"{work_order.id} (tenant {tenant_id}): {e}"
            )
            return False
        return True
