"""Process-start wiring of stores, services and the automation worker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .actions import ActionRegistry, build_default_registry
from .conditions import ConditionEvaluator
from .config import FieldflowConfig, load_config
from .dispatch import TransitionDispatcher, TransportTimeoutScheduler
from .execute import ActionExecutor
from .persistence import DocumentStore, get_store
from .processor import TransitionProcessor
from .runs import RunLog
from .statuses import StatusRegistry
from .transports import BaseTransport, get_transport
from .triggers import TriggerStore
from .worker import AutomationWorker
from .workorders import WorkOrderRepository, WorkOrderService


@dataclass
class AutomationEngine:
    """Every collaborator, constructed once and passed around explicitly."""

    config: FieldflowConfig
    store: DocumentStore
    transport: BaseTransport
    statuses: StatusRegistry
    triggers: TriggerStore
    actions: ActionRegistry
    processor: TransitionProcessor
    dispatcher: TransitionDispatcher
    work_orders: WorkOrderService
    runs: RunLog
    worker: AutomationWorker


def build_engine(
    config: Optional[FieldflowConfig] = None,
    store: Optional[DocumentStore] = None,
    transport: Optional[BaseTransport] = None,
    actions: Optional[ActionRegistry] = None,
) -> AutomationEngine:
    if store is None:
        store = get_store(config=config) if config is not None else get_store()
    config = config or load_config()
    transport = transport or get_transport(config=config)
    topic = config.transport.topic

    statuses = StatusRegistry(store)
    triggers = TriggerStore(store, statuses)
    actions = actions or build_default_registry(store, config.automation)
    processor = TransitionProcessor(
        triggers,
        WorkOrderRepository(store),
        ActionExecutor(actions),
        evaluator=ConditionEvaluator(),
        timeout_scheduler=TransportTimeoutScheduler(transport, topic),
    )
    dispatcher = TransitionDispatcher(transport, topic)
    runs = RunLog(store)
    return AutomationEngine(
        config=config,
        store=store,
        transport=transport,
        statuses=statuses,
        triggers=triggers,
        actions=actions,
        processor=processor,
        dispatcher=dispatcher,
        work_orders=WorkOrderService(store, statuses, dispatcher),
        runs=runs,
        worker=AutomationWorker(
            transport, processor, runs=runs, topic=topic, config=config.automation
        ),
    )
