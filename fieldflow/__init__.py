"""fieldflow: status-driven workflow automation for field-service work orders."""

from .actions import ActionHandler, ActionRegistry, build_default_registry
from .conditions import ConditionEvaluator
from .contracts import AutomationMessage, TimeoutCheck, TransitionEvent
from .dispatch import TransitionDispatcher, TransportTimeoutScheduler
from .engine import AutomationEngine, build_engine
from .execute import ActionExecutor
from .persistence import get_store
from .processor import TransitionProcessor
from .statuses import StatusRegistry
from .transports import get_transport
from .triggers import TriggerStore
from .worker import AutomationWorker
from .workorders import WorkOrderRepository, WorkOrderService

__version__ = "0.1.0"
__all__ = [
    "ActionExecutor",
    "ActionHandler",
    "ActionRegistry",
    "AutomationEngine",
    "AutomationMessage",
    "AutomationWorker",
    "ConditionEvaluator",
    "StatusRegistry",
    "TimeoutCheck",
    "TransitionDispatcher",
    "TransitionEvent",
    "TransitionProcessor",
    "TransportTimeoutScheduler",
    "TriggerStore",
    "WorkOrderRepository",
    "WorkOrderService",
    "build_default_registry",
    "build_engine",
    "get_store",
    "get_transport",
]
