"""Action handlers and the registry that maps action types to them."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..config import AutomationConfig
from ..persistence import DocumentStore
from .base import ActionContext, ActionHandler, idempotency_key
from .invoice import CreateInvoiceDraftHandler
from .notify import NotifyCustomerHandler


class ActionRegistry:
    """Maps action type names to handlers."""

    def __init__(self, handlers: Iterable[ActionHandler] = ()) -> None:
        self._handlers: Dict[str, ActionHandler] = {}
        for handler in handlers:
            self.register(handler)

    def register(self, handler: ActionHandler, action_type: Optional[str] = None) -> None:
        """Add ``handler``; a later registration for the same type replaces it."""
        self._handlers[action_type or handler.action_type] = handler

    def get(self, action_type: str) -> Optional[ActionHandler]:
        return self._handlers.get(action_type)

    def __contains__(self, action_type: str) -> bool:
        return action_type in self._handlers

    @property
    def action_types(self) -> list[str]:
        return sorted(self._handlers)


def build_default_registry(
    store: DocumentStore, config: Optional[AutomationConfig] = None
) -> ActionRegistry:
    """Registry with every built-in handler, wired to ``store``."""
    return ActionRegistry(
        [
            CreateInvoiceDraftHandler(store, config),
            NotifyCustomerHandler(store),
        ]
    )


__all__ = [
    "ActionContext",
    "ActionHandler",
    "ActionRegistry",
    "CreateInvoiceDraftHandler",
    "NotifyCustomerHandler",
    "build_default_registry",
    "idempotency_key",
]
