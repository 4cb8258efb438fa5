"""Exception types raised by fieldflow services."""

from __future__ import annotations


class AutomationError(Exception):
    """Base class for all fieldflow errors."""


class ConfigurationError(AutomationError):
    """A status or trigger definition was rejected at create/update time."""


class TriggerConfigurationError(ConfigurationError):
    """A trigger definition was rejected at create/update time."""


class TriggerNotFound(AutomationError):
    """Trigger does not exist or belongs to another tenant."""


class StatusNotFound(AutomationError):
    """Workflow status does not exist for the tenant."""


class StatusInUse(AutomationError):
    """Status is still referenced by a work order or trigger."""


class WorkOrderNotFound(AutomationError):
    """Work order does not exist or belongs to another tenant."""


class DuplicateDocument(AutomationError):
    """A document with the same id already exists in the collection."""


class ConditionEvaluationError(AutomationError):
    """A condition could not be decided for the given snapshot."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
