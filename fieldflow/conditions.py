"""Condition evaluation for trigger gating."""

from __future__ import annotations

import operator
from typing import Any, Callable, Dict, Iterable, Mapping

from .errors import ConditionEvaluationError
from .models import Condition, ConditionOperator, WorkOrderSnapshot

_MISSING = object()


def resolve_field(data: Mapping[str, Any], path: str) -> Any:
    """Walk a dotted ``path`` through nested mappings.

    Raises ``ConditionEvaluationError`` when any segment is absent.
    """
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            raise ConditionEvaluationError(f"field '{path}' is not present on the work order")
        current = current.get(part, _MISSING)
        if current is _MISSING:
            raise ConditionEvaluationError(f"field '{path}' is not present on the work order")
    return current


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def _contains(container: Any, item: Any) -> bool:
    if container is None:
        return False
    if isinstance(container, str):
        return str(item) in container
    try:
        return item in container
    except TypeError as exc:
        raise ConditionEvaluationError(
            f"cannot test membership in {type(container).__name__}"
        ) from exc


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(left: Any, right: Any) -> bool:
        try:
            return bool(op(left, right))
        except TypeError as exc:
            raise ConditionEvaluationError(
                f"cannot compare {type(left).__name__} with {type(right).__name__}"
            ) from exc

    return compare


_OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQ: operator.eq,
    ConditionOperator.NEQ: operator.ne,
    ConditionOperator.GT: _ordered(operator.gt),
    ConditionOperator.LT: _ordered(operator.lt),
    ConditionOperator.GTE: _ordered(operator.ge),
    ConditionOperator.LTE: _ordered(operator.le),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: lambda left, right: not _contains(left, right),
    ConditionOperator.IS_EMPTY: lambda left, _: _is_empty(left),
    ConditionOperator.IS_NOT_EMPTY: lambda left, _: not _is_empty(left),
}


class ConditionEvaluator:
    """Decides whether a trigger's conditions hold for a work order.

    Conditions are combined with AND and evaluated in order; the first
    false condition stops evaluation. The snapshot is never modified.
    """

    def evaluate(
        self, conditions: Iterable[Condition], context: WorkOrderSnapshot
    ) -> bool:
        data = context.model_dump()
        for condition in conditions:
            if not self._check(condition, data):
                return False
        return True

    @staticmethod
    def _check(condition: Condition, data: Mapping[str, Any]) -> bool:
        left = resolve_field(data, condition.field)
        return _OPERATORS[condition.operator](left, condition.value)
