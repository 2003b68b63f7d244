"""
Visibility Evaluator

Decides whether a field currently participates in validation, navigation
and rendering, given its conditional logic and the current ValueMap.

Rules:
    - No conditional logic → visible
    - Non-empty show_when → at least one condition must hold
    - Non-empty hide_when → any holding condition hides the field
      (evaluated after show_when; hide wins)

Evaluation is a pure function of the ValueMap. Nothing is cached, because
any upstream answer can flip visibility. A malformed condition evaluates to
False; it never raises.
"""

import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .conditions import Condition, ConditionOperator
from .model import FieldSchema


def _loose_key(value: Any) -> Any:
    """Comparable form for loose equality: 5 == "5", True == "true"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


def _loose_equals(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return actual is None and expected is None
    if actual == expected:
        return True
    try:
        return _loose_key(actual) == _loose_key(expected)
    except TypeError:
        return False


def _to_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_loose_equals(item, expected) for item in actual)
    return _stringify(expected) in _stringify(actual)


def _greater_than(actual: Any, expected: Any) -> bool:
    a, b = _to_number(actual), _to_number(expected)
    return a is not None and b is not None and a > b


def _less_than(actual: Any, expected: Any) -> bool:
    a, b = _to_number(actual), _to_number(expected)
    return a is not None and b is not None and a < b


_OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _loose_equals,
    ConditionOperator.NOT_EQUALS: lambda a, b: not _loose_equals(a, b),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.GREATER_THAN: _greater_than,
    ConditionOperator.LESS_THAN: _less_than,
}


def evaluate_condition(condition: Condition, value_map: Mapping[str, Any]) -> bool:
    """
    Evaluate one condition against the current values.

    Unknown operators and uncomparable values yield False.
    """
    op = condition.known_operator
    if op is None:
        return False
    actual = value_map.get(condition.field_id)
    try:
        return bool(_OPERATORS[op](actual, condition.value))
    except (TypeError, ValueError):
        return False


def is_visible(field: FieldSchema, value_map: Mapping[str, Any]) -> bool:
    """Return True if the field currently counts toward validation/navigation."""
    logic = field.conditional_logic
    if logic is None:
        return True

    if logic.show_when:
        if not any(evaluate_condition(c, value_map) for c in logic.show_when):
            return False

    if logic.hide_when:
        if any(evaluate_condition(c, value_map) for c in logic.hide_when):
            return False

    return True


def visible_fields(fields: Iterable[FieldSchema], value_map: Mapping[str, Any]) -> List[FieldSchema]:
    """Filter fields down to the visible ones, keeping declaration order."""
    return [f for f in fields if is_visible(f, value_map)]
