"""
Condition Structures for formflow

Conditional visibility rules are represented as small immutable records,
never as code strings.

This ensures:
    - Schemas stay declarative
    - Rules are serializable
    - A misconfigured rule can be inspected instead of executed

ARCHITECTURAL RULE:
    These objects describe WHEN a field participates.
    Evaluation belongs in formflow.visibility.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class ConditionOperator(Enum):
    """
    Comparison operators accepted in show/hide conditions.

    The values are the wire tags used in form documents.
    """

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"

    @classmethod
    def parse(cls, tag: Any) -> Optional["ConditionOperator"]:
        """Return the operator for a wire tag, or None if it is not recognised."""
        if isinstance(tag, cls):
            return tag
        for op in cls:
            if op.value == tag:
                return op
        return None


@dataclass(frozen=True)
class Condition:
    """
    A single comparison against another field's current value.

    Example:
        {"fieldId": "role", "operator": "equals", "value": "Other"}

    Becomes:
        Condition(field_id="role", operator="equals", value="Other")

    Properties:
        field_id: Id of the field whose value is inspected
        operator: Wire tag of the operator (kept raw so that unknown
                  operators survive normalization and evaluate to False)
        value: Literal the field value is compared with
    """

    field_id: str
    operator: str
    value: Any = None

    @property
    def known_operator(self) -> Optional[ConditionOperator]:
        return ConditionOperator.parse(self.operator)


@dataclass(frozen=True)
class ConditionalLogic:
    """
    Show/hide rules attached to a field.

    Properties:
        show_when:
            If non-empty, at least one condition must hold for the field
            to be visible (logical OR)
        hide_when:
            If any condition holds, the field is hidden
            Hide takes precedence over show

    Both sequences keep declaration order.
    """

    show_when: Tuple[Condition, ...] = ()
    hide_when: Tuple[Condition, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.show_when and not self.hide_when

    def referenced_fields(self) -> Tuple[str, ...]:
        """Field ids referenced by any condition, in declaration order."""
        seen = []
        for cond in self.show_when + self.hide_when:
            if cond.field_id not in seen:
                seen.append(cond.field_id)
        return tuple(seen)
