"""
Core Form Model Objects

Defines the data structures the engine interprets:
    - FieldSchema (one question or display block)
    - Group (one step of a multi-step form)
    - Form (root container)
    - ValidationError (a field-level problem)
    - NavigationState (where the respondent is)

ARCHITECTURAL RULE:
    Schema objects (FieldSchema, Group, Form):
        - Are produced by formflow.normalize, fully populated
        - Are immutable
        - Know nothing about rendering or persistence
    Runtime objects (NavigationState) live only for one session.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple

from .conditions import ConditionalLogic
from .registry import (
    CHOICE_TYPES,
    DISPLAY_TYPES,
    RATING_TYPES,
    FieldType,
    TypeProfile,
    defaults_for,
)


@dataclass(frozen=True)
class ValidationRules:
    """
    Extra validation attached to a field.

    Properties:
        pattern: Regex the value must match (text fields)
        custom_message: Replaces the generic message of a format failure
        require_scroll_to_accept: Legal consent only. The presentation layer
            must only call set_value(True) after a scroll-to-bottom gesture;
            the engine only re-validates the boolean.
    """

    pattern: Optional[str] = None
    custom_message: Optional[str] = None
    require_scroll_to_accept: bool = False


@dataclass(frozen=True)
class FieldSchema:
    """
    A single form field, typically a question.

    Properties:
        id:
            Unique identifier within the form
        type:
            FieldType; FieldType.UNKNOWN when the tag was not recognised
        label:
            Question text, also used in "{label} is required"
        required:
            Whether an empty value blocks navigation
        options:
            Choice fields only; never empty after normalization
        min_rating / max_rating:
            Rating-family only; concrete after normalization
        min_length / max_length:
            Text bounds, inclusive
        validation_rules:
            Pattern, custom message, scroll-to-accept flag
        conditional_logic:
            Show/hide rules; None means always visible
        raw_type:
            The original tag when it was not recognised (render fallback)

    The remaining properties are passed through to the presentation layer.
    """

    id: str
    type: FieldType
    label: str
    required: bool = False
    options: Optional[Tuple[str, ...]] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    validation_rules: Optional[ValidationRules] = None
    conditional_logic: Optional[ConditionalLogic] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    default_value: Any = None
    accepted_file_types: Optional[Tuple[str, ...]] = None
    max_file_size: Optional[float] = None
    raw_type: Optional[str] = None

    @property
    def profile(self) -> TypeProfile:
        return defaults_for(self.type)

    @property
    def is_display_only(self) -> bool:
        return self.type in DISPLAY_TYPES

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES

    @property
    def is_rating(self) -> bool:
        return self.type in RATING_TYPES

    @property
    def render_fallback(self) -> bool:
        return self.raw_type is not None


@dataclass(frozen=True)
class Group:
    """
    An ordered set of fields shown together as one step.

    Properties:
        id: Step identifier
        title: Step title for the step indicator
        description: Optional step description
        fields: Ordered fields of the step
    """

    id: str
    title: str = ""
    description: Optional[str] = None
    fields: Tuple[FieldSchema, ...] = ()


class NavigationMode(Enum):
    """Exactly one mode is active per form; it never changes."""

    FLAT = "flat"          # one question per scope
    GROUPED = "grouped"    # one group per scope


@dataclass(frozen=True)
class Form:
    """
    Root container for a normalized form definition.

    Properties:
        id: Form identifier
        title: Form title
        description: Optional description
        fields: All fields, in declaration order
        groups: Explicit steps; empty for flat forms
        settings: Behaviour settings, passed through untouched
        theme: Theme document, passed through untouched

    INVARIANTS (enforced by formflow.normalize):
        - Field ids are unique
        - Every group field is also reachable through get_field
    """

    id: str
    title: str
    description: Optional[str] = None
    fields: Tuple[FieldSchema, ...] = ()
    groups: Tuple[Group, ...] = ()
    settings: Dict[str, Any] = field(default_factory=dict)
    theme: Dict[str, Any] = field(default_factory=dict)

    @property
    def mode(self) -> NavigationMode:
        return NavigationMode.GROUPED if self.groups else NavigationMode.FLAT

    def all_fields(self) -> Tuple[FieldSchema, ...]:
        """
        Every field the respondent can reach, in navigation order.

        For grouped forms this is the concatenation of the groups' fields;
        for flat forms it is the field list itself.
        """
        if self.groups:
            return tuple(f for g in self.groups for f in g.fields)
        return self.fields

    def get_field(self, field_id: str) -> Optional[FieldSchema]:
        """
        Retrieve a field by ID.

        Returns:
            FieldSchema or None if not found
        """
        for f in self.all_fields():
            if f.id == field_id:
                return f
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def get_group(self, group_id: str) -> Optional[Group]:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None


class ErrorKind(Enum):
    """Field-level error taxonomy. All kinds are recoverable."""

    REQUIRED = "required"
    FORMAT = "format"
    RANGE = "range"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ValidationError:
    """
    A field-level validation failure.

    This is a value, never raised. Lists of ValidationError are ordered
    by field declaration, regardless of touch order.
    """

    field_id: str
    message: str
    kind: ErrorKind


class Direction(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass
class NavigationState:
    """
    Mutable position of one respondent in one form.

    Properties:
        position_index: Active scope (question index or group index)
        direction: Direction of the last successful move
        touched: Field ids interacted with or swept into validation
    """

    position_index: int = 0
    direction: Direction = Direction.FORWARD
    touched: Set[str] = field(default_factory=set)

    def touch(self, field_ids) -> None:
        self.touched.update(field_ids)

    def frozen_touched(self) -> FrozenSet[str]:
        return frozenset(self.touched)


def error_lookup(errors: List[ValidationError]) -> Dict[str, ValidationError]:
    """
    Key errors by field id, keeping the first error per field.

    Dict order follows the input order, so the first key is the first
    invalid field in declaration order.
    """
    lookup: Dict[str, ValidationError] = {}
    for err in errors:
        lookup.setdefault(err.field_id, err)
    return lookup
