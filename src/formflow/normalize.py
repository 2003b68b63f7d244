"""
Schema Normalization (Raw Form Document → formflow Form).

Converts a form document, as fetched from the schema source, into an
immutable, fully-populated Form.

Document Format (keys as stored by the form builder):
    {id, title, description, fields[], fieldGroups?[], theme, settings}

Field keys:
    id, type, label, required, options, minRating, maxRating,
    minLength, maxLength, validationRules, conditionalLogic, ...

Normalization:
    - Resolves type tags, including authoring aliases and legacy tags
    - Fills missing options / rating bounds / base constraints from the
      Field Type Registry
    - Rejects programming-invariant violations (duplicate ids, inverted
      bounds, broken regexes) before any session starts
    - Degrades unknown types and operators with a SchemaWarning
"""

import logging
import re
import warnings
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .conditions import Condition, ConditionalLogic, ConditionOperator
from .config import EngineConfig, get_config
from .model import FieldSchema, Form, Group, ValidationRules
from .registry import (
    CHOICE_TYPES,
    DISPLAY_TYPES,
    LEGACY_DATE_PATTERN,
    LEGACY_TAGS,
    RATING_TYPES,
    FieldType,
    defaults_for,
    resolve_type,
)

logger = logging.getLogger(__name__)


class SchemaError(Exception):
    """Raised when a form document violates a structural invariant."""
    pass


class SchemaWarning(UserWarning):
    """Issued when part of a form document is degraded instead of rejected."""
    pass


def _get(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; documents may use camelCase or snake_case."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _degrade(message: str, config: EngineConfig) -> None:
    if config.strict_schema:
        raise SchemaError(message)
    warnings.warn(message, SchemaWarning, stacklevel=3)
    logger.warning(message)


def _as_number(value: Any, what: str, field_id: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise SchemaError(f"Field '{field_id}': {what} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise SchemaError(f"Field '{field_id}': {what} must be a number, got {value!r}")
    return int(number) if number.is_integer() else number


def _as_length(value: Any, what: str, field_id: str) -> Optional[int]:
    number = _as_number(value, what, field_id)
    if number is None:
        return None
    if number < 0 or int(number) != number:
        raise SchemaError(f"Field '{field_id}': {what} must be a non-negative integer, got {value!r}")
    return int(number)


def normalize_condition(raw: Any, field_id: str, config: EngineConfig) -> Condition:
    """
    Convert a raw {fieldId, operator, value} mapping into a Condition.

    Unknown operators are kept verbatim (they evaluate to False) after
    a SchemaWarning.

    Raises:
        SchemaError: If the condition is not a mapping or names no field
    """
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Field '{field_id}': condition must be a mapping, got {raw!r}")

    target = _get(raw, "fieldId", "field_id")
    if not isinstance(target, str) or not target:
        raise SchemaError(f"Field '{field_id}': condition is missing fieldId")

    operator = raw.get("operator")
    if ConditionOperator.parse(operator) is None:
        _degrade(
            f"Field '{field_id}': unknown condition operator {operator!r}; condition will never match",
            config,
        )
    elif isinstance(operator, ConditionOperator):
        operator = operator.value

    return Condition(field_id=target, operator=str(operator), value=raw.get("value"))


def normalize_conditional_logic(raw: Any, field_id: str, config: EngineConfig) -> Optional[ConditionalLogic]:
    if raw is None:
        return None
    if isinstance(raw, ConditionalLogic):
        return None if raw.is_empty else raw
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Field '{field_id}': conditionalLogic must be a mapping")

    show = _get(raw, "showWhen", "show_when", default=[])
    hide = _get(raw, "hideWhen", "hide_when", default=[])
    logic = ConditionalLogic(
        show_when=tuple(normalize_condition(c, field_id, config) for c in show),
        hide_when=tuple(normalize_condition(c, field_id, config) for c in hide),
    )
    return None if logic.is_empty else logic


def _normalize_rules(raw: Any, field_id: str, field_type: FieldType, legacy_tag: Optional[str]) -> Optional[ValidationRules]:
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Field '{field_id}': validationRules must be a mapping")

    pattern = _get(raw, "pattern")
    message = _get(raw, "customMessage", "custom_message")
    profile = defaults_for(field_type)
    scroll = _get(
        raw,
        "requireScrollToAccept",
        "require_scroll_to_accept",
        default=profile.base_constraints.get("require_scroll_to_accept", False),
    )

    if legacy_tag == "date" and pattern is None:
        pattern = LEGACY_DATE_PATTERN
        message = message or "Please enter a valid date (YYYY-MM-DD)"

    if pattern is not None:
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            raise SchemaError(f"Field '{field_id}': invalid pattern {pattern!r}: {e}")

    if not isinstance(scroll, bool):
        raise SchemaError(f"Field '{field_id}': requireScrollToAccept must be true or false, got {scroll!r}")

    # consent fields keep an explicit opt-out so it survives a dump/reload
    keeps_scroll = "require_scroll_to_accept" in profile.base_constraints
    if pattern is None and message is None and not scroll and not keeps_scroll:
        return None
    return ValidationRules(pattern=pattern, custom_message=message, require_scroll_to_accept=bool(scroll))


def normalize_field(raw: Any, config: Optional[EngineConfig] = None) -> FieldSchema:
    """
    Normalize one raw field mapping.

    Args:
        raw: Field mapping from the form document (or an existing FieldSchema)
        config: Engine configuration (defaults to get_config())

    Returns:
        Fully-populated, immutable FieldSchema

    Raises:
        SchemaError: If the field violates a structural invariant
    """
    config = config or get_config()

    if isinstance(raw, FieldSchema):
        return raw
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Field must be a mapping, got {type(raw).__name__}")

    field_id = raw.get("id")
    if not isinstance(field_id, str) or not field_id.strip():
        raise SchemaError(f"Field must have a valid id, got {field_id!r}")

    tag = raw.get("type")
    field_type = resolve_type(tag)
    raw_type = None
    if field_type is None:
        _degrade(f"Field '{field_id}': unknown field type {tag!r}; rendering as free text", config)
        field_type = FieldType.UNKNOWN
        raw_type = str(tag)

    legacy_tag = tag if isinstance(tag, str) and tag in LEGACY_TAGS else None
    profile = defaults_for(field_type)
    base = profile.base_constraints

    label = raw.get("label")
    if not isinstance(label, str) or not label:
        label = field_id

    required = _get(raw, "required", default=profile.required_default)
    if not isinstance(required, bool):
        raise SchemaError(f"Field '{field_id}': required must be true or false, got {required!r}")
    if field_type in DISPLAY_TYPES:
        required = False

    # Choice options
    options = raw.get("options")
    if options is not None and not isinstance(options, (list, tuple)):
        raise SchemaError(f"Field '{field_id}': options must be a list")
    if options is not None:
        options = tuple(str(o) for o in options)
    if field_type in CHOICE_TYPES and not options:
        logger.debug("Field '%s': no options declared, injecting defaults", field_id)
        options = tuple(config.default_choice_options)

    # Rating bounds
    min_rating = _as_number(_get(raw, "minRating", "min_rating"), "minRating", field_id)
    max_rating = _as_number(_get(raw, "maxRating", "max_rating"), "maxRating", field_id)
    if field_type in RATING_TYPES:
        if min_rating is None:
            min_rating = base["min_rating"]
        if max_rating is None:
            max_rating = base["max_rating"]
        if min_rating > max_rating:
            raise SchemaError(
                f"Field '{field_id}': minRating {min_rating} is greater than maxRating {max_rating}"
            )

    # Text bounds
    min_length = _as_length(_get(raw, "minLength", "min_length"), "minLength", field_id)
    max_length = _as_length(_get(raw, "maxLength", "max_length"), "maxLength", field_id)
    default_max = base.get("max_length")
    if max_length is None and default_max is not None and (min_length is None or min_length <= default_max):
        max_length = default_max
    if min_length is not None and max_length is not None and min_length > max_length:
        raise SchemaError(
            f"Field '{field_id}': minLength {min_length} is greater than maxLength {max_length}"
        )

    # File settings
    accepted = _get(raw, "acceptedFileTypes", "accepted_file_types", default=base.get("accepted_file_types"))
    if accepted is not None:
        if not isinstance(accepted, (list, tuple)) or not all(isinstance(t, str) and t for t in accepted):
            raise SchemaError(
                f"Field '{field_id}': acceptedFileTypes must be a list of extensions, got {accepted!r}"
            )
    max_file_size = _as_number(_get(raw, "maxFileSize", "max_file_size"), "maxFileSize", field_id)
    if max_file_size is None:
        max_file_size = base.get("max_file_size")
    elif max_file_size <= 0:
        raise SchemaError(f"Field '{field_id}': maxFileSize must be positive, got {max_file_size!r}")

    return FieldSchema(
        id=field_id,
        type=field_type,
        label=label,
        required=required,
        options=options,
        min_rating=min_rating,
        max_rating=max_rating,
        min_length=min_length,
        max_length=max_length,
        validation_rules=_normalize_rules(
            _get(raw, "validationRules", "validation_rules"), field_id, field_type, legacy_tag
        ),
        conditional_logic=normalize_conditional_logic(
            _get(raw, "conditionalLogic", "conditional_logic"), field_id, config
        ),
        description=raw.get("description"),
        placeholder=raw.get("placeholder"),
        help_text=_get(raw, "helpText", "help_text"),
        default_value=_get(raw, "defaultValue", "default_value"),
        accepted_file_types=tuple(accepted) if accepted else None,
        max_file_size=max_file_size,
        raw_type=raw_type,
    )


def _check_unique(fields: Sequence[FieldSchema], where: str) -> None:
    seen = set()
    duplicates = []
    for f in fields:
        if f.id in seen and f.id not in duplicates:
            duplicates.append(f.id)
        seen.add(f.id)
    if duplicates:
        raise SchemaError(f"Duplicate field ids in {where}: {duplicates}")


def _normalize_groups(raw_groups: Sequence[Any], by_id: Dict[str, FieldSchema], config: EngineConfig) -> Tuple[Group, ...]:
    groups: List[Group] = []
    group_ids = set()

    for index, raw in enumerate(raw_groups):
        if not isinstance(raw, Mapping):
            raise SchemaError(f"Field group {index + 1} must be a mapping")
        group_id = raw.get("id")
        if not isinstance(group_id, str) or not group_id:
            raise SchemaError(f"Field group {index + 1} must have a valid id")
        if group_id in group_ids:
            raise SchemaError(f"Duplicate field group id: {group_id}")
        group_ids.add(group_id)

        fields: List[FieldSchema] = []
        for entry in raw.get("fields") or []:
            # Groups may embed full fields or reference top-level ones by id
            if isinstance(entry, str):
                if entry not in by_id:
                    raise SchemaError(f"Field group '{group_id}' references unknown field '{entry}'")
                fields.append(by_id[entry])
            else:
                fields.append(normalize_field(entry, config))

        groups.append(Group(
            id=group_id,
            title=raw.get("title") or "",
            description=raw.get("description"),
            fields=tuple(fields),
        ))

    return tuple(groups)


def normalize_form(document: Any, config: Optional[EngineConfig] = None) -> Form:
    """
    Normalize a raw form document into an immutable Form.

    Args:
        document: Form document mapping (or an already-normalized Form)
        config: Engine configuration (defaults to get_config())

    Returns:
        Form ready for a session

    Raises:
        SchemaError: If the document violates a structural invariant
    """
    config = config or get_config()

    if isinstance(document, Form):
        return document
    if not isinstance(document, Mapping):
        raise SchemaError(f"Form document must be a mapping, got {type(document).__name__}")

    form_id = document.get("id")
    if not isinstance(form_id, str) or not form_id:
        raise SchemaError("Form must have a valid id")

    raw_fields = document.get("fields")
    if raw_fields is None:
        raw_fields = []
    if not isinstance(raw_fields, (list, tuple)):
        raise SchemaError("Form must have a fields array")

    fields = tuple(normalize_field(f, config) for f in raw_fields)
    _check_unique(fields, "form fields")
    by_id = {f.id: f for f in fields}

    raw_groups = _get(document, "fieldGroups", "field_groups", "groups", default=[])
    groups = _normalize_groups(raw_groups, by_id, config)
    if groups:
        _check_unique([f for g in groups for f in g.fields], "field groups")
        # Group versions of a field win over the top-level copy
        group_fields = {f.id: f for g in groups for f in g.fields}
        fields = tuple(group_fields.get(f.id, f) for f in fields)

    if not fields and not any(g.fields for g in groups):
        raise SchemaError("Form must have at least one field")

    form = Form(
        id=form_id,
        title=document.get("title") or "",
        description=document.get("description"),
        fields=fields,
        groups=groups,
        settings=dict(document.get("settings") or {}),
        theme=dict(document.get("theme") or {}),
    )

    logger.debug(
        "Normalized form '%s': %d fields, %d groups (%s mode)",
        form.id, len(form.all_fields()), len(form.groups), form.mode.value,
    )
    return form


__all__ = [
    "SchemaError",
    "SchemaWarning",
    "normalize_form",
    "normalize_field",
    "normalize_condition",
    "normalize_conditional_logic",
]
