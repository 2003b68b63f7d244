"""
Validation Engine

Evaluates a field's current value against its constraints, and a whole
ValueMap against a field list.

Per field, rules run in order and stop at the first failure, so a call
yields at most one error per field:

    1. required and empty      → REQUIRED  "{label} is required"
    2. empty and optional      → valid
    3. type-specific checks on the non-empty value

validate_many() drops fields hidden by conditional logic before checking
anything, and returns errors in field-declaration order.
"""

import math
import re
from typing import Any, Callable, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from .model import ErrorKind, FieldSchema, Form, ValidationError
from .registry import CHOICE_TYPES, RATING_TYPES, TEXT_TYPES, FieldType, ValueShape
from .visibility import visible_fields


EMAIL_RE = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$", re.IGNORECASE)
PHONE_RE = re.compile(r"^\+?(?=[\d\s()-]*\d)[\d\s()-]+$")

EMAIL_MESSAGE = "Please enter a valid email address"
URL_MESSAGE = "Please enter a valid URL (e.g., https://example.com)"
PHONE_MESSAGE = "Please enter a valid phone number"
PATTERN_MESSAGE = "Invalid format"
OPTION_MESSAGE = "Please select a valid option"
BOOLEAN_MESSAGE = "Please answer yes or no"
CONSENT_MESSAGE = "You must accept the terms to continue"

_FREE_TEXT_TYPES = TEXT_TYPES | {FieldType.UNKNOWN}


def is_empty(field: FieldSchema, value: Any) -> bool:
    """
    Return True if the value counts as "no answer" for this field.

    Empty means None, a blank string after trimming, an empty collection,
    or False for legal-consent fields.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    if value is False and field.profile.value_shape is ValueShape.CONSENT:
        return True
    return False


def _error(field: FieldSchema, message: str, kind: ErrorKind) -> ValidationError:
    return ValidationError(field_id=field.id, message=message, kind=kind)


def _custom_message(field: FieldSchema, default: str) -> str:
    rules = field.validation_rules
    if rules is not None and rules.custom_message:
        return rules.custom_message
    return default


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def _is_http_url(text: str) -> bool:
    try:
        parsed = urlparse(text)
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    host = parsed.hostname or ""
    return bool(host) and ("." in host or host == "localhost")


def _check_length(field: FieldSchema, text: str) -> Optional[ValidationError]:
    if field.min_length is not None and len(text) < field.min_length:
        return _error(field, f"Minimum {field.min_length} characters", ErrorKind.FORMAT)
    if field.max_length is not None and len(text) > field.max_length:
        return _error(field, f"Maximum {field.max_length} characters", ErrorKind.FORMAT)
    return None


def _check_text(field: FieldSchema, value: Any) -> Optional[ValidationError]:
    text = _as_text(value)
    rules = field.validation_rules

    if rules is not None and rules.pattern:
        if re.search(rules.pattern, text) is None:
            return _error(field, _custom_message(field, PATTERN_MESSAGE), ErrorKind.FORMAT)
        return None

    return _check_length(field, text)


def _check_shaped(field: FieldSchema, value: Any, matches: Callable[[str], bool], default_message: str) -> Optional[ValidationError]:
    # length before shape
    text = _as_text(value).strip()
    error = _check_length(field, text)
    if error is not None:
        return error
    if not matches(text):
        return _error(field, _custom_message(field, default_message), ErrorKind.FORMAT)
    return None


def _check_rating(field: FieldSchema, value: Any) -> Optional[ValidationError]:
    low = field.min_rating if field.min_rating is not None else 1
    high = field.max_rating if field.max_rating is not None else 5
    number = _as_number(value)
    if number is None or number < low or number > high:
        return _error(field, f"Please select a rating between {low} and {high}", ErrorKind.RANGE)
    return None


def _check_boolean(field: FieldSchema, value: Any) -> Optional[ValidationError]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().lower() in ("yes", "no"):
        return None
    return _error(field, BOOLEAN_MESSAGE, ErrorKind.FORMAT)


def _check_file(field: FieldSchema, value: Any) -> Optional[ValidationError]:
    if isinstance(value, Mapping):
        name = value.get("name")
        size = value.get("size")
    else:
        name, size = value, None

    if field.accepted_file_types and isinstance(name, str):
        lowered = name.lower()
        if not any(lowered.endswith(ext.lower()) for ext in field.accepted_file_types):
            allowed = ", ".join(field.accepted_file_types)
            return _error(field, f"File type not accepted (allowed: {allowed})", ErrorKind.FORMAT)

    # size is reported in bytes, max_file_size is in MB
    size_bytes = _as_number(size)
    if field.max_file_size and size_bytes is not None and size_bytes > field.max_file_size * 1024 * 1024:
        return _error(field, f"File must be smaller than {field.max_file_size} MB", ErrorKind.FORMAT)
    return None


def validate_field(field: FieldSchema, value: Any) -> Optional[ValidationError]:
    """
    Validate one field's value.

    Args:
        field: Normalized field
        value: Current value (None when unanswered)

    Returns:
        The first failing rule as a ValidationError, or None if valid
    """
    if is_empty(field, value):
        if field.required:
            return _error(field, f"{field.label} is required", ErrorKind.REQUIRED)
        return None

    if field.is_display_only:
        return None

    ft = field.type

    if ft is FieldType.EMAIL:
        return _check_shaped(field, value, lambda text: EMAIL_RE.match(text) is not None, EMAIL_MESSAGE)

    if ft is FieldType.URL:
        return _check_shaped(field, value, _is_http_url, URL_MESSAGE)

    if ft is FieldType.PHONE:
        return _check_shaped(field, value, lambda text: PHONE_RE.match(text) is not None, PHONE_MESSAGE)

    if ft in _FREE_TEXT_TYPES:
        return _check_text(field, value)

    if ft in CHOICE_TYPES:
        if not isinstance(value, str) or value not in (field.options or ()):
            return _error(field, OPTION_MESSAGE, ErrorKind.FORMAT)
        return None

    if ft is FieldType.BOOLEAN_CHOICE:
        return _check_boolean(field, value)

    if ft in RATING_TYPES:
        return _check_rating(field, value)

    if ft is FieldType.LEGAL_CONSENT:
        # Scroll-to-accept is enforced by the presentation layer before
        # it sets True; only the boolean is checked here.
        if value is not True:
            return _error(field, _custom_message(field, CONSENT_MESSAGE), ErrorKind.CUSTOM)
        return None

    if ft is FieldType.FILE_UPLOAD:
        return _check_file(field, value)

    return None


def validate_many(fields: Iterable[FieldSchema], value_map: Mapping[str, Any]) -> List[ValidationError]:
    """
    Validate every visible field in the given list.

    Hidden fields are skipped entirely, even when declared required.

    Returns:
        Errors in field-declaration order (at most one per field)
    """
    errors: List[ValidationError] = []
    for field in visible_fields(fields, value_map):
        error = validate_field(field, value_map.get(field.id))
        if error is not None:
            errors.append(error)
    return errors


def validate_form(form: Form, value_map: Mapping[str, Any]) -> List[ValidationError]:
    """Validate every visible field of the form, in navigation order."""
    return validate_many(form.all_fields(), value_map)
