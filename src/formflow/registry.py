"""
Field Type Registry

Static table mapping a field-type tag to its constraint profile:
    - whether the field is required when the schema does not say
    - the shape of value the field holds
    - base constraints filled in during normalization

The registry is a pure lookup. Unknown tags never fail: they resolve to the
free-text profile with a render-only fallback marker that the presentation
layer can use to draw a generic input.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class FieldType(Enum):
    """Closed set of field-type tags understood by the engine."""

    SHORT_TEXT = "short-text"
    LONG_TEXT = "long-text"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    SINGLE_CHOICE = "single-choice"
    DROPDOWN = "multi-select-dropdown"
    BOOLEAN_CHOICE = "boolean-choice"
    NUMERIC_RATING = "numeric-rating"
    OPINION_SCALE = "opinion-scale"
    STATEMENT = "statement"
    LEGAL_CONSENT = "legal-consent"
    FILE_UPLOAD = "file-upload"
    PAGE_BREAK = "page-break"
    START_PAGE = "start-page"
    END_PAGE = "end-page"
    UNKNOWN = "unknown"


class ValueShape(Enum):
    """
    Tagged variant describing the value a field holds in the ValueMap.

    TEXT:    str
    CHOICE:  str, one of the field's options
    BOOLEAN: "yes" / "no" (bools accepted)
    NUMBER:  int or float (numeric strings accepted)
    CONSENT: bool
    FILE:    file reference (name string or mapping with a "name" key)
    NONE:    display-only, holds no value
    """

    TEXT = "text"
    CHOICE = "choice"
    BOOLEAN = "boolean"
    NUMBER = "number"
    CONSENT = "consent"
    FILE = "file"
    NONE = "none"


@dataclass(frozen=True)
class TypeProfile:
    """
    Constraint profile for one field type.

    Properties:
        field_type: The resolved FieldType
        required_default: Used when the schema omits "required"
        value_shape: ValueShape variant for the field's value
        base_constraints: Defaults merged into the field at normalization
                          (only for keys the schema leaves unset)
        render_fallback: True when the tag was not recognised
    """

    field_type: FieldType
    required_default: bool
    value_shape: ValueShape
    base_constraints: Dict[str, Any] = field(default_factory=dict)
    render_fallback: bool = False


DEFAULT_CHOICE_OPTIONS: Tuple[str, ...] = ("Option 1", "Option 2", "Option 3")
DEFAULT_ACCEPTED_FILE_TYPES: Tuple[str, ...] = (".pdf", ".jpg", ".png", ".doc", ".docx")
LEGACY_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

CHOICE_TYPES = frozenset({FieldType.SINGLE_CHOICE, FieldType.DROPDOWN})
RATING_TYPES = frozenset({FieldType.NUMERIC_RATING, FieldType.OPINION_SCALE})
TEXT_TYPES = frozenset({FieldType.SHORT_TEXT, FieldType.LONG_TEXT})
DISPLAY_TYPES = frozenset({
    FieldType.STATEMENT,
    FieldType.PAGE_BREAK,
    FieldType.START_PAGE,
    FieldType.END_PAGE,
})


_PROFILES: Dict[FieldType, TypeProfile] = {
    FieldType.SHORT_TEXT: TypeProfile(FieldType.SHORT_TEXT, False, ValueShape.TEXT, {"max_length": 100}),
    FieldType.LONG_TEXT: TypeProfile(FieldType.LONG_TEXT, False, ValueShape.TEXT, {"max_length": 500}),
    FieldType.EMAIL: TypeProfile(FieldType.EMAIL, False, ValueShape.TEXT, {"max_length": 255}),
    FieldType.PHONE: TypeProfile(FieldType.PHONE, False, ValueShape.TEXT, {"max_length": 20}),
    FieldType.URL: TypeProfile(FieldType.URL, False, ValueShape.TEXT),
    FieldType.SINGLE_CHOICE: TypeProfile(
        FieldType.SINGLE_CHOICE, False, ValueShape.CHOICE, {"options": DEFAULT_CHOICE_OPTIONS}
    ),
    FieldType.DROPDOWN: TypeProfile(
        FieldType.DROPDOWN, False, ValueShape.CHOICE, {"options": DEFAULT_CHOICE_OPTIONS}
    ),
    FieldType.BOOLEAN_CHOICE: TypeProfile(FieldType.BOOLEAN_CHOICE, False, ValueShape.BOOLEAN),
    FieldType.NUMERIC_RATING: TypeProfile(
        FieldType.NUMERIC_RATING, False, ValueShape.NUMBER, {"min_rating": 1, "max_rating": 5}
    ),
    FieldType.OPINION_SCALE: TypeProfile(
        FieldType.OPINION_SCALE, False, ValueShape.NUMBER, {"min_rating": 1, "max_rating": 10}
    ),
    FieldType.STATEMENT: TypeProfile(FieldType.STATEMENT, False, ValueShape.NONE),
    FieldType.LEGAL_CONSENT: TypeProfile(
        FieldType.LEGAL_CONSENT, True, ValueShape.CONSENT, {"require_scroll_to_accept": True}
    ),
    FieldType.FILE_UPLOAD: TypeProfile(
        FieldType.FILE_UPLOAD,
        False,
        ValueShape.FILE,
        {"accepted_file_types": DEFAULT_ACCEPTED_FILE_TYPES, "max_file_size": 10},
    ),
    FieldType.PAGE_BREAK: TypeProfile(FieldType.PAGE_BREAK, False, ValueShape.NONE),
    FieldType.START_PAGE: TypeProfile(FieldType.START_PAGE, False, ValueShape.NONE),
    FieldType.END_PAGE: TypeProfile(FieldType.END_PAGE, False, ValueShape.NONE),
}

_FALLBACK = TypeProfile(FieldType.UNKNOWN, False, ValueShape.TEXT, render_fallback=True)


# Tags used by authoring tools and by older documents
_ALIASES: Dict[str, FieldType] = {
    "shortText": FieldType.SHORT_TEXT,
    "longText": FieldType.LONG_TEXT,
    "phoneNumber": FieldType.PHONE,
    "website": FieldType.URL,
    "multipleChoice": FieldType.SINGLE_CHOICE,
    "dropdown": FieldType.DROPDOWN,
    "yesNo": FieldType.BOOLEAN_CHOICE,
    "numberRating": FieldType.NUMERIC_RATING,
    "opinionScale": FieldType.OPINION_SCALE,
    "legal": FieldType.LEGAL_CONSENT,
    "fileUpload": FieldType.FILE_UPLOAD,
    "pageBreak": FieldType.PAGE_BREAK,
    "startingPage": FieldType.START_PAGE,
    "postSubmission": FieldType.END_PAGE,
    # legacy
    "text": FieldType.SHORT_TEXT,
    "rating": FieldType.NUMERIC_RATING,
    "date": FieldType.SHORT_TEXT,
}

LEGACY_TAGS = frozenset({"text", "rating", "date"})


def resolve_type(tag: Any) -> Optional[FieldType]:
    """
    Resolve a type tag to a FieldType.

    Accepts canonical tags ("short-text"), authoring aliases ("shortText")
    and legacy tags ("text", "rating", "date").

    Returns:
        FieldType, or None if the tag is not recognised
    """
    if isinstance(tag, FieldType):
        return tag
    if not isinstance(tag, str):
        return None
    for ft in FieldType:
        if ft.value == tag and ft is not FieldType.UNKNOWN:
            return ft
    return _ALIASES.get(tag)


def defaults_for(field_type: Any) -> TypeProfile:
    """
    Return the constraint profile for a field type or tag.

    Never fails: anything unrecognised gets the free-text fallback profile.
    """
    resolved = resolve_type(field_type)
    if resolved is None:
        return _FALLBACK
    return _PROFILES.get(resolved, _FALLBACK)
