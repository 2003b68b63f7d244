"""
Serialization helpers for formflow objects (Form, Group, FieldSchema, conditions).

Forms are written back out in the form-document format (camelCase keys, as
stored by the form builder), so a dumped form is itself a valid document and
reloading it goes through normalize_form like any other schema source.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from formflow.conditions import Condition, ConditionalLogic
from formflow.config import EngineConfig
from formflow.model import FieldSchema, Form, Group, ValidationRules
from formflow.normalize import SchemaError, normalize_form
from formflow.registry import FieldType


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def condition_to_dict(c: Condition) -> Dict[str, Any]:
    return {"fieldId": c.field_id, "operator": c.operator, "value": c.value}


def logic_to_dict(logic: ConditionalLogic | None) -> Dict[str, Any] | None:
    if logic is None:
        return None
    d: Dict[str, Any] = {}
    if logic.show_when:
        d["showWhen"] = [condition_to_dict(c) for c in logic.show_when]
    if logic.hide_when:
        d["hideWhen"] = [condition_to_dict(c) for c in logic.hide_when]
    return d


def rules_to_dict(r: ValidationRules | None, keep_scroll: bool = False) -> Dict[str, Any] | None:
    if r is None:
        return None
    d = _compact({"pattern": r.pattern, "customMessage": r.custom_message})
    # consent fields always carry the flag, including an opt-out
    if r.require_scroll_to_accept or keep_scroll:
        d["requireScrollToAccept"] = r.require_scroll_to_accept
    return d


def field_to_dict(f: FieldSchema) -> Dict[str, Any]:
    return _compact({
        "id": f.id,
        # unrecognised tags are written back verbatim
        "type": f.raw_type if f.raw_type is not None else f.type.value,
        "label": f.label,
        "required": f.required,
        "description": f.description,
        "placeholder": f.placeholder,
        "helpText": f.help_text,
        "defaultValue": f.default_value,
        "options": list(f.options) if f.options is not None else None,
        "minRating": f.min_rating,
        "maxRating": f.max_rating,
        "minLength": f.min_length,
        "maxLength": f.max_length,
        "validationRules": rules_to_dict(f.validation_rules, keep_scroll=f.type is FieldType.LEGAL_CONSENT),
        "conditionalLogic": logic_to_dict(f.conditional_logic),
        "acceptedFileTypes": list(f.accepted_file_types) if f.accepted_file_types else None,
        "maxFileSize": f.max_file_size,
    })


def group_to_dict(g: Group) -> Dict[str, Any]:
    return _compact({
        "id": g.id,
        "title": g.title,
        "description": g.description,
        "fields": [field_to_dict(f) for f in g.fields],
    })


def form_to_dict(form: Form) -> Dict[str, Any]:
    d = _compact({
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "fields": [field_to_dict(f) for f in form.fields],
        "settings": dict(form.settings),
        "theme": dict(form.theme),
    })
    if form.groups:
        d["fieldGroups"] = [group_to_dict(g) for g in form.groups]
    return d


def form_from_dict(d: Mapping[str, Any], config: EngineConfig | None = None) -> Form:
    return normalize_form(d, config)


def form_to_json(form: Form) -> str:
    return json.dumps(form_to_dict(form), sort_keys=True)


def form_from_json(s: str, config: EngineConfig | None = None) -> Form:
    d = json.loads(s)
    return form_from_dict(d, config)


def form_to_yaml(form: Form) -> str:
    return yaml.safe_dump(form_to_dict(form), sort_keys=False)


def form_from_yaml(s: str, config: EngineConfig | None = None) -> Form:
    d = yaml.safe_load(s)
    return form_from_dict(d, config)


def load_document(path: str | Path) -> Dict[str, Any]:
    """
    Read a raw form document from a .json, .yaml or .yml file.

    Raises:
        SchemaError: If the suffix is not recognised or the file does not
            hold a mapping
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".json":
        document = json.loads(text)
    elif suffix in (".yaml", ".yml"):
        document = yaml.safe_load(text)
    else:
        raise SchemaError(f"Unsupported form document format: {path.name}")
    if not isinstance(document, dict):
        raise SchemaError(f"Form document {path.name} must contain a mapping")
    return document
