"""
Form Analyzer: early diagnostics and inventory of normalized forms.

This module provides lightweight analysis of Form objects:
    - Field inventory by type, required and display-only counts
    - Conditional-logic dependency map
    - Reference checks (unknown, self and forward references)
    - Authoring smells (placeholder options, unlabeled fields, empty groups)

IMPORTANT: This is an analysis layer. It does NOT modify the form and it
does NOT reject anything; normalize_form already rejected what is fatal.
It only produces read-only reports.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Set

from formflow.model import Form, NavigationMode
from formflow.registry import DEFAULT_CHOICE_OPTIONS


@dataclass
class FormReport:
    """Analysis report for a form."""

    form_id: str
    mode: NavigationMode = NavigationMode.FLAT
    total_fields: int = 0
    total_groups: int = 0
    total_scopes: int = 0

    # Inventory
    fields_by_type: Dict[str, int] = field(default_factory=dict)
    required_fields: int = 0
    display_only_fields: int = 0
    conditional_fields: int = 0

    # Conditional logic
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)
    undefined_references: Set[str] = field(default_factory=set)
    self_references: Set[str] = field(default_factory=set)
    forward_references: Set[str] = field(default_factory=set)
    unknown_operators: Dict[str, List[str]] = field(default_factory=dict)

    # Authoring smells
    render_fallback_fields: List[str] = field(default_factory=list)
    required_conditional_fields: List[str] = field(default_factory=list)
    placeholder_option_fields: List[str] = field(default_factory=list)
    unlabeled_fields: List[str] = field(default_factory=list)
    empty_groups: List[str] = field(default_factory=list)
    ungrouped_fields: List[str] = field(default_factory=list)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def is_clean(self) -> bool:
        return not self.warnings


def analyze_form(form: Form) -> FormReport:
    """
    Perform diagnostic analysis of a normalized Form.

    Checks for:
    - Field inventory
    - Conditional references to fields that do not exist, to the field
      itself, or to a field later in navigation order
    - Unknown operators and unrecognised field types
    - Authoring leftovers (default options, missing labels, empty groups)

    Returns a FormReport with metrics and warnings.
    """
    fields = form.all_fields()
    report = FormReport(form_id=form.id, mode=form.mode)

    report.total_fields = len(fields)
    report.total_groups = len(form.groups)
    report.total_scopes = len(form.groups) if form.groups else len(fields)

    position = {f.id: i for i, f in enumerate(fields)}

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    by_type: Dict[str, int] = defaultdict(int)
    for f in fields:
        by_type[f.type.value] += 1
        if f.required:
            report.required_fields += 1
        if f.is_display_only:
            report.display_only_fields += 1
        if f.conditional_logic is not None:
            report.conditional_fields += 1
    report.fields_by_type = dict(by_type)

    # =========================================================================
    # 2. CONDITIONAL LOGIC
    # =========================================================================

    known_ids = set(position) | {f.id for f in form.fields}

    for f in fields:
        logic = f.conditional_logic
        if logic is None:
            continue

        refs = set(logic.referenced_fields())
        report.dependencies[f.id] = refs

        for ref in refs:
            if ref not in known_ids:
                report.undefined_references.add(ref)
            elif ref == f.id:
                report.self_references.add(f.id)
            elif ref in position and position[ref] > position[f.id]:
                report.forward_references.add(f.id)

        bad_ops = [c.operator for c in logic.show_when + logic.hide_when if c.known_operator is None]
        if bad_ops:
            report.unknown_operators[f.id] = bad_ops

        if f.required:
            report.required_conditional_fields.append(f.id)

    # =========================================================================
    # 3. AUTHORING SMELLS
    # =========================================================================

    for f in fields:
        if f.render_fallback:
            report.render_fallback_fields.append(f.id)
        if f.is_choice and f.options == tuple(DEFAULT_CHOICE_OPTIONS):
            report.placeholder_option_fields.append(f.id)
        if not f.is_display_only and f.label == f.id:
            report.unlabeled_fields.append(f.id)

    for g in form.groups:
        if not g.fields:
            report.empty_groups.append(g.id)

    if form.groups:
        report.ungrouped_fields = [f.id for f in form.fields if f.id not in position]

    # =========================================================================
    # 4. WARNING FLAGS
    # =========================================================================

    if not form.title.strip():
        report.add_warning("Form has no title")

    if report.undefined_references:
        report.add_warning(
            f"Conditions reference unknown fields: {', '.join(sorted(report.undefined_references))}"
        )

    if report.self_references:
        report.add_warning(
            f"Fields with conditions on their own value: {', '.join(sorted(report.self_references))}"
        )

    if report.forward_references:
        report.add_warning(
            f"Fields depending on later answers: {', '.join(sorted(report.forward_references))}"
        )

    if report.unknown_operators:
        report.add_warning(
            f"Unknown condition operators on: {', '.join(sorted(report.unknown_operators))}"
        )

    if report.render_fallback_fields:
        report.add_warning(
            f"Unrecognised field types rendered as text: {', '.join(report.render_fallback_fields)}"
        )

    if report.placeholder_option_fields:
        report.add_warning(
            f"Choice fields with placeholder options: {', '.join(report.placeholder_option_fields)}"
        )

    if report.unlabeled_fields:
        report.add_warning(f"Fields without a label: {', '.join(report.unlabeled_fields)}")

    if report.empty_groups:
        report.add_warning(f"Empty field groups: {', '.join(report.empty_groups)}")

    if report.ungrouped_fields:
        report.add_warning(
            f"Fields outside every group are never shown: {', '.join(report.ungrouped_fields)}"
        )

    return report
