"""
Tests for the example form builders.
"""

from formflow.examples import (
    build_contact_form,
    build_feedback_survey,
    contact_form_document,
    feedback_survey_document,
)
from formflow.model import NavigationMode
from formflow.registry import FieldType


def test_contact_form_is_flat():
    form = build_contact_form()
    assert form.mode is NavigationMode.FLAT
    assert [f.id for f in form.fields] == ["name", "email"]
    assert all(f.required for f in form.fields)


def test_contact_form_optional_fields():
    form = build_contact_form(include_optional=True)
    assert form.get_field("phone").type is FieldType.PHONE
    assert form.get_field("message").max_length == 1000


def test_feedback_survey_is_grouped():
    form = build_feedback_survey()
    assert form.mode is NavigationMode.GROUPED
    assert [g.id for g in form.groups] == ["about-you", "experience", "wrap-up"]
    assert form.get_field("terms").type is FieldType.LEGAL_CONSENT
    assert form.get_field("recommend").max_rating == 10


def test_documents_are_fresh_copies():
    doc = contact_form_document()
    doc["fields"].append({"id": "extra", "type": "email"})
    assert len(contact_form_document()["fields"]) == 2
    assert feedback_survey_document() == feedback_survey_document()
