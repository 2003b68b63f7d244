"""
Example form builders for demos and tests.

Two reference documents:
    - a flat contact form (one question per scope)
    - a grouped feedback survey with conditional questions

Each comes as a raw document (what a schema source would hand over) and as
a normalized Form.
"""
from typing import Any, Dict

from formflow.model import Form
from formflow.normalize import normalize_form


def contact_form_document(include_optional: bool = False) -> Dict[str, Any]:
    fields = [
        {
            "id": "name",
            "type": "short-text",
            "label": "Name",
            "required": True,
            "placeholder": "Jane Doe",
        },
        {
            "id": "email",
            "type": "email",
            "label": "Email",
            "required": True,
            "placeholder": "jane@example.com",
        },
    ]
    if include_optional:
        fields += [
            {"id": "phone", "type": "phoneNumber", "label": "Phone", "required": False},
            {
                "id": "message",
                "type": "long-text",
                "label": "Message",
                "required": False,
                "maxLength": 1000,
            },
        ]
    return {
        "id": "contact",
        "title": "Contact Us",
        "description": "Leave your details and we will get back to you",
        "fields": fields,
        "settings": {"showProgressBar": True},
    }


def build_contact_form(include_optional: bool = False) -> Form:
    return normalize_form(contact_form_document(include_optional))


def feedback_survey_document() -> Dict[str, Any]:
    return {
        "id": "feedback",
        "title": "Product Feedback",
        "fields": [],
        "fieldGroups": [
            {
                "id": "about-you",
                "title": "About you",
                "fields": [
                    {"id": "full_name", "type": "shortText", "label": "Full name", "required": True},
                    {
                        "id": "role",
                        "type": "multipleChoice",
                        "label": "Which best describes your role?",
                        "required": True,
                        "options": ["Engineer", "Designer", "Manager", "Other"],
                    },
                    {
                        "id": "role_other",
                        "type": "shortText",
                        "label": "Please describe your role",
                        "required": True,
                        "conditionalLogic": {
                            "showWhen": [{"fieldId": "role", "operator": "equals", "value": "Other"}],
                        },
                    },
                    {
                        "id": "team_size",
                        "type": "short-text",
                        "label": "How large is your team?",
                        "required": True,
                        "validationRules": {
                            "pattern": r"^\d+$",
                            "customMessage": "Please enter a whole number",
                        },
                        "conditionalLogic": {
                            "hideWhen": [{"fieldId": "role", "operator": "equals", "value": "Other"}],
                        },
                    },
                ],
            },
            {
                "id": "experience",
                "title": "Your experience",
                "fields": [
                    {
                        "id": "satisfaction",
                        "type": "numberRating",
                        "label": "How satisfied are you?",
                        "required": True,
                        "minRating": 1,
                        "maxRating": 5,
                    },
                    {
                        "id": "what_went_wrong",
                        "type": "longText",
                        "label": "What went wrong?",
                        "required": True,
                        "minLength": 10,
                        "conditionalLogic": {
                            "showWhen": [{"fieldId": "satisfaction", "operator": "lessThan", "value": 3}],
                        },
                    },
                    {
                        "id": "recommend",
                        "type": "opinionScale",
                        "label": "How likely are you to recommend us?",
                        "required": False,
                    },
                ],
            },
            {
                "id": "wrap-up",
                "title": "Almost done",
                "fields": [
                    {"id": "thanks", "type": "statement", "label": "Thanks for your time!"},
                    {"id": "follow_up", "type": "yesNo", "label": "May we contact you?", "required": True},
                    {
                        "id": "contact_email",
                        "type": "email",
                        "label": "Contact email",
                        "required": True,
                        "conditionalLogic": {
                            "showWhen": [{"fieldId": "follow_up", "operator": "equals", "value": "yes"}],
                        },
                    },
                    {"id": "terms", "type": "legal", "label": "I agree to the terms"},
                ],
            },
        ],
    }


def build_feedback_survey() -> Form:
    return normalize_form(feedback_survey_document())
