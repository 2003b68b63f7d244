"""
formflow: a schema-driven, multi-step form interpretation engine

A form author supplies a declarative document; a respondent fills it in
through a guided, validated flow.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Rendering, theming or CSS
    - Persistence of schemas or responses
    - Authoring tools

It interprets FORM STRUCTURE only: normalization, visibility, validation,
navigation and the hand-off to an external submit collaborator.

Entry point for host applications: formflow.session.FormSession
"""

__version__ = "0.1.0"
