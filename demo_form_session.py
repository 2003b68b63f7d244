#!/usr/bin/env python3
"""
Complete Session Demo: Document → Form → Analysis → Respondent Walkthrough

Shows the full workflow:
1. Normalize the example feedback survey
2. Analyze the form
3. Walk a respondent through it, including blocked steps
4. Submit through an async collaborator
"""

import asyncio

from formflow.analyzer import analyze_form
from formflow.config import configure_logging
from formflow.examples import feedback_survey_document
from formflow.serialization import form_to_yaml
from formflow.session import FormSession


async def save_response(values):
    """Stand-in for the persistence collaborator."""
    await asyncio.sleep(0.1)
    print(f"   ✓ Collaborator received {len(values)} answers")


def show(step, result):
    errors = ", ".join(f"{e.field_id}: {e.message}" for e in result.errors) or "none"
    print(f"   {step:<28} → {result.status.value:<10} errors: {errors}")


async def walkthrough(session):
    show("next (empty step)", await session.go_next())

    session.set_value("full_name", "Ada Lovelace")
    session.set_value("role", "Other")
    session.set_value("role_other", "Analyst")
    show("next (role = Other)", await session.go_next())

    session.set_value("satisfaction", 2)
    show("next (low satisfaction)", await session.go_next())
    session.set_value("what_went_wrong", "The engine kept jamming")
    show("next (explained)", await session.go_next())

    session.set_value("follow_up", "no")
    session.set_value("terms", True)
    show("next (final step)", await session.go_next())


def main():
    configure_logging("INFO")

    print("=" * 80)
    print("COMPLETE SESSION DEMO: Document → Form → Analysis → Walkthrough")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Normalize
    # =========================================================================
    print("\n1. NORMALIZING DOCUMENT...")
    session = FormSession(feedback_survey_document(), submit=save_response)
    form = session.form
    print(f"   ✓ Loaded form: {form.title}")
    print(f"   ✓ Mode: {form.mode.value}")
    print(f"   ✓ Steps: {len(form.groups)}")
    print(f"   ✓ Fields: {len(form.all_fields())}")

    # =========================================================================
    # STEP 2: Analyze
    # =========================================================================
    print("\n2. ANALYZING FORM...")
    report = analyze_form(form)
    print(f"   ✓ Required fields: {report.required_fields}")
    print(f"   ✓ Conditional fields: {report.conditional_fields}")
    if report.warnings:
        print(f"\n   Warnings ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"      - {warning}")
    else:
        print("   ✓ No warnings")

    # =========================================================================
    # STEP 3: Walkthrough
    # =========================================================================
    print("\n3. RESPONDENT WALKTHROUGH...")
    asyncio.run(walkthrough(session))

    snapshot = session.snapshot()
    print(f"\n   Phase: {snapshot.phase.value}")
    print(f"   Completion: {snapshot.completion_percentage:.0f}%")

    with open("feedback_form_output.yaml", "w") as f:
        f.write(form_to_yaml(form))
    print("\n✅ Form exported to feedback_form_output.yaml")


if __name__ == "__main__":
    main()
