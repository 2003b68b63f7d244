"""
Tests for the Navigation State Machine.

These tests verify:
    - go_next blocking and advancement (flat and grouped)
    - go_previous never validating and preserving values
    - jump_to gating on completed steps
    - Touched tracking, snapshots and callbacks
    - Submission hooks and phase guards
    - Invariant errors
"""

import pytest

from formflow.config import EngineConfig
from formflow.model import Direction, ErrorKind, NavigationMode
from formflow.navigation import (
    FormNavigator,
    NavigationInvariantError,
    Phase,
    TransitionStatus,
    UnknownFieldError,
)
from formflow.normalize import normalize_form


CONFIG = EngineConfig()


def flat_form():
    return normalize_form({
        "id": "flat",
        "title": "Flat",
        "fields": [
            {"id": "name", "type": "short-text", "label": "Name", "required": True},
            {"id": "email", "type": "email", "label": "Email", "required": True},
            {"id": "notes", "type": "long-text", "label": "Notes"},
        ],
    }, CONFIG)


def grouped_form():
    return normalize_form({
        "id": "grouped",
        "title": "Grouped",
        "fieldGroups": [
            {
                "id": "about",
                "title": "About",
                "fields": [
                    {"id": "name", "type": "short-text", "label": "Name", "required": True},
                    {"id": "role", "type": "single-choice", "label": "Role", "required": True,
                     "options": ["Dev", "Other"]},
                    {"id": "team", "type": "short-text", "label": "Team", "required": True,
                     "conditionalLogic": {
                         "hideWhen": [{"fieldId": "role", "operator": "equals", "value": "Other"}],
                     }},
                ],
            },
            {
                "id": "rating",
                "title": "Rating",
                "fields": [
                    {"id": "score", "type": "numeric-rating", "label": "Score", "required": True},
                ],
            },
            {
                "id": "contact",
                "title": "Contact",
                "fields": [
                    {"id": "email", "type": "email", "label": "Email", "required": True},
                ],
            },
        ],
    }, CONFIG)


class TestGoNextFlat:
    """Flat mode: one field per scope."""

    def test_initial_state(self):
        nav = FormNavigator(flat_form())
        assert nav.mode is NavigationMode.FLAT
        assert nav.position_index == 0
        assert nav.total_scopes == 3
        assert nav.phase is Phase.IN_PROGRESS
        assert nav.describe() == "AtQuestion(0)"
        assert nav.errors == ()

    def test_blocked_when_required_empty(self):
        nav = FormNavigator(flat_form())
        result = nav.go_next()
        assert result.status is TransitionStatus.BLOCKED
        assert nav.position_index == 0
        assert [e.field_id for e in result.errors] == ["name"]
        assert result.errors[0].kind is ErrorKind.REQUIRED

    def test_only_active_field_validated(self):
        """An empty required field in a later scope does not block."""
        nav = FormNavigator(flat_form())
        nav.set_value("name", "Ada")
        result = nav.go_next()
        assert result.status is TransitionStatus.MOVED
        assert result.errors == ()

    def test_retry_advances_by_exactly_one(self):
        nav = FormNavigator(flat_form())
        nav.go_next()
        nav.set_value("name", "Ada")
        result = nav.go_next()
        assert result.status is TransitionStatus.MOVED
        assert nav.position_index == 1
        assert nav.direction is Direction.FORWARD
        assert nav.errors == ()
        assert 0 in nav.completed_steps

    def test_last_scope_reports_ready_to_submit(self):
        nav = FormNavigator(flat_form(), initial_values={"name": "Ada", "email": "a@b.com"})
        nav.go_next()
        nav.go_next()
        result = nav.go_next()
        assert result.status is TransitionStatus.READY_TO_SUBMIT
        assert result.ok
        assert nav.position_index == 2
        assert nav.completed_steps == frozenset({0, 1, 2})


class TestGoNextGrouped:
    """Grouped mode: whole group validated at once."""

    def test_all_group_errors_reported(self):
        nav = FormNavigator(grouped_form())
        assert nav.describe() == "AtGroup(0)"
        result = nav.go_next()
        assert result.blocked
        assert [e.field_id for e in result.errors] == ["name", "role", "team"]

    def test_hidden_field_does_not_block(self):
        nav = FormNavigator(grouped_form())
        nav.set_value("name", "Ada")
        nav.set_value("role", "Other")
        result = nav.go_next()
        assert result.status is TransitionStatus.MOVED
        assert nav.position_index == 1

    def test_touched_swept_in(self):
        nav = FormNavigator(grouped_form())
        nav.go_next()
        assert nav.touched == frozenset({"name", "role", "team"})

    def test_hidden_fields_not_touched(self):
        nav = FormNavigator(grouped_form())
        nav.set_value("role", "Other")
        nav.go_next()
        assert "team" not in nav.touched


class TestGoPrevious:

    def test_noop_at_first_scope(self):
        nav = FormNavigator(flat_form())
        result = nav.go_previous()
        assert result.status is TransitionStatus.IGNORED
        assert nav.position_index == 0

    def test_never_validates_and_keeps_values(self):
        nav = FormNavigator(flat_form())
        nav.set_value("name", "Ada")
        nav.go_next()
        nav.set_value("email", "bad")
        nav.go_next()
        assert nav.errors

        result = nav.go_previous()
        assert result.status is TransitionStatus.MOVED
        assert result.errors == ()
        assert nav.errors == ()
        assert nav.position_index == 0
        assert nav.direction is Direction.BACKWARD
        assert nav.get_value("name") == "Ada"
        assert nav.get_value("email") == "bad"


class TestJumpTo:

    def test_jump_back_to_completed_step(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other", "score": 4})
        nav.go_next()
        nav.go_next()
        assert nav.position_index == 2
        result = nav.jump_to(0)
        assert result.status is TransitionStatus.MOVED
        assert nav.direction is Direction.BACKWARD

    def test_jump_forward_over_completed_steps(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other", "score": 4})
        nav.go_next()
        nav.go_next()
        nav.jump_to(0)
        result = nav.jump_to(2)
        assert result.status is TransitionStatus.MOVED
        assert nav.position_index == 2
        assert nav.direction is Direction.FORWARD

    def test_jump_past_uncompleted_step_rejected(self):
        nav = FormNavigator(grouped_form())
        result = nav.jump_to(2)
        assert result.status is TransitionStatus.BLOCKED
        assert nav.position_index == 0
        assert [e.field_id for e in result.errors] == ["name", "role", "team"]

    def test_jump_requires_completion_not_just_valid_values(self):
        """A step counts only once go_next has passed it."""
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other"})
        result = nav.jump_to(1)
        assert result.blocked
        assert result.errors == ()
        assert nav.position_index == 0

        nav.go_next()
        nav.go_previous()
        assert nav.jump_to(1).status is TransitionStatus.MOVED

    def test_jump_to_current_is_noop(self):
        nav = FormNavigator(grouped_form())
        assert nav.jump_to(0).status is TransitionStatus.IGNORED

    def test_jump_out_of_range(self):
        nav = FormNavigator(grouped_form())
        with pytest.raises(NavigationInvariantError):
            nav.jump_to(3)
        with pytest.raises(NavigationInvariantError):
            nav.jump_to(-1)


class TestValuesAndCallbacks:

    def test_unknown_field_rejected(self):
        nav = FormNavigator(flat_form())
        with pytest.raises(UnknownFieldError):
            nav.set_value("nope", 1)

    def test_values_returns_copy(self):
        nav = FormNavigator(flat_form())
        nav.set_value("name", "Ada")
        values = nav.values
        values["name"] = "changed"
        assert nav.get_value("name") == "Ada"

    def test_default_values_seeded(self):
        form = normalize_form({
            "id": "f",
            "fields": [{"id": "country", "type": "short-text", "defaultValue": "UK"}],
        }, CONFIG)
        assert FormNavigator(form).values == {"country": "UK"}

    def test_unknown_initial_values_ignored(self):
        nav = FormNavigator(flat_form(), initial_values={"name": "Ada", "stale": 1})
        assert nav.values == {"name": "Ada"}

    def test_set_value_marks_touched(self):
        nav = FormNavigator(flat_form())
        nav.set_value("email", "a@b.com")
        assert nav.touched == frozenset({"email"})

    def test_callbacks_fire(self):
        changes, steps = [], []
        nav = FormNavigator(
            flat_form(),
            on_field_change=lambda fid, value: changes.append((fid, value)),
            on_step_change=steps.append,
        )
        nav.set_value("name", "Ada")
        nav.go_next()
        nav.go_previous()
        assert changes == [("name", "Ada")]
        assert steps == [1, 0]

    def test_blocked_transition_does_not_fire_step_change(self):
        steps = []
        nav = FormNavigator(flat_form(), on_step_change=steps.append)
        nav.go_next()
        assert steps == []


class TestStepTracking:
    """visited_steps and per-step error records."""

    def test_visited_steps_grow_with_moves(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other", "score": 4})
        assert nav.visited_steps == frozenset({0})
        nav.go_next()
        nav.go_next()
        nav.go_previous()
        assert nav.visited_steps == frozenset({0, 1, 2})

    def test_blocked_step_not_marked_visited_beyond(self):
        nav = FormNavigator(grouped_form())
        nav.go_next()
        assert nav.visited_steps == frozenset({0})

    def test_blocked_go_next_records_step_errors(self):
        nav = FormNavigator(grouped_form())
        nav.go_next()
        assert list(nav.step_errors) == [0]
        assert [e.field_id for e in nav.step_errors[0]] == ["name", "role", "team"]

    def test_passing_step_clears_its_entry(self):
        nav = FormNavigator(grouped_form())
        nav.go_next()
        nav.set_value("name", "Ada")
        nav.set_value("role", "Other")
        nav.go_next()
        assert nav.step_errors == {}
        assert nav.position_index == 1

    def test_step_errors_survive_moving_away(self):
        """Going back does not validate, so the record stays until the step passes."""
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other"})
        nav.go_next()
        nav.go_next()
        nav.go_previous()
        assert nav.position_index == 0
        assert nav.errors == ()
        assert [e.field_id for e in nav.step_errors[1]] == ["score"]

    def test_step_errors_returns_copy(self):
        nav = FormNavigator(flat_form())
        nav.go_next()
        nav.step_errors.clear()
        assert 0 in nav.step_errors

    def test_blocked_jump_records_pending_step(self):
        nav = FormNavigator(grouped_form())
        nav.jump_to(2)
        assert list(nav.step_errors) == [0]

    def test_reject_submission_records_each_step(self):
        nav = FormNavigator(flat_form(), initial_values={"name": "Ada"})
        nav.go_next()
        nav.set_value("name", "")
        nav.reject_submission(nav.validate_all())
        assert sorted(nav.step_errors) == [0, 1]
        assert nav.step_errors[1][0].field_id == "email"

    def test_complete_submission_clears_step_errors(self):
        nav = FormNavigator(flat_form())
        nav.go_next()
        nav.begin_submission()
        nav.complete_submission()
        assert nav.step_errors == {}

    def test_snapshot_exposes_step_tracking(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other"})
        nav.go_next()
        nav.go_next()
        snap = nav.snapshot()
        assert snap.visited_steps == frozenset({0, 1})
        assert snap.has_step_error(1)
        assert not snap.has_step_error(0)
        assert [e.field_id for e in snap.get_step_errors(1)] == ["score"]
        assert snap.get_step_errors(2) == ()


class TestSnapshot:

    def test_snapshot_contents(self):
        nav = FormNavigator(grouped_form())
        nav.set_value("role", "Other")
        nav.go_next()
        snap = nav.snapshot()
        assert snap.form_id == "grouped"
        assert snap.mode is NavigationMode.GROUPED
        assert snap.position_index == 0
        assert snap.total_scopes == 3
        assert snap.visible_field_ids == ("name", "role")
        assert snap.first_invalid_field() == "name"
        assert list(snap.errors_by_field()) == ["name"]
        assert snap.is_first_scope and not snap.is_last_scope
        assert snap.completion_percentage == 0.0

    def test_completion_percentage(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other"})
        nav.go_next()
        assert nav.snapshot().completion_percentage == pytest.approx(33.33)

    def test_error_snapshot_not_recomputed_on_set_value(self):
        """Errors reflect the last transition attempt until the next one."""
        nav = FormNavigator(flat_form())
        nav.go_next()
        nav.set_value("name", "Ada")
        assert [e.field_id for e in nav.errors] == ["name"]
        nav.go_next()
        assert nav.errors == ()


class TestSubmissionHooks:

    def test_reject_submission_grouped_moves_to_last_error_group(self):
        nav = FormNavigator(grouped_form(), initial_values={"name": "Ada", "role": "Other", "score": 4})
        nav.go_next()
        nav.go_next()
        # invalidate an earlier answer after completing its step
        nav.jump_to(0)
        nav.set_value("name", "")
        nav.jump_to(2)
        nav.set_value("email", "bad")
        errors = nav.validate_all()
        nav.reject_submission(errors)
        assert [e.field_id for e in nav.errors] == ["name", "email"]
        assert nav.position_index == 2

        nav.set_value("email", "a@b.com")
        nav.reject_submission(nav.validate_all())
        assert nav.position_index == 0

    def test_reject_submission_flat_stays_put(self):
        nav = FormNavigator(flat_form(), initial_values={"name": "Ada"})
        nav.go_next()
        nav.set_value("name", "")
        nav.reject_submission(nav.validate_all())
        assert nav.position_index == 1
        assert [e.field_id for e in nav.errors] == ["name", "email"]

    def test_phase_guards(self):
        nav = FormNavigator(flat_form(), initial_values={"name": "Ada"})
        nav.begin_submission()
        assert nav.set_value("name", "Bob") is False
        assert nav.get_value("name") == "Ada"
        assert nav.go_next().status is TransitionStatus.IGNORED
        assert nav.go_previous().status is TransitionStatus.IGNORED
        assert nav.jump_to(1).status is TransitionStatus.IGNORED
        assert nav.describe() == "Submitting"

    def test_complete_submission(self):
        nav = FormNavigator(flat_form())
        nav.begin_submission()
        nav.complete_submission()
        assert nav.phase is Phase.SUBMITTED
        assert nav.snapshot().completion_percentage == 100.0
        assert nav.set_value("name", "x") is False

    def test_fail_submission_returns_to_last_scope(self):
        nav = FormNavigator(flat_form())
        nav.begin_submission()
        nav.fail_submission("Server unavailable")
        assert nav.phase is Phase.IN_PROGRESS
        assert nav.position_index == 2
        assert nav.submission_error == "Server unavailable"

    def test_complete_without_begin(self):
        nav = FormNavigator(flat_form())
        with pytest.raises(NavigationInvariantError):
            nav.complete_submission()


class TestInvariants:

    def test_scope_fields_out_of_range(self):
        nav = FormNavigator(flat_form())
        with pytest.raises(NavigationInvariantError):
            nav.scope_fields(5)

    def test_scope_of(self):
        nav = FormNavigator(grouped_form())
        assert nav.scope_of("score") == 1
        assert nav.scope_of("missing") is None
