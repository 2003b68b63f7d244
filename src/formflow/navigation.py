"""
Navigation State Machine

Owns the respondent's position in a form and decides which transitions are
allowed.

States:
    AtQuestion(i)   flat forms, one field per scope
    AtGroup(i)      grouped forms, one group per scope
    SUBMITTING      waiting on the external submit collaborator
    SUBMITTED       terminal, no further mutation

Transitions:
    go_next      validates the visible fields of the active scope; any error
                 blocks (the only blocking condition in the engine)
    go_previous  never validates; no-op at index 0
    jump_to      allowed only when every earlier scope has passed
                 validation at least once (completed_steps)

Clean go_next on the last scope does not move: it reports READY_TO_SUBMIT
and the Submission Coordinator takes over.

IMPORTANT:
    Validation failures are values in TransitionResult, never exceptions.
    The only exceptions raised here are caller defects (unknown field id,
    out-of-range index).
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .model import (
    Direction,
    FieldSchema,
    Form,
    NavigationMode,
    NavigationState,
    ValidationError,
    error_lookup,
)
from .validation import validate_form, validate_many
from .visibility import visible_fields

logger = logging.getLogger(__name__)

FieldChangeCallback = Callable[[str, Any], None]
StepChangeCallback = Callable[[int], None]


class NavigationInvariantError(Exception):
    """Raised when the machine is asked to reference a scope that does not exist."""
    pass


class UnknownFieldError(KeyError):
    """Raised when a value is set for a field id the form does not declare."""
    pass


class Phase(Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class TransitionStatus(Enum):
    MOVED = "moved"
    BLOCKED = "blocked"
    READY_TO_SUBMIT = "ready_to_submit"
    IGNORED = "ignored"


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one transition attempt."""

    status: TransitionStatus
    position_index: int
    errors: Tuple[ValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status in (TransitionStatus.MOVED, TransitionStatus.READY_TO_SUBMIT)

    @property
    def blocked(self) -> bool:
        return self.status is TransitionStatus.BLOCKED


@dataclass(frozen=True)
class FormSnapshot:
    """
    Read-only view of a session for the presentation layer.

    Properties:
        form_id: Form identifier
        mode: FLAT or GROUPED
        phase: IN_PROGRESS, SUBMITTING or SUBMITTED
        position_index: Active scope index
        total_scopes: Number of scopes (questions or groups)
        direction: Direction of the last successful move
        errors: Error snapshot of the last transition attempt
        visible_field_ids: Visible fields of the active scope
        completed_steps: Scopes that have passed validation at least once
        touched: Touched field ids
        submission_error: Scope-level error of the last submit attempt
        completion_percentage: Share of scopes completed, 0..100
        visited_steps: Scopes the respondent has been on
        step_errors: Outstanding errors per scope index; an entry is set
            when a scope fails validation and dropped once it passes
    """

    form_id: str
    mode: NavigationMode
    phase: Phase
    position_index: int
    total_scopes: int
    direction: Direction
    errors: Tuple[ValidationError, ...]
    visible_field_ids: Tuple[str, ...]
    completed_steps: FrozenSet[int]
    touched: FrozenSet[str]
    submission_error: Optional[str] = None
    completion_percentage: float = 0.0
    visited_steps: FrozenSet[int] = frozenset()
    step_errors: Dict[int, Tuple[ValidationError, ...]] = field(default_factory=dict)

    @property
    def is_first_scope(self) -> bool:
        return self.position_index == 0

    @property
    def is_last_scope(self) -> bool:
        return self.position_index == self.total_scopes - 1

    def errors_by_field(self) -> Dict[str, ValidationError]:
        return error_lookup(list(self.errors))

    def first_invalid_field(self) -> Optional[str]:
        """Field id the presentation layer should focus after a failed attempt."""
        return self.errors[0].field_id if self.errors else None

    def has_step_error(self, index: int) -> bool:
        return bool(self.step_errors.get(index))

    def get_step_errors(self, index: int) -> Tuple[ValidationError, ...]:
        return self.step_errors.get(index, ())


class FormNavigator:
    """
    Navigation state machine for one respondent and one form.

    The navigator owns the ValueMap. All mutation goes through set_value,
    and every public operation runs to completion before returning.
    """

    def __init__(
        self,
        form: Form,
        initial_values: Optional[Mapping[str, Any]] = None,
        on_field_change: Optional[FieldChangeCallback] = None,
        on_step_change: Optional[StepChangeCallback] = None,
    ):
        self._form = form
        self._mode = form.mode
        self._fields = form.all_fields()
        self._field_ids = {f.id for f in self._fields} | {f.id for f in form.fields}
        self._on_field_change = on_field_change
        self._on_step_change = on_step_change

        if self.total_scopes == 0:
            raise NavigationInvariantError(f"Form '{form.id}' has no scopes to navigate")

        self._values: Dict[str, Any] = {}
        for f in self._fields:
            if f.default_value is not None:
                self._values[f.id] = f.default_value
        for key, value in (initial_values or {}).items():
            if key in self._field_ids:
                self._values[key] = value
            else:
                logger.debug("Ignoring initial value for unknown field '%s'", key)

        self._state = NavigationState()
        self._phase = Phase.IN_PROGRESS
        self._completed: Set[int] = set()
        self._visited: Set[int] = {0}
        self._step_errors: Dict[int, Tuple[ValidationError, ...]] = {}
        self._errors: Tuple[ValidationError, ...] = ()
        self._submission_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def form(self) -> Form:
        return self._form

    @property
    def mode(self) -> NavigationMode:
        return self._mode

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def position_index(self) -> int:
        return self._state.position_index

    @property
    def direction(self) -> Direction:
        return self._state.direction

    @property
    def total_scopes(self) -> int:
        if self._mode is NavigationMode.GROUPED:
            return len(self._form.groups)
        return len(self._fields)

    @property
    def last_index(self) -> int:
        return self.total_scopes - 1

    @property
    def errors(self) -> Tuple[ValidationError, ...]:
        return self._errors

    @property
    def completed_steps(self) -> FrozenSet[int]:
        return frozenset(self._completed)

    @property
    def visited_steps(self) -> FrozenSet[int]:
        return frozenset(self._visited)

    @property
    def step_errors(self) -> Dict[int, Tuple[ValidationError, ...]]:
        return dict(self._step_errors)

    @property
    def touched(self) -> FrozenSet[str]:
        return self._state.frozen_touched()

    @property
    def submission_error(self) -> Optional[str]:
        return self._submission_error

    @property
    def values(self) -> Dict[str, Any]:
        """A copy of the current ValueMap."""
        return dict(self._values)

    def get_value(self, field_id: str) -> Any:
        return self._values.get(field_id)

    def describe(self) -> str:
        if self._phase is Phase.SUBMITTING:
            return "Submitting"
        if self._phase is Phase.SUBMITTED:
            return "Submitted"
        kind = "AtGroup" if self._mode is NavigationMode.GROUPED else "AtQuestion"
        return f"{kind}({self.position_index})"

    def scope_fields(self, index: Optional[int] = None) -> Tuple[FieldSchema, ...]:
        """
        Fields making up a scope (all of them, visible or not).

        Args:
            index: Scope index; defaults to the active scope

        Raises:
            NavigationInvariantError: If the index names no scope
        """
        if index is None:
            index = self.position_index
        if not 0 <= index < self.total_scopes:
            raise NavigationInvariantError(
                f"Scope index {index} out of range for form '{self._form.id}' "
                f"({self.total_scopes} scopes)"
            )
        if self._mode is NavigationMode.GROUPED:
            return self._form.groups[index].fields
        return (self._fields[index],)

    def active_fields(self) -> List[FieldSchema]:
        """Visible fields of the active scope."""
        return visible_fields(self.scope_fields(), self._values)

    def validate_scope(self, index: Optional[int] = None) -> List[ValidationError]:
        """Validate one scope without changing any state."""
        return validate_many(self.scope_fields(index), self._values)

    def scope_of(self, field_id: str) -> Optional[int]:
        """Index of the scope holding a field, or None."""
        for index in range(self.total_scopes):
            if any(f.id == field_id for f in self.scope_fields(index)):
                return index
        return None

    def snapshot(self) -> FormSnapshot:
        total = self.total_scopes
        if self._phase is Phase.SUBMITTED:
            completion = 100.0
        else:
            completion = round(len(self._completed) / total * 100, 2)
        return FormSnapshot(
            form_id=self._form.id,
            mode=self._mode,
            phase=self._phase,
            position_index=self.position_index,
            total_scopes=total,
            direction=self.direction,
            errors=self._errors,
            visible_field_ids=tuple(f.id for f in self.active_fields()),
            completed_steps=self.completed_steps,
            touched=self.touched,
            submission_error=self._submission_error,
            completion_percentage=completion,
            visited_steps=self.visited_steps,
            step_errors=self.step_errors,
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @property
    def accepts_input(self) -> bool:
        return self._phase is Phase.IN_PROGRESS

    def set_value(self, field_id: str, value: Any) -> bool:
        """
        Set a field's value and fire on_field_change.

        Returns:
            False if ignored because a submission is outstanding or done

        Raises:
            UnknownFieldError: If the form declares no such field
        """
        if field_id not in self._field_ids:
            raise UnknownFieldError(field_id)
        if not self.accepts_input:
            logger.debug("set_value('%s') ignored while %s", field_id, self.describe())
            return False

        self._values[field_id] = value
        self._state.touch([field_id])
        if self._on_field_change is not None:
            self._on_field_change(field_id, value)
        return True

    def go_next(self) -> TransitionResult:
        """
        Validate the active scope and advance if it is clean.

        Touches the scope's visible fields whatever the outcome.
        """
        if not self.accepts_input:
            return self._ignored("go_next")

        index = self.position_index
        errors = self._check_scope(index)
        self._errors = errors
        if errors:
            logger.debug("go_next blocked at %s: %d error(s)", self.describe(), len(errors))
            return TransitionResult(TransitionStatus.BLOCKED, index, self._errors)

        self._completed.add(index)
        if index == self.last_index:
            logger.debug("go_next at final scope %s: ready to submit", self.describe())
            return TransitionResult(TransitionStatus.READY_TO_SUBMIT, index)

        self._move_to(index + 1, Direction.FORWARD)
        return TransitionResult(TransitionStatus.MOVED, self.position_index)

    def go_previous(self) -> TransitionResult:
        """Step back one scope without validating. Entered values are kept."""
        if not self.accepts_input:
            return self._ignored("go_previous")
        if self.position_index == 0:
            return TransitionResult(TransitionStatus.IGNORED, 0)

        self._move_to(self.position_index - 1, Direction.BACKWARD)
        return TransitionResult(TransitionStatus.MOVED, self.position_index)

    def jump_to(self, index: int) -> TransitionResult:
        """
        Jump directly to a scope (step indicator click).

        Allowed only when every scope strictly before the target is in
        completed_steps. Otherwise the first such scope is validated and
        the jump is reported as BLOCKED, like go_next.

        Raises:
            NavigationInvariantError: If the target names no scope
        """
        if not self.accepts_input:
            return self._ignored("jump_to")
        if not 0 <= index < self.total_scopes:
            raise NavigationInvariantError(
                f"Cannot jump to scope {index}; form '{self._form.id}' has {self.total_scopes}"
            )
        current = self.position_index
        if index == current:
            return TransitionResult(TransitionStatus.IGNORED, current)

        pending = [i for i in range(index) if i not in self._completed]
        if pending:
            self._errors = self._check_scope(pending[0])
            logger.debug("jump_to(%d) blocked: scope %d never completed", index, pending[0])
            return TransitionResult(TransitionStatus.BLOCKED, current, self._errors)

        direction = Direction.FORWARD if index > current else Direction.BACKWARD
        self._move_to(index, direction)
        return TransitionResult(TransitionStatus.MOVED, index)

    # ------------------------------------------------------------------
    # Submission hooks (driven by SubmissionCoordinator)
    # ------------------------------------------------------------------

    def touch_all(self) -> None:
        self._state.touch(f.id for f in self._fields)

    def validate_all(self) -> List[ValidationError]:
        """Full-form validation over every visible field."""
        return validate_form(self._form, self._values)

    def reject_submission(self, errors: Iterable[ValidationError]) -> None:
        """
        Record a failed full-form validation.

        Grouped forms move to the last group holding an error; flat forms
        stay where they are.
        """
        self._errors = tuple(errors)
        self._step_errors = {}
        target = None
        for index in range(self.total_scopes):
            scope_ids = {f.id for f in self.scope_fields(index)}
            scope_errors = tuple(e for e in self._errors if e.field_id in scope_ids)
            if scope_errors:
                self._step_errors[index] = scope_errors
                target = index

        if self._mode is not NavigationMode.GROUPED:
            return
        if target is not None and target != self.position_index:
            direction = Direction.BACKWARD if target < self.position_index else Direction.FORWARD
            self._move_to(target, direction, keep_errors=True)

    def begin_submission(self) -> None:
        self._phase = Phase.SUBMITTING
        self._errors = ()
        self._submission_error = None
        logger.debug("Form '%s' submitting", self._form.id)

    def complete_submission(self) -> None:
        if self._phase is not Phase.SUBMITTING:
            raise NavigationInvariantError(f"Cannot complete submission while {self.describe()}")
        self._phase = Phase.SUBMITTED
        self._completed.update(range(self.total_scopes))
        self._step_errors = {}

    def fail_submission(self, reason: str) -> None:
        """Return to the last scope with all values kept and a submission-level error."""
        if self._phase is not Phase.SUBMITTING:
            raise NavigationInvariantError(f"Cannot fail submission while {self.describe()}")
        self._phase = Phase.IN_PROGRESS
        self._submission_error = reason
        if self.position_index != self.last_index:
            self._move_to(self.last_index, Direction.FORWARD)

    # ------------------------------------------------------------------

    def _move_to(self, index: int, direction: Direction, keep_errors: bool = False) -> None:
        self.scope_fields(index)
        self._state.position_index = index
        self._visited.add(index)
        self._state.direction = direction
        if not keep_errors:
            self._errors = ()
        logger.debug("Moved %s to %s", direction.value, self.describe())
        if self._on_step_change is not None:
            self._on_step_change(index)

    def _check_scope(self, index: int) -> Tuple[ValidationError, ...]:
        """Touch and validate one scope, recording the outcome in step_errors."""
        self._state.touch(f.id for f in visible_fields(self.scope_fields(index), self._values))
        errors = tuple(self.validate_scope(index))
        if errors:
            self._step_errors[index] = errors
        else:
            self._step_errors.pop(index, None)
        return errors

    def _ignored(self, operation: str) -> TransitionResult:
        logger.debug("%s ignored while %s", operation, self.describe())
        return TransitionResult(TransitionStatus.IGNORED, self.position_index, self._errors)
