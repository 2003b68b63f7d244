"""
Submission Coordinator

Runs the full-form safety net and hands the ValueMap to the external
submit collaborator.

Flow:
    1. Touch every field
    2. Validate every visible field across the form
         errors → navigator.reject_submission(errors), no submit attempt
    3. Phase SUBMITTING, await the collaborator with a copy of the values
         success → SUBMITTED
         failure → back to the last scope, values kept, submission_error set

The collaborator is any callable taking the ValueMap. It may be a plain
function or a coroutine function, and it reports through its return value:

    None / True         success
    SubmitOutcome       explicit success or failure
    False               failure with a generic reason
    raises              failure; the exception text becomes the reason
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .model import ValidationError
from .navigation import FormNavigator, Phase

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Submission failed. Please try again."

SubmitCollaborator = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class SubmitOutcome:
    """Result reported by a submit collaborator."""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "SubmitOutcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str = GENERIC_FAILURE) -> "SubmitOutcome":
        return cls(ok=False, reason=reason)


class SubmissionStatus(Enum):
    SUBMITTED = "submitted"
    INVALID = "invalid"        # safety net found errors
    FAILED = "failed"          # collaborator reported or raised a failure
    IGNORED = "ignored"        # already submitting or submitted


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    errors: Tuple[ValidationError, ...] = ()
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is SubmissionStatus.SUBMITTED


def _as_outcome(result: Any) -> SubmitOutcome:
    if result is None or result is True:
        return SubmitOutcome.success()
    if result is False:
        return SubmitOutcome.failure()
    if isinstance(result, SubmitOutcome):
        if not result.ok and not result.reason:
            return SubmitOutcome.failure()
        return result
    logger.warning("Submit collaborator returned unexpected %r; treating as success", result)
    return SubmitOutcome.success()


class SubmissionCoordinator:
    """
    Drives one navigator through submission.

    Properties:
        navigator: The FormNavigator whose values are submitted
        collaborator: External submit callable (sync or async)
        attempts: Number of collaborator calls made so far
    """

    def __init__(self, navigator: FormNavigator, collaborator: SubmitCollaborator):
        self.navigator = navigator
        self.collaborator = collaborator
        self.attempts = 0

    def check(self) -> Tuple[ValidationError, ...]:
        """
        Run the safety net without calling the collaborator.

        Touches every field. On errors, the navigator is reverted and the
        errors are exposed on it.
        """
        nav = self.navigator
        nav.touch_all()
        errors = tuple(nav.validate_all())
        if errors:
            logger.warning(
                "Submission of form '%s' blocked: %d invalid field(s): %s",
                nav.form.id, len(errors), ", ".join(e.field_id for e in errors),
            )
            nav.reject_submission(errors)
        return errors

    async def submit(self) -> SubmissionResult:
        nav = self.navigator
        if nav.phase is not Phase.IN_PROGRESS:
            logger.debug("submit ignored while %s", nav.describe())
            return SubmissionResult(SubmissionStatus.IGNORED)

        errors = self.check()
        if errors:
            return SubmissionResult(SubmissionStatus.INVALID, errors=errors)

        nav.begin_submission()
        self.attempts += 1
        values = nav.values

        try:
            result = self.collaborator(values)
            if inspect.isawaitable(result):
                result = await result
            outcome = _as_outcome(result)
        except Exception as e:
            logger.exception("Submit collaborator raised for form '%s'", nav.form.id)
            outcome = SubmitOutcome.failure(str(e) or GENERIC_FAILURE)

        if outcome.ok:
            nav.complete_submission()
            logger.info("Form '%s' submitted (attempt %d)", nav.form.id, self.attempts)
            return SubmissionResult(SubmissionStatus.SUBMITTED)

        nav.fail_submission(outcome.reason)
        logger.info(
            "Form '%s' submission failed (attempt %d): %s", nav.form.id, self.attempts, outcome.reason
        )
        return SubmissionResult(SubmissionStatus.FAILED, reason=outcome.reason)
