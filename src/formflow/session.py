"""
Form Session

The one object a host application drives for a respondent filling in a
form. Wires together:

    - schema normalization (raw document → Form)
    - FormNavigator (position, values, per-scope validation)
    - SubmissionCoordinator (safety net + submit collaborator)
    - presentation callbacks (on_field_change, on_step_change)

Operations that may reach the collaborator (go_next, press_enter, submit)
are coroutines; everything else is synchronous.

Example:
    session = FormSession(document, submit=api.save_response)
    session.set_value("name", "Test User")
    await session.go_next()
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .config import EngineConfig
from .model import Form, ValidationError
from .navigation import (
    FieldChangeCallback,
    FormNavigator,
    FormSnapshot,
    Phase,
    StepChangeCallback,
    TransitionResult,
    TransitionStatus,
)
from .normalize import normalize_form
from .serialization import load_document
from .submission import SubmissionCoordinator, SubmissionResult, SubmitCollaborator

logger = logging.getLogger(__name__)


def _accept_all(values: Dict[str, Any]) -> None:
    logger.debug("No submit collaborator configured; accepting %d value(s)", len(values))


class FormSession:
    """
    A respondent's session over one form.

    Properties:
        form: Normalized Form
        navigator: Underlying FormNavigator
        coordinator: Underlying SubmissionCoordinator
    """

    def __init__(
        self,
        form: Union[Form, Mapping[str, Any]],
        submit: Optional[SubmitCollaborator] = None,
        initial_values: Optional[Mapping[str, Any]] = None,
        on_field_change: Optional[FieldChangeCallback] = None,
        on_step_change: Optional[StepChangeCallback] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.form = normalize_form(form, config)
        self.navigator = FormNavigator(
            self.form,
            initial_values=initial_values,
            on_field_change=on_field_change,
            on_step_change=on_step_change,
        )
        self.coordinator = SubmissionCoordinator(self.navigator, submit or _accept_all)
        logger.debug("Opened session on form '%s' at %s", self.form.id, self.navigator.describe())

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "FormSession":
        """Open a session on a JSON or YAML form document."""
        return cls(load_document(path), **kwargs)

    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.navigator.phase

    @property
    def values(self) -> Dict[str, Any]:
        return self.navigator.values

    @property
    def position_index(self) -> int:
        return self.navigator.position_index

    @property
    def is_submitted(self) -> bool:
        return self.navigator.phase is Phase.SUBMITTED

    def snapshot(self) -> FormSnapshot:
        return self.navigator.snapshot()

    def errors_by_field(self) -> Dict[str, ValidationError]:
        return self.snapshot().errors_by_field()

    def first_invalid_field(self) -> Optional[str]:
        return self.snapshot().first_invalid_field()

    # ------------------------------------------------------------------

    def set_value(self, field_id: str, value: Any) -> bool:
        return self.navigator.set_value(field_id, value)

    async def go_next(self) -> Union[TransitionResult, SubmissionResult]:
        """
        Advance one scope, or submit when the final scope is clean.

        Returns:
            TransitionResult for an ordinary move or block, SubmissionResult
            when the transition reached the Submission Coordinator
        """
        result = self.navigator.go_next()
        if result.status is TransitionStatus.READY_TO_SUBMIT:
            return await self.coordinator.submit()
        return result

    async def press_enter(self) -> Union[TransitionResult, SubmissionResult]:
        """Keyboard advancement; identical to go_next."""
        return await self.go_next()

    def go_previous(self) -> TransitionResult:
        return self.navigator.go_previous()

    def jump_to(self, index: int) -> TransitionResult:
        return self.navigator.jump_to(index)

    async def submit(self) -> SubmissionResult:
        """Explicit submit (also the retry path after a failed attempt)."""
        return await self.coordinator.submit()
