"""Step gate: the state machine controlling progression through a flow.

The gate holds one state per step index plus a terminal ``submitted`` state.
Moving forward requires the departing step to validate; moving back is always
allowed; jumping requires every earlier step to be complete.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from formgate.exceptions import StepNotReady
from formgate.rule import ValidationOutcome
from formgate.snapshot import FormSnapshot
from formgate.step import Step, StepEvaluationResult, evaluate_step
from formgate.validator import StepValidationResult

logger = logging.getLogger(__name__)

StepValidator = Callable[[int, FormSnapshot], StepValidationResult]


@dataclass(frozen=True)
class StepTransition:
    """Outcome of a navigation request.

    Attributes:
        success: Whether the gate moved (or reached the requested state)
        from_step: Step index before the request
        to_step: Step index after the request
        errors: Failing outcomes that blocked the move
        reason: Short explanation when the request was refused
        dwell_ms: Time spent on the departing step, if it was left
    """

    success: bool
    from_step: int
    to_step: int
    errors: dict[str, ValidationOutcome] = field(default_factory=dict)
    reason: str = ""
    dwell_ms: float = 0.0

    @property
    def moved(self) -> bool:
        return self.from_step != self.to_step


class StepGate:
    """
    Gate progression through an ordered list of steps.

    Args:
        steps: Ordered steps of the flow (at least one)
        validate_step: Returns the validation result for a step index; this is
            the single source of truth for whether a step is complete
        clock: Returns the current time in milliseconds
    """

    def __init__(
        self,
        steps: list[Step],
        validate_step: StepValidator,
        clock: Callable[[], float],
    ):
        if not steps:
            raise ValueError("StepGate requires at least one step")
        self._steps = steps
        self._validate_step = validate_step
        self._clock = clock
        self.current_step = 0
        self.submitted = False
        self._finalized: list[int] = []
        self._steps[0].enter(self._clock())

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def current(self) -> Step:
        return self._steps[self.current_step]

    @property
    def is_last_step(self) -> bool:
        return self.current_step == len(self._steps) - 1

    @property
    def completed_count(self) -> int:
        return sum(1 for step in self._steps if step.is_complete)

    @property
    def progress_percent(self) -> float:
        """Completed steps as a percentage of all steps."""
        if self.submitted:
            return 100.0
        return self.completed_count / len(self._steps) * 100.0

    def is_step_complete(self, index: int, snapshot: FormSnapshot) -> bool:
        """Pure check whether step ``index`` currently validates."""
        return self._validate_step(index, snapshot).is_valid

    def evaluate(self, index: int, snapshot: FormSnapshot) -> StepEvaluationResult:
        """Evaluate a step's status without moving."""
        self._check_index(index)
        return evaluate_step(self._steps[index], snapshot, self._validate_step(index, snapshot))

    def advance(self, snapshot: FormSnapshot) -> StepTransition:
        """
        Move to the next step if the current step validates.

        Returns:
            StepTransition; on failure the current step is unchanged
        """
        origin = self.current_step
        if self.submitted:
            return StepTransition(False, origin, origin, reason="Flow already submitted")
        if self.is_last_step:
            return StepTransition(False, origin, origin, reason="Already at the last step")

        result = self._validate_step(origin, snapshot)
        if not result.is_valid:
            logger.debug(f"Advance from step {origin} blocked by {len(result.errors)} error(s)")
            return StepTransition(False, origin, origin, errors=dict(result.errors),
                                  reason="Current step has validation errors")

        self.current.is_complete = True
        dwell = self._move_to(origin + 1)
        return StepTransition(True, origin, self.current_step, dwell_ms=dwell)

    def retreat(self) -> StepTransition:
        """Move to the previous step. Always succeeds; stays put on step 0."""
        origin = self.current_step
        if self.submitted or origin == 0:
            return StepTransition(True, origin, origin)
        dwell = self._move_to(origin - 1)
        return StepTransition(True, origin, self.current_step, dwell_ms=dwell)

    def jump_to(self, index: int) -> StepTransition:
        """
        Move directly to ``index``.

        Raises:
            ValueError: If ``index`` is out of range
            StepNotReady: If any step before ``index`` is incomplete
        """
        self._check_index(index)
        incomplete = [step.index for step in self._steps[:index] if not step.is_complete]
        if incomplete:
            raise StepNotReady(
                f"Cannot jump to step {index}: step(s) {incomplete} not complete",
                target_step=index,
                incomplete_steps=incomplete,
            )
        origin = self.current_step
        if self.submitted or index == origin:
            return StepTransition(True, origin, origin)
        dwell = self._move_to(index)
        return StepTransition(True, origin, self.current_step, dwell_ms=dwell)

    def finalize(self, snapshot: FormSnapshot, sequential: bool = True) -> StepTransition:
        """
        Reach the terminal ``submitted`` state.

        Sequential flows may only finalize from the last step once it
        validates. Single-page forms mark every step complete; callers must
        have validated the whole form first.
        """
        origin = self.current_step
        if self.submitted:
            return StepTransition(True, origin, origin)
        if sequential:
            if not self.is_last_step:
                return StepTransition(False, origin, origin, reason="Complete every step before submitting")
            result = self._validate_step(origin, snapshot)
            if not result.is_valid:
                return StepTransition(False, origin, origin, errors=dict(result.errors),
                                      reason="Current step has validation errors")
            marked = [] if self.current.is_complete else [self.current_step]
            self.current.is_complete = True
        else:
            marked = [step.index for step in self._steps if not step.is_complete]
            for step in self._steps:
                step.is_complete = True

        dwell = self.current.leave(self._clock())
        self.submitted = True
        self._finalized = marked
        logger.debug(f"Step gate reached submitted state from step {origin}")
        return StepTransition(True, origin, origin, dwell_ms=dwell)

    def reopen(self) -> None:
        """Leave the submitted state after a failed submission, undoing its completion marks."""
        if self.submitted:
            self.submitted = False
            for index in self._finalized:
                self._steps[index].is_complete = False
            self._finalized = []
            self.current.enter(self._clock())

    def reset(self) -> None:
        for step in self._steps:
            step.reset()
        self.current_step = 0
        self.submitted = False
        self._finalized = []
        self._steps[0].enter(self._clock())

    def _move_to(self, index: int) -> float:
        dwell = self.current.leave(self._clock())
        self.current_step = index
        self.current.enter(self._clock())
        return dwell

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._steps):
            raise ValueError(f"Step index {index} out of range (0-{len(self._steps) - 1})")

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_step": self.current_step,
            "submitted": self.submitted,
            "progress_percent": self.progress_percent,
            "steps": [step.to_dict() for step in self._steps],
        }
