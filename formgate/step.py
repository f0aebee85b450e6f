"""Step definition and evaluation for formgate."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from formgate.models import StepDefinitionDict, is_empty
from formgate.rule import ValidationOutcome
from formgate.snapshot import FormSnapshot
from formgate.validator import StepValidationResult


class StepStatus(StrEnum):
    """Step evaluation status indicating required action.

    - INCOMPLETE: A required field of the step is empty → Provide data
    - BLOCKED: Fields are filled but fail validation → Resolve issues
    - READY: Every field of the step validates → Can advance
    """
    INCOMPLETE = "incomplete"
    BLOCKED = "blocked"
    READY = "ready"


@dataclass
class Step:
    """
    One step of a multi-step flow.

    Attributes:
        index: Position in the flow
        name: Step identifier
        title: Human readable title
        required_fields: Fields validated before the step can be left forward
        is_complete: Whether the step has been validated and left forward
        entered_at: Clock time (ms) the step was last entered, None if not active
        dwell_ms: Total time spent on the step across visits
        visits: Number of times the step was entered
    """

    index: int
    name: str
    title: str = ""
    required_fields: list[str] = field(default_factory=list)
    is_complete: bool = False
    entered_at: float | None = None
    dwell_ms: float = 0.0
    visits: int = 0

    @classmethod
    def from_dict(cls, index: int, definition: StepDefinitionDict) -> "Step":
        return cls(
            index=index,
            name=definition["name"],
            title=definition.get("title", ""),
            required_fields=list(definition.get("required_fields", [])),
        )

    def enter(self, now: float) -> None:
        self.entered_at = now
        self.visits += 1

    def leave(self, now: float) -> float:
        """Stop the dwell timer and return the time spent in this visit."""
        if self.entered_at is None:
            return 0.0
        spent = max(0.0, now - self.entered_at)
        self.dwell_ms += spent
        self.entered_at = None
        return spent

    def reset(self) -> None:
        self.is_complete = False
        self.entered_at = None
        self.dwell_ms = 0.0
        self.visits = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "title": self.title,
            "required_fields": list(self.required_fields),
            "is_complete": self.is_complete,
            "dwell_ms": self.dwell_ms,
            "visits": self.visits,
        }


@dataclass(frozen=True)
class StepEvaluationResult:
    """Result of evaluating one step against a snapshot.

    Fields:
        step_index: Step that was evaluated
        status: INCOMPLETE, BLOCKED or READY
        errors: Failing outcomes keyed by field
        missing_fields: Required fields with no value
    """

    step_index: int
    status: StepStatus
    errors: dict[str, ValidationOutcome] = field(default_factory=dict)
    missing_fields: list[str] = field(default_factory=list)

    @property
    def validation_messages(self) -> list[str]:
        return [outcome.message for outcome in self.errors.values()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "status": self.status.value,
            "errors": {name: outcome.to_dict() for name, outcome in self.errors.items()},
            "missing_fields": list(self.missing_fields),
        }


def evaluate_step(
    step: Step, snapshot: FormSnapshot, result: StepValidationResult
) -> StepEvaluationResult:
    """Derive a step's status from its validation result."""
    missing = [name for name in step.required_fields if is_empty(snapshot.get_property(name))]
    if result.is_valid:
        status = StepStatus.READY
    elif missing:
        status = StepStatus.INCOMPLETE
    else:
        status = StepStatus.BLOCKED
    return StepEvaluationResult(
        step_index=step.index,
        status=status,
        errors=dict(result.errors),
        missing_fields=missing,
    )
