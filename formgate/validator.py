"""Field, step and whole-form validation with caching and debouncing."""

import logging
import time
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from formgate.cache import ValidationCache, make_cache_key
from formgate.categorize import get_suggestions
from formgate.config import EngineConfig
from formgate.models import (
    ErrorCategory,
    ErrorSeverity,
    ValidationSummaryDict,
)
from formgate.rule import RuleSet, ValidationOutcome
from formgate.scheduling import ScheduledTask, Scheduler
from formgate.snapshot import FormSnapshot

logger = logging.getLogger(__name__)

RULE_ERROR_MESSAGE = "validation error"


def _as_snapshot(snapshot: FormSnapshot | Mapping[str, Any] | None) -> FormSnapshot:
    if isinstance(snapshot, FormSnapshot):
        return snapshot
    return FormSnapshot(snapshot or {})


@dataclass(frozen=True)
class FormValidationResult:
    """Result of validating a whole snapshot.

    ``errors`` holds every failing outcome keyed by field, warnings included;
    ``is_valid`` only considers outcomes whose severity blocks submission.
    """

    is_valid: bool
    errors: dict[str, ValidationOutcome] = field(default_factory=dict)
    summary: ValidationSummaryDict | None = None
    duration_ms: float = 0.0

    @property
    def blocking_errors(self) -> dict[str, ValidationOutcome]:
        return {name: outcome for name, outcome in self.errors.items() if outcome.blocks_submission}

    @property
    def warnings(self) -> dict[str, ValidationOutcome]:
        return {name: outcome for name, outcome in self.errors.items() if not outcome.blocks_submission}

    @property
    def messages(self) -> list[str]:
        """Aggregate messages from all failed outcomes."""
        return [outcome.message for outcome in self.errors.values()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": {name: outcome.to_dict() for name, outcome in self.errors.items()},
            "summary": dict(self.summary) if self.summary else {},
        }


@dataclass(frozen=True)
class StepValidationResult:
    """Result of validating the fields declared by one step."""

    step_index: int
    is_valid: bool
    errors: dict[str, ValidationOutcome] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "is_valid": self.is_valid,
            "errors": {name: outcome.to_dict() for name, outcome in self.errors.items()},
        }


def summarize(total_fields: int, errors: Mapping[str, ValidationOutcome]) -> ValidationSummaryDict:
    """Count errors by category and severity."""
    by_category = {category.value: 0 for category in ErrorCategory}
    by_severity = {severity.value: 0 for severity in ErrorSeverity}
    blocking = 0
    for outcome in errors.values():
        if outcome.category:
            by_category[outcome.category.value] += 1
        if outcome.severity:
            by_severity[outcome.severity.value] += 1
        if outcome.blocks_submission:
            blocking += 1
    return ValidationSummaryDict(
        total_fields=total_fields,
        error_count=blocking,
        warning_count=len(errors) - blocking,
        blocking=blocking > 0,
        by_category=by_category,
        by_severity=by_severity,
    )


class Validator:
    """
    Runs a RuleSet against form snapshots.

    Each validator owns a private ValidationCache. Field outcomes are cached
    under keys that include the value of every field the field's rules read,
    so edits elsewhere in the form can never produce a stale hit.

    Args:
        rule_set: Field and cross-field rules to apply
        step_fields: Fields declared by each step, indexed by step
        scheduler: Timer source used for debounced validation
        config: Engine configuration (debounce window, cache and history bounds)
        key_prefix: Prefix for debounce timer keys, unique per scheduler user
    """

    def __init__(
        self,
        rule_set: RuleSet,
        step_fields: Sequence[Sequence[str]] | None = None,
        scheduler: Scheduler | None = None,
        config: EngineConfig | None = None,
        key_prefix: str = "validate",
    ):
        self.rule_set = rule_set
        self.key_prefix = key_prefix
        self.step_fields = [list(fields) for fields in (step_fields or [])]
        self.scheduler = scheduler
        self.config = config or EngineConfig()
        self.cache = ValidationCache(self.config.cache_max_entries)
        self.run_count = 0
        self._history: deque[dict[str, Any]] = deque(maxlen=self.config.history_limit)
        self._timings: deque[float] = deque(maxlen=self.config.metrics_limit)
        self._pending: dict[str, Callable[[], None]] = {}

    # ------------------------------------------------------------------
    # Synchronous validation
    # ------------------------------------------------------------------

    def validate_field(
        self,
        field: str,
        value: Any,
        snapshot: FormSnapshot | Mapping[str, Any] | None = None,
    ) -> ValidationOutcome:
        """
        Validate one field, consulting the cache first.

        Args:
            field: Field to validate
            value: Candidate value (overrides the snapshot's value for this call)
            snapshot: Read-only view of the whole form

        Returns:
            The first failing rule's outcome, or a passing outcome
        """
        snap = _as_snapshot(snapshot)
        if snap.get_property(field) != value:
            snap = snap.with_overrides({field: value})

        related = snap.subset(self.rule_set.reads_for(field) - {field})
        key = make_cache_key(field, value, related)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        started = time.perf_counter()
        outcome, cacheable = self._run_rules(field, value, snap)
        self._timings.append((time.perf_counter() - started) * 1000.0)
        self.run_count += 1

        if cacheable:
            self.cache.set(key, outcome)
        return outcome

    def _run_rules(
        self, field: str, value: Any, snapshot: FormSnapshot
    ) -> tuple[ValidationOutcome, bool]:
        for rule in self.rule_set.rules_for(field):
            try:
                outcome = rule.validate(value, snapshot)
            except Exception as e:
                logger.warning(f"Rule {rule.rule_type.value} on '{field}' raised: {e}")
                return ValidationOutcome(
                    is_valid=False,
                    field=field,
                    message=RULE_ERROR_MESSAGE,
                    category=ErrorCategory.BUSINESS_RULE,
                    severity=ErrorSeverity.CRITICAL,
                    rule_type=rule.rule_type,
                    actual_value=value,
                    context=str(e),
                ), False
            if not outcome.is_valid:
                return outcome, True
        return ValidationOutcome.ok(field, value), True

    def validate_form(
        self, snapshot: FormSnapshot | Mapping[str, Any]
    ) -> FormValidationResult:
        """
        Validate every field with rules, then the cross-field rules.

        Field-level failures keep priority: a cross-field rule only reports
        under a field whose own rules passed.
        """
        snap = _as_snapshot(snapshot)
        started = time.perf_counter()

        names = self.rule_set.fields
        names += [name for name in snap if name not in names]
        errors: dict[str, ValidationOutcome] = {}
        for name in names:
            outcome = self.validate_field(name, snap.get_property(name), snap)
            if not outcome.is_valid:
                errors[name] = outcome

        duration_ms = (time.perf_counter() - started) * 1000.0
        summary = summarize(len(names), errors)
        result = FormValidationResult(
            is_valid=not summary["blocking"],
            errors=errors,
            summary=summary,
            duration_ms=duration_ms,
        )
        self._history.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "is_valid": result.is_valid,
            "error_count": len(errors),
            "duration_ms": round(duration_ms, 3),
        })
        logger.debug(f"Form validation finished: {len(errors)} error(s) in {duration_ms:.2f}ms")
        return result

    def validate_step(
        self, step_index: int, snapshot: FormSnapshot | Mapping[str, Any]
    ) -> StepValidationResult:
        """Validate only the fields declared by ``step_index``."""
        if not 0 <= step_index < len(self.step_fields):
            raise ValueError(f"Step index {step_index} out of range")
        snap = _as_snapshot(snapshot)
        errors: dict[str, ValidationOutcome] = {}
        for name in self.step_fields[step_index]:
            outcome = self.validate_field(name, snap.get_property(name), snap)
            if not outcome.is_valid:
                errors[name] = outcome
        is_valid = not any(outcome.blocks_submission for outcome in errors.values())
        return StepValidationResult(step_index=step_index, is_valid=is_valid, errors=errors)

    def check_form(self, snapshot: FormSnapshot | Mapping[str, Any]) -> bool:
        """Whether the snapshot would pass ``validate_form``, without recording history."""
        snap = _as_snapshot(snapshot)
        return not any(
            self.validate_field(name, snap.get_property(name), snap).blocks_submission
            for name in self.rule_set.fields
        )

    # ------------------------------------------------------------------
    # Debounced validation
    # ------------------------------------------------------------------

    def validate_field_debounced(
        self,
        field: str,
        snapshot_provider: Callable[[], FormSnapshot],
        callback: Callable[[ValidationOutcome], None],
        delay_ms: float | None = None,
    ) -> ScheduledTask:
        """
        Schedule validation of ``field`` after the debounce window.

        A new request for the same field replaces the pending one, and the
        snapshot is read when the timer fires, so only the latest edit is
        validated.
        """
        if self.scheduler is None:
            raise RuntimeError("Debounced validation requires a scheduler")

        def run() -> None:
            self._pending.pop(field, None)
            snapshot = snapshot_provider()
            callback(self.validate_field(field, snapshot.get_property(field), snapshot))

        self._pending[field] = run
        delay = self.config.debounce_ms if delay_ms is None else delay_ms
        return self.scheduler.reschedule(self._debounce_key(field), delay, run)

    def flush(self, field: str) -> bool:
        """Run a pending debounced validation for ``field`` immediately."""
        run = self._pending.pop(field, None)
        if run is None:
            return False
        if self.scheduler is not None:
            self.scheduler.cancel(self._debounce_key(field))
        run()
        return True

    def flush_all(self) -> int:
        """Run every pending debounced validation immediately."""
        return sum(1 for name in list(self._pending) if self.flush(name))

    def cancel_pending(self) -> int:
        """Drop every pending debounced validation."""
        count = len(self._pending)
        if self.scheduler is not None:
            for name in list(self._pending):
                self.scheduler.cancel(self._debounce_key(name))
        self._pending.clear()
        return count

    @property
    def pending_fields(self) -> list[str]:
        return list(self._pending)

    def _debounce_key(self, field: str) -> str:
        return f"{self.key_prefix}:{field}"

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def suggestions_for(self, outcome: ValidationOutcome) -> list[str]:
        """Static remediation suggestions for a failed outcome."""
        if outcome.is_valid:
            return []
        return get_suggestions(outcome.field, outcome.category)

    @property
    def history(self) -> list[dict[str, Any]]:
        """Most recent whole-form validation runs, oldest first."""
        return list(self._history)

    def performance_metrics(self) -> dict[str, float]:
        """Statistics over the most recent rule evaluation timings."""
        if not self._timings:
            return {"count": 0, "average_ms": 0.0, "fastest_ms": 0.0, "slowest_ms": 0.0}
        return {
            "count": len(self._timings),
            "average_ms": sum(self._timings) / len(self._timings),
            "fastest_ms": min(self._timings),
            "slowest_ms": max(self._timings),
        }

    def reset(self) -> None:
        """Clear cache, pending timers and history."""
        self.cancel_pending()
        self.cache.clear()
        self._history.clear()
        self._timings.clear()
