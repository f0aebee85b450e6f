"""
Per-form-instance session.

A FormSession composes the validator, step gate and analytics recorder for
one open form. It owns the canonical snapshot and the error map; every other
component only sees read-only snapshots. Disposing the session cancels every
timer it registered and discards its cache, event log and data.
"""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from formgate.analytics import AnalyticsRecorder
from formgate.autosave import AutoSaveStore, FileAutoSaveStore
from formgate.categorize import (
    SUBMISSION_MESSAGES,
    categorize_error,
    classify_submission_error,
    get_suggestions,
)
from formgate.config import EngineConfig
from formgate.exceptions import SessionClosedError, SubmissionError
from formgate.form import FormDefinition
from formgate.gate import StepGate, StepTransition
from formgate.models import (
    ErrorCategory,
    ErrorSeverity,
    EventType,
    SubmissionErrorKind,
    is_empty,
)
from formgate.rule import ValidationOutcome
from formgate.scheduling import AsyncioScheduler, ManualScheduler, ScheduledTask, Scheduler
from formgate.snapshot import FormSnapshot, assign_path
from formgate.validator import Validator

logger = logging.getLogger(__name__)

SubmitHandler = Callable[[dict[str, Any]], Awaitable[Any] | Any]

GENERAL_ERROR_MESSAGE = "Validation could not be completed. Please try again."
VALIDATION_FAILED_MESSAGE = "Form validation failed. Please check the errors."


@dataclass(frozen=True)
class ErrorReport:
    """An error as rendered by the presentation layer."""

    field: str
    message: str
    category: ErrorCategory | None
    severity: ErrorSeverity | None
    suggestions: tuple[str, ...] = ()

    @classmethod
    def from_outcome(cls, outcome: ValidationOutcome) -> "ErrorReport":
        return cls(
            field=outcome.field,
            message=outcome.message,
            category=outcome.category,
            severity=outcome.severity,
            suggestions=tuple(get_suggestions(outcome.field, outcome.category)),
        )

    @property
    def is_warning(self) -> bool:
        return self.severity == ErrorSeverity.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "category": self.category.value if self.category else "",
            "severity": self.severity.value if self.severity else "",
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of ``FormSession.submit``.

    Attributes:
        success: Whether the submit handler accepted the payload
        errors: Failing outcomes that blocked or rejected the submission
        error_kind: Distinguished failure kind, None on success
        message: User-facing summary of the failure
        response: Whatever the submit handler returned
        analytics: Exported analytics for the finished session
    """

    success: bool
    errors: dict[str, ValidationOutcome] = field(default_factory=dict)
    error_kind: SubmissionErrorKind | None = None
    message: str = ""
    response: Any = None
    analytics: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "errors": {name: outcome.to_dict() for name, outcome in self.errors.items()},
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "analytics": self.analytics,
        }


@dataclass(frozen=True)
class SessionView:
    """Read-only projection of a session for the presentation layer."""

    snapshot: FormSnapshot
    errors: dict[str, ErrorReport]
    general_error: str | None
    current_step: int
    step_count: int
    step_progress_percent: float
    can_submit: bool
    is_submitting: bool
    is_dirty: bool
    security: dict[str, bool]
    analytics_summary: dict[str, Any]

    @property
    def warnings(self) -> dict[str, ErrorReport]:
        return {name: report for name, report in self.errors.items() if report.is_warning}

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict(),
            "errors": {name: report.to_dict() for name, report in self.errors.items()},
            "general_error": self.general_error,
            "current_step": self.current_step,
            "step_count": self.step_count,
            "step_progress_percent": self.step_progress_percent,
            "can_submit": self.can_submit,
            "is_submitting": self.is_submitting,
            "is_dirty": self.is_dirty,
            "security": dict(self.security),
            "analytics_summary": dict(self.analytics_summary),
        }


def _default_scheduler() -> Scheduler:
    try:
        return AsyncioScheduler(asyncio.get_running_loop())
    except RuntimeError:
        logger.warning(
            "No running event loop; debounce and auto-save timers only fire "
            "when the ManualScheduler is advanced"
        )
        return ManualScheduler()


class FormSession:
    """
    One open form: canonical snapshot, error state, steps and analytics.

    Args:
        definition: Form definition to run
        initial_data: Values overlaid on the definition defaults
        submit_handler: Sync or async callable receiving the submission payload
        autosave_store: Draft sink; defaults to a FileAutoSaveStore under
            ``config.autosave_dir``, and auto-save is disabled without either
        scheduler: Timer source (defaults to the running asyncio loop)
        config: Engine configuration
        session_id: Identifier stamped on analytics events
        performed_by: Actor recorded in the audit metadata
        entity_id: Record the form acts on, used in the auto-save key
        restore_autosave: Start from a fresh auto-saved draft when one exists
    """

    def __init__(
        self,
        definition: FormDefinition,
        *,
        initial_data: Mapping[str, Any] | None = None,
        submit_handler: SubmitHandler | None = None,
        autosave_store: AutoSaveStore | None = None,
        scheduler: Scheduler | None = None,
        config: EngineConfig | None = None,
        session_id: str | None = None,
        performed_by: str | None = None,
        entity_id: str | None = None,
        restore_autosave: bool = False,
    ):
        self.definition = definition
        self.session_id = session_id or uuid.uuid4().hex
        self.submit_handler = submit_handler
        self.scheduler = scheduler or _default_scheduler()
        self.config = config or EngineConfig()
        if autosave_store is None and self.config.autosave_dir is not None:
            autosave_store = FileAutoSaveStore(self.config.autosave_dir)
        self.autosave_store = autosave_store
        self.performed_by = performed_by
        self.entity_id = entity_id
        self.autosave_key = definition.autosave_key_for(entity_id) if autosave_store else None

        self._initial_overrides = deepcopy(dict(initial_data or {}))
        self._data = definition.initial_data(self._initial_overrides)
        self._baseline = FormSnapshot(self._data)
        self.restored = False
        if restore_autosave:
            self._restore_draft()

        self.validator = Validator(
            definition.rule_set,
            definition.step_fields,
            scheduler=self.scheduler,
            config=self.config,
            key_prefix=f"{self.session_id}:validate",
        )
        self.gate = StepGate(definition.build_steps(), self.validator.validate_step, self.scheduler.now)
        self.recorder = AnalyticsRecorder(
            self.session_id, self.scheduler.now, self.config, definition.step_names
        )

        self._errors: dict[str, ValidationOutcome] = {}
        self._general_error: str | None = None
        self._touched: set[str] = set()
        self._deferred: set[str] = set()
        self._last_saved: FormSnapshot | None = None
        self.is_submitting = False
        self.closed = False

        self._timers: list[ScheduledTask] = [
            self.scheduler.call_every(
                self.config.hesitation_threshold_ms,
                self._hesitation_tick,
                key=f"{self.session_id}:hesitation",
            )
        ]
        if self.autosave_store is not None and self.autosave_key:
            self._timers.append(self.scheduler.call_every(
                self.config.autosave_interval_ms,
                self.autosave,
                key=f"{self.session_id}:autosave",
            ))

        self._track(EventType.STEP_ENTER, step=self.gate.current_step)
        logger.info(f"Session {self.session_id} opened for form '{definition.name}'")

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> FormSnapshot:
        """Read-only copy of the current data."""
        return FormSnapshot(self._data)

    @property
    def errors(self) -> dict[str, ValidationOutcome]:
        return dict(self._errors)

    @property
    def general_error(self) -> str | None:
        return self._general_error

    @property
    def current_step(self) -> int:
        return self.gate.current_step

    @property
    def is_dirty(self) -> bool:
        """Whether the data differs from the session's starting point."""
        return self.snapshot != self._baseline

    def security_status(self) -> dict[str, bool]:
        """Validity of the field behind each configured security check."""
        self._check_open()
        snap = self.snapshot
        return {
            check: self.validator.validate_field(name, snap.get_property(name), snap).is_valid
            for check, name in self.definition.security_checks.items()
        }

    def can_submit(self) -> bool:
        if self.closed or self.is_submitting:
            return False
        if self.definition.multi_step and not self.gate.is_last_step:
            return False
        return self.validator.check_form(self.snapshot)

    def view(self) -> SessionView:
        """Projection of the session for rendering."""
        self._check_open()
        return SessionView(
            snapshot=self.snapshot,
            errors={name: ErrorReport.from_outcome(outcome) for name, outcome in self._errors.items()},
            general_error=self._general_error,
            current_step=self.gate.current_step,
            step_count=self.gate.step_count,
            step_progress_percent=self.gate.progress_percent,
            can_submit=self.can_submit(),
            is_submitting=self.is_submitting,
            is_dirty=self.is_dirty,
            security=self.security_status(),
            analytics_summary=dict(self._safe(self.recorder.get_summary) or {}),
        )

    def export_analytics(self) -> dict[str, Any]:
        self._check_open()
        return self._safe(self.recorder.export_summary) or {}

    # ------------------------------------------------------------------
    # Field interaction
    # ------------------------------------------------------------------

    def update_field(self, field: str, value: Any) -> None:
        """Set one field and schedule its debounced validation."""
        self.update_fields({field: value})

    def update_fields(self, delta: Mapping[str, Any]) -> None:
        """
        Apply several field values at once.

        The whole delta is written before any validation is scheduled, so
        cross-field rules never observe a partially applied edit.
        """
        self._check_open()
        for name, value in delta.items():
            assign_path(self._data, name, deepcopy(value))

        step = self.gate.current_step
        for name, value in delta.items():
            self._touched.add(name)
            self._track(EventType.CHANGE, field=name, step=step, has_value=not is_empty(value))

        for name in self._fields_to_revalidate(delta):
            self._schedule_validation(name)

    def focus_field(self, field: str) -> None:
        self._check_open()
        self._track(EventType.FOCUS, field=field, step=self.gate.current_step)

    def blur_field(self, field: str) -> ValidationOutcome:
        """Validate ``field`` immediately, bypassing the debounce window."""
        self._check_open()
        self._touched.add(field)
        self._track(EventType.BLUR, field=field, step=self.gate.current_step)
        self.validator.flush(field)
        snap = self.snapshot
        outcome = self.validator.validate_field(field, snap.get_property(field), snap)
        self._apply_outcome(field, outcome)
        if not outcome.is_valid and outcome.category == ErrorCategory.SECURITY and not is_empty(outcome.actual_value):
            self._safe(self.recorder.record_confirmation_failure, self.gate.current_step)
        return outcome

    def _fields_to_revalidate(self, delta: Mapping[str, Any]) -> list[str]:
        """Edited fields plus touched or failing fields whose rules read them."""
        edited = list(delta)
        names = list(edited)
        for name in self.definition.rule_set.fields:
            if name in names or (name not in self._touched and name not in self._errors):
                continue
            reads = self.definition.rule_set.reads_for(name)
            if any(edit in reads for edit in edited):
                names.append(name)
        return names

    def _schedule_validation(self, field: str) -> None:
        def deliver(outcome: ValidationOutcome) -> None:
            self._apply_outcome(field, outcome)

        self.validator.validate_field_debounced(field, lambda: self.snapshot, deliver)

    def _apply_outcome(self, field: str, outcome: ValidationOutcome) -> None:
        if self.closed:
            return
        if self.is_submitting:
            # Field-originated results must not change error state mid-submit
            self._deferred.add(field)
            return
        if outcome.is_valid:
            self._errors.pop(field, None)
        else:
            if self._errors.get(field) != outcome:
                self._safe(self.recorder.record_validation_errors, 1)
            self._errors[field] = outcome

    def _replay_deferred(self) -> None:
        fields = sorted(self._deferred)
        self._deferred.clear()
        for name in fields:
            self._schedule_validation(name)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_step(self) -> StepTransition:
        """Advance if the current step validates; otherwise surface its errors."""
        self._check_open()
        self.validator.flush_all()
        transition = self.gate.advance(self.snapshot)
        if transition.success:
            for name in self.definition.step_fields[transition.from_step]:
                self._errors.pop(name, None)
            self._track_move(transition)
        elif transition.errors:
            # The step was validated as a whole, so its other fields are now current
            for name in self.definition.step_fields[transition.from_step]:
                if name not in transition.errors:
                    self._errors.pop(name, None)
            self._errors.update(transition.errors)
            self._touched.update(transition.errors)
            self._safe(self.recorder.record_validation_errors, len(transition.errors))
        return transition

    def prev_step(self) -> StepTransition:
        self._check_open()
        transition = self.gate.retreat()
        self._track_move(transition)
        return transition

    def jump_to(self, index: int) -> StepTransition:
        """
        Jump to a step whose predecessors are complete.

        Raises:
            StepNotReady: If an earlier step is incomplete
            ValueError: If ``index`` is out of range
        """
        self._check_open()
        transition = self.gate.jump_to(index)
        self._track_move(transition)
        return transition

    def _track_move(self, transition: StepTransition) -> None:
        if not transition.moved:
            return
        forward = transition.to_step > transition.from_step
        self._track(EventType.STEP_LEAVE, step=transition.from_step, forward=forward)
        self._track(EventType.STEP_ENTER, step=transition.to_step)

    # ------------------------------------------------------------------
    # Submission and lifecycle
    # ------------------------------------------------------------------

    def build_payload(self, snapshot: FormSnapshot) -> dict[str, Any]:
        """Validated data plus audit metadata."""
        reason_field = self.definition.reason_field
        return {
            "data": snapshot.to_dict(),
            "audit": {
                "reason": snapshot.get_property(reason_field) if reason_field else None,
                "performed_by": self.performed_by,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }

    async def submit(self) -> SubmissionResult:
        """
        Validate the whole form and hand it to the submit handler.

        The session is disposed after the handler succeeds. On any failure the
        snapshot is kept so the user can retry.
        """
        self._check_open()
        if self.is_submitting:
            return SubmissionResult(
                False,
                error_kind=SubmissionErrorKind.IN_PROGRESS,
                message=SUBMISSION_MESSAGES[SubmissionErrorKind.IN_PROGRESS],
            )

        step = self.gate.current_step
        self._track(EventType.SUBMIT_ATTEMPT, step=step)
        self.validator.cancel_pending()
        snap = self.snapshot

        try:
            result = self.validator.validate_form(snap)
        except Exception as e:
            logger.warning(f"Session {self.session_id}: form validation failed: {e}")
            self._general_error = GENERAL_ERROR_MESSAGE
            self._track(EventType.SUBMIT_ERROR, step=step, kind=SubmissionErrorKind.VALIDATION.value)
            return SubmissionResult(False, error_kind=SubmissionErrorKind.VALIDATION, message=GENERAL_ERROR_MESSAGE)

        self._general_error = None
        self._errors = dict(result.errors)
        self._touched.update(result.errors)
        if not result.is_valid:
            return self._reject_invalid(result.errors, step)

        transition = self.gate.finalize(snap, sequential=self.definition.multi_step)
        if not transition.success:
            self._errors.update(transition.errors)
            self._track(EventType.SUBMIT_ERROR, step=step, kind=SubmissionErrorKind.VALIDATION.value)
            return SubmissionResult(
                False,
                errors=dict(transition.errors),
                error_kind=SubmissionErrorKind.VALIDATION,
                message=transition.reason,
            )

        payload = self.build_payload(snap)
        self.is_submitting = True
        delivered = False
        try:
            response = await self._call_submit_handler(payload)
            delivered = True
        except Exception as e:
            return self._reject_handler_failure(e, step)
        finally:
            self.is_submitting = False
            # Also reached when the submitting task is cancelled
            if not delivered and not self.closed:
                self.gate.reopen()
                self._replay_deferred()

        self._track(EventType.SUBMIT_SUCCESS, step=step)
        analytics = self._safe(self.recorder.export_summary)
        if self.autosave_store is not None and self.autosave_key:
            self._safe(self.autosave_store.delete, self.autosave_key)
        logger.info(f"Session {self.session_id} submitted")
        self.dispose()
        return SubmissionResult(True, response=response, analytics=analytics)

    async def _call_submit_handler(self, payload: dict[str, Any]) -> Any:
        if self.submit_handler is None:
            return None
        response = self.submit_handler(payload)
        if inspect.isawaitable(response):
            response = await response
        return response

    def _reject_invalid(self, errors: dict[str, ValidationOutcome], step: int) -> SubmissionResult:
        blocking = {name: outcome for name, outcome in errors.items() if outcome.blocks_submission}
        self._safe(self.recorder.record_validation_errors, len(blocking))
        for outcome in blocking.values():
            if outcome.category == ErrorCategory.SECURITY and not is_empty(outcome.actual_value):
                self._safe(self.recorder.record_confirmation_failure, step)
                break
        self._track(EventType.SUBMIT_ERROR, step=step, kind=SubmissionErrorKind.VALIDATION.value)
        return SubmissionResult(
            False,
            errors=dict(errors),
            error_kind=SubmissionErrorKind.VALIDATION,
            message=VALIDATION_FAILED_MESSAGE,
        )

    def _reject_handler_failure(self, error: Exception, step: int) -> SubmissionResult:
        kind = classify_submission_error(str(error))
        logger.warning(f"Session {self.session_id}: submission failed ({kind.value}): {error}")
        relayed: dict[str, ValidationOutcome] = {}
        if isinstance(error, SubmissionError):
            for name, message in error.field_errors.items():
                category, severity = categorize_error(name, message)
                relayed[name] = ValidationOutcome(
                    is_valid=False,
                    field=name,
                    message=message,
                    category=category,
                    severity=severity,
                    actual_value=self.snapshot.get_property(name),
                    context="submit handler",
                )
            if relayed and kind == SubmissionErrorKind.UNKNOWN:
                kind = SubmissionErrorKind.VALIDATION
        self._errors.update(relayed)
        self._general_error = SUBMISSION_MESSAGES[kind]
        self._track(EventType.SUBMIT_ERROR, step=step, kind=kind.value)
        return SubmissionResult(False, errors=relayed, error_kind=kind, message=self._general_error)

    def cancel(self) -> None:
        """Abandon the form: discard the draft and dispose the session."""
        self._check_open()
        self._track(EventType.CANCEL, step=self.gate.current_step)
        if self.autosave_store is not None and self.autosave_key:
            self._safe(self.autosave_store.delete, self.autosave_key)
        logger.info(f"Session {self.session_id} cancelled")
        self.dispose()

    def reset(self) -> None:
        """Return to the starting data, first step and empty analytics."""
        self._check_open()
        self.validator.reset()
        self._data = self.definition.initial_data(self._initial_overrides)
        self._baseline = FormSnapshot(self._data)
        self._errors.clear()
        self._general_error = None
        self._touched.clear()
        self._deferred.clear()
        self._last_saved = None
        self.gate.reset()
        self._safe(self.recorder.reset)
        self._track(EventType.STEP_ENTER, step=self.gate.current_step)

    def dispose(self) -> None:
        """Cancel every timer and discard cache, event log and data. Idempotent."""
        if self.closed:
            return
        for task in self._timers:
            task.cancel()
        self._timers.clear()
        self.validator.reset()
        self._safe(self.recorder.reset)
        self._data = {}
        self._errors.clear()
        self._touched.clear()
        self._deferred.clear()
        self.closed = True
        logger.debug(f"Session {self.session_id} disposed")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def autosave(self) -> bool:
        """Persist the snapshot if it changed. Returns True when a draft was written."""
        if self.closed or self.is_submitting or self.autosave_store is None or not self.autosave_key:
            return False
        snap = self.snapshot
        if snap == self._baseline or snap == self._last_saved:
            return False
        try:
            self.autosave_store.save(self.autosave_key, snap.to_dict())
        except Exception as e:
            logger.warning(f"Session {self.session_id}: auto-save failed: {e}")
            return False
        self._last_saved = snap
        return True

    def _restore_draft(self) -> None:
        if self.autosave_store is None or not self.autosave_key:
            return
        max_age = timedelta(hours=self.config.autosave_max_age_hours)
        try:
            draft = self.autosave_store.load(self.autosave_key, max_age)
        except Exception as e:
            logger.warning(f"Session {self.session_id}: could not load draft: {e}")
            return
        if draft:
            self._data.update(deepcopy(draft))
            self._baseline = FormSnapshot(self._data)
            self.restored = True
            logger.info(f"Session {self.session_id} restored draft '{self.autosave_key}'")

    def _hesitation_tick(self) -> None:
        if not self.closed:
            self._safe(self.recorder.check_hesitation)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _track(self, event_type: EventType, field: str | None = None, step: int | None = None, **data: Any) -> None:
        self._safe(self.recorder.record, event_type, field, step, **data)

    def _safe(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Call an instrumentation or storage collaborator, logging failures."""
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.warning(f"Session {self.session_id}: {getattr(func, '__name__', func)} failed: {e}")
            return None

    def _check_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"Session {self.session_id} is closed", session_id=self.session_id)

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"step {self.gate.current_step}"
        return f"FormSession({self.definition.name!r}, {self.session_id!r}, {state})"
