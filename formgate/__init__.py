"""
formgate: validation and behavioral analytics for HR forms.

formgate validates form snapshots field by field and across fields, gates
progression through multi-step confirmation flows, and records how users
interact with a form (hesitation, rapid completion, review behavior) for
audit and risk scoring.

Core Components:
    - FormDefinition: Declarative form description (defaults, steps, rules)
    - Validator: Cached, debounced field/step/form validation
    - StepGate: State machine for multi-step flows
    - AnalyticsRecorder: Interaction log and derived metrics
    - FormSession: One open form composing all of the above

Example Usage:
    ```python
    import asyncio

    from formgate import FormSession, ManualScheduler, get_form

    form = get_form("delete_leave", permissions={"can_delete_own_leaves": True})
    session = FormSession(form, scheduler=ManualScheduler(), submit_handler=api.delete)
    session.update_fields({"confirmation": "DELETE", "user_acknowledgment": True})
    result = asyncio.run(session.submit())
    print(result.success, result.analytics["risk"])
    ```
"""

__version__ = "0.1.0"

from .analytics import AnalyticsRecorder, InteractionEvent, PatternEvent, classify_behavior
from .autosave import AutoSaveStore, FileAutoSaveStore, MemoryAutoSaveStore
from .cache import ValidationCache
from .categorize import categorize_error, classify_submission_error, get_suggestions
from .config import ConfigValidationError, EngineConfig
from .exceptions import (
    FormGateError,
    LoaderError,
    RuleDefinitionError,
    SessionClosedError,
    StepNotReady,
    SubmissionError,
)
from .form import FormDefinition
from .forms import get_form, list_forms
from .gate import StepGate, StepTransition
from .loader import FormLoader, load_form, load_form_or_raise
from .models import (
    BehaviorPattern,
    ErrorCategory,
    ErrorSeverity,
    EventType,
    PatternType,
    RuleType,
)
from .rule import ConditionalRule, FieldRule, PredicateRule, RuleFactory, RuleSet, ValidationOutcome
from .scheduling import AsyncioScheduler, ManualScheduler, Scheduler
from .session import ErrorReport, FormSession, SessionView, SubmissionResult
from .snapshot import FormSnapshot
from .step import Step, StepEvaluationResult, StepStatus
from .validator import FormValidationResult, StepValidationResult, Validator

__all__ = [
    "__version__",
    # Core functionality
    "FormDefinition",
    "FormSession",
    "Validator",
    "StepGate",
    "AnalyticsRecorder",
    "FormLoader",
    "load_form",
    "load_form_or_raise",
    "get_form",
    "list_forms",
    # Rules
    "RuleFactory",
    "RuleSet",
    "FieldRule",
    "ConditionalRule",
    "PredicateRule",
    "RuleType",
    "ValidationOutcome",
    # Data types and results
    "FormSnapshot",
    "FormValidationResult",
    "StepValidationResult",
    "Step",
    "StepStatus",
    "StepEvaluationResult",
    "StepTransition",
    "InteractionEvent",
    "PatternEvent",
    "ErrorReport",
    "SessionView",
    "SubmissionResult",
    "BehaviorPattern",
    "ErrorCategory",
    "ErrorSeverity",
    "EventType",
    "PatternType",
    # Infrastructure
    "EngineConfig",
    "ConfigValidationError",
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    "ValidationCache",
    "AutoSaveStore",
    "MemoryAutoSaveStore",
    "FileAutoSaveStore",
    # Utilities
    "categorize_error",
    "classify_submission_error",
    "classify_behavior",
    "get_suggestions",
    # Exceptions
    "FormGateError",
    "RuleDefinitionError",
    "StepNotReady",
    "SessionClosedError",
    "LoaderError",
    "SubmissionError",
]
