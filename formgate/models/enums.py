"""
Enums and constants for formgate.

This module defines all enums and constant classes to avoid magic strings
throughout the codebase.

Usage:
    from formgate.models.enums import (
        ErrorCategory,
        ErrorSeverity,
        EventType,
    )
"""

from enum import StrEnum

# ============================================================================
# Validation Enums
# ============================================================================


class ErrorCategory(StrEnum):
    """Category of a validation error."""

    REQUIRED = "required"
    FORMAT = "format"
    BUSINESS_RULE = "business_rule"
    DEPENDENCY = "dependency"
    TIMING = "timing"
    SECURITY = "security"


class ErrorSeverity(StrEnum):
    """Blocking weight of a validation error."""

    LOW = "low"  # Advisory, never blocks submission
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def blocks_submission(self) -> bool:
        """Whether an error of this severity prevents submission."""
        return self != ErrorSeverity.LOW

    @property
    def rank(self) -> int:
        """Numeric ordering, low=0 through critical=3."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    ErrorSeverity.LOW: 0,
    ErrorSeverity.MEDIUM: 1,
    ErrorSeverity.HIGH: 2,
    ErrorSeverity.CRITICAL: 3,
}


class SpecialRuleType(StrEnum):
    """Rule definition types requiring special handling."""

    CONDITIONAL = "conditional"
    REQUIRED_IF = "required_if"


# ============================================================================
# Interaction Enums
# ============================================================================


class EventType(StrEnum):
    """Kinds of interaction events recorded by the analytics recorder."""

    FOCUS = "focus"
    BLUR = "blur"
    CHANGE = "change"
    STEP_ENTER = "step_enter"
    STEP_LEAVE = "step_leave"
    SUBMIT_ATTEMPT = "submit_attempt"
    SUBMIT_SUCCESS = "submit_success"
    SUBMIT_ERROR = "submit_error"
    CANCEL = "cancel"

    @property
    def touches_field(self) -> bool:
        """Whether events of this type are tied to a single field."""
        return self in (EventType.FOCUS, EventType.BLUR, EventType.CHANGE)


class PatternType(StrEnum):
    """Derived behavioral patterns emitted by the recorder."""

    HESITATION = "hesitation"
    RAPID_COMPLETION = "rapid_completion"
    DETAILED_REVIEW = "detailed_review"
    MULTIPLE_CONFIRMATION_FAILURES = "multiple_confirmation_failures"

    @property
    def is_suspicious(self) -> bool:
        """Whether this pattern counts toward the risk score."""
        return self == PatternType.MULTIPLE_CONFIRMATION_FAILURES


class BehaviorPattern(StrEnum):
    """Coarse label summarizing an interaction sequence."""

    LINEAR = "linear"
    RANDOM = "random"
    FOCUSED = "focused"
    REVIEWER = "reviewer"


class StepPerformance(StrEnum):
    """Speed bucket for time spent on a step."""

    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"


class RiskLevel(StrEnum):
    """Risk bucket derived from the risk score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SubmissionErrorKind(StrEnum):
    """Distinguished kinds of submission failure."""

    NETWORK = "network"
    VALIDATION = "validation"
    SERVER = "server"
    PERMISSION = "permission"
    IN_PROGRESS = "in_progress"
    UNKNOWN = "unknown"


# ============================================================================
# Source and Format Enums
# ============================================================================


class FileFormat(StrEnum):
    """Supported definition and data file formats."""

    YAML = "yaml"
    JSON = "json"


class LoadErrorType(StrEnum):
    """Categorized load error types."""

    FILE_NOT_FOUND = "file_not_found"
    FILE_PERMISSION_DENIED = "file_permission_denied"
    FILE_ENCODING_ERROR = "file_encoding_error"
    YAML_PARSE_ERROR = "yaml_parse_error"
    JSON_PARSE_ERROR = "json_parse_error"
    INVALID_FORMAT = "invalid_format"
    STRUCTURE_ERROR = "structure_error"
    INVALID_RULE_DEFINITION = "invalid_rule_definition"


class LoadResultStatus(StrEnum):
    """Status of a definition load operation."""

    SUCCESS = "success"
    FILE_ERROR = "file_error"
    PARSE_ERROR = "parse_error"
    STRUCTURE_ERROR = "structure_error"
    VALIDATION_ERROR = "validation_error"
