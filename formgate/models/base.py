"""
Core rule types and typed dictionaries for formgate.

`RuleType` carries both the predicate and the default failure message for
every built-in rule, so rule objects stay thin wrappers around data.
"""

import re
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal, TypedDict

from .enums import ErrorCategory, ErrorSeverity

if TYPE_CHECKING:
    from formgate.snapshot import FormSnapshot


TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
IPV4_PATTERN = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")


def is_empty(value: Any) -> bool:
    """Check whether a form value counts as "not provided"."""
    if value is None:
        return True
    if isinstance(value, str):
        return len(value.strip()) == 0
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def is_number(value: Any) -> bool:
    """Check for int/float values, excluding bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def time_to_minutes(value: Any) -> int | None:
    """Convert an ``HH:MM`` string to minutes after midnight.

    Returns:
        Minutes after midnight, or None when the value is not a valid time
    """
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        return None
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


# ============================================================================
# Rule Type Definitions
# ============================================================================


class RuleMetaData(TypedDict, total=False):
    """Metadata for rule validation."""

    expected_value: Any
    min_value: float | None
    max_value: float | None
    start_field: str | None
    end_field: str | None
    deduct_field: str | None


class RuleType(Enum):
    """
    Built-in rule types for field and cross-field validation.
    """

    REQUIRED = "required"
    EQUALS = "equals"
    IS_TRUE = "is_true"
    REGEX = "regex"
    TIME_FORMAT = "time_format"
    IP_LIST = "ip_list"
    INTEGER = "integer"
    RANGE = "range"
    MAX_LENGTH = "max_length"
    IN_LIST = "in_list"
    COUNT_RANGE = "count_range"
    TIME_AFTER = "time_after"
    SPAN_HOURS = "span_hours"
    WITHIN_SPAN = "within_span"
    PREDICATE = "predicate"
    CONDITIONAL = "conditional"

    @property
    def is_cross_field(self) -> bool:
        """Whether this rule type reads fields besides its own."""
        return self in (RuleType.TIME_AFTER, RuleType.SPAN_HOURS, RuleType.WITHIN_SPAN)

    def default_tags(self) -> tuple[ErrorCategory, ErrorSeverity]:
        """Category and severity used when a definition does not set them."""
        return _DEFAULT_TAGS.get(self, (ErrorCategory.BUSINESS_RULE, ErrorSeverity.MEDIUM))

    def reads(self, field: str, meta: RuleMetaData) -> set[str]:
        """Snapshot fields inspected by a rule of this type on ``field``."""
        fields = {field}
        if self == RuleType.TIME_AFTER:
            fields.add(str(meta.get("expected_value")))
        elif self == RuleType.SPAN_HOURS:
            fields.update(f for f in (meta.get("start_field"), meta.get("deduct_field")) if f)
        elif self == RuleType.WITHIN_SPAN:
            fields.update(f for f in (meta.get("start_field"), meta.get("end_field")) if f)
        return fields

    def failure_message(
        self, field: str, actual_value: Any, meta: RuleMetaData | None = None
    ) -> str:
        """Generate human-readable failure message for this rule type.

        Args:
            field: Name of the field being validated
            actual_value: The actual value that failed validation
            meta: Rule metadata (expected value, bounds, related fields)

        Returns:
            Descriptive error message
        """
        meta = meta or {}
        expected_value = meta.get("expected_value")

        if self == RuleType.REQUIRED:
            return "This field is required"

        if self == RuleType.EQUALS:
            return f"Field '{field}' must equal '{expected_value}'"

        if self == RuleType.IS_TRUE:
            return f"Field '{field}' must be confirmed"

        if self == RuleType.REGEX:
            return f"Field '{field}' should match pattern '{expected_value}' but is '{actual_value}'"

        if self == RuleType.TIME_FORMAT:
            return "Please enter a valid time in HH:MM format"

        if self == RuleType.IP_LIST:
            return "Please enter valid IP addresses separated by commas"

        if self == RuleType.INTEGER:
            return f"Field '{field}' must be a whole number"

        if self == RuleType.RANGE:
            return (
                f"Field '{field}' should be between {meta.get('min_value')} "
                f"and {meta.get('max_value')} but is {actual_value}"
            )

        if self == RuleType.MAX_LENGTH:
            return f"Field '{field}' must be at most {expected_value} characters"

        if self == RuleType.IN_LIST:
            return f"Field '{field}' should be one of {expected_value} but is '{actual_value}'"

        if self == RuleType.COUNT_RANGE:
            return (
                f"Select between {meta.get('min_value')} and "
                f"{meta.get('max_value')} options for '{field}'"
            )

        if self == RuleType.TIME_AFTER:
            return f"Field '{field}' must be after '{expected_value}'"

        if self == RuleType.SPAN_HOURS:
            return "Invalid work hours duration"

        if self == RuleType.WITHIN_SPAN:
            return f"Field '{field}' cannot exceed the time between '{meta.get('start_field')}' and '{meta.get('end_field')}'"

        return f"Field '{field}' failed validation for rule type '{self.value}'"

    def validate(
        self, value: Any, meta: RuleMetaData, snapshot: "FormSnapshot | None" = None
    ) -> bool:
        rule_type = self
        if rule_type == RuleType.REQUIRED:
            return not is_empty(value)

        expected_value = meta.get("expected_value")
        if rule_type == RuleType.EQUALS:
            return value == expected_value

        if rule_type == RuleType.IS_TRUE:
            return value is True

        # Count checks apply to empty selections too
        if rule_type == RuleType.COUNT_RANGE:
            if not isinstance(value, (list, tuple, set)):
                return False
            return _within(len(value), meta.get("min_value"), meta.get("max_value"))

        if rule_type == RuleType.MAX_LENGTH:
            if value is None:
                return True
            try:
                return len(value) <= int(expected_value)
            except TypeError:
                return False

        # Remaining types leave empty values to the required rule
        if is_empty(value):
            return True

        if rule_type == RuleType.REGEX:
            if not isinstance(value, str):
                return False
            try:
                return bool(re.fullmatch(str(expected_value), value))
            except re.error:
                return False

        if rule_type == RuleType.TIME_FORMAT:
            return time_to_minutes(value) is not None

        if rule_type == RuleType.IP_LIST:
            if not isinstance(value, str):
                return False
            return all(IPV4_PATTERN.match(ip.strip()) for ip in value.split(","))

        if rule_type == RuleType.INTEGER:
            if isinstance(value, float):
                return value.is_integer()
            return is_number(value)

        if rule_type == RuleType.RANGE:
            if not is_number(value):
                return False
            return _within(value, meta.get("min_value"), meta.get("max_value"))

        if rule_type == RuleType.IN_LIST:
            if not isinstance(expected_value, (list, tuple, set)):
                return False
            return value in expected_value

        if rule_type.is_cross_field:
            return _validate_cross_field(rule_type, value, meta, snapshot)

        raise ValueError(f"Unsupported rule type: {rule_type}")


def _within(value: float, min_value: float | None, max_value: float | None) -> bool:
    if min_value is not None and value < min_value:
        return False
    if max_value is not None and value > max_value:
        return False
    return True


def _validate_cross_field(
    rule_type: RuleType, value: Any, meta: RuleMetaData, snapshot: "FormSnapshot | None"
) -> bool:
    # Missing or malformed inputs are reported by the format rules instead
    if snapshot is None:
        return True

    if rule_type == RuleType.TIME_AFTER:
        end = time_to_minutes(value)
        start = time_to_minutes(snapshot.get(str(meta.get("expected_value"))))
        if start is None or end is None:
            return True
        return end > start

    if rule_type == RuleType.SPAN_HOURS:
        end = time_to_minutes(value)
        start = time_to_minutes(snapshot.get(meta.get("start_field") or ""))
        if start is None or end is None:
            return True
        deduct = snapshot.get(meta.get("deduct_field") or "")
        deduct = deduct if is_number(deduct) else 0
        hours = (end - start - deduct) / 60
        return _within(hours, meta.get("min_value"), meta.get("max_value"))

    if rule_type == RuleType.WITHIN_SPAN:
        if not is_number(value):
            return True
        start = time_to_minutes(snapshot.get(meta.get("start_field") or ""))
        end = time_to_minutes(snapshot.get(meta.get("end_field") or ""))
        if start is None or end is None:
            return True
        return value < end - start

    return True


_DEFAULT_TAGS: dict[RuleType, tuple[ErrorCategory, ErrorSeverity]] = {
    RuleType.REQUIRED: (ErrorCategory.REQUIRED, ErrorSeverity.HIGH),
    RuleType.EQUALS: (ErrorCategory.SECURITY, ErrorSeverity.CRITICAL),
    RuleType.IS_TRUE: (ErrorCategory.SECURITY, ErrorSeverity.HIGH),
    RuleType.REGEX: (ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    RuleType.TIME_FORMAT: (ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    RuleType.IP_LIST: (ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    RuleType.INTEGER: (ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    RuleType.RANGE: (ErrorCategory.BUSINESS_RULE, ErrorSeverity.MEDIUM),
    RuleType.MAX_LENGTH: (ErrorCategory.BUSINESS_RULE, ErrorSeverity.MEDIUM),
    RuleType.IN_LIST: (ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    RuleType.COUNT_RANGE: (ErrorCategory.BUSINESS_RULE, ErrorSeverity.HIGH),
    RuleType.TIME_AFTER: (ErrorCategory.TIMING, ErrorSeverity.HIGH),
    RuleType.SPAN_HOURS: (ErrorCategory.TIMING, ErrorSeverity.HIGH),
    RuleType.WITHIN_SPAN: (ErrorCategory.TIMING, ErrorSeverity.HIGH),
    RuleType.PREDICATE: (ErrorCategory.SECURITY, ErrorSeverity.CRITICAL),
}


class RuleDefinitionDict(TypedDict, total=False):
    """Rule configuration as written in a form definition."""

    type: str
    field: str
    expected_value: Any
    metadata: RuleMetaData
    error_message: str
    category: str
    severity: str


# The conditional structure uses "if", "then" and "else" keys, which are Python
# keywords, so it is typed as a dict with Literal keys rather than a TypedDict
ConditionalRuleDict = dict[
    Literal["type", "field", "if", "then", "else", "error_message"], Any
]


class RequiredIfDict(TypedDict, total=False):
    """Shorthand for a field required when another field holds given values."""

    field: str
    required_if: dict[str, Any]
    error_message: str
    category: str
    severity: str


RuleDefinition = RuleDefinitionDict | RequiredIfDict | ConditionalRuleDict


class StepDefinitionDict(TypedDict, total=False):
    """Step configuration in a form definition."""

    name: str
    title: str
    required_fields: list[str]


class FormDefinitionDict(TypedDict, total=False):
    """Complete form definition as loaded from YAML or JSON."""

    name: str
    title: str
    description: str
    multi_step: bool
    defaults: dict[str, Any]
    steps: list[StepDefinitionDict]
    rules: dict[str, list[RuleDefinition]]
    form_rules: list[RuleDefinition]
    security_checks: dict[str, str]
    reason_field: str | None
    autosave_key: str | None


# ============================================================================
# Result Dictionaries
# ============================================================================


class OutcomeDict(TypedDict):
    """Serialized validation outcome."""

    field: str
    is_valid: bool
    message: str
    category: str
    severity: str
    rule_type: str


class ValidationSummaryDict(TypedDict):
    """Counts describing a whole-form validation run."""

    total_fields: int
    error_count: int
    warning_count: int
    blocking: bool
    by_category: dict[str, int]
    by_severity: dict[str, int]


class FieldStatsDict(TypedDict):
    """Per-field interaction statistics."""

    focus_count: int
    total_focus_ms: float
    average_focus_ms: float
    change_count: int
    has_value: bool
    visits: int


class StepStatsDict(TypedDict):
    """Per-step dwell statistics."""

    visits: int
    dwell_ms: float
    performance: str


class AnalyticsSummaryDict(TypedDict):
    """Summary returned by the analytics recorder."""

    session_id: str
    interaction_count: int
    session_duration_ms: float
    interaction_rate: float
    average_focus_ms: float
    behavior_pattern: str
    per_field_stats: dict[str, FieldStatsDict]
    per_step_stats: dict[str, StepStatsDict]
