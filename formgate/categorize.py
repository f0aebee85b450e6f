"""
Error categorization and remediation suggestions.

Rules tag their own category and severity, so the message-based helpers here
are only used for errors that formgate does not produce itself, such as
failures relayed from a submit handler.
"""

import re

from formgate.models import ErrorCategory, ErrorSeverity, SubmissionErrorKind

_TIME_FIELD = re.compile(r"time|start|end|hour|date", re.IGNORECASE)
_ORDERING = re.compile(r"\b(after|before|later|earlier|exceed)", re.IGNORECASE)

# (pattern on message, category, severity), first match wins
_MESSAGE_RULES: list[tuple[re.Pattern[str], ErrorCategory, ErrorSeverity]] = [
    (re.compile(r"required|missing", re.IGNORECASE), ErrorCategory.REQUIRED, ErrorSeverity.HIGH),
    (re.compile(r"permission|confirm|password|unauthori[sz]ed", re.IGNORECASE), ErrorCategory.SECURITY, ErrorSeverity.CRITICAL),
    (re.compile(r"format|invalid|valid \w+ in", re.IGNORECASE), ErrorCategory.FORMAT, ErrorSeverity.MEDIUM),
    (re.compile(r"depend|only when|required for", re.IGNORECASE), ErrorCategory.DEPENDENCY, ErrorSeverity.MEDIUM),
]


def categorize_error(field: str, message: str) -> tuple[ErrorCategory, ErrorSeverity]:
    """
    Infer category and severity from an error's field and message.

    Args:
        field: Field the error was reported under
        message: Error message text

    Returns:
        Tuple of (category, severity); unknown shapes map to business_rule/medium
    """
    if _TIME_FIELD.search(field or "") and _ORDERING.search(message or ""):
        return ErrorCategory.TIMING, ErrorSeverity.HIGH
    for pattern, category, severity in _MESSAGE_RULES:
        if pattern.search(message or ""):
            return category, severity
    return ErrorCategory.BUSINESS_RULE, ErrorSeverity.MEDIUM


def classify_submission_error(message: str) -> SubmissionErrorKind:
    """Map a submit handler failure message to a distinguished error kind."""
    text = (message or "").lower()
    if "network" in text or "connection" in text or "timeout" in text:
        return SubmissionErrorKind.NETWORK
    if "validation" in text or "invalid" in text:
        return SubmissionErrorKind.VALIDATION
    if "server" in text or "500" in text:
        return SubmissionErrorKind.SERVER
    if "permission" in text or "forbidden" in text or "unauthorized" in text:
        return SubmissionErrorKind.PERMISSION
    return SubmissionErrorKind.UNKNOWN


SUBMISSION_MESSAGES: dict[SubmissionErrorKind, str] = {
    SubmissionErrorKind.NETWORK: "Network error. Please check your connection and try again.",
    SubmissionErrorKind.VALIDATION: "Please correct the validation errors before submitting.",
    SubmissionErrorKind.SERVER: "Server error. Please try again later.",
    SubmissionErrorKind.PERMISSION: "You do not have permission to perform this action.",
    SubmissionErrorKind.IN_PROGRESS: "A submission is already in progress.",
    SubmissionErrorKind.UNKNOWN: "Failed to save. Please try again.",
}


FIELD_SUGGESTIONS: dict[tuple[str, ErrorCategory], list[str]] = {
    ("office_end_time", ErrorCategory.TIMING): [
        "Ensure office end time is after start time",
        "Check if the time format is correct (HH:MM)",
    ],
    ("location_radius", ErrorCategory.DEPENDENCY): [
        "Location radius is needed for location-based validation",
        "Consider using a radius between 100-500 meters for office areas",
    ],
    ("allowed_ips", ErrorCategory.DEPENDENCY): [
        "IP addresses are needed for IP-based validation",
        "Enter comma-separated IP addresses (e.g., 192.168.1.1, 10.0.0.1)",
    ],
    ("break_time_duration", ErrorCategory.TIMING): [
        "Break time must be shorter than the working day",
        "Adjust office hours or reduce the break duration",
    ],
    ("weekend_days", ErrorCategory.BUSINESS_RULE): [
        "Select between one and three weekend days",
    ],
    ("confirmation", ErrorCategory.SECURITY): [
        "Type the confirmation text exactly as shown, including capitalization",
    ],
    ("reason", ErrorCategory.DEPENDENCY): [
        "A reason is required when deleting an approved leave",
    ],
}

CATEGORY_SUGGESTIONS: dict[ErrorCategory, list[str]] = {
    ErrorCategory.REQUIRED: [
        "This field must be filled in before continuing",
    ],
    ErrorCategory.FORMAT: [
        "Check the format of the entered value",
        "Refer to the field help text for correct format",
    ],
    ErrorCategory.BUSINESS_RULE: [
        "Adjust the value to fall within the allowed limits",
    ],
    ErrorCategory.DEPENDENCY: [
        "This field is required by another setting on the form",
    ],
    ErrorCategory.TIMING: [
        "Check that the times are in the correct order",
    ],
    ErrorCategory.SECURITY: [
        "Complete the security confirmation to continue",
    ],
}


def get_suggestions(field: str, category: ErrorCategory | None) -> list[str]:
    """Ordered remediation suggestions for an error on ``field``."""
    if category is None:
        return []
    specific = FIELD_SUGGESTIONS.get((field, category))
    if specific is not None:
        return list(specific)
    return list(CATEGORY_SUGGESTIONS.get(category, []))
