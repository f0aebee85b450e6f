"""Common exceptions for the formgate engine.

This module defines the exception types raised by formgate so that callers
can tell definition problems, navigation refusals and lifecycle misuse apart.
"""

from typing import Any


class FormGateError(Exception):
    """Base exception for all formgate errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        """Initialize exception with message and optional context."""
        super().__init__(message)
        self.context = context or {}


class RuleDefinitionError(FormGateError, ValueError):
    """Raised when a rule definition cannot be turned into a rule."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        rule_type: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize rule definition error with details."""
        super().__init__(message, context)
        self.field_name = field_name
        self.rule_type = rule_type


class StepNotReady(FormGateError):
    """Raised when navigation would skip a step that has not been completed."""

    def __init__(
        self,
        message: str,
        target_step: int,
        incomplete_steps: list[int] | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize step error with the requested target and blocking steps."""
        super().__init__(message, context)
        self.target_step = target_step
        self.incomplete_steps = incomplete_steps or []


class SessionClosedError(FormGateError):
    """Raised when an operation is attempted on a disposed session."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize session error with the session identifier."""
        super().__init__(message, context)
        self.session_id = session_id


class LoaderError(FormGateError):
    """Raised when a form definition cannot be loaded."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        line_number: int | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize loader error with details."""
        super().__init__(message, context)
        self.file_path = file_path
        self.line_number = line_number


class SubmissionError(FormGateError):
    """Raised by submit handlers to relay a rejected submission.

    ``field_errors`` maps field names to messages reported by the backend;
    they are categorized from their text because no rule produced them.
    """

    def __init__(
        self,
        message: str,
        field_errors: dict[str, str] | None = None,
        context: dict[str, Any] | None = None
    ):
        """Initialize submission error with backend field errors."""
        super().__init__(message, context)
        self.field_errors = field_errors or {}


__all__ = [
    'FormGateError',
    'RuleDefinitionError',
    'StepNotReady',
    'SessionClosedError',
    'LoaderError',
    'SubmissionError',
]
