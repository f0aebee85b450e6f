"""
Error models and result structures for form definition loading.

Note: This module must NOT import from any formgate modules except .enums
to maintain a clean vertical hierarchy and avoid circular imports.
"""

from dataclasses import dataclass, field
from typing import Any, TypedDict

from .enums import LoadErrorType, LoadResultStatus


@dataclass(frozen=True)
class LoadError:
    """Structured error information from definition loading.

    Attributes:
        error_type: Categorized error type
        message: Human-readable error description
        context: Additional context information (field, path, line)
    """

    error_type: LoadErrorType
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "context": dict(self.context),
        }


class FormLoadResultDict(TypedDict):
    """JSON-serializable dictionary format for FormLoadResult."""

    status: str
    form: dict[str, Any] | None
    errors: list[dict[str, Any]]
    source: str


@dataclass(frozen=True)
class FormLoadResult:
    """Result object for form definition loading.

    Attributes:
        status: Overall load operation status
        definition: Loaded FormDefinition (None if loading failed)
        errors: Errors encountered while loading
        source: Source identifier (file path or built-in name)
    """

    status: LoadResultStatus
    definition: Any | None  # FormDefinition, kept as Any to avoid circular import
    errors: list[LoadError] = field(default_factory=list)
    source: str = ""

    @property
    def success(self) -> bool:
        """Check if load was successful (definition created)."""
        return self.status == LoadResultStatus.SUCCESS and self.definition is not None

    @property
    def error_count(self) -> int:
        """Total number of errors."""
        return len(self.errors)

    def to_dict(self) -> FormLoadResultDict:
        """Convert result to JSON-serializable dictionary."""
        return FormLoadResultDict(
            status=self.status.value,
            form=self.definition.to_dict() if self.definition else None,
            errors=[error.to_dict() for error in self.errors],
            source=self.source,
        )

    def get_error_summary(self) -> str:
        """Get a human-readable summary of the load outcome."""
        if self.success:
            return f"Form loaded from {self.source}"

        header = f"Failed to load form from {self.source} ({self.status.value}, {self.error_count} error(s))"
        details = [
            f"- [{error.error_type.value}] {error.message}"
            + "".join(f"\n    {key}: {value}" for key, value in error.context.items())
            for error in self.errors
        ]
        return "\n".join([header, *details])
