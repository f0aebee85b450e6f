"""
formgate models package.

This package is the single source of truth for the enums, typed dictionaries
and definition schemas used throughout formgate.

Usage:
    from formgate.models import (
        ErrorCategory,
        ErrorSeverity,
        RuleType,
        FormDefinitionDict,
    )
"""

from .base import (
    AnalyticsSummaryDict,
    ConditionalRuleDict,
    FieldStatsDict,
    FormDefinitionDict,
    OutcomeDict,
    RequiredIfDict,
    RuleDefinition,
    RuleDefinitionDict,
    RuleMetaData,
    RuleType,
    StepDefinitionDict,
    StepStatsDict,
    ValidationSummaryDict,
    is_empty,
    is_number,
    time_to_minutes,
)
from .definitions import FormDefinitionModel, StepModel
from .enums import (
    BehaviorPattern,
    ErrorCategory,
    ErrorSeverity,
    EventType,
    FileFormat,
    LoadErrorType,
    LoadResultStatus,
    PatternType,
    RiskLevel,
    SpecialRuleType,
    StepPerformance,
    SubmissionErrorKind,
)
from .errors import FormLoadResult, FormLoadResultDict, LoadError

__all__ = [
    # Enums
    "BehaviorPattern",
    "ErrorCategory",
    "ErrorSeverity",
    "EventType",
    "FileFormat",
    "LoadErrorType",
    "LoadResultStatus",
    "PatternType",
    "RiskLevel",
    "SpecialRuleType",
    "StepPerformance",
    "SubmissionErrorKind",
    # Rule types
    "RuleType",
    "RuleMetaData",
    "RuleDefinition",
    "RuleDefinitionDict",
    "RequiredIfDict",
    "ConditionalRuleDict",
    # Definitions
    "StepDefinitionDict",
    "FormDefinitionDict",
    "FormDefinitionModel",
    "StepModel",
    # Results
    "OutcomeDict",
    "ValidationSummaryDict",
    "FieldStatsDict",
    "StepStatsDict",
    "AnalyticsSummaryDict",
    "LoadError",
    "FormLoadResult",
    "FormLoadResultDict",
    # Helpers
    "is_empty",
    "is_number",
    "time_to_minutes",
]
