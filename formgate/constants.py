"""Constants and default values for formgate engine configuration.

This module centralizes the timing thresholds, bounds and environment variable
names used by the validator, analytics recorder and session controller.
"""

import os
from typing import Final

# =============================================================================
# Environment Variable Names
# =============================================================================

ENV_VAR_PREFIX: Final[str] = "FORMGATE_"

# Validation settings
ENV_DEBOUNCE_MS: Final[str] = f"{ENV_VAR_PREFIX}DEBOUNCE_MS"
ENV_CACHE_MAX_ENTRIES: Final[str] = f"{ENV_VAR_PREFIX}CACHE_MAX_ENTRIES"
ENV_HISTORY_LIMIT: Final[str] = f"{ENV_VAR_PREFIX}HISTORY_LIMIT"
ENV_METRICS_LIMIT: Final[str] = f"{ENV_VAR_PREFIX}METRICS_LIMIT"

# Analytics settings
ENV_EVENT_LOG_LIMIT: Final[str] = f"{ENV_VAR_PREFIX}EVENT_LOG_LIMIT"
ENV_SEQUENCE_LIMIT: Final[str] = f"{ENV_VAR_PREFIX}SEQUENCE_LIMIT"
ENV_HESITATION_THRESHOLD_MS: Final[str] = f"{ENV_VAR_PREFIX}HESITATION_THRESHOLD_MS"
ENV_RAPID_STEP_MS: Final[str] = f"{ENV_VAR_PREFIX}RAPID_STEP_MS"
ENV_DETAILED_REVIEW_MS: Final[str] = f"{ENV_VAR_PREFIX}DETAILED_REVIEW_MS"
ENV_SLOW_STEP_MS: Final[str] = f"{ENV_VAR_PREFIX}SLOW_STEP_MS"

# Auto-save settings
ENV_AUTOSAVE_INTERVAL_MS: Final[str] = f"{ENV_VAR_PREFIX}AUTOSAVE_INTERVAL_MS"
ENV_AUTOSAVE_MAX_AGE_HOURS: Final[str] = f"{ENV_VAR_PREFIX}AUTOSAVE_MAX_AGE_HOURS"
ENV_AUTOSAVE_DIR: Final[str] = f"{ENV_VAR_PREFIX}AUTOSAVE_DIR"


# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_DEBOUNCE_MS: Final[int] = 300
DEFAULT_CACHE_MAX_ENTRIES: Final[int] = 100
DEFAULT_HISTORY_LIMIT: Final[int] = 10
DEFAULT_METRICS_LIMIT: Final[int] = 50

DEFAULT_EVENT_LOG_LIMIT: Final[int] = 100
DEFAULT_SEQUENCE_LIMIT: Final[int] = 50
DEFAULT_HESITATION_THRESHOLD_MS: Final[int] = 30_000
DEFAULT_RAPID_STEP_MS: Final[int] = 5_000
DEFAULT_DETAILED_REVIEW_MS: Final[int] = 120_000
DEFAULT_SLOW_STEP_MS: Final[int] = 60_000

DEFAULT_AUTOSAVE_INTERVAL_MS: Final[int] = 5_000
DEFAULT_AUTOSAVE_MAX_AGE_HOURS: Final[int] = 24


# =============================================================================
# Behavior Classification Thresholds
# =============================================================================

MIN_CLASSIFIABLE_INTERACTIONS: Final[int] = 5
RANDOM_SWITCH_RATIO: Final[float] = 0.7
LINEAR_SWITCH_RATIO: Final[float] = 0.3
# Tunable; kept at 2 for compatibility with existing reports
REVIEWER_AVERAGE_REVISITS: Final[float] = 2.0


# =============================================================================
# Risk Scoring
# =============================================================================

RISK_SUBMIT_ATTEMPTS_LIMIT: Final[int] = 2
RISK_RAPID_STEPS_LIMIT: Final[int] = 1
RISK_HESITATIONS_LIMIT: Final[int] = 3
RISK_CONFIRMATION_FAILURES_LIMIT: Final[int] = 2
RISK_HIGH_SCORE: Final[int] = 50
RISK_MEDIUM_SCORE: Final[int] = 25


# =============================================================================
# Helper Functions
# =============================================================================


def get_env_int(env_var: str, default: int) -> int:
    """
    Get integer value from environment variable.

    Args:
        env_var: Environment variable name
        default: Default value if not set

    Returns:
        Integer value from environment or default
    """
    try:
        return int(os.getenv(env_var, str(default)))
    except ValueError:
        return default


def get_env_str(env_var: str, default: str | None) -> str | None:
    """Get string value from environment variable."""
    return os.getenv(env_var, default)
