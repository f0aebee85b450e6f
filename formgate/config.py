# formgate/config.py
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TypedDict

from formgate.constants import (
    DEFAULT_AUTOSAVE_INTERVAL_MS,
    DEFAULT_AUTOSAVE_MAX_AGE_HOURS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_DETAILED_REVIEW_MS,
    DEFAULT_EVENT_LOG_LIMIT,
    DEFAULT_HESITATION_THRESHOLD_MS,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_METRICS_LIMIT,
    DEFAULT_RAPID_STEP_MS,
    DEFAULT_SEQUENCE_LIMIT,
    DEFAULT_SLOW_STEP_MS,
    ENV_AUTOSAVE_DIR,
    ENV_AUTOSAVE_INTERVAL_MS,
    ENV_AUTOSAVE_MAX_AGE_HOURS,
    ENV_CACHE_MAX_ENTRIES,
    ENV_DEBOUNCE_MS,
    ENV_DETAILED_REVIEW_MS,
    ENV_EVENT_LOG_LIMIT,
    ENV_HESITATION_THRESHOLD_MS,
    ENV_HISTORY_LIMIT,
    ENV_METRICS_LIMIT,
    ENV_RAPID_STEP_MS,
    ENV_SEQUENCE_LIMIT,
    ENV_SLOW_STEP_MS,
    get_env_int,
    get_env_str,
)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


class EngineConfigDict(TypedDict, total=False):
    """TypedDict for engine configuration dictionary"""
    debounce_ms: int
    cache_max_entries: int
    history_limit: int
    metrics_limit: int
    event_log_limit: int
    sequence_limit: int
    hesitation_threshold_ms: int
    rapid_step_ms: int
    detailed_review_ms: int
    slow_step_ms: int
    autosave_interval_ms: int
    autosave_max_age_hours: int
    autosave_dir: str | None


@dataclass(frozen=True)
class EngineConfig:
    """Timing thresholds and bounds shared by one session's components"""

    # Validation
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    history_limit: int = DEFAULT_HISTORY_LIMIT
    metrics_limit: int = DEFAULT_METRICS_LIMIT

    # Analytics
    event_log_limit: int = DEFAULT_EVENT_LOG_LIMIT
    sequence_limit: int = DEFAULT_SEQUENCE_LIMIT
    hesitation_threshold_ms: int = DEFAULT_HESITATION_THRESHOLD_MS
    rapid_step_ms: int = DEFAULT_RAPID_STEP_MS
    detailed_review_ms: int = DEFAULT_DETAILED_REVIEW_MS
    slow_step_ms: int = DEFAULT_SLOW_STEP_MS

    # Auto-save
    autosave_interval_ms: int = DEFAULT_AUTOSAVE_INTERVAL_MS
    autosave_max_age_hours: int = DEFAULT_AUTOSAVE_MAX_AGE_HOURS
    autosave_dir: Path | None = None

    def __post_init__(self):
        """Validate configuration after initialization"""
        self._validate_config()

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Create configuration from FORMGATE_* environment variables"""
        autosave_dir = get_env_str(ENV_AUTOSAVE_DIR, None)
        return cls(
            debounce_ms=get_env_int(ENV_DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS),
            cache_max_entries=get_env_int(ENV_CACHE_MAX_ENTRIES, DEFAULT_CACHE_MAX_ENTRIES),
            history_limit=get_env_int(ENV_HISTORY_LIMIT, DEFAULT_HISTORY_LIMIT),
            metrics_limit=get_env_int(ENV_METRICS_LIMIT, DEFAULT_METRICS_LIMIT),
            event_log_limit=get_env_int(ENV_EVENT_LOG_LIMIT, DEFAULT_EVENT_LOG_LIMIT),
            sequence_limit=get_env_int(ENV_SEQUENCE_LIMIT, DEFAULT_SEQUENCE_LIMIT),
            hesitation_threshold_ms=get_env_int(ENV_HESITATION_THRESHOLD_MS, DEFAULT_HESITATION_THRESHOLD_MS),
            rapid_step_ms=get_env_int(ENV_RAPID_STEP_MS, DEFAULT_RAPID_STEP_MS),
            detailed_review_ms=get_env_int(ENV_DETAILED_REVIEW_MS, DEFAULT_DETAILED_REVIEW_MS),
            slow_step_ms=get_env_int(ENV_SLOW_STEP_MS, DEFAULT_SLOW_STEP_MS),
            autosave_interval_ms=get_env_int(ENV_AUTOSAVE_INTERVAL_MS, DEFAULT_AUTOSAVE_INTERVAL_MS),
            autosave_max_age_hours=get_env_int(ENV_AUTOSAVE_MAX_AGE_HOURS, DEFAULT_AUTOSAVE_MAX_AGE_HOURS),
            autosave_dir=Path(autosave_dir).expanduser() if autosave_dir else None,
        )

    @classmethod
    def from_dict(cls, config_dict: EngineConfigDict) -> 'EngineConfig':
        """Create configuration from typed dictionary"""
        known = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigValidationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        values = dict(config_dict)
        for name, value in values.items():
            if name == 'autosave_dir':
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigValidationError(f"{name} must be an integer, got {value!r}")

        autosave_dir = values.pop('autosave_dir', None)
        return cls(
            autosave_dir=Path(autosave_dir).expanduser() if autosave_dir else None,
            **values,  # type: ignore[arg-type]
        )

    def _validate_config(self) -> None:
        """Validate configuration values"""
        if self.debounce_ms < 0:
            raise ConfigValidationError("debounce_ms must be non-negative")

        if self.cache_max_entries < 2:
            raise ConfigValidationError("cache_max_entries must be at least 2")

        for name in ('history_limit', 'metrics_limit', 'event_log_limit', 'sequence_limit'):
            if getattr(self, name) < 1:
                raise ConfigValidationError(f"{name} must be positive")

        if self.sequence_limit > self.event_log_limit:
            raise ConfigValidationError("sequence_limit cannot exceed event_log_limit")

        if self.rapid_step_ms >= self.detailed_review_ms:
            raise ConfigValidationError("rapid_step_ms must be below detailed_review_ms")

        if self.hesitation_threshold_ms <= 0 or self.autosave_interval_ms <= 0:
            raise ConfigValidationError("Timer intervals must be positive")

        if self.autosave_max_age_hours <= 0:
            raise ConfigValidationError("autosave_max_age_hours must be positive")

    @property
    def autosave_max_age_ms(self) -> int:
        return self.autosave_max_age_hours * 3600 * 1000

    def to_dict(self) -> EngineConfigDict:
        """Convert configuration to typed dictionary"""
        return EngineConfigDict(
            debounce_ms=self.debounce_ms,
            cache_max_entries=self.cache_max_entries,
            history_limit=self.history_limit,
            metrics_limit=self.metrics_limit,
            event_log_limit=self.event_log_limit,
            sequence_limit=self.sequence_limit,
            hesitation_threshold_ms=self.hesitation_threshold_ms,
            rapid_step_ms=self.rapid_step_ms,
            detailed_review_ms=self.detailed_review_ms,
            slow_step_ms=self.slow_step_ms,
            autosave_interval_ms=self.autosave_interval_ms,
            autosave_max_age_hours=self.autosave_max_age_hours,
            autosave_dir=str(self.autosave_dir) if self.autosave_dir else None,
        )

    def __str__(self) -> str:
        return f"EngineConfig(debounce_ms={self.debounce_ms}, cache_max_entries={self.cache_max_entries})"


# Environment variable reference:
# FORMGATE_DEBOUNCE_MS - Debounce window for edit-triggered validation (default: 300)
# FORMGATE_CACHE_MAX_ENTRIES - Validation cache ceiling (default: 100)
# FORMGATE_EVENT_LOG_LIMIT - Interaction events kept in memory (default: 100)
# FORMGATE_AUTOSAVE_INTERVAL_MS - Auto-save timer interval (default: 5000)
# FORMGATE_AUTOSAVE_MAX_AGE_HOURS - Draft staleness window (default: 24)
# FORMGATE_AUTOSAVE_DIR - Directory for file-based session drafts (default: unset, no auto-save)
