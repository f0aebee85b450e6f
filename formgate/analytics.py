"""
Behavioral analytics for form sessions.

The recorder appends timestamped interaction events to a bounded log, keeps
running per-field and per-step aggregates, and derives pattern events
(hesitation, rapid completion, detailed review, repeated confirmation
failures). Behavior classification is recomputed on demand from the most
recent events.
"""

import dataclasses
import logging
from collections import Counter, deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import pairwise
from typing import Any

from formgate.config import EngineConfig
from formgate.constants import (
    LINEAR_SWITCH_RATIO,
    MIN_CLASSIFIABLE_INTERACTIONS,
    RANDOM_SWITCH_RATIO,
    REVIEWER_AVERAGE_REVISITS,
    RISK_CONFIRMATION_FAILURES_LIMIT,
    RISK_HESITATIONS_LIMIT,
    RISK_HIGH_SCORE,
    RISK_MEDIUM_SCORE,
    RISK_RAPID_STEPS_LIMIT,
    RISK_SUBMIT_ATTEMPTS_LIMIT,
)
from formgate.models import (
    AnalyticsSummaryDict,
    BehaviorPattern,
    EventType,
    FieldStatsDict,
    PatternType,
    RiskLevel,
    StepPerformance,
    StepStatsDict,
    is_empty,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InteractionEvent:
    """A single user interaction.

    Attributes:
        type: Kind of interaction
        timestamp: Clock time in milliseconds
        session_id: Session the event belongs to
        field: Field touched, for focus/blur/change events
        step: Step index, for step and submit events
        data: Extra JSON-serializable details
    """

    type: EventType
    timestamp: float
    session_id: str
    field: str | None = None
    step: int | None = None
    data: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "field": self.field,
            "step": self.step,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class PatternEvent:
    """A behavioral pattern derived from the interaction log."""

    pattern: PatternType
    timestamp: float
    step: int | None = None
    detail: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern.value,
            "timestamp": self.timestamp,
            "step": self.step,
            "detail": dict(self.detail),
        }


@dataclass
class FieldStats:
    """Running interaction statistics for one field."""

    focus_count: int = 0
    focus_sessions: int = 0
    total_focus_ms: float = 0.0
    change_count: int = 0
    has_value: bool = False
    visits: int = 0
    focus_started_at: float | None = None

    @property
    def average_focus_ms(self) -> float:
        if self.focus_sessions == 0:
            return 0.0
        return self.total_focus_ms / self.focus_sessions

    def to_dict(self) -> FieldStatsDict:
        return FieldStatsDict(
            focus_count=self.focus_count,
            total_focus_ms=self.total_focus_ms,
            average_focus_ms=self.average_focus_ms,
            change_count=self.change_count,
            has_value=self.has_value,
            visits=self.visits,
        )


@dataclass
class StepStats:
    """Running dwell statistics for one step."""

    visits: int = 0
    completed_visits: int = 0
    dwell_ms: float = 0.0
    entered_at: float | None = None

    def performance(self, rapid_ms: float, slow_ms: float) -> StepPerformance:
        if self.completed_visits == 0:
            return StepPerformance.NORMAL
        average = self.dwell_ms / self.completed_visits
        if average < rapid_ms:
            return StepPerformance.FAST
        if average > slow_ms:
            return StepPerformance.SLOW
        return StepPerformance.NORMAL


def classify_behavior(events: Sequence[InteractionEvent]) -> BehaviorPattern:
    """
    Classify an interaction sequence.

    Only field-touching events count. With fewer than five of them the
    sequence is linear. Otherwise, with ``n`` events, ``switches`` consecutive
    pairs on different fields and ``revisits`` the mean number of events per
    distinct field:

    - switches > 0.7n → random
    - revisits > 2 → reviewer
    - switches < 0.3n → linear
    - otherwise → focused
    """
    touching = [event for event in events if event.field and event.type.touches_field]
    if len(touching) < MIN_CLASSIFIABLE_INTERACTIONS:
        return BehaviorPattern.LINEAR

    count = len(touching)
    switches = sum(1 for before, after in pairwise(touching) if before.field != after.field)
    average_revisits = count / len({event.field for event in touching})

    if switches > RANDOM_SWITCH_RATIO * count:
        return BehaviorPattern.RANDOM
    if average_revisits > REVIEWER_AVERAGE_REVISITS:
        return BehaviorPattern.REVIEWER
    if switches < LINEAR_SWITCH_RATIO * count:
        return BehaviorPattern.LINEAR
    return BehaviorPattern.FOCUSED


class AnalyticsRecorder:
    """
    Purely additive interaction instrumentation for one session.

    Args:
        session_id: Identifier stamped on every event
        clock: Returns the current time in milliseconds
        config: Engine configuration (log bounds and timing thresholds)
        step_names: Names used to key per-step statistics
    """

    def __init__(
        self,
        session_id: str,
        clock: Callable[[], float],
        config: EngineConfig | None = None,
        step_names: Sequence[str] | None = None,
    ):
        self.session_id = session_id
        self._clock = clock
        self.config = config or EngineConfig()
        self.step_names = list(step_names or [])
        self.reset()

    def reset(self) -> None:
        """Discard every event and aggregate."""
        self._events: deque[InteractionEvent] = deque(maxlen=self.config.event_log_limit)
        self._patterns: deque[PatternEvent] = deque(maxlen=self.config.event_log_limit)
        self._type_counts: Counter[EventType] = Counter()
        self._pattern_counts: Counter[PatternType] = Counter()
        self._fields: dict[str, FieldStats] = {}
        self._steps: dict[int, StepStats] = {}
        self.started_at = self._clock()
        self.started_at_iso = datetime.now(timezone.utc).isoformat()
        self.last_interaction_at = self.started_at
        self.interaction_count = 0
        self.validation_error_count = 0
        self.confirmation_failures = 0
        self._hesitating = False

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(
        self,
        event_type: EventType | str,
        field: str | None = None,
        step: int | None = None,
        **data: Any,
    ) -> InteractionEvent:
        """Append an event and update running aggregates."""
        event = InteractionEvent(
            type=EventType(event_type),
            timestamp=self._clock(),
            session_id=self.session_id,
            field=field,
            step=step,
            data=data,
        )
        self._events.append(event)
        self.interaction_count += 1
        self._type_counts[event.type] += 1
        self.last_interaction_at = event.timestamp
        self._hesitating = False

        if event.field and event.type.touches_field:
            self._update_field(event)
        elif event.type in (EventType.STEP_ENTER, EventType.STEP_LEAVE) and event.step is not None:
            self._update_step(event)
        return event

    def _update_field(self, event: InteractionEvent) -> None:
        stats = self._fields.setdefault(event.field or "", FieldStats())
        stats.visits += 1
        if event.type == EventType.FOCUS:
            stats.focus_count += 1
            stats.focus_started_at = event.timestamp
        elif event.type == EventType.BLUR:
            if stats.focus_started_at is not None:
                stats.total_focus_ms += event.timestamp - stats.focus_started_at
                stats.focus_sessions += 1
                stats.focus_started_at = None
        elif event.type == EventType.CHANGE:
            stats.change_count += 1
            if "has_value" in event.data:
                stats.has_value = bool(event.data["has_value"])
            elif "value" in event.data:
                stats.has_value = not is_empty(event.data["value"])

    def _update_step(self, event: InteractionEvent) -> None:
        index = event.step if event.step is not None else 0
        stats = self._steps.setdefault(index, StepStats())
        if event.type == EventType.STEP_ENTER:
            stats.visits += 1
            stats.entered_at = event.timestamp
            return

        if stats.entered_at is None:
            return
        dwell = event.timestamp - stats.entered_at
        stats.dwell_ms += dwell
        stats.completed_visits += 1
        stats.entered_at = None

        # Only forward moves say anything about how carefully a step was read
        if not event.data.get("forward", True):
            return
        if dwell < self.config.rapid_step_ms:
            self._emit(PatternType.RAPID_COMPLETION, index, dwell_ms=dwell)
        elif dwell > self.config.detailed_review_ms:
            self._emit(PatternType.DETAILED_REVIEW, index, dwell_ms=dwell)

    def record_validation_errors(self, count: int) -> None:
        """Count validation errors surfaced to the user."""
        if count > 0:
            self.validation_error_count += count

    def record_confirmation_failure(self, step: int | None = None) -> None:
        """Count a failed security confirmation."""
        self.confirmation_failures += 1
        if self.confirmation_failures == RISK_CONFIRMATION_FAILURES_LIMIT + 1:
            self._emit(
                PatternType.MULTIPLE_CONFIRMATION_FAILURES,
                step,
                attempts=self.confirmation_failures,
            )

    def check_hesitation(self) -> PatternEvent | None:
        """
        Emit a hesitation pattern when the user has been idle too long.

        Emits at most once per idle period; the next recorded event starts a
        new period.
        """
        now = self._clock()
        idle = now - self.last_interaction_at
        if self._hesitating or idle <= self.config.hesitation_threshold_ms:
            return None
        self._hesitating = True
        return self._emit(PatternType.HESITATION, self._active_step(), idle_ms=idle)

    def _emit(self, pattern: PatternType, step: int | None, **detail: Any) -> PatternEvent:
        event = PatternEvent(pattern=pattern, timestamp=self._clock(), step=step, detail=detail)
        self._patterns.append(event)
        self._pattern_counts[pattern] += 1
        logger.debug(f"Session {self.session_id}: {pattern.value} detected")
        return event

    def _active_step(self) -> int | None:
        for index, stats in self._steps.items():
            if stats.entered_at is not None:
                return index
        return None

    # ------------------------------------------------------------------
    # Derived metrics
    # ------------------------------------------------------------------

    @property
    def events(self) -> list[InteractionEvent]:
        return list(self._events)

    @property
    def patterns(self) -> list[PatternEvent]:
        return list(self._patterns)

    @property
    def hesitation_count(self) -> int:
        return self._pattern_counts[PatternType.HESITATION]

    @property
    def session_duration_ms(self) -> float:
        return max(0.0, self._clock() - self.started_at)

    @property
    def interaction_rate(self) -> float:
        """Interactions per minute of session time."""
        minutes = self.session_duration_ms / 60_000
        if minutes <= 0:
            return 0.0
        return self.interaction_count / minutes

    @property
    def average_focus_ms(self) -> float:
        sessions = sum(stats.focus_sessions for stats in self._fields.values())
        if sessions == 0:
            return 0.0
        return sum(stats.total_focus_ms for stats in self._fields.values()) / sessions

    def behavior_pattern(self) -> BehaviorPattern:
        """Classify the most recent events."""
        window = list(self._events)[-self.config.sequence_limit:]
        return classify_behavior(window)

    def field_stats(self, field: str) -> FieldStatsDict:
        return self._fields.get(field, FieldStats()).to_dict()

    def _step_key(self, index: int) -> str:
        if 0 <= index < len(self.step_names):
            return self.step_names[index]
        return str(index)

    def step_stats(self) -> dict[str, StepStatsDict]:
        return {
            self._step_key(index): StepStatsDict(
                visits=stats.visits,
                dwell_ms=stats.dwell_ms,
                performance=stats.performance(
                    self.config.rapid_step_ms, self.config.slow_step_ms
                ).value,
            )
            for index, stats in sorted(self._steps.items())
        }

    def efficiency_score(self) -> float:
        """
        Score from 0 to 100 combining step speed and error rate.

        Each half is ``max(0, 100 - average_step_seconds * 2)`` and
        ``max(0, 100 - error_rate * 100)``; 100 when no step time exists yet.
        """
        visits = sum(stats.completed_visits for stats in self._steps.values())
        total_dwell = sum(stats.dwell_ms for stats in self._steps.values())
        if visits == 0 or total_dwell == 0:
            return 100.0
        average_seconds = total_dwell / visits / 1000
        changes = self._type_counts[EventType.CHANGE]
        error_rate = self.validation_error_count / max(1, changes)
        time_score = max(0.0, 100 - average_seconds * 2)
        error_score = max(0.0, 100 - error_rate * 100)
        return round((time_score + error_score) / 2, 1)

    def risk_assessment(self) -> dict[str, Any]:
        """Score the session for signs of careless or suspicious behavior."""
        score = 0
        factors: list[str] = []
        if self._type_counts[EventType.SUBMIT_ATTEMPT] > RISK_SUBMIT_ATTEMPTS_LIMIT:
            score += 30
            factors.append("repeated_submit_attempts")
        if any(pattern.is_suspicious for pattern in self._pattern_counts):
            score += 20
            factors.append("suspicious_patterns")
        if self._pattern_counts[PatternType.RAPID_COMPLETION] > RISK_RAPID_STEPS_LIMIT:
            score += 15
            factors.append("rapid_sequential_access")
        if self.hesitation_count > RISK_HESITATIONS_LIMIT:
            score += 10
            factors.append("frequent_hesitation")

        if score >= RISK_HIGH_SCORE:
            level = RiskLevel.HIGH
        elif score >= RISK_MEDIUM_SCORE:
            level = RiskLevel.MEDIUM
        else:
            level = RiskLevel.LOW
        return {"score": score, "level": level.value, "factors": factors}

    def get_summary(self) -> AnalyticsSummaryDict:
        return AnalyticsSummaryDict(
            session_id=self.session_id,
            interaction_count=self.interaction_count,
            session_duration_ms=self.session_duration_ms,
            interaction_rate=self.interaction_rate,
            average_focus_ms=self.average_focus_ms,
            behavior_pattern=self.behavior_pattern().value,
            per_field_stats={name: stats.to_dict() for name, stats in self._fields.items()},
            per_step_stats=self.step_stats(),
        )

    def export_summary(self) -> dict[str, Any]:
        """JSON-serializable export for downstream reporting."""
        return {
            "started_at": self.started_at_iso,
            "summary": dict(self.get_summary()),
            "event_counts": {event_type.value: count for event_type, count in self._type_counts.items()},
            "patterns": [pattern.to_dict() for pattern in self._patterns],
            "hesitation_count": self.hesitation_count,
            "validation_error_count": self.validation_error_count,
            "confirmation_failures": self.confirmation_failures,
            "efficiency_score": self.efficiency_score(),
            "risk": self.risk_assessment(),
        }
