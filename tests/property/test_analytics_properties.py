"""Property-based tests for behavior classification and session scoring."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from formgate.analytics import AnalyticsRecorder, InteractionEvent, classify_behavior
from formgate.constants import RISK_HIGH_SCORE, RISK_MEDIUM_SCORE
from formgate.models import BehaviorPattern, EventType
from formgate.scheduling import ManualScheduler

pytestmark = pytest.mark.property

FIELDS = ["reason", "confirmation", "password", "notes"]


def field_events(fields: list[str]) -> list[InteractionEvent]:
    return [
        InteractionEvent(type=EventType.CHANGE, timestamp=float(i), session_id="s", field=name)
        for i, name in enumerate(fields)
    ]


class TestClassificationProperties:
    """Property-based tests for classify_behavior."""

    @given(fields=st.lists(st.sampled_from(FIELDS), max_size=4))
    def test_short_sequences_are_linear(self, fields):
        """Fewer than five field interactions always classify as linear."""
        assert classify_behavior(field_events(fields)) == BehaviorPattern.LINEAR

    @given(fields=st.lists(st.sampled_from(FIELDS), max_size=40))
    def test_classification_is_deterministic(self, fields):
        """The same sequence always gets the same classification."""
        events = field_events(fields)

        assert classify_behavior(events) == classify_behavior(list(events))

    @given(count=st.integers(min_value=5, max_value=40))
    def test_alternating_fields_are_random(self, count):
        """Switching field on every event is random behavior."""
        fields = [FIELDS[i % 2] for i in range(count)]

        assert classify_behavior(field_events(fields)) == BehaviorPattern.RANDOM

    @given(count=st.integers(min_value=5, max_value=40), name=st.sampled_from(FIELDS))
    def test_single_field_is_reviewer(self, count, name):
        """Repeated edits to one field are reviewer behavior."""
        assert classify_behavior(field_events([name] * count)) == BehaviorPattern.REVIEWER

    @given(
        fields=st.lists(st.sampled_from(FIELDS), max_size=20),
        noise=st.lists(st.sampled_from([EventType.SUBMIT_ATTEMPT, EventType.CANCEL]), max_size=20),
    )
    def test_non_field_events_are_ignored(self, fields, noise):
        """Events not tied to a field never change the classification."""
        events = field_events(fields)
        extra = [InteractionEvent(type=kind, timestamp=0.0, session_id="s") for kind in noise]

        assert classify_behavior(events + extra) == classify_behavior(events)


recordings = st.lists(
    st.tuples(
        st.sampled_from(list(EventType)),
        st.one_of(st.none(), st.sampled_from(FIELDS)),
        st.integers(min_value=0, max_value=3),
        st.integers(min_value=0, max_value=90_000),
    ),
    max_size=40,
)


class TestScoringProperties:
    """Property-based tests for efficiency and risk scoring."""

    @given(steps=recordings, errors=st.integers(min_value=0, max_value=20))
    def test_scores_stay_in_bounds(self, steps, errors):
        """Efficiency stays within 0-100 and the risk level matches the score."""
        scheduler = ManualScheduler()
        recorder = AnalyticsRecorder("s", scheduler.now, step_names=["reason", "impact", "confirmation"])
        for event_type, name, step, wait in steps:
            scheduler.advance(wait)
            recorder.check_hesitation()
            recorder.record(event_type, field=name, step=step)
        recorder.record_validation_errors(errors)

        efficiency = recorder.efficiency_score()
        risk = recorder.risk_assessment()

        assert 0.0 <= efficiency <= 100.0
        if risk["score"] >= RISK_HIGH_SCORE:
            assert risk["level"] == "high"
        elif risk["score"] >= RISK_MEDIUM_SCORE:
            assert risk["level"] == "medium"
        else:
            assert risk["level"] == "low"
        assert (risk["score"] == 0) is (risk["factors"] == [])

    @given(steps=recordings)
    def test_event_log_is_bounded(self, steps):
        """The interaction count keeps growing while the log stays bounded."""
        scheduler = ManualScheduler()
        recorder = AnalyticsRecorder("s", scheduler.now)
        for event_type, name, step, _ in steps:
            recorder.record(event_type, field=name, step=step)

        assert recorder.interaction_count == len(steps)
        assert len(recorder.events) <= recorder.config.event_log_limit
