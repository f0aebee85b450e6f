"""Property-based tests for Validator.

Key properties tested:
- Validation is deterministic and served from the cache on repeat
- In-range attendance values always validate
- Out-of-range minute thresholds always fail with the range message
- Edits to unrelated fields never change a cached outcome
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from formgate.forms import attendance_settings
from formgate.snapshot import FormSnapshot
from formgate.validator import Validator

pytestmark = pytest.mark.property

FORM = attendance_settings.build_form()


def fresh_validator() -> Validator:
    return Validator(FORM.rule_set, FORM.step_fields)


def snapshot(**overrides) -> FormSnapshot:
    return FormSnapshot(FORM.initial_data(overrides))


@st.composite
def office_hours(draw) -> dict:
    """Start and end times giving between 5 and 11 working hours after a one-hour break."""
    start = draw(st.integers(min_value=6, max_value=10))
    length = draw(st.integers(min_value=6, max_value=12))
    minutes = draw(st.sampled_from([0, 15, 30, 45]))
    return {
        "office_start_time": f"{start:02d}:{minutes:02d}",
        "office_end_time": f"{start + length:02d}:{minutes:02d}",
        "break_time_duration": 60,
    }


class TestValidatorProperties:
    """Property-based tests for validation behavior."""

    @given(hours=office_hours())
    def test_reasonable_office_hours_validate(self, hours):
        """Any working day inside the limits passes whole-form validation."""
        result = fresh_validator().validate_form(snapshot(**hours))

        assert result.is_valid is True
        assert result.errors == {}

    @given(minutes=st.integers(min_value=0, max_value=120))
    def test_late_mark_in_range(self, minutes):
        """Late mark thresholds between 0 and 120 minutes are accepted."""
        outcome = fresh_validator().validate_field("late_mark_after", minutes, snapshot())

        assert outcome.is_valid is True

    @given(minutes=st.one_of(st.integers(max_value=-1), st.integers(min_value=121)))
    def test_late_mark_out_of_range(self, minutes):
        """Thresholds outside 0-120 minutes fail with the range message."""
        outcome = fresh_validator().validate_field("late_mark_after", minutes, snapshot())

        assert outcome.is_valid is False
        assert outcome.message == "Late mark threshold must be between 0 and 120 minutes"

    @given(field=st.sampled_from(FORM.rule_set.fields), hours=office_hours())
    def test_repeat_validation_hits_cache(self, field, hours):
        """Validating the same value twice returns an equal outcome without rerunning rules."""
        validator = fresh_validator()
        snap = snapshot(**hours)
        value = snap.get_property(field)

        first = validator.validate_field(field, value, snap)
        runs = validator.run_count
        second = validator.validate_field(field, value, snap)

        assert second == first
        assert validator.run_count == runs

    @given(radius=st.integers(min_value=-10_000, max_value=10_000))
    def test_unrelated_edits_keep_outcome(self, radius):
        """Changing a field outside the rule's reads never changes the outcome."""
        validator = fresh_validator()
        base = snapshot()

        before = validator.validate_field("late_mark_after", 15, base)
        after = validator.validate_field("late_mark_after", 15, base.with_overrides({"location_radius": radius}))

        assert after == before
