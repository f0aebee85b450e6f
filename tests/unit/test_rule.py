"""Unit tests for the formgate.rule module and the RuleType registry.

Covers built-in predicates, default category/severity tags, the rule factory
shorthands (string, required_if, conditional) and RuleSet ordering.
"""

import pytest

from formgate.exceptions import RuleDefinitionError
from formgate.models import ErrorCategory, ErrorSeverity, RuleType
from formgate.rule import (
    ConditionalRule,
    FieldRule,
    PredicateRule,
    RuleFactory,
    RuleSet,
    ValidationOutcome,
)
from formgate.snapshot import FormSnapshot


class TestRuleTypeValidation:
    """Test suite for RuleType.validate predicates."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_required_rejects_empty_values(self, value):
        """Verify REQUIRED fails for None, blank strings and empty collections."""
        assert RuleType.REQUIRED.validate(value, {}) is False

    @pytest.mark.parametrize("value", [0, False, "x", ["a"]])
    def test_required_accepts_falsy_but_present_values(self, value):
        """Verify REQUIRED treats 0 and False as provided."""
        assert RuleType.REQUIRED.validate(value, {}) is True

    def test_equals_is_case_sensitive(self):
        """Verify EQUALS compares strings exactly."""
        meta = {"expected_value": "DELETE"}

        assert RuleType.EQUALS.validate("DELETE", meta) is True
        assert RuleType.EQUALS.validate("delete", meta) is False
        assert RuleType.EQUALS.validate("DELETE ", meta) is False

    def test_is_true_requires_boolean_true(self):
        """Verify IS_TRUE does not accept truthy non-bool values."""
        assert RuleType.IS_TRUE.validate(True, {}) is True
        assert RuleType.IS_TRUE.validate(1, {}) is False
        assert RuleType.IS_TRUE.validate("yes", {}) is False

    @pytest.mark.parametrize("value,expected", [
        ("09:00", True),
        ("9:30", True),
        ("23:59", True),
        ("24:00", False),
        ("12:60", False),
        ("noon", False),
        ("", True),
    ])
    def test_time_format(self, value, expected):
        """Verify TIME_FORMAT accepts 24h HH:MM and leaves empty values alone."""
        assert RuleType.TIME_FORMAT.validate(value, {}) is expected

    @pytest.mark.parametrize("value,expected", [
        ("192.168.1.1", True),
        ("192.168.1.1, 10.0.0.1", True),
        ("999.1.1.1", True),
        ("192.168.1", False),
        ("192.168.1.1,,", False),
        ("", True),
    ])
    def test_ip_list(self, value, expected):
        """Verify IP_LIST checks the dotted-quad shape of each entry."""
        assert RuleType.IP_LIST.validate(value, {}) is expected

    def test_integer_rejects_bool_and_fractions(self):
        """Verify INTEGER accepts whole numbers only."""
        assert RuleType.INTEGER.validate(5, {}) is True
        assert RuleType.INTEGER.validate(5.0, {}) is True
        assert RuleType.INTEGER.validate(5.5, {}) is False
        assert RuleType.INTEGER.validate(True, {}) is False
        assert RuleType.INTEGER.validate("5", {}) is False

    def test_range_is_inclusive(self):
        """Verify RANGE includes both bounds."""
        meta = {"min_value": 15, "max_value": 480}

        assert RuleType.RANGE.validate(15, meta) is True
        assert RuleType.RANGE.validate(480, meta) is True
        assert RuleType.RANGE.validate(14, meta) is False
        assert RuleType.RANGE.validate("20", meta) is False

    def test_count_range_fails_for_non_lists(self):
        """Verify COUNT_RANGE counts selections and rejects scalars."""
        meta = {"min_value": 1, "max_value": 3}

        assert RuleType.COUNT_RANGE.validate(["saturday"], meta) is True
        assert RuleType.COUNT_RANGE.validate([], meta) is False
        assert RuleType.COUNT_RANGE.validate(["a", "b", "c", "d"], meta) is False
        assert RuleType.COUNT_RANGE.validate("saturday", meta) is False

    def test_time_after_reads_other_field(self):
        """Verify TIME_AFTER compares against the field named by expected_value."""
        meta = {"expected_value": "start"}
        snapshot = FormSnapshot({"start": "09:00"})

        assert RuleType.TIME_AFTER.validate("17:00", meta, snapshot) is True
        assert RuleType.TIME_AFTER.validate("09:00", meta, snapshot) is False
        assert RuleType.TIME_AFTER.validate("08:00", meta, snapshot) is False

    def test_cross_field_rules_pass_on_malformed_inputs(self):
        """Verify cross-field rules leave malformed times to format rules."""
        meta = {"expected_value": "start"}

        assert RuleType.TIME_AFTER.validate("17:00", meta, FormSnapshot({"start": "9am"})) is True
        assert RuleType.TIME_AFTER.validate("late", meta, FormSnapshot({"start": "09:00"})) is True

    def test_span_hours_deducts_break(self):
        """Verify SPAN_HOURS subtracts the deduct field minutes."""
        meta = {"start_field": "start", "deduct_field": "break", "min_value": 4, "max_value": 16}

        assert RuleType.SPAN_HOURS.validate("18:00", meta, FormSnapshot({"start": "09:00", "break": 60})) is True
        assert RuleType.SPAN_HOURS.validate("13:00", meta, FormSnapshot({"start": "09:00", "break": 60})) is False

    def test_within_span_is_strict(self):
        """Verify WITHIN_SPAN requires minutes strictly inside the span."""
        meta = {"start_field": "start", "end_field": "end"}
        snapshot = FormSnapshot({"start": "09:00", "end": "10:00"})

        assert RuleType.WITHIN_SPAN.validate(59, meta, snapshot) is True
        assert RuleType.WITHIN_SPAN.validate(60, meta, snapshot) is False

    def test_reads_include_related_fields(self):
        """Verify cross-field types report every field they inspect."""
        assert RuleType.TIME_AFTER.reads("end", {"expected_value": "start"}) == {"end", "start"}
        assert RuleType.WITHIN_SPAN.reads("brk", {"start_field": "s", "end_field": "e"}) == {"brk", "s", "e"}
        assert RuleType.REQUIRED.reads("name", {}) == {"name"}


class TestValidationOutcome:
    """Test suite for ValidationOutcome."""

    def test_failed_outcome_requires_message(self):
        """Verify a failed outcome cannot be built without a message."""
        with pytest.raises(ValueError, match="must carry a message"):
            ValidationOutcome(is_valid=False, field="name")

    def test_low_severity_does_not_block(self):
        """Verify only non-low severities block submission."""
        warning = ValidationOutcome(False, "note", "Too long", severity=ErrorSeverity.LOW)
        error = ValidationOutcome(False, "note", "Too long", severity=ErrorSeverity.MEDIUM)

        assert warning.blocks_submission is False
        assert error.blocks_submission is True
        assert ValidationOutcome.ok("note").blocks_submission is False

    def test_to_dict_uses_enum_values(self):
        """Verify serialization renders enums as strings."""
        outcome = ValidationOutcome(
            False, "end", "Too early",
            category=ErrorCategory.TIMING,
            severity=ErrorSeverity.HIGH,
            rule_type=RuleType.TIME_AFTER,
        )

        assert outcome.to_dict() == {
            "field": "end",
            "is_valid": False,
            "message": "Too early",
            "category": "timing",
            "severity": "high",
            "rule_type": "time_after",
        }


class TestFieldRule:
    """Test suite for FieldRule construction and evaluation."""

    def test_default_tags_come_from_rule_type(self):
        """Verify omitted category/severity fall back to the type defaults."""
        rule = FieldRule({"type": "required", "field": "name"})

        assert rule.category == ErrorCategory.REQUIRED
        assert rule.severity == ErrorSeverity.HIGH

    def test_definition_tags_override_defaults(self):
        """Verify tags set at the definition site win."""
        rule = FieldRule({"type": "required", "field": "reason", "category": "dependency", "severity": "low"})

        outcome = rule.validate("", FormSnapshot())

        assert outcome.category == ErrorCategory.DEPENDENCY
        assert outcome.severity == ErrorSeverity.LOW

    def test_custom_error_message(self):
        """Verify error_message replaces the generated message."""
        rule = FieldRule({"type": "required", "field": "name", "error_message": "Name please"})

        assert rule.validate(None, FormSnapshot()).message == "Name please"

    def test_generated_message(self):
        """Verify the type's failure message is used by default."""
        rule = FieldRule({"type": "max_length", "field": "reason", "expected_value": 3})

        outcome = rule.validate("long", FormSnapshot())

        assert outcome.message == "Field 'reason' must be at most 3 characters"
        assert outcome.actual_value == "long"

    def test_unknown_type_raises(self):
        """Verify unknown rule types raise RuleDefinitionError."""
        with pytest.raises(RuleDefinitionError) as exc_info:
            FieldRule({"type": "telepathy", "field": "name"})

        assert exc_info.value.rule_type == "telepathy"
        assert isinstance(exc_info.value, ValueError)

    def test_invalid_severity_raises(self):
        """Verify an unknown severity tag is rejected."""
        with pytest.raises(RuleDefinitionError, match="Invalid category or severity"):
            FieldRule({"type": "required", "field": "name", "severity": "apocalyptic"})

    def test_time_after_requires_compared_field(self):
        """Verify time_after without expected_value is rejected."""
        with pytest.raises(RuleDefinitionError):
            FieldRule({"type": "time_after", "field": "end"})

    def test_to_dict(self):
        """Verify rules serialize back to their definition shape."""
        rule = FieldRule({"type": "range", "field": "age", "metadata": {"min_value": 1, "max_value": 9}})

        assert rule.to_dict() == {
            "type": "range",
            "field": "age",
            "category": "business_rule",
            "severity": "medium",
            "metadata": {"min_value": 1, "max_value": 9},
        }


class TestRuleFactory:
    """Test suite for RuleFactory.create."""

    def test_string_shorthand(self):
        """Verify a bare type name builds a field rule for the given field."""
        rule = RuleFactory.create("required", "name")

        assert isinstance(rule, FieldRule)
        assert rule.field == "name"
        assert rule.rule_type == RuleType.REQUIRED

    def test_required_if_expands_to_conditional(self):
        """Verify required_if becomes a dependency-tagged conditional."""
        rule = RuleFactory.create(
            {"required_if": {"field": "mode", "in": ["ip", "both"]}},
            "allowed_ips",
        )

        failing = rule.validate("", FormSnapshot({"mode": "ip"}))
        skipped = rule.validate("", FormSnapshot({"mode": "location"}))

        assert isinstance(rule, ConditionalRule)
        assert rule.reads == {"allowed_ips", "mode"}
        assert failing.is_valid is False
        assert failing.category == ErrorCategory.DEPENDENCY
        assert failing.severity == ErrorSeverity.HIGH
        assert skipped.is_valid is True
        assert skipped.context == "condition not applicable"

    @pytest.mark.parametrize("mode", ["", None, [], "   "])
    def test_required_if_empty_trigger_is_not_applicable(self, mode):
        """Verify an unset trigger field never makes the dependent field required."""
        rule = RuleFactory.create(
            {"required_if": {"field": "mode", "in": ["ip", "both"]}},
            "allowed_ips",
        )

        outcome = rule.validate("", FormSnapshot({"mode": mode}))

        assert outcome.is_valid is True
        assert outcome.context == "condition not applicable"

    def test_required_if_absent_trigger_is_not_applicable(self):
        """Verify a missing trigger field never makes the dependent field required."""
        rule = RuleFactory.create(
            {"required_if": {"field": "auto_punch_out", "in": [True]}},
            "auto_punch_out_time",
        )

        assert rule.validate("", FormSnapshot({})).is_valid is True

    def test_required_if_empty_value_in_trigger_set(self):
        """Verify an explicitly listed empty value still triggers the requirement."""
        rule = RuleFactory.create(
            {"required_if": {"field": "mode", "in": ["", "ip"]}},
            "allowed_ips",
        )

        assert rule.validate("", FormSnapshot({"mode": ""})).is_valid is False

    def test_required_if_needs_field_and_values(self):
        """Verify malformed required_if definitions are rejected."""
        with pytest.raises(RuleDefinitionError, match="'field' and 'in'"):
            RuleFactory.create({"required_if": {"field": "mode"}}, "allowed_ips")

    def test_conditional_branches(self):
        """Verify THEN runs when IF passes and ELSE otherwise."""
        rule = RuleFactory.create({
            "type": "conditional",
            "field": "code",
            "if": [{"type": "equals", "field": "mode", "expected_value": "strict"}],
            "then": ["required"],
            "else": [{"type": "max_length", "expected_value": 3}],
        })

        then_outcome = rule.validate("", FormSnapshot({"mode": "strict"}))
        else_outcome = rule.validate("", FormSnapshot({"mode": "lax"}))

        assert then_outcome.is_valid is False
        assert then_outcome.context == "then branch"
        assert then_outcome.message == "This field is required"
        assert else_outcome.is_valid is True
        assert else_outcome.context == "else branch"

    def test_conditional_requires_then(self):
        """Verify a conditional without THEN is rejected."""
        with pytest.raises(RuleDefinitionError, match="requires 'then'"):
            RuleFactory.create({"type": "conditional", "field": "x", "if": ["required"]})

    def test_invalid_definition_format(self):
        """Verify non-dict, non-string definitions are rejected."""
        with pytest.raises(RuleDefinitionError):
            RuleFactory.create(42, "name")  # type: ignore[arg-type]

    def test_predicate_type_cannot_be_declared(self):
        """Verify code-only rule types cannot come from data."""
        with pytest.raises(RuleDefinitionError):
            RuleFactory.create({"type": "predicate"}, "permission")


class TestPredicateRule:
    """Test suite for PredicateRule."""

    def test_predicate_outcome(self):
        """Verify the callable decides validity and tags default to security/critical."""
        rule = PredicateRule("permission", lambda value, snapshot: snapshot.get("role") == "admin", "Denied",
                             reads={"role"})

        denied = rule.validate(None, FormSnapshot({"role": "user"}))

        assert rule.validate(None, FormSnapshot({"role": "admin"})).is_valid is True
        assert denied.message == "Denied"
        assert denied.category == ErrorCategory.SECURITY
        assert denied.severity == ErrorSeverity.CRITICAL
        assert rule.reads == {"permission", "role"}

    def test_predicate_requires_message(self):
        """Verify an empty failure message is rejected."""
        with pytest.raises(RuleDefinitionError):
            PredicateRule("permission", lambda value, snapshot: True, "")


class TestRuleSet:
    """Test suite for RuleSet."""

    def test_field_rules_run_before_cross_field_rules(self):
        """Verify rules_for orders field rules first."""
        rule_set = RuleSet.from_dict(
            {"end": ["required", "time_format"]},
            [{"type": "time_after", "field": "end", "expected_value": "start"}],
        )

        types = [rule.rule_type for rule in rule_set.rules_for("end")]

        assert types == [RuleType.REQUIRED, RuleType.TIME_FORMAT, RuleType.TIME_AFTER]

    def test_reads_for_and_fields(self):
        """Verify reads and fields include cross-field targets."""
        rule_set = RuleSet.from_dict(
            {"start": ["required"]},
            [{"type": "time_after", "field": "end", "expected_value": "start"}],
        )

        assert rule_set.fields == ["start", "end"]
        assert rule_set.reads_for("end") == {"end", "start"}
        assert rule_set.reads_for("start") == {"start"}

    def test_add_rule(self):
        """Verify code-defined rules can be appended."""
        rule_set = RuleSet()
        rule_set.add_rule(PredicateRule("permission", lambda value, snapshot: False, "Denied"))

        assert rule_set.fields == ["permission"]
        assert rule_set.to_dict()["rules"]["permission"][0]["type"] == "predicate"
