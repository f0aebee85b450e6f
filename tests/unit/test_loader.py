"""Unit tests for FormLoader and the load helpers."""

import pytest

from formgate.exceptions import LoaderError
from formgate.loader import FormLoader, load_data_file, load_form, load_form_or_raise
from formgate.models import LoadErrorType, LoadResultStatus

YAML_DEFINITION = """
form:
  name: expense
  title: Expense Claim
  defaults:
    amount: 0
  steps:
    - name: claim
      required_fields: [amount, receipt]
  rules:
    amount:
      - required
      - type: range
        metadata: {min_value: 1, max_value: 5000}
    receipt:
      - type: is_true
        error_message: Attach a receipt
"""


@pytest.fixture
def loader() -> FormLoader:
    return FormLoader()


class TestFormLoaderSuccess:
    """Test suite for successful loads."""

    def test_load_yaml_with_form_wrapper(self, loader, write_file):
        """Verify a YAML definition nested under 'form' loads."""
        # Arrange
        path = write_file("expense.yaml", YAML_DEFINITION)

        # Act
        result = loader.load(path)

        # Assert
        assert result.success is True
        assert result.definition.name == "expense"
        assert result.definition.step_names == ["claim"]
        assert result.source == str(path)

    def test_load_json(self, loader, write_file, three_step_definition):
        """Verify JSON definitions load without a wrapper."""
        path = write_file("onboarding.json", three_step_definition)

        result = loader.load(str(path))

        assert result.success is True
        assert result.definition.multi_step is True

    def test_load_builtin_by_name(self, loader):
        """Verify built-in names resolve without touching the filesystem."""
        result = loader.load("delete_holiday")

        assert result.success is True
        assert result.definition.step_names == ["reason", "impact", "confirmation"]

    def test_builtin_options_are_forwarded(self, loader):
        """Verify builder options reach the built-in form."""
        result = loader.load("delete_leave", permissions={"can_delete_own_leaves": True})

        assert result.success is True

    def test_builtin_bad_options(self, loader):
        """Verify unknown builder options are reported, not raised."""
        result = loader.load("delete_leave", colour="red")

        assert result.success is False
        assert result.errors[0].error_type == LoadErrorType.INVALID_RULE_DEFINITION


class TestFormLoaderErrors:
    """Test suite for load failures."""

    def test_missing_file(self, loader, tmp_path):
        """Verify a missing file is a FILE_NOT_FOUND error."""
        result = loader.load(tmp_path / "nope.yaml")

        assert result.status == LoadResultStatus.FILE_ERROR
        assert result.errors[0].error_type == LoadErrorType.FILE_NOT_FOUND

    def test_unsupported_suffix(self, loader, write_file):
        """Verify unsupported extensions are rejected."""
        path = write_file("form.txt", "name: x")

        result = loader.load(path)

        assert result.errors[0].error_type == LoadErrorType.INVALID_FORMAT

    def test_yaml_parse_error(self, loader, write_file):
        """Verify malformed YAML reports a parse error with a line number."""
        path = write_file("broken.yaml", "name: x\nsteps: [unclosed\n")

        result = loader.load(path)

        assert result.status == LoadResultStatus.PARSE_ERROR
        assert result.errors[0].error_type == LoadErrorType.YAML_PARSE_ERROR
        assert "line" in result.errors[0].context

    def test_json_parse_error(self, loader, write_file):
        """Verify malformed JSON reports a parse error."""
        path = write_file("broken.json", '{"name": ')

        result = loader.load(path)

        assert result.errors[0].error_type == LoadErrorType.JSON_PARSE_ERROR

    def test_top_level_list(self, loader, write_file):
        """Verify a non-mapping document is a structure error."""
        path = write_file("list.json", [1, 2])

        result = loader.load(path)

        assert result.status == LoadResultStatus.STRUCTURE_ERROR
        assert result.errors[0].context["found"] == "list"

    def test_unknown_key_reports_location(self, loader, write_file, three_step_definition):
        """Verify schema errors point at the offending key."""
        path = write_file("extra.json", {**three_step_definition, "colour": "red"})

        result = loader.load(path)

        assert result.status == LoadResultStatus.VALIDATION_ERROR
        assert result.errors[0].error_type == LoadErrorType.STRUCTURE_ERROR
        assert result.errors[0].context["location"] == "colour"

    def test_multi_step_needs_two_steps(self, loader, write_file):
        """Verify a multi-step form with one step is rejected."""
        path = write_file("one.json", {"name": "x", "multi_step": True, "steps": [{"name": "only"}]})

        result = loader.load(path)

        assert result.success is False
        assert "at least two steps" in result.errors[0].message

    def test_bad_rule_definition(self, loader, write_file):
        """Verify unknown rule types are INVALID_RULE_DEFINITION errors."""
        path = write_file("bad_rule.json", {
            "name": "x",
            "steps": [{"name": "only", "required_fields": ["a"]}],
            "rules": {"a": ["telepathy"]},
        })

        result = loader.load(path)

        error = result.errors[0]
        assert error.error_type == LoadErrorType.INVALID_RULE_DEFINITION
        assert error.context["field"] == "a"
        assert error.context["rule_type"] == "telepathy"

    def test_security_check_without_rules(self, loader, write_file):
        """Verify security checks must point at fields with rules."""
        path = write_file("checks.json", {
            "name": "x",
            "steps": [{"name": "only"}],
            "security_checks": {"confirmation_valid": "confirmation"},
        })

        result = loader.load(path)

        assert result.errors[0].error_type == LoadErrorType.INVALID_RULE_DEFINITION

    def test_error_summary(self, loader, tmp_path):
        """Verify summaries list every error."""
        result = loader.load(tmp_path / "nope.json")

        summary = result.get_error_summary()

        assert "Failed to load form" in summary
        assert "[file_not_found]" in summary


class TestLoadHelpers:
    """Test suite for module-level helpers."""

    def test_load_form_or_raise(self, write_file):
        """Verify failures raise LoaderError with the collected errors."""
        path = write_file("list.json", [])

        with pytest.raises(LoaderError) as exc_info:
            load_form_or_raise(path)

        assert exc_info.value.context["errors"][0]["error_type"] == "structure_error"

    def test_load_form_returns_result(self):
        """Verify load_form wraps FormLoader.load."""
        assert load_form("attendance_settings").success is True

    def test_load_data_file(self, write_file):
        """Verify snapshot files are read as plain data."""
        path = write_file("data.yaml", "office_start_time: '09:00'\nweekend_days: [sunday]\n")

        assert load_data_file(path) == {"office_start_time": "09:00", "weekend_days": ["sunday"]}

    def test_load_data_file_missing(self, tmp_path):
        """Verify missing data files raise LoaderError."""
        with pytest.raises(LoaderError):
            load_data_file(tmp_path / "missing.json")
