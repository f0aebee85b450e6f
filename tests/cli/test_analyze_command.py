"""Tests for the analyze and forms CLI commands."""

import json

import pytest
from click.testing import CliRunner
from typer.main import get_command

from formgate.cli.commands.analyze import replay_events
from formgate.cli.main import app

cli = get_command(app)


def _changes(fields: str, spacing: int = 1_000) -> list[dict]:
    return [
        {"type": "change", "field": name, "timestamp": i * spacing}
        for i, name in enumerate(fields)
    ]


class TestAnalyzeCommand:
    """Test suite for the analyze CLI command."""

    def test_json_export(self, write_file):
        """Verify the replayed log is classified and exported as JSON."""
        events = write_file("events.json", _changes("abcdefghab"))
        runner = CliRunner()

        result = runner.invoke(cli, ["analyze", str(events), "--format", "json"])

        output = json.loads(result.stdout)
        assert result.exit_code == 0
        assert output["summary"]["behavior_pattern"] == "random"
        assert output["summary"]["interaction_count"] == 10
        assert output["risk"]["level"] == "low"

    def test_step_names_from_form(self, write_file):
        """Verify --form labels step statistics with step names."""
        events = write_file("events.json", {
            "session_id": "holiday-7",
            "events": [
                {"type": "step_enter", "step": 0, "timestamp": 0},
                {"type": "step_leave", "step": 0, "timestamp": 2_000, "forward": True},
                {"type": "step_enter", "step": 1, "timestamp": 2_000},
            ],
        })
        runner = CliRunner()

        result = runner.invoke(cli, ["analyze", str(events), "--form", "delete_holiday", "-f", "json"])

        output = json.loads(result.stdout)
        assert output["summary"]["session_id"] == "holiday-7"
        assert output["summary"]["per_step_stats"]["reason"]["performance"] == "fast"
        assert output["patterns"][0]["pattern"] == "rapid_completion"

    def test_text_output(self, write_file):
        """Verify text output summarizes the session."""
        events = write_file("events.yaml", "- {type: focus, field: reason, timestamp: 0}\n")
        runner = CliRunner()

        result = runner.invoke(cli, ["analyze", str(events)])

        assert result.exit_code == 0
        assert "Session: replay" in result.stdout
        assert "Behavior: linear" in result.stdout

    def test_unknown_event_type(self, write_file):
        """Verify unknown event types are reported with exit code 1."""
        events = write_file("events.json", [{"type": "scroll"}])
        runner = CliRunner()

        result = runner.invoke(cli, ["analyze", str(events)])

        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_missing_event_list(self, write_file):
        """Verify a mapping without events is rejected."""
        events = write_file("events.json", {"session_id": "x"})
        runner = CliRunner()

        result = runner.invoke(cli, ["analyze", str(events), "-f", "json"])

        assert result.exit_code == 1
        assert "No event list" in json.loads(result.stdout)["error"]


class TestReplayEvents:
    """Test suite for replay_events."""

    def test_hesitation_detected_between_events(self):
        """Verify idle gaps in the log produce hesitation patterns."""
        recorder = replay_events([
            {"type": "focus", "field": "reason", "timestamp": 0},
            {"type": "change", "field": "reason", "timestamp": 75_000},
        ])

        assert recorder.hesitation_count == 1

    def test_timestamps_must_not_decrease(self):
        """Verify out-of-order logs are rejected."""
        with pytest.raises(ValueError, match="earlier"):
            replay_events(_changes("ab", spacing=-10))

    def test_extra_keys_become_event_data(self):
        """Verify unknown keys are kept as event data."""
        recorder = replay_events([{"type": "change", "field": "reason", "value": "Moved"}])

        assert recorder.events[0].data == {"value": "Moved"}
        assert recorder.field_stats("reason")["has_value"] is True


class TestFormsCommand:
    """Test suite for the forms CLI command."""

    def test_json_listing(self):
        """Verify every built-in form is listed."""
        runner = CliRunner()

        result = runner.invoke(cli, ["forms", "--format", "json"])

        names = [form["name"] for form in json.loads(result.stdout)["forms"]]
        assert result.exit_code == 0
        assert names == ["attendance_settings", "delete_holiday", "delete_leave"]

    def test_text_listing(self):
        """Verify the text listing renders a table."""
        runner = CliRunner()

        result = runner.invoke(cli, ["forms"])

        assert result.exit_code == 0
        assert "Built-in forms" in result.stdout
        assert "multi-step" in result.stdout
