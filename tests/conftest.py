"""Pytest configuration and shared fixtures for the formgate test suite."""

import json
from pathlib import Path
from typing import Any

import pytest

from formgate.forms import attendance_settings, delete_holiday, delete_leave
from formgate.models import FormDefinitionDict
from formgate.scheduling import ManualScheduler
from formgate.snapshot import FormSnapshot


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Virtual clock starting at 0 ms."""
    return ManualScheduler()


@pytest.fixture
def attendance_form():
    return attendance_settings.build_form()


@pytest.fixture
def attendance_snapshot(attendance_form):
    """Factory building an attendance snapshot from defaults plus overrides."""

    def build(**overrides: Any) -> FormSnapshot:
        return FormSnapshot(attendance_form.initial_data(overrides))

    return build


@pytest.fixture
def delete_leave_form():
    return delete_leave.build_form(permissions={"can_delete_own_leaves": True})


@pytest.fixture
def delete_holiday_form():
    return delete_holiday.build_form()


@pytest.fixture
def three_step_definition() -> FormDefinitionDict:
    """Minimal multi-step definition with one required field per step."""
    return {
        "name": "onboarding",
        "title": "Onboarding",
        "multi_step": True,
        "defaults": {"name": "", "email": "", "age": None},
        "steps": [
            {"name": "identity", "required_fields": ["name"]},
            {"name": "contact", "required_fields": ["email"]},
            {"name": "details", "required_fields": ["age"]},
        ],
        "rules": {
            "name": ["required"],
            "email": [
                "required",
                {"type": "regex", "expected_value": r"[^@\s]+@[^@\s]+\.[a-z]+"},
            ],
            "age": [
                "required",
                {"type": "integer"},
                {"type": "range", "metadata": {"min_value": 16, "max_value": 99}},
            ],
        },
    }


@pytest.fixture
def write_file(tmp_path: Path):
    """Write YAML text or JSON-serializable data to a temporary file."""

    def write(name: str, content: Any) -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return write
