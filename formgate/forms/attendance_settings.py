"""
Attendance settings form.

A single-page form split into sections. Sections map to steps so the gate
can report per-section status, but the form is submitted as a whole.
"""

from typing import Any

from formgate.form import FormDefinition
from formgate.models import FormDefinitionDict

NAME = "attendance_settings"

VALIDATION_TYPES = ["location", "ip", "both"]

BUSINESS_RULES: dict[str, dict[str, Any]] = {
    "timing": {
        "min_work_hours": 4,
        "max_work_hours": 16,
        "min_break_time": 15,
        "max_break_time": 480,
        "max_late_mark": 120,
        "max_early_leave": 120,
        "max_overtime_threshold": 120,
    },
    "location": {
        "min_radius": 50,
        "max_radius": 5000,
        "default_radius": 200,
    },
    "weekend": {
        "min_weekend_days": 1,
        "max_weekend_days": 3,
    },
    "validation": {
        "max_validation_types": 5,
    },
}

DEFAULT_VALUES: dict[str, Any] = {
    "office_start_time": "09:00",
    "office_end_time": "18:00",
    "break_time_duration": 60,
    "late_mark_after": 15,
    "early_leave_before": 15,
    "overtime_after": 30,
    "allow_punch_from_mobile": True,
    "auto_punch_out": False,
    "auto_punch_out_time": "20:00",
    "attendance_validation_type": "location",
    "location_radius": BUSINESS_RULES["location"]["default_radius"],
    "allowed_ips": "",
    "require_location_services": True,
    "weekend_days": ["saturday", "sunday"],
    "active_validation_types": [],
}

FORM_SECTIONS = [
    {
        "name": "office_timing",
        "title": "Office Timing",
        "required_fields": [
            "office_start_time",
            "office_end_time",
            "break_time_duration",
            "late_mark_after",
        ],
    },
    {
        "name": "attendance_rules",
        "title": "Attendance Rules",
        "required_fields": [
            "early_leave_before",
            "overtime_after",
            "attendance_validation_type",
            "location_radius",
            "allowed_ips",
        ],
    },
    {
        "name": "weekend_settings",
        "title": "Weekend Settings",
        "required_fields": ["weekend_days"],
    },
    {
        "name": "mobile_settings",
        "title": "Mobile Settings",
        "required_fields": [
            "allow_punch_from_mobile",
            "require_location_services",
            "auto_punch_out",
            "auto_punch_out_time",
        ],
    },
    {
        "name": "validation_types",
        "title": "Validation Types",
        "required_fields": ["active_validation_types"],
    },
]


def _minutes_rule(label: str, maximum: int) -> list[dict[str, Any]]:
    return [
        {"type": "required"},
        {"type": "integer", "error_message": f"{label} must be a whole number"},
        {
            "type": "range",
            "metadata": {"min_value": 0, "max_value": maximum},
            "error_message": f"{label} must be between 0 and {maximum} minutes",
        },
    ]


def _definition() -> FormDefinitionDict:
    timing = BUSINESS_RULES["timing"]
    location = BUSINESS_RULES["location"]
    weekend = BUSINESS_RULES["weekend"]
    max_types = BUSINESS_RULES["validation"]["max_validation_types"]

    return {
        "name": NAME,
        "title": "Attendance Settings",
        "description": "Office timing, attendance rules and punch settings",
        "multi_step": False,
        "defaults": DEFAULT_VALUES,
        "steps": FORM_SECTIONS,
        "rules": {
            "office_start_time": ["required", "time_format"],
            "office_end_time": ["required", "time_format"],
            "break_time_duration": [
                {"type": "required"},
                {"type": "integer", "error_message": "Break time must be a whole number"},
                {
                    "type": "range",
                    "metadata": {
                        "min_value": timing["min_break_time"],
                        "max_value": timing["max_break_time"],
                    },
                    "error_message": (
                        f"Break time must be between {timing['min_break_time']} "
                        f"and {timing['max_break_time']} minutes"
                    ),
                },
            ],
            "late_mark_after": _minutes_rule("Late mark threshold", timing["max_late_mark"]),
            "early_leave_before": _minutes_rule(
                "Early leave threshold", timing["max_early_leave"]
            ),
            "overtime_after": _minutes_rule(
                "Overtime threshold", timing["max_overtime_threshold"]
            ),
            "attendance_validation_type": [
                {"type": "required"},
                {
                    "type": "in_list",
                    "expected_value": VALIDATION_TYPES,
                    "error_message": "Please select a valid attendance validation type",
                },
            ],
            "location_radius": [
                {
                    "required_if": {"field": "attendance_validation_type", "in": ["location", "both"]},
                    "error_message": "Location radius is required for location-based validation",
                },
                {"type": "integer", "error_message": "Location radius must be a whole number"},
                {
                    "type": "range",
                    "metadata": {"min_value": location["min_radius"], "max_value": location["max_radius"]},
                    "error_message": (
                        f"Location radius must be between {location['min_radius']} "
                        f"and {location['max_radius']} meters"
                    ),
                },
            ],
            "allowed_ips": [
                {
                    "required_if": {"field": "attendance_validation_type", "in": ["ip", "both"]},
                    "error_message": "IP addresses are required for IP-based validation",
                },
                {"type": "ip_list"},
            ],
            "weekend_days": [
                {"type": "required", "error_message": "At least one weekend day must be selected"},
                {
                    "type": "count_range",
                    "metadata": {
                        "min_value": weekend["min_weekend_days"],
                        "max_value": weekend["max_weekend_days"],
                    },
                    "error_message": (
                        f"Select between {weekend['min_weekend_days']} and "
                        f"{weekend['max_weekend_days']} weekend days"
                    ),
                },
            ],
            "allow_punch_from_mobile": ["required"],
            "require_location_services": ["required"],
            "auto_punch_out": ["required"],
            "auto_punch_out_time": [
                {
                    "required_if": {"field": "auto_punch_out", "in": [True]},
                    "error_message": "Auto punch out time is required when auto punch out is enabled",
                },
                {"type": "time_format"},
            ],
            "active_validation_types": [
                {
                    "type": "count_range",
                    "metadata": {"min_value": 0, "max_value": max_types},
                    "error_message": f"Maximum {max_types} validation types allowed",
                },
            ],
        },
        "form_rules": [
            {
                "type": "time_after",
                "field": "office_end_time",
                "expected_value": "office_start_time",
                "error_message": "Office end time must be after start time",
            },
            {
                "type": "span_hours",
                "field": "office_end_time",
                "metadata": {
                    "start_field": "office_start_time",
                    "deduct_field": "break_time_duration",
                    "min_value": timing["min_work_hours"],
                    "max_value": timing["max_work_hours"],
                },
            },
            {
                "type": "within_span",
                "field": "break_time_duration",
                "metadata": {"start_field": "office_start_time", "end_field": "office_end_time"},
                "error_message": "Break time cannot exceed work hours",
            },
        ],
    }


def build_form() -> FormDefinition:
    """Build the attendance settings form definition."""
    return FormDefinition(_definition())
