"""
Delete-holiday form: a three-step confirmation flow.

1. reason: pick a deletion reason, optionally add details
2. impact: acknowledge every affected area
3. confirmation: password, the literal confirmation text and a final
   acknowledgement
"""

from collections.abc import Callable
from typing import Any

from formgate.form import FormDefinition
from formgate.models import ErrorCategory, ErrorSeverity, FormDefinitionDict
from formgate.rule import BaseRule, PredicateRule
from formgate.snapshot import FormSnapshot

NAME = "delete_holiday"

CONFIRMATION_TEXT = "DELETE"
MAX_DETAILS_LENGTH = 1000
AUTOSAVE_KEY = "delete_holiday_form_autosave_{entity_id}"

DELETION_REASONS: dict[str, list[str]] = {
    "administrative": ["policy_change", "duplicate_entry", "calendar_restructure"],
    "data_quality": ["incorrect_date", "incorrect_details", "test_data"],
    "business": ["business_closure_cancelled", "replaced_by_other_holiday", "other"],
}

IMPACT_CATEGORIES: dict[str, str] = {
    "attendance": "Attendance",
    "payroll": "Payroll",
    "leave_balances": "Leave Balances",
    "scheduling": "Scheduling",
}


def all_reasons() -> list[str]:
    return [reason for reasons in DELETION_REASONS.values() for reason in reasons]


def impact_field(category: str) -> str:
    return f"impact_assessment.{category}"


def _definition(impact_categories: dict[str, str], confirmation_text: str) -> FormDefinitionDict:
    impact_fields = [impact_field(category) for category in impact_categories]
    rules: dict[str, Any] = {
        "reason": [
            {"type": "required", "error_message": "Please select a reason for deleting this holiday"},
            {
                "type": "in_list",
                "expected_value": all_reasons(),
                "error_message": "Please select a valid deletion reason",
            },
        ],
        "details": [
            {
                "type": "max_length",
                "expected_value": MAX_DETAILS_LENGTH,
                "severity": ErrorSeverity.LOW,
                "error_message": f"Details should be {MAX_DETAILS_LENGTH} characters or less",
            },
        ],
        "password": [
            {
                "type": "required",
                "category": ErrorCategory.SECURITY,
                "severity": ErrorSeverity.CRITICAL,
                "error_message": "Password is required to confirm deletion",
            },
        ],
        "confirmation": [
            {
                "type": "required",
                "category": ErrorCategory.SECURITY,
                "severity": ErrorSeverity.CRITICAL,
                "error_message": f'Please type "{confirmation_text}" to confirm',
            },
            {
                "type": "equals",
                "expected_value": confirmation_text,
                "error_message": f'Please type "{confirmation_text}" exactly to confirm deletion',
            },
        ],
        "acknowledge_consequences": [
            {
                "type": "is_true",
                "error_message": "You must acknowledge that this action is irreversible",
            },
        ],
    }
    for category, label in impact_categories.items():
        rules[impact_field(category)] = [
            {
                "type": "is_true",
                "category": ErrorCategory.BUSINESS_RULE,
                "error_message": f"Please acknowledge the {label.lower()} impact",
            },
        ]

    return {
        "name": NAME,
        "title": "Delete Holiday",
        "description": "Three-step confirmation for deleting a holiday",
        "multi_step": True,
        "defaults": {
            "reason": "",
            "details": "",
            "impact_assessment": {category: False for category in impact_categories},
            "password": "",
            "confirmation": "",
            "acknowledge_consequences": False,
        },
        "steps": [
            {"name": "reason", "title": "Deletion Reason", "required_fields": ["reason", "details"]},
            {"name": "impact", "title": "Impact Assessment", "required_fields": impact_fields},
            {
                "name": "confirmation",
                "title": "Final Confirmation",
                "required_fields": ["password", "confirmation", "acknowledge_consequences"],
            },
        ],
        "rules": rules,
        "security_checks": {
            "password_valid": "password",
            "confirmation_valid": "confirmation",
            "acknowledgment_valid": "acknowledge_consequences",
        },
        "reason_field": "reason",
        "autosave_key": AUTOSAVE_KEY,
    }


def build_form(
    confirmation_text: str = CONFIRMATION_TEXT,
    impact_categories: dict[str, str] | None = None,
    verify_password: Callable[[str], bool] | None = None,
) -> FormDefinition:
    """
    Build the delete-holiday form.

    Args:
        confirmation_text: Literal the user must type (case-sensitive)
        impact_categories: Affected areas to acknowledge, keyed by identifier
        verify_password: Host callback checking the entered password
    """
    extra_rules: list[BaseRule] = []
    if verify_password is not None:
        check = verify_password

        def password_matches(value: Any, snapshot: FormSnapshot) -> bool:
            return not value or check(str(value))

        extra_rules.append(PredicateRule(
            "password",
            password_matches,
            "Password is incorrect",
            name="verify_password",
        ))
    categories = IMPACT_CATEGORIES if impact_categories is None else impact_categories
    return FormDefinition(_definition(categories, confirmation_text), extra_rules=extra_rules)
