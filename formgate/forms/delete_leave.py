"""
Delete-leave confirmation form.

The host supplies the leave record's status and the user's permission flags;
both are fixed for the lifetime of a dialog, so they are baked into the
definition when it is built.
"""

from collections.abc import Mapping
from typing import Any

from formgate.form import FormDefinition
from formgate.models import ErrorCategory, ErrorSeverity, FormDefinitionDict
from formgate.rule import PredicateRule
from formgate.snapshot import FormSnapshot

NAME = "delete_leave"

CONFIRMATION_TEXT = "DELETE"
MAX_REASON_LENGTH = 500
AUTOSAVE_KEY = "delete_leave_form_autosave_{entity_id}"

SECURITY_CHECKS = {
    "confirmation_valid": "confirmation",
    "acknowledgment_valid": "user_acknowledgment",
    "permission_valid": "permission",
    "reason_valid": "reason",
}


def has_delete_permission(permissions: Mapping[str, Any] | None, is_own_leave: bool = True) -> bool:
    """Whether the permission flags allow deleting the leave record."""
    if not permissions:
        return False
    if permissions.get("can_delete_any_leaves"):
        return True
    return bool(is_own_leave and permissions.get("can_delete_own_leaves"))


def _definition(leave_status: str | None, confirmation_text: str) -> FormDefinitionDict:
    reason_rules: list[Any] = []
    if leave_status == "approved":
        reason_rules.append({
            "type": "required",
            "category": ErrorCategory.DEPENDENCY,
            "severity": ErrorSeverity.HIGH,
            "error_message": "Please provide a reason for deleting an approved leave",
        })
    reason_rules.append({
        "type": "max_length",
        "expected_value": MAX_REASON_LENGTH,
        "error_message": f"Reason must be {MAX_REASON_LENGTH} characters or less",
    })

    return {
        "name": NAME,
        "title": "Delete Leave",
        "description": "Confirm permanent deletion of a leave record",
        "multi_step": False,
        "defaults": {
            "confirmation": "",
            "reason": "",
            "user_acknowledgment": False,
        },
        "steps": [
            {
                "name": "confirm",
                "title": "Confirm Deletion",
                "required_fields": ["permission", "confirmation", "user_acknowledgment", "reason"],
            },
        ],
        "rules": {
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
            "user_acknowledgment": [
                {
                    "type": "is_true",
                    "error_message": "You must acknowledge that this action cannot be undone",
                },
            ],
            "reason": reason_rules,
        },
        "security_checks": dict(SECURITY_CHECKS),
        "reason_field": "reason",
        "autosave_key": AUTOSAVE_KEY,
    }


def build_form(
    permissions: Mapping[str, Any] | None = None,
    leave_status: str | None = None,
    is_own_leave: bool = True,
    confirmation_text: str = CONFIRMATION_TEXT,
) -> FormDefinition:
    """
    Build the delete-leave form for one leave record.

    Args:
        permissions: Flags ``can_delete_own_leaves`` / ``can_delete_any_leaves``
        leave_status: Status of the leave being deleted; ``approved`` makes
            the reason mandatory
        is_own_leave: Whether the leave belongs to the acting user
        confirmation_text: Literal the user must type (case-sensitive)
    """
    allowed = has_delete_permission(permissions, is_own_leave)

    def check_permission(value: Any, snapshot: FormSnapshot) -> bool:
        return allowed

    permission_rule = PredicateRule(
        "permission",
        check_permission,
        "You do not have permission to delete this leave",
        name="delete_permission",
    )
    return FormDefinition(_definition(leave_status, confirmation_text), extra_rules=[permission_rule])
