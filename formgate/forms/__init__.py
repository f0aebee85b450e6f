"""
Built-in form definitions.

Usage:
    from formgate.forms import get_form

    form = get_form("delete_leave", permissions={"can_delete_own_leaves": True})
"""

from collections.abc import Callable

from formgate.form import FormDefinition

from . import attendance_settings, delete_holiday, delete_leave

FORMS: dict[str, Callable[..., FormDefinition]] = {
    attendance_settings.NAME: attendance_settings.build_form,
    delete_leave.NAME: delete_leave.build_form,
    delete_holiday.NAME: delete_holiday.build_form,
}


def list_forms() -> list[str]:
    return sorted(FORMS)


def get_form(name: str, **options) -> FormDefinition:
    """
    Build a built-in form by name.

    Raises:
        KeyError: If no built-in form has that name
    """
    try:
        builder = FORMS[name]
    except KeyError:
        raise KeyError(f"Unknown form '{name}'. Available: {', '.join(list_forms())}") from None
    return builder(**options)


__all__ = ["FORMS", "get_form", "list_forms"]
