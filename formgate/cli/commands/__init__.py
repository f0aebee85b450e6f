"""CLI commands module for formgate."""

from formgate.cli.commands.analyze import analyze_command
from formgate.cli.commands.forms import forms_command
from formgate.cli.commands.steps import steps_command
from formgate.cli.commands.validate import validate_command

__all__ = [
    "analyze_command",
    "forms_command",
    "steps_command",
    "validate_command",
]
