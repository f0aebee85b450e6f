"""Validate a snapshot file against a form."""

from typing import Annotated

import typer

from formgate.cli.utils import OutputFormat
from formgate.config import EngineConfig
from formgate.snapshot import FormSnapshot
from formgate.validator import Validator


def validate_command(
    ctx: typer.Context,
    form: Annotated[
        str, typer.Argument(help="Built-in form name or path to a YAML/JSON definition")
    ],
    data: Annotated[
        str, typer.Argument(help="Snapshot file (JSON/YAML) with the field values")
    ],
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TEXT,
    use_defaults: Annotated[
        bool,
        typer.Option(
            "--defaults/--no-defaults",
            help="Fill fields missing from the snapshot with the form defaults",
        ),
    ] = True,
):
    """
    Validate a snapshot against a form.

    Exits with code 1 when any error blocks submission; low-severity
    warnings alone keep the exit code at 0.
    """
    cli_ctx = ctx.obj
    cli_ctx.set_output_format(output_format)

    definition = cli_ctx.load_form_or_exit(form)
    values = cli_ctx.load_data_or_exit(data)
    snapshot = FormSnapshot(definition.initial_data(values) if use_defaults else values)

    validator = Validator(definition.rule_set, definition.step_fields, config=EngineConfig.from_env())
    result = validator.validate_form(snapshot)
    cli_ctx.print_verbose(f"[dim]Validated {len(snapshot)} field(s) in {result.duration_ms:.2f}ms[/dim]")

    cli_ctx.printer.print_validation_result(definition, result)
    if not result.is_valid:
        raise typer.Exit(code=1)
