"""Show the status of each step of a form for a snapshot."""

from typing import Annotated

import typer

from formgate.cli.utils import OutputFormat
from formgate.config import EngineConfig
from formgate.snapshot import FormSnapshot
from formgate.step import evaluate_step
from formgate.validator import Validator


def steps_command(
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
):
    """Report whether each step is incomplete, blocked or ready."""
    cli_ctx = ctx.obj
    cli_ctx.set_output_format(output_format)

    definition = cli_ctx.load_form_or_exit(form)
    snapshot = FormSnapshot(definition.initial_data(cli_ctx.load_data_or_exit(data)))

    validator = Validator(definition.rule_set, definition.step_fields, config=EngineConfig.from_env())
    results = [
        evaluate_step(step, snapshot, validator.validate_step(step.index, snapshot))
        for step in definition.build_steps()
    ]
    cli_ctx.printer.print_step_results(definition, results)
