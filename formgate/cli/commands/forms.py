"""List the built-in forms."""

from typing import Annotated

import typer

from formgate.cli.utils import OutputFormat
from formgate.forms import get_form, list_forms


def forms_command(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TEXT,
):
    """List the built-in forms and their steps."""
    cli_ctx = ctx.obj
    cli_ctx.set_output_format(output_format)
    cli_ctx.printer.print_forms([get_form(name) for name in list_forms()])
