"""formgate CLI - Typer-based command line interface."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from formgate.cli.commands import (
    analyze_command,
    forms_command,
    steps_command,
    validate_command,
)
from formgate.cli.utils import CLIContext

app = typer.Typer(
    name="formgate",
    help="formgate: validation and behavioral analytics for HR forms",
    no_args_is_help=True,
)
console = Console()


def configure_logging(verbose: bool) -> None:
    """Route formgate logs through rich when verbose output is requested."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output and debug logging")
    ] = False,
):
    """
    formgate CLI callback - sets up context for all commands.

    The CLIContext stored on ctx.obj gives every command form loading, data
    file loading and output handling.
    """
    configure_logging(verbose)
    ctx.obj = CLIContext(console=console, verbose=verbose)


app.command(name="forms")(forms_command)
app.command(name="validate")(validate_command)
app.command(name="steps")(steps_command)
app.command(name="analyze")(analyze_command)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
