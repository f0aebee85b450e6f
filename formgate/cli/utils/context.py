"""
CLI Context for formgate.

Provides centralized form and data loading for all CLI commands.
"""

from dataclasses import dataclass, field
from typing import Any

import typer
from rich.console import Console

from formgate.cli.utils.printer import CliPrinter, OutputFormat
from formgate.exceptions import LoaderError
from formgate.form import FormDefinition
from formgate.loader import FormLoader, load_data_file
from formgate.models import FormLoadResult


@dataclass
class CLIContext:
    """
    Context object for CLI commands.

    Created once by the app callback and passed to every command via Typer's
    context injection.

    Attributes:
        console: Rich console for output
        verbose: Enable verbose output (ignored when json_mode is True)
        printer: CLI printer for formatted output
        loader: Form loader shared across commands
        form: Loaded form definition (if loading succeeded)
        load_result: Full load result with errors
        json_mode: When True, suppress all non-JSON output (set by commands)
    """

    console: Console
    verbose: bool = False
    printer: CliPrinter = field(init=False)
    loader: FormLoader = field(init=False)
    form: FormDefinition | None = None
    load_result: FormLoadResult | None = None
    json_mode: bool = False

    def __post_init__(self):
        self.printer = CliPrinter(console=self.console, verbose=self.verbose)
        self.loader = FormLoader()

    def set_output_format(self, output_format: OutputFormat) -> None:
        """Switch printer and context into JSON mode when requested."""
        self.json_mode = output_format == OutputFormat.JSON
        self.printer.json_mode = self.json_mode

    def print_verbose(self, message: str, **kwargs) -> None:
        """Print a message only in verbose, non-JSON mode."""
        if self.verbose and not self.json_mode:
            self.console.print(message, **kwargs)

    def print_error(self, message: str) -> None:
        """Print an error as text, or as a JSON document in JSON mode."""
        if self.json_mode:
            self.printer.print_json({"error": message})
        else:
            self.printer.print_error(message)

    def load_form_or_exit(self, source: str) -> FormDefinition:
        """
        Load a built-in form or definition file and exit on failure.

        Args:
            source: Built-in form name or path to a YAML/JSON definition

        Returns:
            FormDefinition (only if successful; otherwise exits)

        Raises:
            typer.Exit: If loading fails
        """
        self.print_verbose(f"[dim]Loading form from: {source}[/dim]")
        result = self.loader.load(source)
        self.load_result = result

        if not result.success:
            self.printer.print_load_result(result)
            raise typer.Exit(code=1)

        self.form = result.definition
        self.print_verbose(f"[green]✓ Form '{self.form.name}' loaded[/green]")
        return self.form

    def load_data_or_exit(self, path: str, expected: type | tuple[type, ...] = dict) -> Any:
        """
        Read a YAML or JSON data file and exit on failure.

        Args:
            path: Path to the data file
            expected: Required type(s) of the top-level document

        Raises:
            typer.Exit: If the file cannot be read or has the wrong shape
        """
        self.print_verbose(f"[dim]Loading data from {path}[/dim]")
        try:
            data = load_data_file(path)
        except LoaderError as e:
            self.print_error(str(e))
            raise typer.Exit(code=1) from e

        if not isinstance(data, expected):
            names = " or ".join(t.__name__ for t in (expected if isinstance(expected, tuple) else (expected,)))
            self.print_error(f"Expected a {names} in {path}, found {type(data).__name__}")
            raise typer.Exit(code=1)
        return data
