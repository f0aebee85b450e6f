"""CLI utilities package.

- CLIContext: shared state and loading helpers for commands
- CliPrinter: text and JSON rendering
- OutputFormat: the ``--format`` choices
"""

from formgate.cli.utils.context import CLIContext
from formgate.cli.utils.printer import CliPrinter, OutputFormat

__all__ = [
    "CLIContext",
    "CliPrinter",
    "OutputFormat",
]
