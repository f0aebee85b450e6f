"""formgate command line interface."""

from formgate.cli.main import app, main

__all__ = ["app", "main"]
