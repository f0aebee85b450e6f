"""CLI Printer for consistent output formatting."""

from enum import StrEnum
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formgate.form import FormDefinition
from formgate.models import FormLoadResult
from formgate.step import StepEvaluationResult, StepStatus
from formgate.validator import FormValidationResult

_STATUS_STYLES = {
    StepStatus.READY: "green",
    StepStatus.BLOCKED: "red",
    StepStatus.INCOMPLETE: "yellow",
}


class OutputFormat(StrEnum):
    """Output formats accepted by ``--format``."""

    TEXT = "text"
    JSON = "json"


class CliPrinter:
    """Centralized printer for CLI output.

    Every ``print_*`` method renders either rich text or, in JSON mode, a
    single JSON document so output can be piped into other tools.
    """

    def __init__(
        self, console: Console, verbose: bool = False, json_mode: bool = False
    ):
        """Initialize printer with console and mode settings.

        Args:
            console: Rich console for output
            verbose: Whether to show detailed output
            json_mode: Whether to output in JSON format (can be set later)
        """
        self.console = console
        self.verbose = verbose
        self.json_mode = json_mode

    def print_load_result(self, result: FormLoadResult) -> None:
        """Print a failed form load with every collected error."""
        if self.json_mode:
            self.console.print_json(data=result.to_dict())
            return
        self.console.print(f"[red]❌ Failed to load form from: {result.source}[/red]")
        self.console.print(f"   Status: {result.status.value}")
        for error in result.errors:
            self.console.print(f"  [red]• {escape(f'[{error.error_type.value}] {error.message}')}[/red]")
            if self.verbose:
                for key, value in error.context.items():
                    self.console.print(f"    [dim]{key}: {value}[/dim]")

    def print_forms(self, forms: list[FormDefinition]) -> None:
        """Print the built-in form catalogue."""
        if self.json_mode:
            self.console.print_json(data={
                "forms": [
                    {
                        "name": form.name,
                        "title": form.title,
                        "description": form.description,
                        "multi_step": form.multi_step,
                        "steps": form.step_names,
                    }
                    for form in forms
                ]
            })
            return

        table = Table(title="Built-in forms")
        table.add_column("Name", style="cyan")
        table.add_column("Title")
        table.add_column("Flow")
        table.add_column("Steps")
        for form in forms:
            flow = "multi-step" if form.multi_step else "single page"
            table.add_row(form.name, form.title, flow, ", ".join(form.step_names))
        self.console.print(table)

    def print_validation_result(self, form: FormDefinition, result: FormValidationResult) -> None:
        """Print whole-form validation errors, warnings and the summary."""
        if self.json_mode:
            data = result.to_dict()
            data["form"] = form.name
            self.console.print_json(data=data)
            return

        self.console.print(f"[bold]Form:[/bold] {form.title} ({form.name})")
        if result.errors:
            table = Table(show_header=True)
            table.add_column("Field", style="cyan")
            table.add_column("Severity")
            table.add_column("Category")
            table.add_column("Message")
            for name, outcome in result.errors.items():
                severity = outcome.severity.value if outcome.severity else ""
                style = "yellow" if not outcome.blocks_submission else "red"
                table.add_row(
                    name,
                    f"[{style}]{severity}[/{style}]",
                    outcome.category.value if outcome.category else "",
                    escape(outcome.message),
                )
            self.console.print(table)

        summary = result.summary or {}
        errors = summary.get("error_count", 0)
        warnings = summary.get("warning_count", 0)
        if result.is_valid:
            self.show_success(f"Valid ({warnings} warning(s))")
        else:
            self.console.print(f"[red]❌ Invalid: {errors} error(s), {warnings} warning(s)[/red]")

    def print_step_results(self, form: FormDefinition, results: list[StepEvaluationResult]) -> None:
        """Print the status of every step."""
        if self.json_mode:
            self.console.print_json(data={
                "form": form.name,
                "multi_step": form.multi_step,
                "steps": [
                    {"name": form.step_names[result.step_index], **result.to_dict()}
                    for result in results
                ],
            })
            return

        table = Table(title=f"{form.title} steps")
        table.add_column("#", justify="right")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Details")
        for result in results:
            style = _STATUS_STYLES[result.status]
            details = ", ".join(result.missing_fields) if result.missing_fields else "; ".join(
                result.validation_messages
            )
            table.add_row(
                str(result.step_index + 1),
                form.step_names[result.step_index],
                f"[{style}]{result.status.value}[/{style}]",
                escape(details),
            )
        self.console.print(table)

    def print_analytics(self, export: dict[str, Any]) -> None:
        """Print an analytics export."""
        if self.json_mode:
            self.console.print_json(data=export)
            return

        summary = export["summary"]
        risk = export["risk"]
        self.console.print(f"[bold]Session:[/bold] {summary['session_id']}")
        self.console.print(f"  Interactions: {summary['interaction_count']}")
        self.console.print(f"  Duration: {summary['session_duration_ms'] / 1000:.1f}s")
        self.console.print(f"  Interaction rate: {summary['interaction_rate']:.1f}/min")
        self.console.print(f"  Behavior: {summary['behavior_pattern']}")
        self.console.print(f"  Efficiency score: {export['efficiency_score']}")
        factors = ", ".join(risk["factors"]) or "none"
        self.console.print(f"  Risk: {risk['level']} (score {risk['score']}, factors: {factors})")

        if summary["per_field_stats"]:
            table = Table(title="Fields")
            table.add_column("Field", style="cyan")
            table.add_column("Focus", justify="right")
            table.add_column("Changes", justify="right")
            table.add_column("Avg focus (ms)", justify="right")
            table.add_column("Has value")
            for name, stats in summary["per_field_stats"].items():
                table.add_row(
                    name,
                    str(stats["focus_count"]),
                    str(stats["change_count"]),
                    f"{stats['average_focus_ms']:.0f}",
                    "yes" if stats["has_value"] else "no",
                )
            self.console.print(table)

        if summary["per_step_stats"]:
            table = Table(title="Steps")
            table.add_column("Step", style="cyan")
            table.add_column("Visits", justify="right")
            table.add_column("Dwell (ms)", justify="right")
            table.add_column("Performance")
            for name, stats in summary["per_step_stats"].items():
                table.add_row(name, str(stats["visits"]), f"{stats['dwell_ms']:.0f}", stats["performance"])
            self.console.print(table)

        for pattern in export["patterns"]:
            step = "" if pattern["step"] is None else f" (step {pattern['step']})"
            self.console.print(f"  [yellow]⚠ {pattern['pattern']}{step}[/yellow]")

    def show_progress(self, message: str) -> None:
        """Show progress message if verbose mode is enabled."""
        if self.verbose:
            self.console.print(f"🔄 {message}")

    def show_success(self, message: str) -> None:
        """Show success message with green checkmark."""
        self.console.print(f"[green]✅ {message}[/green]")

    def print_json(self, data: Any) -> None:
        self.console.print_json(data=data)

    def print(self, message: str, **kwargs) -> None:
        self.console.print(message, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message with red formatting."""
        self.console.print(f"[red]❌ Error:[/red] {message}")
