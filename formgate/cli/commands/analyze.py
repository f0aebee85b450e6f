"""Replay a recorded interaction log and print the analytics export."""

from typing import Annotated, Any

import typer

from formgate.analytics import AnalyticsRecorder
from formgate.cli.utils import OutputFormat
from formgate.config import EngineConfig
from formgate.models import EventType
from formgate.scheduling import ManualScheduler

_EVENT_KEYS = ("type", "field", "step", "timestamp")


def replay_events(
    events: list[dict[str, Any]],
    session_id: str = "replay",
    config: EngineConfig | None = None,
    step_names: list[str] | None = None,
) -> AnalyticsRecorder:
    """
    Feed recorded events through a recorder on a virtual clock.

    Each event is a mapping with ``type`` and optional ``field``, ``step``
    and ``timestamp`` (milliseconds, non-decreasing). Remaining keys become
    event data. Hesitation polling runs on the virtual clock as it would in a
    live session.

    Raises:
        ValueError: If an event has an unknown type or goes back in time
    """
    config = config or EngineConfig()
    start = float(events[0].get("timestamp", 0)) if events else 0.0
    scheduler = ManualScheduler(start=start)
    recorder = AnalyticsRecorder(session_id, scheduler.now, config, step_names)
    scheduler.call_every(config.hesitation_threshold_ms, recorder.check_hesitation)

    for position, event in enumerate(events):
        if not isinstance(event, dict) or "type" not in event:
            raise ValueError(f"Event {position} must be a mapping with a 'type'")
        event_type = EventType(event["type"])
        timestamp = float(event.get("timestamp", scheduler.now()))
        if timestamp < scheduler.now():
            raise ValueError(f"Event {position} is earlier than the event before it")
        scheduler.advance(timestamp - scheduler.now())
        data = {key: value for key, value in event.items() if key not in _EVENT_KEYS}
        recorder.record(event_type, field=event.get("field"), step=event.get("step"), **data)
    return recorder


def analyze_command(
    ctx: typer.Context,
    events_file: Annotated[
        str, typer.Argument(help="Event log (JSON/YAML): a list, or a mapping with 'events'")
    ],
    form: Annotated[
        str | None,
        typer.Option("--form", help="Form whose step names label the step statistics"),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TEXT,
):
    """Replay an interaction log and report behavior, risk and efficiency."""
    cli_ctx = ctx.obj
    cli_ctx.set_output_format(output_format)

    step_names = cli_ctx.load_form_or_exit(form).step_names if form else None
    document = cli_ctx.load_data_or_exit(events_file, expected=(list, dict))
    if isinstance(document, dict):
        events = document.get("events")
        session_id = str(document.get("session_id", "replay"))
    else:
        events, session_id = document, "replay"
    if not isinstance(events, list):
        cli_ctx.print_error(f"No event list found in {events_file}")
        raise typer.Exit(code=1)

    try:
        recorder = replay_events(events, session_id, EngineConfig.from_env(), step_names)
    except ValueError as e:
        cli_ctx.print_error(str(e))
        raise typer.Exit(code=1) from e

    cli_ctx.print_verbose(f"[dim]Replayed {len(events)} event(s)[/dim]")
    cli_ctx.printer.print_analytics(recorder.export_summary())
