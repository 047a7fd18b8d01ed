#!/usr/bin/env python3
# cli.py
# Storefront pipeline operator CLI
#
# Typer + Rich front end for the event bus and the job processor

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from storefront_events import Event, validate_event
from storefront_events.factory import new_event_id
from storefront_queue import EventValidationError, Job, JobDecodeError, JobType, QueueKeys, now_ms

from .logging_config import setup_logging
from .settings import load_settings
from .wiring import build_bus, build_processor, build_store

app = typer.Typer(
    help="Storefront event pipeline: event bus, job processor and dead-letter tooling",
    add_completion=False,
)

console = Console()


# -----------------------------
# UI helpers
# -----------------------------

def header(subtitle: str):
    console.print(
        Panel.fit(
            "[bold cyan]STOREFRONT PIPELINE[/bold cyan]\n"
            f"[white]{subtitle}[/white]",
            border_style="cyan",
        )
    )


def success(msg: str):
    console.print(f"[green]✔ {msg}[/green]")


def info(msg: str):
    console.print(f"[dim]• {msg}[/dim]")


def error(msg: str):
    console.print(f"[bold red]✖ {msg}[/bold red]")


def _format_ms(value: Optional[int]) -> str:
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _load_json(text: Optional[str], file: Optional[Path]) -> Any:
    if file is not None:
        text = file.read_text(encoding="utf-8")
    if text is None:
        raise typer.BadParameter("Provide a JSON string or --file")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON: {e}")


# -----------------------------
# Shared options
# -----------------------------

@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override logging.level"
    ),
):
    """
    Load settings and logging once for every command.
    """
    try:
        settings = load_settings(config)
    except ValueError as e:
        error(str(e))
        raise typer.Exit(code=2)

    if log_level:
        settings["logging"]["level"] = log_level

    setup_logging(settings)
    ctx.obj = settings


# -----------------------------
# Commands
# -----------------------------

@app.command()
def run(
    ctx: typer.Context,
    once: bool = typer.Option(False, "--once", help="Run a single tick and exit"),
):
    """
    Run the job processor until interrupted.
    """
    settings: Dict[str, Any] = ctx.obj
    processor = build_processor(settings, build_store(settings))

    if once:
        processor.tick()
        _print_stats(processor.stats())
        return

    header("Job processor")
    info(f"Tick interval: {processor.tick_interval}s")
    info(f"Retry delay: {processor.retry_delay_ms}ms x attempt, max {processor.max_attempts} attempts")
    processor.run_forever()
    success("Processor stopped")


@app.command()
def stats(ctx: typer.Context):
    """
    Show queue lengths.
    """
    store = build_store(ctx.obj)
    _print_stats(store.stats())


def _print_stats(lengths: Dict[str, int]):
    table = Table(title="Queues")
    table.add_column("Queue", style="cyan")
    table.add_column("Items", justify="right")
    for name, length in lengths.items():
        table.add_row(name, str(length))
    console.print(table)


@app.command()
def failed(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Max dead letters to show"),
):
    """
    List dead-lettered jobs, oldest first.
    """
    store = build_store(ctx.obj)
    items = store.scan_all(QueueKeys.FAILED)

    if not items:
        success("No dead-lettered jobs")
        return

    table = Table(title=f"Dead letters ({len(items)})")
    table.add_column("Job ID", overflow="fold")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Attempts", justify="right")
    table.add_column("Created")

    for raw in items[:limit]:
        try:
            job = Job.from_json(raw)
        except JobDecodeError:
            table.add_row("?", "[red]malformed[/red]", "-", "-")
            continue
        table.add_row(
            job.id, job.type, f"{job.attempts}/{job.max_attempts}", _format_ms(job.created_at)
        )

    console.print(table)


@app.command("retry-failed")
def retry_failed(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max jobs to replay"),
):
    """
    Move dead-lettered jobs back to jobs:queue with a fresh attempt budget.
    """
    settings: Dict[str, Any] = ctx.obj
    processor = build_processor(settings, build_store(settings))
    moved = processor.retry_dead_letters(limit=limit)
    success(f"Requeued {moved} job(s)")


@app.command()
def emit(
    ctx: typer.Context,
    event_json: Optional[str] = typer.Argument(None, help="Event as a JSON object"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the event from a file"),
    fill: bool = typer.Option(
        True, "--fill/--no-fill", help="Generate a missing id and timestamp"
    ),
):
    """
    Publish one event on the event bus.
    """
    raw = _load_json(event_json, file)
    if not isinstance(raw, dict):
        error("Event must be a JSON object")
        raise typer.Exit(code=1)

    if fill:
        raw.setdefault("id", new_event_id(raw.get("type") or "evt"))
        raw.setdefault("timestamp", now_ms())

    try:
        event = Event.from_dict(raw)
        validate_event(event)
    except (EventValidationError, JobDecodeError) as e:
        error(str(e))
        raise typer.Exit(code=1)

    if not build_bus(build_store(ctx.obj)).publish(event):
        error(f"Event {event.id} was not queued, see the log for details")
        raise typer.Exit(code=1)

    success(f"Emitted {event.type} ({event.id})")


@app.command()
def enqueue(
    ctx: typer.Context,
    job_type: str = typer.Argument(..., help="Job type, e.g. persist.memgraph"),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Job data as JSON"),
    delay_ms: int = typer.Option(0, "--delay-ms", help="Delay before the job is due"),
):
    """
    Push a single job directly onto the job queues.
    """
    if JobType.parse(job_type) is None:
        error(f"Unknown job type '{job_type}'. Known: {', '.join(t.value for t in JobType)}")
        raise typer.Exit(code=1)

    payload = _load_json(data, None) if data is not None else {}

    settings: Dict[str, Any] = ctx.obj
    processor = build_processor(settings, build_store(settings))
    job = processor.enqueue(job_type, payload, delay_ms=delay_ms)
    success(f"Enqueued {job.type} ({job.id})")


def main():
    app()


if __name__ == "__main__":
    main()
