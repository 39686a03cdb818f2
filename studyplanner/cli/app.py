"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from keyring.errors import KeyringError
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.credential_store import ApiKeyStore
from ..adapters.http_client import RequestsHttpClient
from ..adapters.json_store import JsonEventStore, load_tasks
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import PlannerError
from ..domain.models import LlmProvider, Placement, ScheduleSuggestion
from ..domain.slot_finder import SlotFinder
from ..domain.timezone import ensure_utc
from ..services.event_placement import EventPlacementService
from ..services.suggestion_engine import SuggestionEngine

app = typer.Typer(
    name="studyplanner",
    help="Plan study tasks into free calendar time",
    add_completion=False
)

console = Console()


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
EventsOption = Annotated[
    Optional[Path],
    typer.Option("--events", "-e", help="JSON file with committed events"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Student planner scheduling tools.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Explicit config files must exist; the default location is optional."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _parse_instant(value: str, option_name: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz="UTC")
    except ValueError as e:
        raise typer.BadParameter(f"Could not parse {option_name}: {e}")
    if not isinstance(parsed, DateTime):
        raise typer.BadParameter(f"{option_name} must be a date and time, got {value}")
    return ensure_utc(parsed)


def _format_local(value: DateTime, tz: Optional[str]) -> str:
    return value.in_timezone(tz or "UTC").format("ddd DD.MM.YYYY HH:mm")


def _print_suggestions(suggestions: List[ScheduleSuggestion], titles: dict, tz: Optional[str]) -> None:
    table = Table(
        title=f"Vorschläge ({tz or 'UTC'})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Task", style="bold yellow")
    table.add_column("Start")
    table.add_column("Ende")
    table.add_column("Quelle", style="dim")
    table.add_column("Konfidenz", justify="right")

    for suggestion in suggestions:
        table.add_row(
            titles.get(suggestion.task_id, suggestion.task_id),
            _format_local(suggestion.start_at, tz),
            _format_local(suggestion.end_at, tz),
            suggestion.origin.value,
            f"{suggestion.confidence:.2f}" if suggestion.confidence is not None else "-",
        )

    console.print()
    console.print(table)
    console.print()


def _print_placement(placement: Placement, tz: Optional[str]) -> None:
    status = "[yellow]verschoben[/yellow]" if placement.adjusted else "[green]wie gewünscht[/green]"
    console.print(
        f"\n[bold green]✓[/bold green] {placement.task_id}: "
        f"{_format_local(placement.start_at, tz)} – {_format_local(placement.end_at, tz)} ({status})\n"
    )


@app.command()
def suggest(
    tasks_file: Annotated[Path, typer.Option("--tasks", "-t", help="JSON file with pending tasks")],
    events_file: EventsOption = None,
    config_file: ConfigOption = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time (ISO 8601), defaults to now")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print suggestions as JSON")] = False,
):
    """
    Suggest non-overlapping slots for all pending tasks.

    Examples:

        studyplanner suggest --tasks tasks.json --events events.json

        studyplanner suggest -t tasks.json --now 2024-01-01T12:00:00Z --json
    """
    try:
        config = _load_config(config_file)
        preferences = config.to_preferences(ApiKeyStore())
        tasks = load_tasks(tasks_file)
        store = JsonEventStore.load(events_file)
        reference = _parse_instant(now, "--now") if now else None

        engine = SuggestionEngine(
            http_client=RequestsHttpClient(timeout=config.llm.timeout_seconds),
            slot_finder=SlotFinder(step_minutes=config.scheduling.step_minutes),
        )
        suggestions = asyncio.run(
            engine.generate_suggestions(
                tasks=tasks,
                preferences=preferences,
                existing_intervals=store.all_intervals(),
                now=reference,
            )
        )

        if as_json:
            console.print_json(json.dumps([s.to_dict() for s in suggestions]))
        elif not suggestions:
            console.print("[yellow]⚠ Keine offenen Aufgaben gefunden.[/yellow]")
        else:
            _print_suggestions(suggestions, {t.id: t.title for t in tasks}, preferences.timezone)

    except (FileNotFoundError, ValueError, PlannerError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def schedule(
    task_id: Annotated[str, typer.Argument(help="Task to place")],
    start: Annotated[str, typer.Option("--start", help="Desired start (ISO 8601)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes")],
    events_file: EventsOption = None,
    config_file: ConfigOption = None,
):
    """
    Place one task at the earliest free slot on the requested day.
    """
    try:
        config = _load_config(config_file)
        service = EventPlacementService(
            event_store=JsonEventStore.load(events_file),
            timezone=config.timezone,
            slot_finder=SlotFinder(step_minutes=config.scheduling.step_minutes),
        )
        placement = service.schedule(
            task_id=task_id,
            desired_start=_parse_instant(start, "--start"),
            duration_minutes=duration,
            work_window=config.scheduling.work_window(),
        )
        _print_placement(placement, config.timezone)

    except (FileNotFoundError, ValueError, PlannerError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def move(
    event_id: Annotated[str, typer.Argument(help="Event to move")],
    start: Annotated[str, typer.Option("--start", help="New start (ISO 8601)")],
    end: Annotated[str, typer.Option("--end", help="New end (ISO 8601)")],
    events_file: EventsOption = None,
    config_file: ConfigOption = None,
):
    """
    Move a committed event; collisions are reslotted later the same day.
    """
    try:
        config = _load_config(config_file)
        service = EventPlacementService(
            event_store=JsonEventStore.load(events_file),
            timezone=config.timezone,
            slot_finder=SlotFinder(step_minutes=config.scheduling.step_minutes),
        )
        placement = service.move(
            event_id=event_id,
            new_start=_parse_instant(start, "--start"),
            new_end=_parse_instant(end, "--end"),
            work_window=config.scheduling.work_window(),
        )
        _print_placement(placement, config.timezone)

    except (FileNotFoundError, ValueError, PlannerError) as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def set_api_key(
    api_key: Annotated[str, typer.Option(prompt=True, hide_input=True, help="OpenAI API key")],
):
    """
    Store the OpenAI API key in the system keyring.
    """
    try:
        ApiKeyStore().set_api_key(LlmProvider.OPENAI.value, api_key)
        console.print("\n[green]✓ API-Key gespeichert.[/green]\n")
    except KeyringError as e:
        console.print(f"[bold red]Fehler:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def clear_api_key():
    """
    Remove the stored OpenAI API key.
    """
    if ApiKeyStore().clear_api_key(LlmProvider.OPENAI.value):
        console.print("\n[green]✓ API-Key gelöscht.[/green]\n")
    else:
        console.print("\n[yellow]Kein gespeicherter API-Key gefunden.[/yellow]\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]studyplanner[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
