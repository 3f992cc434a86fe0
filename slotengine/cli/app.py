"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..adapters.data_file import load_scenario
from ..config import EngineSettings, load_settings
from ..domain.exceptions import ConfigError, SchedulingError, SlotConflictError
from ..domain.intervals import parse_instant, validate_timezone
from ..services.availability import AvailabilityService, build_calendar_providers
from ..services.slot_query import SlotQuery

app = typer.Typer(
    name="slotengine",
    help="Compute bookable slots for event types from schedules, bookings and calendars",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./slotengine.yaml"),
]
DataOption = Annotated[
    Path,
    typer.Option("--data", "-d", help="YAML file with schedules, event types and bookings"),
]
NowOption = Annotated[
    Optional[str],
    typer.Option("--now", help="Pretend the current instant is this ISO-8601 time"),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load(config_file: Optional[Path]) -> EngineSettings:
    settings = load_settings(config_file)
    _configure_logging(settings.log_level)
    return settings


def _build_service(
    settings: EngineSettings,
    data: Path,
    now: Optional[str],
) -> AvailabilityService:
    scenario = load_scenario(data)
    clock = None
    if now:
        fixed_now = parse_instant(now)
        clock = lambda: fixed_now  # noqa: E731

    return AvailabilityService.from_settings(
        settings,
        scenario.repository,
        providers=build_calendar_providers(settings, mock_events=scenario.mock_busy_events),
        clock=clock,
    )


@app.command()
def slots(
    event_type_id: Annotated[str, typer.Argument(help="Event type to query")],
    data: DataOption,
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last date (YYYY-MM-DD)")] = None,
    timezone: Annotated[Optional[str], typer.Option("--timezone", "-t", help="Attendee IANA timezone")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the slots as JSON")] = False,
    complete: Annotated[bool, typer.Option("--require-complete", help="Fail if any external calendar cannot be read")] = False,
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    List bookable slots of an event type.

    Examples:

        slotengine slots intro --data demo.yaml --start 2024-11-25 --end 2024-11-29

        slotengine slots team-call --data demo.yaml -t Europe/Berlin --json
    """
    try:
        settings = _load(config_file)
        tz = validate_timezone(timezone or settings.default_timezone)
        today = pendulum.now(tz).format("YYYY-MM-DD")
        start_date = start or today
        end_date = end or start_date

        query = SlotQuery.build(
            event_type_id=event_type_id,
            start_date=start_date,
            end_date=end_date,
            timezone=tz,
            require_complete=complete,
        )
        service = _build_service(settings, data, now)
        found = asyncio.run(service.find_slots(query))

        if as_json:
            typer.echo(json.dumps([slot.to_dict() for slot in found], indent=2))
            return

        if not found:
            console.print(
                f"[yellow]No bookable slots for {event_type_id} between "
                f"{start_date} and {end_date}.[/yellow]"
            )
            return

        table = Table(
            title=f"{event_type_id}: {len(found)} slot(s) ({tz})",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Date", style="bold yellow")
        table.add_column("Local time")
        table.add_column("UTC", style="dim")
        table.add_column("Duration", justify="right")

        for slot in found:
            table.add_row(
                slot.time.in_timezone(tz).format("ddd YYYY-MM-DD"),
                slot.local_time,
                slot.iso_time(),
                f"{slot.duration} min",
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, SchedulingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def assign(
    event_type_id: Annotated[str, typer.Argument(help="Round-robin event type")],
    slot_time: Annotated[str, typer.Argument(help="Slot start as ISO-8601 instant")],
    data: DataOption,
    timezone: Annotated[Optional[str], typer.Option("--timezone", "-t", help="Attendee IANA timezone")] = None,
    config_file: ConfigOption = None,
    now: NowOption = None,
):
    """
    Pick the host for a round-robin booking at SLOT_TIME.
    """
    try:
        settings = _load(config_file)
        tz = timezone or settings.default_timezone
        service = _build_service(settings, data, now)
        host = asyncio.run(service.assign_host(event_type_id, slot_time, tz))

        console.print(Panel.fit(
            f"[bold green]Assigned host:[/bold green] {host}\n"
            f"[bold]Slot:[/bold] {parse_instant(slot_time).to_iso8601_string()}",
            title="Round-robin assignment"
        ))

    except SlotConflictError as e:
        console.print(f"[bold yellow]Conflict:[/bold yellow] {e}")
        raise typer.Exit(2)

    except (FileNotFoundError, ValueError, SchedulingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def check_config(config_file: ConfigOption = None):
    """
    Validate the configuration file and show the effective settings.
    """
    try:
        settings = load_settings(config_file)
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Effective settings", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="bold yellow")
    table.add_column("Value")

    table.add_row("default_timezone", settings.default_timezone)
    table.add_row("provider_timeout_seconds", str(settings.provider_timeout_seconds))
    table.add_row("token_refresh_margin_minutes", str(settings.token_refresh_margin_minutes))
    table.add_row("round_robin_lookback_days", str(settings.round_robin_lookback_days))
    table.add_row("google", "configured" if settings.google.is_configured else "not configured")
    table.add_row("microsoft", "configured" if settings.microsoft.is_configured else "not configured")

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
