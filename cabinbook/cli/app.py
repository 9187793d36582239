"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional, Tuple

import pendulum
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_store import JsonFileReservationStore
from ..adapters.webhook_notifier import WebhookNotifier
from ..config import AppConfig, get_default_config_path
from ..domain.clock import SystemClock
from ..domain.exceptions import CabinbookError, UnknownResource
from ..domain.models import Reject, Reservation, ResourceStatus
from ..domain.zone_calendar import COMMON_TIMEZONES
from ..logging_setup import configure_logging
from ..services.reservation_service import ReservationService

app = typer.Typer(
    name="cabinbook",
    help="Check cabin availability and manage conflict-free reservations",
    add_completion=False
)

console = Console()
logger = logging.getLogger(__name__)

# Handled errors: domain errors, invalid config/input, missing config file
HANDLED_ERRORS = (CabinbookError, ValueError, FileNotFoundError)

_state = {"verbose": False}

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    cabinbook - availability and reservations for shared cabins.
    """
    _state["verbose"] = verbose


def _fail(message: object) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(message))}")
    raise typer.Exit(1)


def _load_config(config_file: Optional[Path]) -> Tuple[Path, AppConfig]:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    configure_logging("DEBUG" if _state["verbose"] else config.logging.level)
    return config_path, config


def _build_service(config_file: Optional[Path]) -> ReservationService:
    """Wire store, notifier and clock from the config file."""
    config_path, config = _load_config(config_file)
    resources = config.resource_settings()

    notifier = None
    if config.notifications.enabled:
        notifier = WebhookNotifier(
            slack_webhook_url=config.notifications.slack_webhook_url,
            discord_webhook_url=config.notifications.discord_webhook_url,
            resource_names={r.id: r.display_name for r in resources},
            resource_timezones={r.id: r.timezone for r in resources},
            site_url=config.notifications.site_url,
        )

    return ReservationService(
        store=JsonFileReservationStore(config.store_path(config_path)),
        resources=resources,
        dispatcher=notifier,
        clock=SystemClock(),
        lookahead_days=config.defaults.lookahead_days,
    )


def _parse_date(value: str, tz: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD ({e})") from e


def _resolve_range(service: ReservationService, resource_id: str, day: str, start: str, end: str):
    calendar = service.calendar(resource_id)
    local_day = _parse_date(day, calendar.timezone)
    return calendar.at_wall_clock(local_day, start), calendar.at_wall_clock(local_day, end)


def _report_reject(reject: Reject, tz: str) -> NoReturn:
    console.print(f"[bold red]✗ Rejected ({reject.reason.value}):[/bold red] {escape(reject.message)}")
    for conflict in reject.conflicts:
        console.print(f"  [dim]conflicts with[/dim] {escape(conflict.format_display(tz))}")
    raise typer.Exit(1)


def _report_saved(title: str, reservation: Reservation, service: ReservationService) -> None:
    settings = service.resource(reservation.resource_id)
    console.print(Panel.fit(
        f"[bold]Resource:[/bold] {escape(settings.display_name)}\n"
        f"[bold]When:[/bold] {escape(reservation.format_display(settings.timezone))}\n"
        f"[bold]ID:[/bold] {reservation.id}",
        title=title
    ))


def _display_zone(service: ReservationService, resource_id: str) -> str:
    """Zone for echoing a removed reservation; rows of unconfigured resources print in UTC."""
    try:
        return service.resource(resource_id).timezone
    except UnknownResource:
        logger.warning("Resource %s is no longer configured; showing times in UTC", resource_id)
        return "UTC"


def _describe(reservation: Optional[Reservation], tz: str) -> str:
    if reservation is None:
        return "-"
    return escape(reservation.format_display(tz))


@app.command()
def resources(config_file: ConfigOption = None):
    """
    List all configured resources.
    """
    try:
        service = _build_service(config_file)
    except HANDLED_ERRORS as e:
        _fail(e)

    if not service.resources:
        console.print("[yellow]No resources defined in the config file.[/yellow]")
        return

    table = Table(title="Configured resources", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Time zone", style="dim")
    table.add_column("Slot", justify="right")

    for settings in service.resources:
        table.add_row(
            settings.id,
            settings.display_name,
            settings.timezone,
            f"{settings.interval_minutes} min"
        )

    console.print(table)


@app.command()
def status(
    resource_id: Annotated[Optional[str], typer.Argument(help="Resource id. Omit for all resources.")] = None,
    config_file: ConfigOption = None,
):
    """
    Show whether resources are free or occupied right now.
    """
    try:
        service = _build_service(config_file)
        if resource_id:
            statuses = {resource_id: service.status(resource_id)}
        else:
            statuses = service.statuses()
    except HANDLED_ERRORS as e:
        _fail(e)

    table = Table(title="Resource status", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="bold yellow")
    table.add_column("State")
    table.add_column("Current")
    table.add_column("Next")

    for rid, current in statuses.items():
        settings = service.resource(rid)
        table.add_row(
            settings.display_name,
            _format_state(current),
            _describe(current.current, settings.timezone),
            _describe(current.next, settings.timezone),
        )

    console.print(table)


def _format_state(current: ResourceStatus) -> str:
    if current.is_occupied:
        return "[red]occupied[/red]"
    return "[green]free[/green]"


@app.command()
def timetable(
    resource_id: Annotated[str, typer.Argument(help="Resource id")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Local date (YYYY-MM-DD), defaults to today")] = None,
    config_file: ConfigOption = None,
):
    """
    Show the slot timetable of one day.
    """
    try:
        service = _build_service(config_file)
        settings = service.resource(resource_id)
        day = _parse_date(date, settings.timezone) if date else None
        slots = service.timetable(resource_id, day)
    except HANDLED_ERRORS as e:
        _fail(e)

    title_day = service.calendar(resource_id).format_date(slots[0].start) if slots else ""
    table = Table(
        title=f"{escape(settings.display_name)} - {title_day} ({settings.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Time")
    table.add_column("State")

    for slot in slots:
        if slot.is_reserved:
            state = "[red]reserved[/red]" + (" ●" if slot.is_reservation_start else "")
        elif slot.is_past:
            state = "[dim]past[/dim]"
        else:
            state = "[green]free[/green]"
        if slot.is_current:
            state = f"{state} [bold]← now[/bold]"
        table.add_row(f"{slot.label(settings.timezone)}-{slot.end.in_timezone(settings.timezone).format('HH:mm')}", state)

    console.print(table)


@app.command()
def month(
    resource_id: Annotated[str, typer.Argument(help="Resource id")],
    month_option: Annotated[Optional[str], typer.Option("--month", "-m", help="Month (YYYY-MM), defaults to the current month")] = None,
    config_file: ConfigOption = None,
):
    """
    Show a month grid with the number of reservations per day.
    """
    try:
        service = _build_service(config_file)
        settings = service.resource(resource_id)
        ref = None
        if month_option:
            try:
                ref = pendulum.from_format(month_option, "YYYY-MM", tz=settings.timezone)
            except ValueError as e:
                raise ValueError(f"Invalid month {month_option!r}, expected YYYY-MM ({e})") from e
        overview = service.month_overview(resource_id, ref)
    except HANDLED_ERRORS as e:
        _fail(e)

    days = list(overview)
    shown_month = days[len(days) // 2].month

    table = Table(
        title=f"{escape(settings.display_name)} - {days[len(days) // 2].format('YYYY-MM')}",
        show_header=True,
        header_style="bold cyan"
    )
    for day in days[:7]:
        table.add_column(day.format("ddd"), justify="center")

    for week_start in range(0, len(days), 7):
        cells = []
        for day in days[week_start:week_start + 7]:
            count = len(overview[day])
            text = str(day.day) if day.month == shown_month else f"[dim]{day.day}[/dim]"
            if count:
                text = f"{text}\n[yellow]{count} booked[/yellow]"
            cells.append(text)
        table.add_row(*cells)

    console.print(table)


@app.command()
def reserve(
    resource_id: Annotated[str, typer.Argument(help="Resource id")],
    date: Annotated[str, typer.Option("--date", "-d", help="Local date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Option("--start", "-s", help="Start time (HH:mm)")],
    end: Annotated[str, typer.Option("--end", "-e", help="End time (HH:mm); earlier than start means the next day")],
    purpose: Annotated[str, typer.Option("--purpose", "-p", help="What the reservation is for")],
    owner: Annotated[Optional[str], typer.Option("--owner", help="Opaque owner reference")] = None,
    config_file: ConfigOption = None,
):
    """
    Create a reservation.

    Examples:

        cabinbook reserve cabin-a --date 2024-03-01 --start 13:30 --end 15:00 --purpose "1:1"

        # Crossing midnight
        cabinbook reserve cabin-a --date 2024-03-01 --start 23:00 --end 01:00 --purpose "Late call"
    """
    try:
        service = _build_service(config_file)
        tz = service.resource(resource_id).timezone
        range_start, range_end = _resolve_range(service, resource_id, date, start, end)
        result = service.create(resource_id, range_start, range_end, purpose, owner_ref=owner)
    except HANDLED_ERRORS as e:
        _fail(e)

    if isinstance(result, Reject):
        _report_reject(result, tz)
    _report_saved("✓ Reserved", result, service)


@app.command()
def update(
    reservation_id: Annotated[str, typer.Argument(help="Reservation id")],
    date: Annotated[str, typer.Option("--date", "-d", help="Local date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Option("--start", "-s", help="Start time (HH:mm)")],
    end: Annotated[str, typer.Option("--end", "-e", help="End time (HH:mm)")],
    purpose: Annotated[str, typer.Option("--purpose", "-p", help="What the reservation is for")],
    config_file: ConfigOption = None,
):
    """
    Change the time range and purpose of a reservation.
    """
    try:
        service = _build_service(config_file)
        resource_id = service.get(reservation_id).resource_id
        tz = service.resource(resource_id).timezone
        range_start, range_end = _resolve_range(service, resource_id, date, start, end)
        result = service.update(reservation_id, range_start, range_end, purpose)
    except HANDLED_ERRORS as e:
        _fail(e)

    if isinstance(result, Reject):
        _report_reject(result, tz)
    _report_saved("✓ Updated", result, service)


@app.command()
def cancel(
    reservation_id: Annotated[str, typer.Argument(help="Reservation id")],
    config_file: ConfigOption = None,
):
    """
    Cancel a reservation. The row is kept with status "cancelled" and its
    time range becomes free again.
    """
    try:
        service = _build_service(config_file)
        cancelled = service.cancel(reservation_id)
    except HANDLED_ERRORS as e:
        _fail(e)

    tz = _display_zone(service, cancelled.resource_id)
    console.print(f"\n[green]✓ Cancelled:[/green] {escape(cancelled.format_display(tz))}\n")


@app.command()
def delete(
    reservation_id: Annotated[str, typer.Argument(help="Reservation id")],
    config_file: ConfigOption = None,
):
    """
    Delete a reservation.
    """
    try:
        service = _build_service(config_file)
        removed = service.delete(reservation_id)
    except HANDLED_ERRORS as e:
        _fail(e)

    tz = _display_zone(service, removed.resource_id)
    console.print(f"\n[green]✓ Deleted:[/green] {escape(removed.format_display(tz))}\n")


@app.command()
def timezones():
    """
    List common time zones with their current UTC offset.
    """
    now = pendulum.now("UTC")
    table = Table(title="Common time zones", show_header=True, header_style="bold cyan")
    table.add_column("Zone", style="bold yellow")
    table.add_column("Offset", justify="right")
    table.add_column("Local time", style="dim")

    for zone in COMMON_TIMEZONES:
        local = now.in_timezone(zone)
        table.add_row(zone, f"UTC{local.format('Z')}", local.format("YYYY-MM-DD HH:mm"))

    console.print(table)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]cabinbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
