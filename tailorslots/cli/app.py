"""
Main CLI application using Typer.

Operates on a JSON data file holding appointment and travel documents,
the same shape the application persists remotely.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional, Tuple

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_store import JsonScheduleRepository
from ..config import AppConfig, load_config
from ..domain.exceptions import SchedulingError
from ..domain.models import (
    AppointmentRequest,
    AppointmentStatus,
    Location,
    LocationType,
    Purpose,
    ReminderSettings,
    RescheduleRequest,
)
from ..domain.projector import ListTab
from ..domain.store import AppointmentStore
from ..domain.travel import TravelSchedule
from ..services.booking import BookingService

app = typer.Typer(
    name="tailorslots",
    help="Book tailoring appointments and inspect availability",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", "-d", help="Path to the JSON data file. Overrides data_file from the config.")
]

STATUS_STYLES = {
    AppointmentStatus.SCHEDULED: "cyan",
    AppointmentStatus.CONFIRMED: "green",
    AppointmentStatus.COMPLETED: "dim green",
    AppointmentStatus.CANCELED: "red",
    AppointmentStatus.RESCHEDULED: "yellow",
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_context(
    config_file: Optional[Path],
    data_file: Optional[Path]
) -> Tuple[AppConfig, JsonScheduleRepository, BookingService]:
    """
    Load configuration and data, and wire up the booking service.
    """
    config = load_config(config_file)
    _configure_logging(config.log_level)

    path = data_file or config.data_file or Path.cwd() / "appointments.json"
    repository = JsonScheduleRepository(path, timezone=config.timezone)

    appointments, travel_windows = repository.load()
    store = AppointmentStore()
    store.restore(appointments)

    service = BookingService(
        store=store,
        engine=config.build_engine(),
        projector=config.build_projector(),
        travel_schedule=TravelSchedule(travel_windows),
    )
    return config, repository, service


def _save(repository: JsonScheduleRepository, service: BookingService) -> None:
    repository.save(service.store.snapshot(), service.travel_schedule.windows)


def _parse_day(value: Optional[str], tz: str):
    if value is None:
        return pendulum.today(tz)
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD: {e}") from e


def _parse_start(day: str, at: str, tz: str):
    try:
        return pendulum.from_format(f"{day} {at}", "YYYY-MM-DD HH:mm", tz=tz)
    except ValueError as e:
        raise ValueError(f"Invalid start '{day} {at}', expected YYYY-MM-DD HH:mm: {e}") from e


def _build_location(kind: LocationType, address: Optional[str], city: Optional[str], country: Optional[str]) -> Location:
    if kind is LocationType.HOTEL:
        if not (address and city and country):
            raise ValueError("Hotel visits need --address, --city and --country.")
        return Location.hotel(address=address, city=city, country=country)
    if kind is LocationType.VIRTUAL:
        return Location.virtual()
    return Location.shop()


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD). Defaults to today.")] = None,
    days: Annotated[int, typer.Option("--days", help="Number of days to show", min=1)] = 7,
    show_all: Annotated[bool, typer.Option("--all", help="Include booked slots")] = False,
):
    """
    List bookable slots.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
        first = _parse_day(start, config.timezone)
        generated = service.generate_availability(first, first.add(days=days), tailor_id=config.tailor_id)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    shown = [s for s in generated if show_all or s.is_open]
    if not shown:
        console.print("[yellow]No open slots in this range.[/yellow]")
        return

    console.print(f"[bold green]{len(shown)} slot(s):[/bold green]\n")
    for slot in shown:
        if slot.booked:
            console.print(f"  [dim]{slot.format_display()}[/dim]")
        else:
            console.print(f"  {slot.format_display()}")


@app.command()
def month(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    which: Annotated[Optional[str], typer.Option("--month", help="Month to show (YYYY-MM). Defaults to the current month.")] = None,
):
    """
    Show the month calendar with appointment counts and open days.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
        reference = _parse_day(f"{which}-01" if which else None, config.timezone)
        grid = service.project_month(reference, tailor_id=config.tailor_id)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    table = Table(title=reference.format("MMMM YYYY"), show_header=True, header_style="bold cyan")
    for cell in grid.weeks[0]:
        table.add_column(cell.date.format("ddd"), justify="center")

    for week in grid.weeks:
        row = []
        for cell in week:
            text = str(cell.date.day)
            if cell.appointment_count:
                text += f"\n[bold]{cell.appointment_count} appt[/bold]"
            elif cell.has_open_availability:
                text += "\n[green]open[/green]"
            row.append(text if cell.in_month else f"[dim]{text}[/dim]")
        table.add_row(*row)

    console.print()
    console.print(table)
    console.print()


@app.command()
def week(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Any day of the week (YYYY-MM-DD)")] = None,
):
    """
    Show the week calendar hour by hour.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
        view = service.project_week(_parse_day(date, config.timezone), tailor_id=config.tailor_id)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Time", style="dim")
    for day in view.days:
        table.add_column(day.format("ddd D"), justify="center")

    for row in view.rows:
        cells = []
        for cell in row.cells:
            if cell.appointments:
                cells.append("\n".join(a.purpose.value for a in cell.appointments))
            elif cell.open_slot is not None:
                cells.append("[green]open[/green]")
            else:
                cells.append("")
        table.add_row(f"{row.hour:02d}:00", *cells)

    console.print()
    console.print(table)
    console.print()


@app.command()
def day(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Day to show (YYYY-MM-DD)")] = None,
):
    """
    Show a single day hour by hour.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
        view = service.project_day(_parse_day(date, config.timezone), tailor_id=config.tailor_id)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"\n[bold]{view.date.format('dddd, MMMM D, YYYY')}[/bold]\n")
    for cell in view.rows:
        label = f"{cell.hour:02d}:00"
        if cell.appointments:
            for appointment in cell.appointments:
                console.print(
                    f"  {label}  {appointment.purpose.value} "
                    f"({appointment.location.describe()}) [dim]{appointment.id}[/dim]"
                )
        elif cell.open_slot is not None:
            console.print(f"  {label}  [green]available[/green]")
        else:
            console.print(f"  {label}  [dim]no availability[/dim]")
    console.print()


@app.command()
def appointments(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    tab: Annotated[ListTab, typer.Option("--tab", "-t", help="Which list to show")] = ListTab.UPCOMING,
):
    """
    List appointments by tab: all, upcoming, past or canceled.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
        items = service.list_appointments(tab, now=pendulum.now(config.timezone))
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    if not items:
        console.print(f"[yellow]No {tab.value} appointments.[/yellow]")
        return

    table = Table(title=f"{tab.value.capitalize()} appointments", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("When")
    table.add_column("Duration", justify="right")
    table.add_column("Purpose")
    table.add_column("Location")
    table.add_column("Status")

    for a in items:
        style = STATUS_STYLES[a.status]
        table.add_row(
            a.id,
            a.when.format("DD.MM.YYYY HH:mm"),
            f"{a.duration_minutes} min",
            a.purpose.value,
            a.location.describe(),
            f"[{style}]{a.status.value}[/{style}]",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    customer: Annotated[str, typer.Option("--customer", help="Customer id")],
    date: Annotated[str, typer.Option("--date", help="Day (YYYY-MM-DD)")],
    at: Annotated[str, typer.Option("--time", help="Start time (HH:mm)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="Duration in minutes")] = None,
    purpose: Annotated[Purpose, typer.Option("--purpose", help="Why the customer comes in")] = Purpose.FITTING,
    location: Annotated[LocationType, typer.Option("--location", help="Where the appointment takes place")] = LocationType.SHOP,
    address: Annotated[Optional[str], typer.Option("--address")] = None,
    city: Annotated[Optional[str], typer.Option("--city")] = None,
    country: Annotated[Optional[str], typer.Option("--country")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes")] = None,
    order: Annotated[Optional[str], typer.Option("--order", help="Related order id")] = None,
):
    """
    Book a new appointment.
    """
    try:
        config, repository, service = _load_context(config_file, data_file)
        request = AppointmentRequest(
            customer_id=customer,
            tailor_id=config.tailor_id,
            when=_parse_start(date, at, config.timezone),
            duration_minutes=duration or config.defaults.duration_minutes,
            location=_build_location(location, address, city, country),
            purpose=purpose,
            notes=notes,
            related_order_id=order,
            reminder=ReminderSettings(enabled=True, hours_before=config.defaults.reminder_hours),
        )
        appointment = service.create_appointment(request)
        _save(repository, service)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold green]✓ Appointment scheduled[/bold green]\n\n"
        f"[bold]ID:[/bold] {appointment.id}\n"
        f"[bold]When:[/bold] {appointment.time_range}\n"
        f"[bold]Where:[/bold] {appointment.location.describe()}",
        title="Booking"
    ))


@app.command()
def reschedule(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    date: Annotated[str, typer.Option("--date", help="New day (YYYY-MM-DD)")],
    at: Annotated[str, typer.Option("--time", help="New start time (HH:mm)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", help="New duration in minutes")] = None,
    purpose: Annotated[Optional[Purpose], typer.Option("--purpose")] = None,
    location: Annotated[Optional[LocationType], typer.Option("--location", help="New place of the appointment")] = None,
    address: Annotated[Optional[str], typer.Option("--address")] = None,
    city: Annotated[Optional[str], typer.Option("--city")] = None,
    country: Annotated[Optional[str], typer.Option("--country")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes")] = None,
):
    """
    Move an appointment. Fields that are not given keep their current values.
    """
    try:
        config, repository, service = _load_context(config_file, data_file)
        current = service.get_appointment(appointment_id)
        request = RescheduleRequest(
            when=_parse_start(date, at, config.timezone),
            duration_minutes=duration or current.duration_minutes,
            location=(
                _build_location(location, address, city, country)
                if location is not None else current.location
            ),
            purpose=purpose or current.purpose,
            notes=notes if notes is not None else current.notes,
        )
        appointment = service.reschedule_appointment(
            appointment_id, request, now=pendulum.now(config.timezone)
        )
        _save(repository, service)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Appointment {appointment.id} moved to {appointment.time_range}[/green]")


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Cancel an appointment. It stays in the history.
    """
    try:
        config, repository, service = _load_context(config_file, data_file)
        appointment = service.cancel_appointment(appointment_id, now=pendulum.now(config.timezone))
        _save(repository, service)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    console.print(f"[green]✓ Appointment {appointment.id} canceled.[/green]")


@app.command()
def travel(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show the tailor travel schedule.
    """
    try:
        config, _, service = _load_context(config_file, data_file)
    except (SchedulingError, ValueError, FileNotFoundError) as e:
        _fail(e)

    schedule = service.travel_schedule
    if not len(schedule):
        console.print("[yellow]No travel planned.[/yellow]")
        return

    table = Table(title="Tailor Travel Schedule", show_header=True, header_style="bold cyan")
    table.add_column("City", style="bold yellow")
    table.add_column("Venue")
    table.add_column("From")
    table.add_column("To")

    for window in schedule:
        table.add_row(
            window.destination.city,
            window.destination.venue or window.destination.address,
            window.start_date.to_date_string(),
            window.end_date.to_date_string(),
        )

    console.print()
    console.print(table)
    notice = schedule.next_notice(pendulum.today(config.timezone))
    if notice:
        console.print(f"\n{notice}")
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]tailorslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
