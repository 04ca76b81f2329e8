"""
Main CLI application using Typer.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, NoReturn, Optional, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.clock import SystemClock
from ..adapters.local_store import SessionStore, ViewedNotificationStore
from ..adapters.mock_client import MockStorefrontClient
from ..adapters.storefront_client import StorefrontClient
from ..config import AppConfig, get_default_config_path
from ..domain.eligibility import (
    CountdownResult,
    DifferentDay,
    OutsideWindow,
    PastCutoff,
    Remaining,
    RescheduleEligibility,
)
from ..domain.exceptions import BookingError
from ..domain.models import Registration, UserProfile, parse_calendar_date
from ..domain.pricing import WorkSelectionPricer, format_price
from ..domain.time_window import TimeWindowPolicy, format_12_hour, parse_time_input
from ..services.booking_draft import BookingDraftController, DraftView
from ..services.my_bookings import MyBookingsService

app = typer.Typer(
    name="homebook",
    help="Browse home services and manage bookings from the terminal",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use bundled mock data instead of the live backend."),
]


@dataclass
class _Context:
    config: AppConfig
    client: StorefrontClient | MockStorefrontClient
    clock: SystemClock
    policy: TimeWindowPolicy
    eligibility: RescheduleEligibility


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the config, turning a missing or invalid file into a clean exit."""
    try:
        return AppConfig.load_or_default(config_file or get_default_config_path())
    except FileNotFoundError as e:
        _fail(str(e))
    except (OSError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        _fail(f"Invalid configuration: {e}")


def _build_context(config_file: Optional[Path], mock: bool) -> _Context:
    """Load configuration and wire the client, clock and window policy."""
    config = _load_config(config_file)
    _setup_logging(config.log_level)

    if mock:
        console.print("[yellow]⚠  Mock mode: using bundled test data[/yellow]\n")
        client = MockStorefrontClient()
    else:
        client = StorefrontClient(
            base_url=config.api.base_url,
            session_store=SessionStore(config.session_file),
            timeout=config.api.timeout_seconds,
        )

    policy = config.window.to_policy()
    return _Context(
        config=config,
        client=client,
        clock=SystemClock(config.timezone),
        policy=policy,
        eligibility=RescheduleEligibility(policy),
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _describe_countdown(countdown: CountdownResult, policy: TimeWindowPolicy) -> str:
    cutoff = format_12_hour(policy.close_time)
    if isinstance(countdown, Remaining):
        return f"{countdown.hours}h {countdown.minutes}m left before the {cutoff} cutoff"
    if isinstance(countdown, PastCutoff):
        return f"Past today's {cutoff} cutoff"
    if isinstance(countdown, OutsideWindow):
        return "Outside booking hours"
    if isinstance(countdown, DifferentDay) and countdown.valid:
        return "Valid time"
    return "Outside booking hours"


def _print_draft(view: DraftView, policy: TimeWindowPolicy) -> None:
    console.print("[bold cyan]📋 Booking draft:[/bold cyan]")
    console.print(f"   Date: {view.date.isoformat() if view.date else '-'}")
    console.print(f"   Time: {view.time_label or '-'}")
    console.print(f"   Items: {', '.join(str(i) for i in sorted(view.selected_item_ids)) or '-'}")
    console.print(f"   Total: {view.total_label}")
    if view.countdown is not None:
        console.print(f"   Window: {_describe_countdown(view.countdown, policy)}")
    console.print()


async def _submit_draft(controller: BookingDraftController, policy: TimeWindowPolicy) -> None:
    _print_draft(controller.view(), policy)

    if not controller.can_submit():
        _fail(controller.blocking_error.user_message)

    result = await controller.submit()
    if not result.ok:
        _fail(result.error.user_message)

    confirmation = result.confirmation
    console.print(Panel.fit(
        f"[bold green]✓ Booking confirmed[/bold green]\n\n"
        f"[bold]Reference:[/bold] {confirmation.booking_id}\n"
        f"[bold]When:[/bold] {confirmation.date.isoformat()} at {format_12_hour(confirmation.time)}",
        title="✓ Confirmation"
    ))


@app.command()
def slots(config_file: ConfigOption = None):
    """
    List the bookable time slots of a business day.
    """
    config = _load_config(config_file)
    policy = config.window.to_policy()

    console.print(f"\n[bold]Bookable times ({config.timezone}):[/bold]")
    for slot in policy.allowed_slots():
        console.print(f"  {format_12_hour(slot)}")
    console.print()


@app.command()
def services(config_file: ConfigOption = None, mock: MockOption = False):
    """
    List all services.
    """
    ctx = _build_context(config_file, mock)
    try:
        items = asyncio.run(ctx.client.list_services())
    except BookingError as exc:
        _fail(exc.user_message)

    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Title")
    table.add_column("Category", style="dim")
    table.add_column("Location", style="dim")

    for service in items:
        table.add_row(str(service.id), service.title, service.category, service.location or "Not specified")

    console.print()
    console.print(table)
    console.print()


@app.command()
def service(
    service_id: Annotated[int, typer.Argument(help="Service ID")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Show a service and its priced work specifications.
    """
    ctx = _build_context(config_file, mock)
    try:
        details = asyncio.run(ctx.client.get_service(service_id))
    except BookingError as exc:
        _fail(exc.user_message)

    console.print(f"\n[bold cyan]{details.title}[/bold cyan] [dim]({details.category})[/dim]")
    if details.description:
        console.print(details.description)

    if not details.work_items:
        console.print("\n[yellow]No work specifications available.[/yellow]\n")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Work specification")
    table.add_column("Price", justify="right")
    for item in details.work_items:
        table.add_row(str(item.id), item.name, format_price(item.unit_price, ctx.config.currency))

    console.print()
    console.print(table)
    console.print()


@app.command()
def quote(
    service_id: Annotated[int, typer.Argument(help="Service ID")],
    items: Annotated[List[int], typer.Option("--item", "-i", help="Work specification ID (repeatable)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Preview the total price of a work specification selection.
    """
    ctx = _build_context(config_file, mock)
    try:
        details = asyncio.run(ctx.client.get_service(service_id))
    except BookingError as exc:
        _fail(exc.user_message)

    selected = set(items)
    total = WorkSelectionPricer.compute_total(details.work_items, selected)
    known = {item.id for item in details.work_items}
    unknown = sorted(selected - known)
    if unknown:
        console.print(f"[yellow]Ignoring unknown work specification(s): {unknown}[/yellow]")

    console.print(f"\n[bold]Total:[/bold] {format_price(total, ctx.config.currency)}\n")


@app.command()
def book(
    service_id: Annotated[int, typer.Argument(help="Service ID")],
    date: Annotated[str, typer.Option("--date", "-d", help="Booking date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Option("--time", "-t", help="Booking time (HH:MM or h:mm AM/PM)")],
    items: Annotated[List[int], typer.Option("--item", "-i", help="Work specification ID (repeatable)")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Book a service.

    Examples:

        homebook book 1 --date 2030-01-15 --time 10:00 -i 1 -i 2
        homebook book 1 -d 2030-01-15 -t "2:30 PM" -i 3 --mock
    """
    ctx = _build_context(config_file, mock)

    async def _run() -> None:
        details = await ctx.client.get_service(service_id)
        controller = BookingDraftController(
            service_id=details.id,
            catalog=details.work_items,
            api=ctx.client,
            clock=ctx.clock,
            eligibility=ctx.eligibility,
            timezone=ctx.config.timezone,
            currency=ctx.config.currency,
        )
        controller.set_date(parse_calendar_date(date))
        controller.set_time(parse_time_input(time))
        for item_id in items:
            controller.toggle_item(item_id)
        await _submit_draft(controller, ctx.policy)

    try:
        asyncio.run(_run())
    except BookingError as exc:
        _fail(exc.user_message)


@app.command()
def reschedule(
    booking_id: Annotated[int, typer.Argument(help="Booking ID")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="New date (YYYY-MM-DD)")] = None,
    time: Annotated[Optional[str], typer.Option("--time", "-t", help="New time (HH:MM or h:mm AM/PM)")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Move an existing booking to a new date and/or time.
    """
    ctx = _build_context(config_file, mock)

    async def _run() -> None:
        bookings = await ctx.client.list_my_bookings()
        booking = next((b for b in bookings if b.id == booking_id), None)
        if booking is None:
            _fail(f"Booking {booking_id} not found.")

        catalog = []
        if booking.service is not None:
            catalog = (await ctx.client.get_service(booking.service.id)).work_items

        controller = BookingDraftController.from_booking(
            booking,
            catalog=catalog,
            api=ctx.client,
            clock=ctx.clock,
            eligibility=ctx.eligibility,
            timezone=ctx.config.timezone,
            currency=ctx.config.currency,
        )
        if date:
            controller.set_date(parse_calendar_date(date))
        if time:
            controller.set_time(parse_time_input(time))
        await _submit_draft(controller, ctx.policy)

    try:
        asyncio.run(_run())
    except BookingError as exc:
        _fail(exc.user_message)


@app.command()
def cancel(
    booking_id: Annotated[int, typer.Argument(help="Booking ID")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Cancel a booking. Cancelling twice is harmless.
    """
    ctx = _build_context(config_file, mock)
    service = MyBookingsService(
        client=ctx.client,
        clock=ctx.clock,
        eligibility=ctx.eligibility,
        viewed_store=ViewedNotificationStore(ctx.config.viewed_notifications_file),
        timezone=ctx.config.timezone,
    )
    try:
        cancelled = asyncio.run(service.cancel(booking_id))
    except BookingError as exc:
        _fail(exc.user_message)

    if cancelled:
        console.print(f"\n[green]✓ Booking {booking_id} cancelled.[/green]\n")
    else:
        console.print(f"\n[yellow]Booking {booking_id} was already cancelled.[/yellow]\n")


@app.command()
def bookings(config_file: ConfigOption = None, mock: MockOption = False):
    """
    Show upcoming and completed bookings.
    """
    ctx = _build_context(config_file, mock)
    service = MyBookingsService(
        client=ctx.client,
        clock=ctx.clock,
        eligibility=ctx.eligibility,
        viewed_store=ViewedNotificationStore(ctx.config.viewed_notifications_file),
        timezone=ctx.config.timezone,
    )
    try:
        overview = asyncio.run(service.overview())
    except BookingError as exc:
        _fail(exc.user_message)

    if not overview.upcoming and not overview.completed:
        console.print("\n[yellow]No bookings found.[/yellow]\n")
        return

    for booking in overview.new_completions:
        title = booking.service.title if booking.service else "Service unavailable"
        console.print(f"[bold magenta]🔔 Completed:[/bold magenta] {title} on {booking.date.isoformat()}")
    service.mark_notifications_viewed(overview.new_completions)

    table = Table(title="Booked (Upcoming)", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Service")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Status", style="dim")
    for entry in overview.upcoming:
        booking = entry.booking
        table.add_row(
            str(booking.id),
            booking.service.title if booking.service else "Service unavailable",
            booking.date.isoformat(),
            format_12_hour(booking.time),
            _describe_countdown(entry.countdown, ctx.policy)
            + ("" if entry.reschedulable else " (non-editable)"),
        )
    console.print()
    console.print(table)

    if overview.completed:
        done = Table(title="Completed", show_header=True, header_style="bold cyan")
        done.add_column("ID", style="bold yellow")
        done.add_column("Service")
        done.add_column("Date")
        done.add_column("Time")
        for booking in overview.completed:
            done.add_row(
                str(booking.id),
                booking.service.title if booking.service else "Service unavailable",
                booking.date.isoformat(),
                format_12_hour(booking.time),
            )
        console.print(done)
    console.print()


@app.command()
def login(
    email: Annotated[str, typer.Option("--email", "-e", prompt=True)],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
    config_file: ConfigOption = None,
):
    """
    Log in to the storefront and store the session.
    """
    ctx = _build_context(config_file, mock=False)
    try:
        asyncio.run(ctx.client.login(email, password))
    except BookingError as exc:
        _fail(exc.user_message)
    console.print("\n[green]✓ Login successful.[/green]\n")


@app.command()
def signup(
    username: Annotated[str, typer.Option("--username", "-u", prompt=True)],
    email: Annotated[str, typer.Option("--email", "-e", prompt=True)],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
    confirm_password: Annotated[
        str, typer.Option("--confirm-password", prompt="Confirm password", hide_input=True)
    ],
    first_name: Annotated[Optional[str], typer.Option("--first-name")] = None,
    middle_name: Annotated[Optional[str], typer.Option("--middle-name")] = None,
    last_name: Annotated[Optional[str], typer.Option("--last-name")] = None,
    contact: Annotated[Optional[str], typer.Option("--contact")] = None,
    address: Annotated[Optional[str], typer.Option("--address")] = None,
    gender: Annotated[Optional[str], typer.Option("--gender")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Create a customer account. Log in afterwards with 'homebook login'.
    """
    ctx = _build_context(config_file, mock)
    try:
        registration = Registration(
            profile=UserProfile(
                username=username,
                email=email,
                first_name=first_name,
                middle_name=middle_name,
                last_name=last_name,
                contact=contact,
                address=address,
                gender=gender,
            ),
            password=password,
            confirm_password=confirm_password,
        )
        message = asyncio.run(ctx.client.register(registration))
    except BookingError as exc:
        _fail(exc.user_message)
    console.print(f"\n[green]✓ {message}[/green]\n")


@app.command()
def reset_password(
    token: Annotated[str, typer.Option("--token", help="Token from the password reset e-mail")],
    password: Annotated[
        str, typer.Option("--password", prompt="New password", hide_input=True, confirmation_prompt=True)
    ],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Set a new password with the token from a reset e-mail.
    """
    ctx = _build_context(config_file, mock)
    try:
        message = asyncio.run(ctx.client.confirm_password_reset(token, password))
    except BookingError as exc:
        _fail(exc.user_message)
    console.print(f"\n[green]✓ {message}[/green]\n")


@app.command()
def logout(config_file: ConfigOption = None):
    """
    Log out and forget the stored session.
    """
    ctx = _build_context(config_file, mock=False)
    asyncio.run(ctx.client.logout())
    console.print("\n[green]✓ Logged out.[/green]\n")


@app.command()
def profile(config_file: ConfigOption = None, mock: MockOption = False):
    """
    Show the logged-in customer's profile.
    """
    ctx = _build_context(config_file, mock)
    try:
        user = asyncio.run(ctx.client.get_profile())
    except BookingError as exc:
        _fail(exc.user_message)

    console.print(Panel.fit(
        f"[bold]Name:[/bold] {user.full_name()}\n"
        f"[bold]Username:[/bold] {user.username}\n"
        f"[bold]E-Mail:[/bold] {user.email}\n"
        f"[bold]Contact:[/bold] {user.contact or 'Not provided'}\n"
        f"[bold]Address:[/bold] {user.address or 'Not provided'}\n"
        f"[bold]Gender:[/bold] {user.gender or 'Not provided'}",
        title="Your Profile"
    ))


@app.command()
def edit_profile(
    first_name: Annotated[Optional[str], typer.Option("--first-name")] = None,
    middle_name: Annotated[Optional[str], typer.Option("--middle-name")] = None,
    last_name: Annotated[Optional[str], typer.Option("--last-name")] = None,
    contact: Annotated[Optional[str], typer.Option("--contact")] = None,
    address: Annotated[Optional[str], typer.Option("--address")] = None,
    gender: Annotated[Optional[str], typer.Option("--gender")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Update profile fields. Only the given options are changed.
    """
    ctx = _build_context(config_file, mock)
    changes = {
        "first_name": first_name,
        "middle_name": middle_name,
        "last_name": last_name,
        "contact": contact,
        "address": address,
        "gender": gender,
    }

    async def _run():
        user = await ctx.client.get_profile()
        for field_name, value in changes.items():
            if value is not None:
                setattr(user, field_name, value)
        return await ctx.client.update_profile(user)

    try:
        updated = asyncio.run(_run())
    except BookingError as exc:
        _fail(exc.user_message)

    console.print(f"\n[green]✓ Profile updated for {updated.full_name()}.[/green]\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]homebook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
