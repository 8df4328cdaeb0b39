"""Command-line interface for pagestreak.

Built with Typer for commands and Rich for beautiful output.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import get_config
from .db import get_db
from .db.schemas import ProgressEntryCreate
from .exceptions import StorageError, ValidationError
from .streaks import StreakManager, StreakRecord, StreakStatus

# Create the main app
app = typer.Typer(
    name="pagestreak",
    help="Track your daily reading streak.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

USER_OPTION = typer.Option(None, "--user", "-u", help="User key (default: single-user)")


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def get_manager() -> StreakManager:
    """Build a streak manager on the configured database."""
    config = get_config()
    return StreakManager(get_db(str(config.db_path)))


def format_streak_panel(record: StreakRecord, title: str = "Reading Streak") -> Panel:
    """Create a rich panel for a streak record."""
    lines = [
        f"[bold]Current streak:[/bold] {record.current_streak} days",
        f"[bold]Longest streak:[/bold] {record.longest_streak} days",
        f"Total active days: {record.total_days_active}",
        f"Daily threshold: {record.daily_threshold} pages",
        f"Last activity: {record.last_activity_date or '-'}",
        f"Streak started: {record.streak_start_date or '-'}",
        f"Tracking: {'on' if record.streak_enabled else 'off'} ({record.user_timezone})",
    ]
    return Panel("\n".join(lines), title=title)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Track your daily reading streak."""
    get_config().configure_logging(verbose=verbose)


# ============================================================================
# Progress Commands
# ============================================================================


@app.command()
def log(
    book_id: str = typer.Argument(..., help="Book ID the progress belongs to"),
    pages: int = typer.Option(..., "--pages", "-p", min=0, help="Pages read"),
    session_id: Optional[str] = typer.Option(None, "--session", "-s", help="Reading session ID"),
    at: Optional[datetime] = typer.Option(
        None, "--at", help="When the reading happened (ISO, default: now, UTC if no offset)"
    ),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Record pages read and update the streak."""
    manager = get_manager()
    try:
        entry = manager.db.add_progress_entry(
            user,
            ProgressEntryCreate(
                book_id=book_id,
                session_id=session_id,
                pages_read=pages,
                progress_timestamp=at or datetime.now(timezone.utc),
            ),
        )
        record = manager.get_streak(user)
        boundary = manager.boundary_for(record)
        if boundary.to_local_date(entry.progress_timestamp) == boundary.today():
            record = manager.update_streaks(user)
        else:
            # Backdated entries can change any past day
            record = manager.rebuild_streak(user)
    except StorageError as e:
        print_error(f"Database error: {e}")
        raise typer.Exit(1)

    print_success(f"Logged {pages} pages for {book_id}")
    console.print(f"Current streak: [bold]{record.current_streak}[/bold] days")


# ============================================================================
# Streak Commands
# ============================================================================


@app.command()
def show(user: Optional[str] = USER_OPTION) -> None:
    """Show the current streak."""
    manager = get_manager()
    summary = manager.get_streak_summary(user)
    record = summary.record

    console.print(format_streak_panel(record))
    console.print(
        f"Today: {summary.pages_read_today}/{record.daily_threshold} pages, "
        f"{summary.hours_remaining_today}h left"
    )
    if summary.status == StreakStatus.ACTIVE:
        console.print("[green]Threshold met today.[/green]")
    elif summary.status == StreakStatus.AT_RISK:
        console.print("[yellow]Read today to keep your streak alive.[/yellow]")
    else:
        console.print("[dim]No active streak.[/dim]")


@app.command()
def rebuild(
    as_of: Optional[datetime] = typer.Option(
        None, "--as-of", formats=["%Y-%m-%d"], help="Evaluate the streak on this day"
    ),
    enable: bool = typer.Option(False, "--enable", help="Also turn streak tracking on"),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Recompute the streak from the full progress history."""
    manager = get_manager()
    try:
        record = manager.rebuild_streak(
            user, as_of_date=as_of.date() if as_of else None, enable_tracking=enable
        )
    except StorageError as e:
        print_error(f"Database error: {e}")
        raise typer.Exit(1)

    console.print(format_streak_panel(record, title="Rebuilt Streak"))


@app.command()
def update(user: Optional[str] = USER_OPTION) -> None:
    """Fold today's progress into the streak."""
    manager = get_manager()
    record = manager.update_streaks(user)
    console.print(f"Current streak: [bold]{record.current_streak}[/bold] days")


@app.command()
def check(user: Optional[str] = USER_OPTION) -> None:
    """Reset the current streak if it went stale."""
    manager = get_manager()
    if manager.check_and_reset_streak_if_needed(user):
        console.print("[yellow]Streak reset: no qualifying reading since yesterday.[/yellow]")
    else:
        print_info("Streak is up to date.")


# ============================================================================
# Settings Commands
# ============================================================================


@app.command()
def threshold(
    value: int = typer.Argument(..., help="Daily page threshold (1-9999)"),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Set the daily page threshold, effective today."""
    manager = get_manager()
    try:
        record = manager.set_threshold(user, value)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Daily threshold set to {record.daily_threshold} pages")


@app.command()
def enable(
    threshold_value: Optional[int] = typer.Option(
        None, "--threshold", "-t", help="Daily page threshold to start with"
    ),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Turn streak tracking on."""
    manager = get_manager()
    try:
        record = manager.set_streak_enabled(user, True, threshold_value)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Streak tracking enabled ({record.daily_threshold} pages/day)")
    console.print(f"Current streak: [bold]{record.current_streak}[/bold] days")


@app.command()
def disable(user: Optional[str] = USER_OPTION) -> None:
    """Turn streak tracking off (data is kept)."""
    manager = get_manager()
    manager.set_streak_enabled(user, False)
    print_success("Streak tracking disabled")


@app.command("timezone")
def set_timezone(
    name: str = typer.Argument(..., help="IANA timezone, e.g. Europe/Berlin"),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Set the timezone that decides where a day starts."""
    manager = get_manager()
    try:
        record = manager.set_timezone(user, name)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Timezone set to {record.user_timezone}")
    print_info("Run 'pagestreak rebuild' to re-bucket past entries.")


# ============================================================================
# Calendar
# ============================================================================


@app.command()
def calendar(
    days: int = typer.Option(30, "--days", "-d", min=1, max=3650, help="Days to show"),
    user: Optional[str] = USER_OPTION,
) -> None:
    """Show pages read per day."""
    manager = get_manager()
    record = manager.get_streak(user)
    end = manager.boundary_for(record).today()
    history = manager.get_activity_calendar(user, start=end - timedelta(days=days - 1), end=end)

    if not history:
        print_info("No reading recorded yet.")
        return

    table = Table(title="Reading Activity", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="cyan")
    table.add_column("Pages", justify="right")
    table.add_column("Goal", justify="center")

    for day in history:
        table.add_row(
            day.date.isoformat(),
            str(day.pages_read),
            "[green]✓[/green]" if day.threshold_met else "-",
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"pagestreak {__version__}")


if __name__ == "__main__":
    app()
