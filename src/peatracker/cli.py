import logging
from datetime import date, datetime
from enum import Enum
from typing import Optional

import typer

from .auth import get_authenticated_session, restore_session
from .auth import logout as auth_logout
from .formatters import format_currency, format_percent, get_formatter
from .models import DailyEntry, InitialConfig, WeekendAdjustment
from .settings import Settings
from .tracker import Tracker, open_tracker

app = typer.Typer(help="PEA performance tracker CLI", no_args_is_help=True)

DATE_FORMATS = ["%Y-%m-%d"]
FIRST_DATE = "0001-01-01"
LAST_DATE = "9999-12-31"


class OutputFormat(str, Enum):
    """Output format options."""

    table = "table"
    json = "json"
    csv = "csv"


def _verbose(ctx: typer.Context) -> bool:
    return ctx.obj.get("verbose") if ctx.obj else False


def _open_tracker(ctx: typer.Context) -> Tracker:
    """Open the tracker, replicating to the remote store if a session can be restored."""
    verbose = _verbose(ctx)
    settings = Settings.from_env()
    session = restore_session(settings, verbose=verbose)
    if verbose:
        mode = "local cache + remote store" if session else "local cache only"
        print(f"Using {mode} ({settings.data_dir})")
    return open_tracker(settings, session)


def _iso(value: Optional[datetime]) -> str:
    """ISO date of a parsed option, today when it was omitted."""
    if value is None:
        return date.today().isoformat()
    return value.date().isoformat()


@app.command()
def login(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Force a new login even if a valid session exists."
    ),
    username: Optional[str] = typer.Option(
        None,
        "--username",
        "-u",
        help="Remote store account email. Defaults to the last one used, else asks.",
    ),
):
    """
    Sign in to the remote store so changes replicate there.
    """
    settings = Settings.from_env()
    session = get_authenticated_session(
        settings, force_login=force, username=username, verbose=_verbose(ctx)
    )
    if session is None:
        print("Login routine failed.")
        raise typer.Exit(code=1)
    print(f"Login routine completed successfully. Signed in as {session.email}.")


@app.command()
def logout(
    username: Optional[str] = typer.Option(
        None,
        "--username",
        "-u",
        help="Account to sign out. Defaults to the last one used.",
    ),
    clear_email: bool = typer.Option(
        False, "--clear-email", "-c", help="Also forget the last email used."
    ),
):
    """
    Sign out of the remote store. Later changes stay in the local cache.
    """
    auth_logout(username=username, clear_email=clear_email)


@app.command()
def setup(
    ctx: typer.Context,
    start_date: datetime = typer.Argument(
        ..., formats=DATE_FORMATS, help="Date tracking starts (YYYY-MM-DD)."
    ),
    start_capital: float = typer.Argument(..., help="Account value on the start date."),
    start_deposited: float = typer.Option(
        0.0,
        "--deposited",
        "-d",
        help="Amount already deposited before tracking began.",
    ),
):
    """
    Set the initial account configuration, replacing any previous one.
    """
    tracker = _open_tracker(ctx)
    try:
        tracker.account.set_config(
            InitialConfig(
                start_date=_iso(start_date),
                start_capital=start_capital,
                start_deposited=start_deposited,
            )
        )
        print(f"Tracking starts on {_iso(start_date)} with {format_currency(start_capital)}.")
    finally:
        tracker.close()


@app.command(name="show-config")
def show_config(ctx: typer.Context):
    """
    Show the initial account configuration.
    """
    tracker = _open_tracker(ctx)
    try:
        if not tracker.account.is_configured:
            print("Account is not configured.")
            return
        print(f"Start date:      {tracker.account.start_date}")
        print(f"Start capital:   {format_currency(tracker.account.start_capital)}")
        print(f"Start deposited: {format_currency(tracker.account.start_deposited)}")
    finally:
        tracker.close()


@app.command(name="reset-config")
def reset_config(ctx: typer.Context):
    """
    Remove the initial account configuration.
    """
    tracker = _open_tracker(ctx)
    try:
        tracker.account.clear_config()
        print("Account configuration cleared.")
    finally:
        tracker.close()


@app.command(name="add-entry")
def add_entry(
    ctx: typer.Context,
    capital: float = typer.Argument(..., help="Total account value."),
    entry_date: Optional[datetime] = typer.Option(
        None, "--date", "-d", formats=DATE_FORMATS, help="Entry date (defaults to today)."
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Optional note."),
):
    """
    Record the account value for a day, replacing any entry for that day.
    """
    tracker = _open_tracker(ctx)
    try:
        day = _iso(entry_date)
        tracker.ledger.add_entry(DailyEntry(date=day, capital=capital, note=note))
        perf = tracker.engine.day_performance(day)
        print(
            f"Entry for {day}: {format_currency(capital)} "
            f"({format_percent(perf.gain_percent)})"
        )
    finally:
        tracker.close()


@app.command(name="delete-entry")
def delete_entry(
    ctx: typer.Context,
    entry_date: datetime = typer.Argument(..., formats=DATE_FORMATS, help="Entry date."),
):
    """
    Delete the entry recorded for a day.
    """
    tracker = _open_tracker(ctx)
    try:
        day = _iso(entry_date)
        if tracker.ledger.get_entry(day) is None:
            print(f"No entry for {day}.")
            return
        tracker.ledger.delete_entry(day)
        print(f"Deleted entry for {day}.")
    finally:
        tracker.close()


@app.command()
def entries(
    ctx: typer.Context,
    start: Optional[datetime] = typer.Option(
        None, "--from", formats=DATE_FORMATS, help="First date to include."
    ),
    end: Optional[datetime] = typer.Option(
        None, "--to", formats=DATE_FORMATS, help="Last date to include."
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format."
    ),
):
    """
    List entries with their daily performance.
    """
    tracker = _open_tracker(ctx)
    try:
        start_str = start.date().isoformat() if start else FIRST_DATE
        end_str = end.date().isoformat() if end else LAST_DATE
        performances = tracker.engine.performances_in_range(start_str, end_str)
        print(get_formatter(output_format.value).format_performances(performances))
    finally:
        tracker.close()


@app.command(name="add-deposit")
def add_deposit(
    ctx: typer.Context,
    amount: float = typer.Argument(..., help="Deposited amount."),
    deposit_date: Optional[datetime] = typer.Option(
        None, "--date", "-d", formats=DATE_FORMATS, help="Deposit date (defaults to today)."
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Optional note."),
):
    """
    Record a cash deposit.
    """
    tracker = _open_tracker(ctx)
    try:
        deposit = tracker.ledger.add_deposit(_iso(deposit_date), amount, note)
        print(f"Deposit {deposit.id} of {format_currency(amount)} on {deposit.date}.")
        print(
            f"Remaining to ceiling: {format_currency(tracker.ledger.remaining_to_ceiling)} "
            f"({tracker.ledger.ceiling_percentage:.1f}% used)"
        )
    finally:
        tracker.close()


@app.command(name="delete-deposit")
def delete_deposit(
    ctx: typer.Context,
    deposit_id: str = typer.Argument(..., help="Deposit ID."),
):
    """
    Delete a deposit by ID.
    """
    tracker = _open_tracker(ctx)
    try:
        tracker.ledger.delete_deposit(deposit_id)
        print(f"Deleted deposit {deposit_id}.")
    finally:
        tracker.close()


@app.command()
def deposits(
    ctx: typer.Context,
    output_format: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format."
    ),
):
    """
    List deposits, most recent first.
    """
    tracker = _open_tracker(ctx)
    try:
        formatter = get_formatter(output_format.value)
        print(formatter.format_deposits(tracker.ledger.sorted_deposits()))
    finally:
        tracker.close()


@app.command()
def dca(
    ctx: typer.Context,
    enabled: Optional[bool] = typer.Option(
        None, "--enable/--disable", help="Turn the recurring plan on or off."
    ),
    amount: Optional[float] = typer.Option(
        None, "--amount", "-a", help="Amount of each contribution."
    ),
    day_1: Optional[int] = typer.Option(
        None, "--day", min=1, max=31, help="First day of the month."
    ),
    day_2: Optional[int] = typer.Option(
        None, "--second-day", min=1, max=31, help="Second day of the month."
    ),
    single: bool = typer.Option(
        False, "--single", help="Contribute once a month (drop the second day)."
    ),
    adjust: Optional[WeekendAdjustment] = typer.Option(
        None, "--weekend", "-w", help="Where to move a contribution that falls on a weekend."
    ),
):
    """
    Show or update the recurring contribution plan.
    """
    changes = {}
    if enabled is not None:
        changes["enabled"] = enabled
    if amount is not None:
        changes["amount"] = amount
    if day_1 is not None:
        changes["day_of_month_1"] = day_1
    if day_2 is not None:
        changes["day_of_month_2"] = day_2
    if single:
        changes["day_of_month_2"] = None
    if adjust is not None:
        changes["adjust_weekend"] = adjust

    tracker = _open_tracker(ctx)
    try:
        config = tracker.schedule.update(**changes) if changes else tracker.schedule.config
        days = str(config.day_of_month_1)
        if config.day_of_month_2:
            days += f" and {config.day_of_month_2}"
        print(f"Enabled:  {'yes' if config.enabled else 'no'}")
        print(f"Amount:   {format_currency(config.amount)}")
        print(f"Days:     {days}")
        print(f"Weekends: {config.adjust_weekend.value}")
    finally:
        tracker.close()


@app.command(name="dca-dates")
def dca_dates(
    ctx: typer.Context,
    months: int = typer.Option(3, "--months", "-m", min=1, help="Number of months to show."),
):
    """
    List planned contribution dates starting this month.
    """
    tracker = _open_tracker(ctx)
    try:
        dates = tracker.schedule.upcoming_dates(date.today(), months)
        if not dates:
            print("Recurring contributions are disabled.")
            return
        amount = format_currency(tracker.schedule.config.amount)
        for planned in dates:
            print(f"{planned}  {amount}")
    finally:
        tracker.close()


@app.command()
def day(
    ctx: typer.Context,
    entry_date: Optional[datetime] = typer.Argument(
        None, formats=DATE_FORMATS, help="Day to inspect (defaults to today)."
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format."
    ),
):
    """
    Show the performance of a single day.
    """
    tracker = _open_tracker(ctx)
    try:
        day_str = _iso(entry_date)
        perf = tracker.engine.day_performance(day_str)
        if perf is None:
            print(f"No entry for {day_str}.")
            raise typer.Exit(code=1)
        print(get_formatter(output_format.value).format_performances([perf]))
    finally:
        tracker.close()


@app.command()
def summary(
    ctx: typer.Context,
    output_format: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format."
    ),
):
    """
    Show gains for today, this/last week, this/last month, this year and overall.
    """
    tracker = _open_tracker(ctx)
    try:
        result = tracker.engine.summary(date.today())
        print(get_formatter(output_format.value).format_summary(result))
    finally:
        tracker.close()


@app.command()
def stats(
    ctx: typer.Context,
    output_format: OutputFormat = typer.Option(
        OutputFormat.table, "--format", "-f", help="Output format."
    ),
):
    """
    Show best and worst days, positive/negative counts and average performance.
    """
    tracker = _open_tracker(ctx)
    try:
        print(get_formatter(output_format.value).format_stats(tracker.engine.stats()))
    finally:
        tracker.close()


@app.command()
def sync(ctx: typer.Context):
    """
    Replace the local cache with the data held in the remote store.
    """
    tracker = _open_tracker(ctx)
    try:
        if not tracker.remote_enabled:
            print("Not logged in; nothing to sync.")
            raise typer.Exit(code=1)
        if tracker.sync():
            print("✓ Local cache refreshed from the remote store.")
        else:
            print("✗ Some collections could not be refreshed; kept cached data.")
            raise typer.Exit(code=1)
    finally:
        tracker.close()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show detailed status messages during execution."
    ),
):
    """
    PEA performance tracker CLI
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"verbose": verbose}
