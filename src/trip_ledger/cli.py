"""CLI for Trip Ledger using Typer."""

import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import SettlementAlreadyRecordedError
from .ledger.service import LedgerService
from .ledger.settlement import apply_settlements, settlements_for_user
from .ledger.splitter import split_equally
from .ledger.summary import format_currency, has_unsettled_debt, user_balance
from .models import Profile, Settlement, SettlementPlan

app = typer.Typer(
    name="trip-ledger",
    help="Track shared trip expenses and work out who pays whom",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _fail(error: Exception, verbose: bool):
    """Report an error and exit with status 1."""
    console.print(f"\n[bold red]Error:[/bold red] {error}")
    if verbose:
        raise error
    sys.exit(1)


def format_money(
    amount: Decimal, currency_code: str = "USD", use_color: bool = True
) -> str:
    """
    Format money with a sign-aware color.

    Positive amounts (owed to the member) are green, negative amounts
    (the member owes) are red, zero is plain.
    """
    formatted = format_currency(amount, currency_code)
    if not use_color or amount == 0:
        return formatted
    color = "green" if amount > 0 else "red"
    return f"[{color}]{formatted}[/{color}]"


def _name(user_id: str, profile: Profile | None) -> str:
    return profile.display_name if profile else user_id


def display_balances(plan: SettlementPlan, profiles: dict[str, Profile]):
    """Display net balances in a table."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right", width=14)
    table.add_column("Status", style="dim")

    for user_id, balance in plan.balances.items():
        if balance > 0:
            status = "is owed"
        elif balance < 0:
            status = "owes"
        else:
            status = "settled"
        table.add_row(
            _name(user_id, profiles.get(user_id)),
            format_money(balance, plan.currency_code),
            status,
        )

    console.print(table)

    total = sum(plan.balances.values(), Decimal("0"))
    if total == 0:
        console.print("  [green]✓ Balances sum to zero[/green]")
    else:
        console.print(
            f"  [red]✗ Balances sum to {total}: check that every expense's "
            f"splits add up to its amount[/red]"
        )


def display_settlements(
    settlements: list[Settlement], currency_code: str, title: str = "Settle Up"
):
    """Display settlements in a table."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right", width=14)

    for i, settlement in enumerate(settlements, 1):
        table.add_row(
            str(i),
            _name(settlement.from_user_id, settlement.from_user),
            _name(settlement.to_user_id, settlement.to_user),
            format_currency(settlement.amount, currency_code),
        )

    console.print(table)


def display_plan(plan: SettlementPlan, profiles: dict[str, Profile]):
    """Display a settlement plan with verification."""
    console.print(f"\n[bold]Trip {plan.trip_id}[/bold]")
    console.print(
        f"  Total expenses: {format_currency(plan.total_expenses, plan.currency_code)}"
    )
    console.print()

    display_balances(plan, profiles)
    console.print()

    if not plan.settlements:
        console.print("[bold green]✓ All settled up![/bold green]")
        return

    display_settlements(plan.settlements, plan.currency_code)

    remaining = apply_settlements(plan.balances, plan.settlements)
    worst = max((abs(balance) for balance in remaining.values()), default=Decimal("0"))
    if worst <= Decimal("0.01"):
        console.print("  [green]✓ Settlements clear every balance[/green]")
    else:
        console.print(f"  [red]✗ {worst} left over after settlements[/red]")


def parse_amount(value: str) -> Decimal:
    """Parse a command-line amount; NaN, infinity and negatives are rejected."""
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise typer.BadParameter(f"Not a valid amount: {value}") from e
    if not amount.is_finite():
        raise typer.BadParameter(f"Amount must be a finite number: {value}")
    if amount < 0:
        raise typer.BadParameter(f"Amount cannot be negative: {value}")
    return amount


def parse_date(value: str | None) -> date | None:
    """Parse an optional YYYY-MM-DD date."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"Not a valid date (YYYY-MM-DD): {value}") from e


@app.command()
def balances(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        ledger = service.load_ledger(ledger_file)
        plan = service.create_plan(ledger)
        display_balances(plan, ledger.profile_map())

    except Exception as e:
        _fail(e, verbose)


@app.command()
def settle(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    user: str | None = typer.Option(
        None, "--user", "-u", help="Only show payments involving this member"
    ),
    record: bool = typer.Option(
        False, "--record", help="Record the plan so it is not applied twice"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Work out who pays whom.

    Computes net balances and reduces them to a short list of payments.
    Use --record to save the plan once the group has agreed to it.
    """
    setup_logging(verbose)
    db = None

    try:
        settings = load_settings()
        # Only --record needs the settlement database
        db = Database(settings.database_path) if record else None
        service = LedgerService(settings, db)

        ledger = service.load_ledger(ledger_file)
        plan = service.create_plan(ledger)
        profiles = ledger.profile_map()

        user = user or settings.current_user_id
        if user:
            owes, owed = settlements_for_user(user, plan.settlements)
            name = _name(user, profiles.get(user))
            if owes:
                display_settlements(owes, plan.currency_code, f"{name} pays")
            if owed:
                display_settlements(owed, plan.currency_code, f"{name} receives")
            if not owes and not owed:
                console.print(f"[bold green]✓ {name} is all settled up![/bold green]")
        else:
            display_plan(plan, profiles)

        if not record or not plan.settlements:
            return

        existing = service.check_if_already_recorded(plan)
        if existing:
            console.print(
                f"\n[yellow]⚠️  This plan was already recorded on "
                f"{existing.created_at.date()}[/yellow]\n"
            )
            return

        if not yes:
            confirm = input("\nRecord this settlement plan? [y/N] ").strip().lower()
            if confirm not in ("y", "yes"):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        record_id = service.record_plan(plan)
        console.print(f"\n[bold green]✓ Plan recorded (#{record_id})[/bold green]\n")

    except SettlementAlreadyRecordedError as e:
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        sys.exit(1)
    except Exception as e:
        _fail(e, verbose)
    finally:
        if db is not None:
            db.close()


@app.command()
def split(
    amount: str = typer.Argument(..., help="Amount to split, e.g. 10.00"),
    members: list[str] = typer.Argument(
        ..., help="Member ids; the first absorbs any remainder"
    ),
    currency: str = typer.Option("USD", "--currency", help="Currency code for display"),
):
    """Split an amount equally between members."""
    total = parse_amount(amount)
    shares = split_equally(total, members)

    table = Table(title="Equal Split", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Share", justify="right", width=14)
    for share in shares:
        table.add_row(share.user_id, format_currency(share.amount, currency))
    console.print(table)

    if sum((share.amount for share in shares), Decimal("0")) == total:
        console.print("  [green]✓ Shares add up to the total[/green]")


@app.command()
def add(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    amount: str = typer.Argument(..., help="Amount paid, e.g. 42.50"),
    members: list[str] = typer.Argument(
        ..., help="Members sharing the cost; the first absorbs any remainder"
    ),
    paid_by: str | None = typer.Option(
        None, "--paid-by", "-p", help="Member who paid (default: current user)"
    ),
    category: str = typer.Option(
        "other",
        "--category",
        "-c",
        help="food, transport, housing, activity or other",
    ),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    expense_date: str | None = typer.Option(
        None, "--date", help="Expense date, YYYY-MM-DD (default: today)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add an expense split equally between members."""
    setup_logging(verbose)
    total = parse_amount(amount)
    when = parse_date(expense_date)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        payer = paid_by or settings.current_user_id
        if not payer:
            raise typer.BadParameter(
                "Pass --paid-by or set TRIP_LEDGER_CURRENT_USER_ID"
            )

        ledger = service.load_ledger(ledger_file)
        updated = service.add_expense(
            ledger,
            amount=total,
            paid_by=payer,
            participant_ids=members,
            category=category,
            description=description,
            expense_date=when,
        )
        service.save_ledger(ledger_file, updated)

        expense = updated.expenses[-1]
        rows = [
            (split.user_id, format_currency(split.amount, updated.currency_code))
            for split in expense.splits
        ]
        table = Table(
            title=f"Added {expense.id[:8]}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Member", style="cyan")
        table.add_column("Share", justify="right", width=14)
        for member, share in rows:
            table.add_row(member, share)
        console.print(table)
        console.print(
            f"[bold green]✓ {format_currency(total, updated.currency_code)} "
            f"paid by {payer}[/bold green]"
        )

    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(e, verbose)


@app.command()
def remove(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    expense_id: str = typer.Argument(..., help="Id of the expense to remove"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove an expense and its splits."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        ledger = service.load_ledger(ledger_file)
        updated = service.remove_expense(ledger, expense_id)
        service.save_ledger(ledger_file, updated)
        console.print(f"[bold green]✓ Removed expense {expense_id}[/bold green]")

    except Exception as e:
        _fail(e, verbose)


@app.command()
def summary(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    user: str | None = typer.Option(
        None, "--user", "-u", help="Show this member's balance"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show spending totals by category."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        ledger = service.load_ledger(ledger_file)
        plan = service.create_plan(ledger)
        currency_code = plan.currency_code

        table = Table(
            title="By Category", show_header=True, header_style="bold magenta"
        )
        table.add_column("Category", style="cyan")
        table.add_column("Amount", justify="right", width=14)
        for category, amount in plan.expenses_by_category.items():
            table.add_row(category, format_currency(amount, currency_code))
        console.print(table)

        console.print(
            f"  Total expenses: {format_currency(plan.total_expenses, currency_code)}"
        )

        user = user or settings.current_user_id
        if user:
            balance = user_balance(user, ledger.expenses)
            prefix = "+" if balance >= 0 else ""
            console.print(
                f"  Your balance: {prefix}{format_money(balance, currency_code)}"
            )
            if has_unsettled_debt(user, ledger.expenses):
                console.print("  [yellow]You have unsettled splits[/yellow]")

    except Exception as e:
        _fail(e, verbose)


@app.command("settle-with")
def settle_with(
    ledger_file: Path = typer.Argument(..., help="Trip ledger JSON file"),
    user: str = typer.Option(..., "--user", "-u", help="Member who paid back"),
    to: str = typer.Option(..., "--to", help="Member who was paid"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Mark a member's splits on another member's expenses as settled."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = LedgerService(settings)

        ledger = service.load_ledger(ledger_file)
        updated, count = service.settle_with_user(ledger, user, to)

        if count == 0:
            console.print("[yellow]Nothing to settle.[/yellow]")
            return

        service.save_ledger(ledger_file, updated)
        console.print(f"[bold green]✓ Marked {count} splits as settled[/bold green]")

    except Exception as e:
        _fail(e, verbose)


@app.command()
def history(
    trip: str | None = typer.Option(None, "--trip", help="Only show this trip"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show recorded settlement plans."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        db = Database(settings.database_path)
        service = LedgerService(settings, db)

        recorded = service.get_recorded_settlements(trip)
        if not recorded:
            console.print("[yellow]No settlement plans recorded.[/yellow]")
            return

        table = Table(
            title="Recorded Plans", show_header=True, header_style="bold magenta"
        )
        table.add_column("ID", style="dim", width=6)
        table.add_column("Trip", style="cyan")
        table.add_column("Recorded", style="dim")
        table.add_column("Payments", justify="right")
        table.add_column("Total", justify="right", width=14)
        table.add_column("Hash", style="dim")
        for entry in recorded:
            table.add_row(
                str(entry.id),
                entry.trip_id,
                entry.created_at.strftime("%Y-%m-%d %H:%M"),
                str(entry.settlement_count),
                format_currency(entry.total_amount, settings.default_currency),
                entry.plan_hash[:8],
            )
        console.print(table)

        last_trip = db.get_last_recorded_trip()
        if last_trip:
            console.print(f"  Last recorded trip: [cyan]{last_trip}[/cyan]")

    except Exception as e:
        _fail(e, verbose)
    finally:
        if "db" in locals():
            db.close()


if __name__ == "__main__":
    app()
