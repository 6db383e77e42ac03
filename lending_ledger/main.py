"""Command‑line interface for the lending ledger.

This module uses the ``click`` library to implement a multi‑command interface
over a ``LedgerStore``. Lenders can register borrowers, record advances and
repayments, review running balances and compare the three interest methods.
Summaries and compound breakdowns can be printed to the terminal or exported
to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .balance import annotate_running_balance, portfolio_totals, running_balance
from .config import load_settings
from .data_models import COMPOUND, INTEREST_METHODS, RETURNED, TAKEN, Borrower, WeekBreakdown
from .engine import compound_interest
from .exceptions import LedgerError
from .formatter import (
    breakdown_to_list,
    ledger_to_list,
    print_breakdown,
    print_ledger,
    print_summary,
    rounded,
    summary_to_dict,
)
from .ledger_store import LedgerStore
from .summary import build_summary, filter_by_date_range
from .utils import format_currency, parse_amount, parse_optional_date

logger = logging.getLogger(__name__)


def _date_option(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[date]:
    try:
        return parse_optional_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _amount_argument(ctx: click.Context, param: click.Parameter, value: Optional[str]):
    if value is None:
        return None
    try:
        amount = parse_amount(value)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if amount < 0:
        raise click.BadParameter("Amount must not be negative")
    return amount


def _load_borrower(store: LedgerStore, borrower_id: str) -> Borrower:
    try:
        return store.get_borrower(borrower_id)
    except LedgerError as exc:
        raise click.ClickException(str(exc))


def export_breakdown_to_csv(path: Path, breakdown: List[WeekBreakdown]) -> None:
    """Export a compound interest breakdown to a CSV file."""
    header = ["Week", "Start", "End", "Principal", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in breakdown:
            writer.writerow(
                [
                    e.week,
                    e.start_date.isoformat(),
                    e.end_date.isoformat(),
                    rounded(e.principal),
                    rounded(e.interest),
                    rounded(e.balance),
                ]
            )


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


@click.group()
@click.option("--database-url", "database_url", help="SQLAlchemy URL of the ledger database")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log calculation details")
@click.pass_context
def cli(ctx: click.Context, database_url: Optional[str], verbose: bool) -> None:
    """Track informal loans and compare weekly interest methods."""
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc))
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", settings)
    if "store" not in ctx.obj:
        url = database_url or settings.database_url
        logger.debug("opening ledger database %s", url)
        ctx.obj["store"] = LedgerStore(url)


@cli.command("add-borrower")
@click.argument("name")
@click.option("--rate", "-r", "rate", help="Weekly interest rate (percent)")
@click.option(
    "--method",
    "method",
    type=click.Choice(INTEREST_METHODS),
    default=COMPOUND,
    help="Preferred interest method",
)
@click.pass_obj
def add_borrower(obj: Dict[str, Any], name: str, rate: Optional[str], method: str) -> None:
    """Register a new borrower."""
    store: LedgerStore = obj["store"]
    try:
        rate_value = parse_amount(rate) if rate else obj["settings"].default_rate
        borrower = store.create_borrower(name, rate_value, method)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    click.echo(borrower.id)


@cli.command("list")
@click.pass_obj
def list_borrowers(obj: Dict[str, Any]) -> None:
    """List borrowers with their current balance."""
    store: LedgerStore = obj["store"]
    borrowers = store.list_borrowers()
    if not borrowers:
        click.echo("No borrowers yet.")
        return
    click.echo(f"{'Id':24s} {'Name':20s} {'Rate':>8s} {'Method':18s} {'Balance':>12s}")
    for b in borrowers:
        balance = running_balance(b.transactions)
        click.echo(
            f"{b.id:24s} {b.name:20s} {b.interest_rate:8.2f} {b.interest_method:18s} {balance:12.2f}"
        )
    totals = portfolio_totals(borrowers)
    click.echo(
        f"Total outstanding: {format_currency(totals.total_outstanding)} "
        f"across {totals.active_loans} active of {totals.borrowers} borrowers"
    )


@cli.command("remove-borrower")
@click.argument("borrower_id")
@click.pass_obj
def remove_borrower(obj: Dict[str, Any], borrower_id: str) -> None:
    """Delete a borrower and their whole ledger."""
    try:
        obj["store"].delete_borrower(borrower_id)
    except LedgerError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Removed {borrower_id}")


def _record(obj: Dict[str, Any], borrower_id: str, amount, on: Optional[date], type_: str) -> None:
    store: LedgerStore = obj["store"]
    try:
        transaction = store.add_transaction(borrower_id, on or date.today(), type_, amount)
    except LedgerError as exc:
        raise click.ClickException(str(exc))
    click.echo(transaction.id)


@cli.command()
@click.argument("borrower_id")
@click.argument("amount", callback=_amount_argument)
@click.option("--date", "on", callback=_date_option, help="Transaction date (YYYY-MM-DD), default today")
@click.pass_obj
def take(obj: Dict[str, Any], borrower_id: str, amount, on: Optional[date]) -> None:
    """Record money given to a borrower."""
    _record(obj, borrower_id, amount, on, TAKEN)


@cli.command()
@click.argument("borrower_id")
@click.argument("amount", callback=_amount_argument)
@click.option("--date", "on", callback=_date_option, help="Transaction date (YYYY-MM-DD), default today")
@click.pass_obj
def repay(obj: Dict[str, Any], borrower_id: str, amount, on: Optional[date]) -> None:
    """Record money paid back by a borrower."""
    _record(obj, borrower_id, amount, on, RETURNED)


@cli.command("edit-transaction")
@click.argument("borrower_id")
@click.argument("transaction_id")
@click.option("--date", "on", callback=_date_option, help="New date (YYYY-MM-DD)")
@click.option("--type", "type_", type=click.Choice([TAKEN, RETURNED]), help="New type")
@click.option("--amount", "amount", callback=_amount_argument, help="New amount")
@click.pass_obj
def edit_transaction(
    obj: Dict[str, Any],
    borrower_id: str,
    transaction_id: str,
    on: Optional[date],
    type_: Optional[str],
    amount,
) -> None:
    """Change the date, type or amount of a transaction."""
    try:
        obj["store"].update_transaction(
            borrower_id, transaction_id, date=on, type=type_, amount=amount
        )
    except LedgerError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Updated {transaction_id}")


@cli.command("delete-transaction")
@click.argument("borrower_id")
@click.argument("transaction_id")
@click.pass_obj
def delete_transaction(obj: Dict[str, Any], borrower_id: str, transaction_id: str) -> None:
    """Remove a transaction from a borrower's ledger."""
    try:
        obj["store"].delete_transaction(borrower_id, transaction_id)
    except LedgerError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Deleted {transaction_id}")


@cli.command()
@click.argument("borrower_id")
@click.option("--start", "start", callback=_date_option, help="First date shown (YYYY-MM-DD)")
@click.option("--end", "end", callback=_date_option, help="Last date shown (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_obj
def ledger(
    obj: Dict[str, Any],
    borrower_id: str,
    start: Optional[date],
    end: Optional[date],
    output: Optional[str],
) -> None:
    """Show transactions with running balances.

    With ``--start`` the balance carried in from earlier transactions is
    included in the first row.
    """
    borrower = _load_borrower(obj["store"], borrower_id)
    rows = annotate_running_balance(borrower.transactions, start, end)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Ledger export must use .json extension")
        export_to_json(path, {"borrower": borrower.name, "ledger": ledger_to_list(rows)})
        click.echo(f"Ledger exported to {path}")
    else:
        print_ledger(rows)


@cli.command()
@click.argument("borrower_id")
@click.option("--start", "start", callback=_date_option, help="Ignore transactions before (YYYY-MM-DD)")
@click.option("--end", "end", callback=_date_option, help="Ignore transactions after (YYYY-MM-DD)")
@click.option("--as-of", "as_of", callback=_date_option, help="Evaluation date (YYYY-MM-DD), default today")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_obj
def summary(
    obj: Dict[str, Any],
    borrower_id: str,
    start: Optional[date],
    end: Optional[date],
    as_of: Optional[date],
    output: Optional[str],
) -> None:
    """Compare the three interest methods for a borrower."""
    borrower = _load_borrower(obj["store"], borrower_id)
    summary_data = build_summary(borrower, start=start, end=end, as_of=as_of)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        export_to_json(path, {"borrower": borrower.name, "summary": summary_to_dict(summary_data)})
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(borrower, summary_data)


@cli.command()
@click.argument("borrower_id")
@click.option("--start", "start", callback=_date_option, help="Ignore transactions before (YYYY-MM-DD)")
@click.option("--end", "end", callback=_date_option, help="Ignore transactions after (YYYY-MM-DD)")
@click.option("--as-of", "as_of", callback=_date_option, help="Evaluation date (YYYY-MM-DD), default today")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_obj
def breakdown(
    obj: Dict[str, Any],
    borrower_id: str,
    start: Optional[date],
    end: Optional[date],
    as_of: Optional[date],
    output: Optional[str],
) -> None:
    """Print the week-by-week compound interest schedule."""
    borrower = _load_borrower(obj["store"], borrower_id)
    transactions = filter_by_date_range(borrower.transactions, start, end)
    result = compound_interest(borrower, transactions, as_of)
    weeks = result.breakdown or []
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"borrower": borrower.name, "breakdown": breakdown_to_list(weeks)})
            click.echo(f"Breakdown exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_breakdown_to_csv(path, weeks)
            click.echo(f"Breakdown exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        # Limit rows printed to avoid flooding the terminal
        max_rows = 120
        if len(weeks) > max_rows:
            click.echo(f"Breakdown has {len(weeks)} weeks; showing last {max_rows} weeks.")
            print_breakdown(weeks[-max_rows:])
        else:
            print_breakdown(weeks)


if __name__ == "__main__":
    cli()
