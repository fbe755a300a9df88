"""Transaction listing and export commands."""

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from fintrack.lib.errors import FinTrackError, ValidationError
from fintrack.lib.validators import parse_amount
from fintrack.services.account_service import AccountService
from fintrack.services.transaction_service import (
    TransactionFilter,
    TransactionService,
    format_amount,
)

console = Console()


def _build_filter(
    identity: object,
    start: datetime | None,
    end: datetime | None,
    min_amount: Decimal | None,
    max_amount: Decimal | None,
    account_ref: str | None,
    job_id: str | None,
) -> TransactionFilter:
    account_id = None
    if account_ref:
        account_id = AccountService(identity).find_account(account_ref).account_id  # type: ignore[arg-type]

    return TransactionFilter(
        start_date=start.date() if start else None,
        end_date=end.date() if end else None,
        min_amount=min_amount,
        max_amount=max_amount,
        account_id=account_id,
        import_job_id=job_id,
    )


def _parse_amount_option(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> Decimal | None:
    if value is None:
        return None
    try:
        return parse_amount(value)
    except ValidationError as e:
        raise click.BadParameter(e.message) from e


def filter_options(f):  # type: ignore[no-untyped-def]
    """Shared filter options for list and export."""
    options = [
        click.option("--from", "start", type=click.DateTime(["%Y-%m-%d"]), help="Earliest date"),
        click.option("--to", "end", type=click.DateTime(["%Y-%m-%d"]), help="Latest date"),
        click.option("--min-amount", callback=_parse_amount_option, help="Smallest amount (signed)"),
        click.option("--max-amount", callback=_parse_amount_option, help="Largest amount (signed)"),
        click.option("--account", "-a", "account_ref", help="Account name or id"),
        click.option("--job", "job_id", help="Only rows from this import job"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()  # type: ignore[misc]
def transactions() -> None:
    """Browse and export transactions."""
    pass


@transactions.command("list")  # type: ignore[misc]
@filter_options
@click.option("--limit", "-n", default=50, show_default=True, help="Rows to show")  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def transactions_list(
    obj: dict,
    start: datetime | None,
    end: datetime | None,
    min_amount: Decimal | None,
    max_amount: Decimal | None,
    account_ref: str | None,
    job_id: str | None,
    limit: int,
) -> None:
    """List transactions, newest first."""
    identity = obj["IDENTITY"]
    try:
        filters = _build_filter(identity, start, end, min_amount, max_amount, account_ref, job_id)
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    rows = TransactionService(identity).list_transactions(filters, limit=limit)

    if not rows:
        console.print("[yellow]No transactions found.[/yellow]")
        return

    table = Table(title=f"Transactions ({len(rows)})")
    table.add_column("Date", style="cyan")
    table.add_column("Description")
    table.add_column("Amount", justify="right")
    table.add_column("Account", style="magenta")

    for txn in rows:
        color = "green" if txn.amount >= 0 else "red"
        table.add_row(
            txn.posted_at.isoformat(),
            txn.description,
            f"[{color}]{format_amount(txn.amount)}[/{color}]",
            txn.account_name,
        )

    console.print(table)


@transactions.command("export")  # type: ignore[misc]
@filter_options
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write to file instead of stdout",
)  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def transactions_export(
    obj: dict,
    start: datetime | None,
    end: datetime | None,
    min_amount: Decimal | None,
    max_amount: Decimal | None,
    account_ref: str | None,
    job_id: str | None,
    output: Path | None,
) -> None:
    """Export transactions as CSV."""
    identity = obj["IDENTITY"]
    try:
        filters = _build_filter(identity, start, end, min_amount, max_amount, account_ref, job_id)
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    text = TransactionService(identity).export_csv(filters)

    if output is None:
        click.echo(text, nl=False)
        return

    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓ Exported to {output}[/green]")
