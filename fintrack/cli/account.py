"""Account and category management commands."""

import click
from rich.console import Console
from rich.table import Table

from fintrack.lib.errors import FinTrackError
from fintrack.services.account_service import CATEGORY_KINDS, AccountService

console = Console()


@click.group()  # type: ignore[misc]
def account() -> None:
    """Manage accounts and categories."""
    pass


@account.command("add")  # type: ignore[misc]
@click.option("--name", "-n", required=True, help="Account name")  # type: ignore[misc]
@click.option("--type", "account_type", default="checking", help="Account type")  # type: ignore[misc]
@click.option("--currency", "-c", default="USD", help="ISO currency code")  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def account_add(obj: dict, name: str, account_type: str, currency: str) -> None:
    """Create an account."""
    service = AccountService(obj["IDENTITY"])
    try:
        info = service.create_account(name, account_type=account_type, currency=currency)
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    console.print(f"[green]✓ Created account {info.name}[/green] [dim]({info.account_id})[/dim]")


@account.command("list")  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def account_list(obj: dict) -> None:
    """List your accounts."""
    accounts = AccountService(obj["IDENTITY"]).list_accounts()

    if not accounts:
        console.print("[yellow]No accounts yet.[/yellow] Create one with: fintrack account add -n <name>")
        return

    table = Table(title="Accounts", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Currency")
    table.add_column("Transactions", justify="right", style="green")

    for info in accounts:
        table.add_row(
            info.account_id, info.name, info.type, info.currency, str(info.transaction_count)
        )

    console.print(table)


@account.command("add-category")  # type: ignore[misc]
@click.option("--name", "-n", required=True, help="Category name")  # type: ignore[misc]
@click.option(
    "--kind",
    type=click.Choice(CATEGORY_KINDS, case_sensitive=False),
    default="expense",
    help="Category kind",
)  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def category_add(obj: dict, name: str, kind: str) -> None:
    """Create a category."""
    try:
        info = AccountService(obj["IDENTITY"]).create_category(name, kind=kind)
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    console.print(f"[green]✓ Created category {info.name}[/green] ({info.kind})")


@account.command("categories")  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def category_list(obj: dict) -> None:
    """List your categories."""
    categories = AccountService(obj["IDENTITY"]).list_categories()

    table = Table(title="Categories", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    for info in categories:
        table.add_row(info.name, info.kind)

    console.print(table)
