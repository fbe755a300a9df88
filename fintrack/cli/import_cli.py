"""Import CLI commands for CSV transaction imports."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from fintrack.lib.csv_models import ColumnMapping
from fintrack.lib.errors import ChunkCommitError, FinTrackError
from fintrack.services.account_service import AccountService
from fintrack.services.batch_committer import DuplicatePolicy
from fintrack.services.csv_parser import TabularParser
from fintrack.services.import_service import ImportService

console = Console()

# Rejections shown inline after an import; the rest via `import errors`
MAX_REJECTIONS_SHOWN = 10


def validate_file_path(file_path: Path) -> None:
    """Validate that the import source is a regular CSV file.

    Raises:
        click.BadParameter: If path is a symlink, not a file, or not .csv/.txt
    """
    if file_path.is_symlink():
        raise click.BadParameter(f"Symlinks are not allowed for security reasons: {file_path}")

    resolved_path = file_path.resolve(strict=True)
    if not resolved_path.is_file():
        raise click.BadParameter(f"Path must be a regular file: {file_path}")

    if resolved_path.suffix.lower() not in (".csv", ".txt"):
        raise click.BadParameter(f"Only CSV files are allowed, got: {resolved_path.suffix}")


@click.group(name="import")
def import_group() -> None:
    """Import transactions and review past imports."""
    pass


@import_group.command(name="csv")
@click.option(
    "--file",
    "-f",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="Path to CSV file",
)
@click.option("--account", "-a", "account_ref", required=True, help="Account name or id")
@click.option("--date-col", default="date", show_default=True, help="Header of the date column")
@click.option(
    "--description-col",
    default="description",
    show_default=True,
    help="Header of the description column",
)
@click.option(
    "--amount-col", default="amount", show_default=True, help="Header of the amount column"
)
@click.option("--external-id-col", default=None, help="Header of the bank's transaction id column")
@click.option("--dayfirst", is_flag=True, help="Read 01/05/2024 as 1 May")
@click.option("--delimiter", default=",", show_default=True, help="Field delimiter")
@click.option(
    "--on-duplicate",
    type=click.Choice([p.value for p in DuplicatePolicy], case_sensitive=False),
    default=DuplicatePolicy.ALLOW.value,
    show_default=True,
    help="What to do with external ids that were already imported",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Validate without importing to database",
)
@click.pass_obj
def import_csv(
    obj: dict,
    file: Path,
    account_ref: str,
    date_col: str,
    description_col: str,
    amount_col: str,
    external_id_col: str | None,
    dayfirst: bool,
    delimiter: str,
    on_duplicate: str,
    dry_run: bool,
) -> None:
    """Import transactions from CSV file.

    Examples:
        fintrack import csv -f bank.csv -a Checking
        fintrack import csv -f bank.csv -a Checking --date-col "Posted" --amount-col "Amt" --dry-run
    """
    validate_file_path(file)

    identity = obj["IDENTITY"]
    mapping = ColumnMapping(
        date=date_col,
        description=description_col,
        amount=amount_col,
        external_id=external_id_col,
        dayfirst=dayfirst,
    )

    console.print(f"\n[bold]Importing {file.name}[/bold]")

    if dry_run:
        console.print("[yellow]DRY RUN MODE - No data will be saved[/yellow]\n")

    try:
        account_info = AccountService(identity).find_account(account_ref)
        service = ImportService(
            identity,
            parser=TabularParser(delimiter=delimiter),
            duplicate_policy=DuplicatePolicy(on_duplicate.lower()),
        )
        result = service.import_file(file, mapping, account_info.account_id, dry_run=dry_run)
    except ChunkCommitError as e:
        console.print(f"[magenta]✗ Import failed: {e.message}[/magenta]")
        console.print("[dim]Rows from earlier chunks were kept. See: fintrack import history[/dim]")
        raise click.Abort()
    except FinTrackError as e:
        console.print(f"[red]✗ Import failed: {e.message}[/red]")
        raise click.Abort()

    table = Table(title="Import Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Total Rows", str(result.total_rows))
    table.add_row("Valid", str(result.record_count))
    table.add_row("Rejected", str(result.rejected_count))
    if not dry_run:
        table.add_row("Committed", str(result.committed_count))
        table.add_row("Duplicates Skipped", str(result.skipped_count))
    table.add_row("Duration", f"{result.processing_duration:.2f}s", style="dim")

    console.print(table)

    if result.rejected:
        console.print(f"\n[yellow]⚠️  {result.rejected_count} row(s) were skipped[/yellow]")
        for rejection in result.rejected[:MAX_REJECTIONS_SHOWN]:
            console.print(f"  Row {rejection.row_index + 1}: {rejection.reason}")
        if result.job_id and result.rejected_count > MAX_REJECTIONS_SHOWN:
            console.print(f"[dim]See all with:[/dim] fintrack import errors {result.job_id}")

    if result.job_id:
        console.print(f"\n[dim]Import job:[/dim] {result.job_id}\n")


@import_group.command(name="history")
@click.option("--limit", "-n", default=10, show_default=True, help="Number of jobs to show")
@click.pass_obj
def import_history(obj: dict, limit: int) -> None:
    """Show recent import jobs."""
    jobs = ImportService(obj["IDENTITY"]).get_import_history(limit=limit)

    if not jobs:
        console.print("\n[yellow]No imports yet.[/yellow]\n")
        return

    table = Table(title="Import History")
    table.add_column("Job ID", style="dim", no_wrap=True)
    table.add_column("Source", style="cyan")
    table.add_column("Created")
    table.add_column("Status")
    table.add_column("Rows", justify="right")
    table.add_column("Committed", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="yellow")

    status_styles = {"committed": "green", "failed": "red", "pending": "yellow"}
    for job in jobs:
        style = status_styles.get(job.status, "white")
        table.add_row(
            job.job_id,
            job.source_name,
            job.created_at.strftime("%Y-%m-%d %H:%M"),
            f"[{style}]{job.status}[/{style}]",
            str(job.total_rows),
            str(job.committed_count),
            str(job.rejected_count),
        )

    console.print(table)

    for job in jobs:
        if job.error_message:
            console.print(f"[red]{job.job_id}:[/red] {job.error_message}")


@import_group.command(name="errors")
@click.argument("job_id")
@click.pass_obj
def import_errors(obj: dict, job_id: str) -> None:
    """Show the rows an import job skipped."""
    try:
        rejections = ImportService(obj["IDENTITY"]).get_import_errors(job_id)
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    if not rejections:
        console.print("\n[green]✓ No rows were skipped in this import.[/green]\n")
        return

    table = Table(title=f"Skipped Rows ({len(rejections)})")
    table.add_column("Row", justify="right", style="cyan")
    table.add_column("Field", style="magenta")
    table.add_column("Reason", style="yellow")
    table.add_column("Data", style="dim")

    for rejection in rejections:
        table.add_row(
            str(rejection.row_index + 1),
            rejection.field,
            rejection.reason,
            ",".join(rejection.cells),
        )

    console.print(table)
