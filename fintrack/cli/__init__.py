"""CLI entry point for fintrack."""

import logging
import sys
import traceback

import click
from rich.console import Console

from fintrack.cli import account, import_cli, prices, transactions
from fintrack.cli import init as init_cmd
from fintrack.lib.errors import FinTrackError, format_error_message, get_error_color
from fintrack.lib.identity import EnvIdentity, StaticIdentity
from fintrack.lib.logging_config import setup_logging

console = Console()


@click.group()  # type: ignore[misc]
@click.option("--debug", is_flag=True, help="Enable debug mode")  # type: ignore[misc]
@click.option(
    "--user",
    "user_id",
    envvar="FINTRACK_USER_ID",
    help="User id to act as (default: $FINTRACK_USER_ID)",
)  # type: ignore[misc]
@click.pass_context  # type: ignore[misc]
def main(ctx: click.Context, debug: bool, user_id: str | None) -> None:
    """Personal finance tracker - import transactions and look up prices."""
    setup_logging(logging.DEBUG if debug else logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["DEBUG"] = debug
    ctx.obj["IDENTITY"] = StaticIdentity(user_id) if user_id else EnvIdentity()


def handle_exception(
    exc_type: type[BaseException], exc_value: BaseException, exc_traceback: object
) -> None:
    """
    Global exception handler for CLI.

    Formats exceptions with Rich colors and provides user-friendly messages.
    """
    # Don't handle KeyboardInterrupt
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)  # type: ignore[arg-type]
        return

    color = get_error_color(exc_value) if isinstance(exc_value, Exception) else "red"
    message = (
        format_error_message(exc_value) if isinstance(exc_value, Exception) else str(exc_value)
    )

    console.print(f"\n[{color}]✗ Error: {message}[/{color}]\n")

    debug_mode = "--debug" in sys.argv
    if not isinstance(exc_value, FinTrackError):
        console.print("[dim]Unexpected error occurred. Use --debug for full traceback.[/dim]")
    if debug_mode:
        console.print("[dim]Traceback:[/dim]")
        traceback.print_exception(exc_value)

    sys.exit(1)


# Install global exception handler
sys.excepthook = handle_exception


@main.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    click.echo("fintrack version 0.1.0")


# Register subcommands
main.add_command(init_cmd.init)
main.add_command(account.account)
main.add_command(import_cli.import_group)
main.add_command(transactions.transactions)
main.add_command(prices.prices)


if __name__ == "__main__":
    main()
