"""Price lookup commands."""

import asyncio
import json
from datetime import timedelta

import click
from rich.console import Console
from rich.table import Table

from fintrack.lib.errors import FinTrackError
from fintrack.services.price_resolver import PriceResolver, SymbolState
from fintrack.services.quote_fetcher import QuoteFetcher
from fintrack.services.quote_providers import get_quote_provider

console = Console()

STATE_LABELS = {
    SymbolState.CACHE_HIT: "[dim]cached[/dim]",
    SymbolState.FETCHED: "[green]fetched[/green]",
    SymbolState.UNAVAILABLE: "[red]unavailable[/red]",
}


@click.group()  # type: ignore[misc]
def prices() -> None:
    """Look up current prices."""
    pass


@prices.command("get")  # type: ignore[misc]
@click.argument("symbols", nargs=-1, required=True)  # type: ignore[misc]
@click.option(
    "--max-age",
    type=int,
    default=None,
    help="Refetch cached prices older than this many minutes",
)  # type: ignore[misc]
@click.option(
    "--provider",
    type=click.Choice(["alpha_vantage", "yahoo_finance"]),
    default=None,
    help="Quote provider (default: $FINTRACK_QUOTE_PROVIDER or alpha_vantage)",
)  # type: ignore[misc]
@click.option("--json", "as_json", is_flag=True, help="Print {symbol: {price, currency, asof}}")  # type: ignore[misc]
@click.pass_obj  # type: ignore[misc]
def prices_get(
    obj: dict, symbols: tuple[str, ...], max_age: int | None, provider: str | None, as_json: bool
) -> None:
    """Resolve SYMBOLS to prices, using the cache where possible.

    Examples:
        fintrack prices get AAPL MSFT
        fintrack prices get aapl --max-age 15 --json
    """
    try:
        fetcher = QuoteFetcher(get_quote_provider(provider)) if provider else None
        resolver = PriceResolver(
            obj["IDENTITY"],
            fetcher=fetcher,
            max_age=timedelta(minutes=max_age) if max_age is not None else None,
        )
        outcome = asyncio.run(resolver.resolve_detailed(symbols))
    except FinTrackError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise click.Abort()

    if as_json:
        click.echo(json.dumps(outcome.to_wire(), indent=2))
        return

    table = Table(title="Prices", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="cyan")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Currency")
    table.add_column("As of", style="dim")
    table.add_column("Source")

    for symbol, state in outcome.states.items():
        quote = outcome.quotes.get(symbol)
        if quote is None:
            table.add_row(symbol, "-", "-", "-", STATE_LABELS[state])
            continue
        table.add_row(
            symbol,
            f"{quote.price:,.2f}",
            quote.currency,
            quote.asof.strftime("%Y-%m-%d %H:%M UTC"),
            STATE_LABELS[state],
        )

    console.print(table)

    if outcome.unavailable:
        console.print(f"[yellow]No price for: {', '.join(outcome.unavailable)}[/yellow]")
    if outcome.dropped:
        console.print(f"[yellow]⚠️  {len(outcome.dropped)} symbol(s) over the limit were ignored[/yellow]")
