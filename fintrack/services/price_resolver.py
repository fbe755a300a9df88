"""Price resolver: cache-aside lookup of current prices.

Requested symbols are served from the persistent price cache when present.
Misses go to the quote fetcher, and whatever it returns is written back to the
cache before the merged result is returned. Symbols no source can price are
simply absent from the result.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from fintrack.lib.api_models import PriceQuote
from fintrack.lib.config import MAX_SYMBOLS_PER_REQUEST, RESOLVE_DEADLINE
from fintrack.lib.errors import ValidationError
from fintrack.lib.identity import IdentityProvider, require_user
from fintrack.lib.validators import normalize_symbol
from fintrack.services.price_cache import PriceCache
from fintrack.services.quote_fetcher import QuoteFetcher
from fintrack.services.quote_providers import get_quote_provider

logger = logging.getLogger(__name__)


class SymbolState(str, enum.Enum):
    """Where a requested symbol's price came from."""

    CACHE_HIT = "cache_hit"
    FETCHED = "fetched"
    UNAVAILABLE = "unavailable"


@dataclass
class ResolveOutcome:
    """Result of one resolve with per-symbol provenance."""

    quotes: dict[str, PriceQuote] = field(default_factory=dict)
    states: dict[str, SymbolState] = field(default_factory=dict)
    dropped: list[str] = field(default_factory=list)

    @property
    def unavailable(self) -> list[str]:
        return [s for s, state in self.states.items() if state is SymbolState.UNAVAILABLE]

    def to_wire(self) -> dict[str, dict]:
        """``{symbol: {price, currency, asof}}`` for every priced symbol."""
        return {symbol: quote.to_wire() for symbol, quote in self.quotes.items()}


def normalize_symbols(
    symbols: Iterable[str], limit: int = MAX_SYMBOLS_PER_REQUEST
) -> tuple[list[str], list[str]]:
    """
    Trim, uppercase and de-duplicate symbols, keeping first-seen order.

    Blank entries are dropped. Only the first ``limit`` distinct symbols are
    kept; the rest are returned separately and never looked up.

    Returns:
        (kept, dropped)
    """
    distinct: list[str] = []
    seen: set[str] = set()
    for raw in symbols:
        try:
            symbol = normalize_symbol(raw or "")
        except ValidationError:
            continue
        if symbol not in seen:
            seen.add(symbol)
            distinct.append(symbol)

    kept, dropped = distinct[:limit], distinct[limit:]
    if dropped:
        logger.warning(f"Symbol limit of {limit} exceeded; ignoring {len(dropped)} symbol(s)")
    return kept, dropped


class PriceResolver:
    """Resolve symbols to prices for an authenticated caller."""

    def __init__(
        self,
        identity: Optional[IdentityProvider],
        cache: Optional[PriceCache] = None,
        fetcher: Optional[QuoteFetcher] = None,
        max_age: Optional[timedelta] = None,
        deadline: Optional[float] = RESOLVE_DEADLINE,
        max_symbols: int = MAX_SYMBOLS_PER_REQUEST,
    ):
        """
        Initialize resolver.

        Args:
            identity: Caller identity; resolving requires one
            cache: Price cache (default: the shared ``prices`` table)
            fetcher: Quote fetcher (default: built from the configured provider
                     the first time a cache miss needs it)
            max_age: Cached quotes older than this are refetched; None keeps
                     cached quotes forever
            deadline: Seconds allowed for the fetch phase of one resolve
            max_symbols: Distinct symbols honoured per request
        """
        self.identity = identity
        self.cache = cache or PriceCache()
        self._fetcher = fetcher
        self.max_age = max_age
        self.deadline = deadline
        self.max_symbols = max_symbols

    @property
    def fetcher(self) -> QuoteFetcher:
        if self._fetcher is None:
            self._fetcher = QuoteFetcher(get_quote_provider())
        return self._fetcher

    async def resolve(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """
        Resolve symbols to their current quotes.

        Args:
            symbols: Requested symbols (any case, duplicates allowed)

        Returns:
            Symbol -> quote for every symbol with a cached or fetched price

        Raises:
            UnauthenticatedError: If there is no caller identity
        """
        outcome = await self.resolve_detailed(symbols)
        return outcome.quotes

    async def resolve_detailed(self, symbols: Iterable[str]) -> ResolveOutcome:
        """Like ``resolve`` but also reports each symbol's state."""
        user_id = require_user(self.identity)

        requested, dropped = normalize_symbols(symbols, self.max_symbols)
        outcome = ResolveOutcome(dropped=dropped)
        if not requested:
            return outcome

        cached = self.cache.get(requested)
        stale = self._stale(cached)

        misses = [s for s in requested if s not in cached or s in stale]
        fetched: dict[str, PriceQuote] = {}
        if misses:
            logger.info(
                f"Resolving {len(requested)} symbol(s) for {user_id}: "
                f"{len(requested) - len(misses)} cached, {len(misses)} to fetch"
            )
            fetched = await self.fetcher.fetch_many(misses, deadline=self.deadline)

        if fetched:
            try:
                self.cache.put(fetched.values())
            except SQLAlchemyError as e:
                logger.error(f"Failed to cache {len(fetched)} quote(s): {e}")

        for symbol in requested:
            if symbol in fetched:
                outcome.quotes[symbol] = fetched[symbol]
                outcome.states[symbol] = SymbolState.FETCHED
            elif symbol in cached:
                # Stale entries whose refetch failed are returned as-is
                outcome.quotes[symbol] = cached[symbol]
                outcome.states[symbol] = SymbolState.CACHE_HIT
            else:
                outcome.states[symbol] = SymbolState.UNAVAILABLE

        return outcome

    def _stale(self, cached: dict[str, PriceQuote]) -> set[str]:
        if self.max_age is None:
            return set()
        now = datetime.now(timezone.utc)
        return {symbol for symbol, quote in cached.items() if now - quote.asof > self.max_age}
