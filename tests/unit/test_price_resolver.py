"""Unit tests for PriceResolver."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from fintrack.lib.api_models import PriceQuote
from fintrack.lib.errors import APIConnectionError, UnauthenticatedError
from fintrack.lib.identity import StaticIdentity
from fintrack.services.price_cache import PriceCache
from fintrack.services.price_resolver import PriceResolver, SymbolState, normalize_symbols
from fintrack.services.quote_fetcher import QuoteFetcher


def make_provider(prices):
    """Provider that prices only the symbols in ``prices``."""
    provider = MagicMock()
    provider.name = "fake"

    async def get_quote(symbol):
        if symbol not in prices:
            return None
        value = prices[symbol]
        if isinstance(value, BaseException):
            raise value
        return PriceQuote(symbol=symbol, price=value, source="fake")

    provider.get_quote = AsyncMock(side_effect=get_quote)
    return provider


@pytest.fixture
def cache():
    return PriceCache()


@pytest.fixture
def aapl_cached(cache):
    cache.put([PriceQuote(symbol="AAPL", price=190.12, source="seed")])


def make_resolver(identity, provider, **kwargs):
    return PriceResolver(identity, fetcher=QuoteFetcher(provider, delay=0), **kwargs)


@pytest.mark.unit
class TestNormalizeSymbols:
    def test_trim_uppercase_dedupe(self):
        kept, dropped = normalize_symbols([" aapl", "AAPL ", "msft", "", "  ", "Msft", "tsla"])

        assert kept == ["AAPL", "MSFT", "TSLA"]
        assert dropped == []

    def test_cap(self):
        symbols = [f"S{i}" for i in range(60)]

        kept, dropped = normalize_symbols(symbols)

        assert kept == symbols[:50]
        assert dropped == symbols[50:]


@pytest.mark.unit
class TestPriceResolver:
    """Test suite for PriceResolver."""

    @pytest.mark.asyncio
    async def test_cached_and_fetched(self, identity, cache, aapl_cached):
        """AAPL comes from the cache; MSFT is fetched once and written back."""
        provider = make_provider({"MSFT": 310.00})
        resolver = make_resolver(identity, provider)

        result = await resolver.resolve(["aapl", "MSFT"])

        assert result["AAPL"].price == 190.12
        assert result["MSFT"].price == 310.00
        provider.get_quote.assert_awaited_once_with("MSFT")
        assert cache.get(["MSFT"])["MSFT"].price == 310.00

    @pytest.mark.asyncio
    async def test_unknown_symbol_absent_and_not_cached(self, identity, cache):
        provider = make_provider({})
        resolver = make_resolver(identity, provider)

        with patch.object(cache, "put", wraps=cache.put) as mock_put:
            resolver.cache = cache
            outcome = await resolver.resolve_detailed(["ZZZZ"])

        assert outcome.quotes == {}
        assert outcome.states == {"ZZZZ": SymbolState.UNAVAILABLE}
        assert outcome.unavailable == ["ZZZZ"]
        mock_put.assert_not_called()
        assert cache.get(["ZZZZ"]) == {}

    @pytest.mark.asyncio
    async def test_second_resolve_does_not_refetch(self, identity):
        provider = make_provider({"AAPL": 190.0, "MSFT": 310.0})
        resolver = make_resolver(identity, provider)

        first = await resolver.resolve(["AAPL", "MSFT"])
        second = await resolver.resolve(["AAPL", "MSFT"])

        assert provider.get_quote.await_count == 2
        assert {s: q.price for s, q in second.items()} == {s: q.price for s, q in first.items()}

    @pytest.mark.asyncio
    async def test_all_cached_needs_no_provider(self, identity, aapl_cached):
        """A fully cached request never builds the default provider."""
        resolver = PriceResolver(identity)

        with patch("fintrack.services.price_resolver.get_quote_provider") as mock_factory:
            result = await resolver.resolve(["AAPL"])

        mock_factory.assert_not_called()
        assert result["AAPL"].price == 190.12

    @pytest.mark.asyncio
    async def test_partial_provider_failure(self, identity):
        provider = make_provider({"AAPL": 190.0, "ZZZZ": APIConnectionError("fake"), "MSFT": 310.0})
        resolver = make_resolver(identity, provider)

        outcome = await resolver.resolve_detailed(["AAPL", "ZZZZ", "MSFT"])

        assert set(outcome.quotes) == {"AAPL", "MSFT"}
        assert outcome.states["ZZZZ"] is SymbolState.UNAVAILABLE
        assert outcome.states["AAPL"] is SymbolState.FETCHED

    @pytest.mark.asyncio
    async def test_states(self, identity, aapl_cached):
        resolver = make_resolver(identity, make_provider({"MSFT": 310.0}))

        outcome = await resolver.resolve_detailed(["AAPL", "MSFT", "ZZZZ"])

        assert outcome.states == {
            "AAPL": SymbolState.CACHE_HIT,
            "MSFT": SymbolState.FETCHED,
            "ZZZZ": SymbolState.UNAVAILABLE,
        }
        assert outcome.to_wire()["MSFT"]["price"] == 310.0
        assert set(outcome.to_wire()["MSFT"]) == {"price", "currency", "asof"}

    @pytest.mark.asyncio
    async def test_symbol_cap(self, identity):
        symbols = [f"S{i}" for i in range(60)]
        provider = make_provider({})
        resolver = make_resolver(identity, provider)

        outcome = await resolver.resolve_detailed(symbols)

        assert provider.get_quote.await_count == 50
        assert len(outcome.states) == 50
        assert outcome.dropped == symbols[50:]

    @pytest.mark.asyncio
    async def test_empty_request(self, identity):
        provider = make_provider({})
        resolver = make_resolver(identity, provider)

        assert await resolver.resolve(["", "  "]) == {}
        provider.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity_value", [None, StaticIdentity(None), StaticIdentity("  ")])
    async def test_requires_identity(self, identity_value):
        provider = make_provider({"AAPL": 1.0})
        cache = MagicMock()
        resolver = PriceResolver(identity_value, cache=cache, fetcher=QuoteFetcher(provider, delay=0))

        with pytest.raises(UnauthenticatedError):
            await resolver.resolve(["AAPL"])

        cache.get.assert_not_called()
        provider.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_write_failure_keeps_fetched_quotes(self, identity, cache):
        provider = make_provider({"MSFT": 310.0})
        resolver = make_resolver(identity, provider, cache=cache)

        with patch.object(
            cache, "put", side_effect=OperationalError("INSERT", {}, Exception("disk I/O error"))
        ):
            result = await resolver.resolve(["MSFT"])

        assert result["MSFT"].price == 310.0

    @pytest.mark.asyncio
    async def test_max_age_refetches_stale(self, identity, cache):
        two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        cache.put([PriceQuote(symbol="AAPL", price=150.0, asof=two_hours_ago)])
        provider = make_provider({"AAPL": 190.0})
        resolver = make_resolver(identity, provider, max_age=timedelta(hours=1))

        outcome = await resolver.resolve_detailed(["AAPL"])

        assert outcome.quotes["AAPL"].price == 190.0
        assert outcome.states["AAPL"] is SymbolState.FETCHED
        assert cache.get(["AAPL"])["AAPL"].price == 190.0

    @pytest.mark.asyncio
    async def test_max_age_keeps_fresh(self, identity, cache):
        cache.put([PriceQuote(symbol="AAPL", price=150.0)])
        provider = make_provider({"AAPL": 190.0})
        resolver = make_resolver(identity, provider, max_age=timedelta(hours=1))

        result = await resolver.resolve(["AAPL"])

        assert result["AAPL"].price == 150.0
        provider.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_quote_returned_when_refetch_fails(self, identity, cache):
        two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        cache.put([PriceQuote(symbol="AAPL", price=150.0, asof=two_hours_ago)])
        resolver = make_resolver(identity, make_provider({}), max_age=timedelta(hours=1))

        outcome = await resolver.resolve_detailed(["AAPL"])

        assert outcome.quotes["AAPL"].price == 150.0
        assert outcome.states["AAPL"] is SymbolState.CACHE_HIT
