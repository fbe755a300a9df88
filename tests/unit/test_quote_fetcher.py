"""Unit tests for QuoteFetcher."""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fintrack.lib.api_models import PriceQuote
from fintrack.lib.errors import APIConnectionError, APIRateLimitError
from fintrack.services.quote_fetcher import QuoteFetcher


def make_provider(responses):
    """Provider whose get_quote returns (or raises) the mapped value per symbol."""
    provider = MagicMock()
    provider.name = "fake"

    async def get_quote(symbol):
        value = responses[symbol]
        if isinstance(value, BaseException):
            raise value
        return value

    provider.get_quote = AsyncMock(side_effect=get_quote)
    return provider


@pytest.mark.unit
class TestQuoteFetcher:
    """Test suite for QuoteFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        quote = PriceQuote(symbol="MSFT", price=310.0)
        fetcher = QuoteFetcher(make_provider({"MSFT": quote}), delay=0)

        assert await fetcher.fetch("MSFT") == quote

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure",
        [
            APIRateLimitError("fake"),
            APIConnectionError("fake", "reset by peer"),
            ValueError("Alpha Vantage API error: Invalid API call"),
            None,
        ],
    )
    async def test_fetch_failures_are_unavailable(self, failure):
        fetcher = QuoteFetcher(make_provider({"ZZZZ": failure}), delay=0)

        assert await fetcher.fetch("ZZZZ") is None

    @pytest.mark.asyncio
    async def test_fetch_timeout_is_unavailable(self):
        provider = MagicMock()
        provider.name = "slow"

        async def hang(symbol):
            await asyncio.sleep(10)

        provider.get_quote = hang
        fetcher = QuoteFetcher(provider, delay=0, call_timeout=0.01)

        assert await fetcher.fetch("AAPL") is None

    @pytest.mark.asyncio
    async def test_fetch_many_partial_failure(self):
        """One failing symbol does not affect the others."""
        provider = make_provider(
            {
                "AAPL": PriceQuote(symbol="AAPL", price=190.0),
                "ZZZZ": APIConnectionError("fake"),
                "MSFT": PriceQuote(symbol="MSFT", price=310.0),
            }
        )
        fetcher = QuoteFetcher(provider, delay=0)

        result = await fetcher.fetch_many(["AAPL", "ZZZZ", "MSFT"])

        assert set(result) == {"AAPL", "MSFT"}
        assert [c.args[0] for c in provider.get_quote.call_args_list] == ["AAPL", "ZZZZ", "MSFT"]

    @pytest.mark.asyncio
    async def test_fetch_many_sleeps_between_calls_only(self):
        """N symbols produce N - 1 sleeps of the configured delay."""
        provider = make_provider({s: PriceQuote(symbol=s, price=1.0) for s in ["A", "B", "C"]})
        fetcher = QuoteFetcher(provider, delay=0.25)

        with patch(
            "fintrack.services.quote_fetcher.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await fetcher.fetch_many(["A", "B", "C"])

        assert mock_sleep.await_count == 2
        assert all(c.args[0] == 0.25 for c in mock_sleep.await_args_list)

    @pytest.mark.asyncio
    async def test_fetch_many_elapsed_time(self):
        """Real sleeps: three calls take at least two delays."""
        provider = make_provider({s: PriceQuote(symbol=s, price=1.0) for s in ["A", "B", "C"]})
        fetcher = QuoteFetcher(provider, delay=0.05)

        started = time.monotonic()
        await fetcher.fetch_many(["A", "B", "C"])

        assert time.monotonic() - started >= 0.1

    @pytest.mark.asyncio
    async def test_fetch_many_single_symbol_does_not_sleep(self):
        provider = make_provider({"A": PriceQuote(symbol="A", price=1.0)})
        fetcher = QuoteFetcher(provider, delay=5)

        with patch(
            "fintrack.services.quote_fetcher.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await fetcher.fetch_many(["A"])

        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_many_deadline_leaves_rest_unavailable(self):
        provider = make_provider({s: PriceQuote(symbol=s, price=1.0) for s in ["A", "B", "C"]})
        fetcher = QuoteFetcher(provider, delay=0.2)

        result = await fetcher.fetch_many(["A", "B", "C"], deadline=0.1)

        assert set(result) == {"A"}
        assert provider.get_quote.await_count == 1
