"""Unit tests for price providers."""

import math
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fintrack.lib.errors import (
    APIConnectionError,
    APIRateLimitError,
    ConfigurationError,
    MissingAPIKeyError,
)
from fintrack.lib.quota_tracker import QuotaTracker
from fintrack.services.quote_providers import (
    AlphaVantageQuoteProvider,
    YahooFinanceQuoteProvider,
    get_quote_provider,
)

GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "MSFT",
        "02. open": "308.1000",
        "05. price": "310.0000",
        "07. latest trading day": "2024-01-05",
    }
}


@pytest.fixture
def provider(tmp_path):
    return AlphaVantageQuoteProvider(
        api_key="test-key", quota_tracker=QuotaTracker("alpha_vantage", 2, storage_dir=tmp_path)
    )


@pytest.mark.unit
class TestAlphaVantageQuoteProvider:
    """Test suite for AlphaVantageQuoteProvider."""

    @pytest.mark.asyncio
    async def test_get_quote(self, provider):
        with patch.object(provider.api_client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = GLOBAL_QUOTE

            quote = await provider.get_quote("MSFT")

        assert quote.symbol == "MSFT"
        assert quote.price == 310.0
        assert quote.currency == "USD"
        assert quote.source == "alpha_vantage"
        assert mock_get.call_args.kwargs["params"] == {
            "function": "GLOBAL_QUOTE",
            "symbol": "MSFT",
            "apikey": "test-key",
        }
        assert provider.quota_tracker.daily_count == 1

    @pytest.mark.asyncio
    async def test_unknown_symbol_returns_none(self, provider):
        with patch.object(provider.api_client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Global Quote": {}}

            assert await provider.get_quote("ZZZZ") is None

    @pytest.mark.asyncio
    async def test_throttle_note_is_rate_limit(self, provider):
        with patch.object(provider.api_client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Note": "Thank you for using Alpha Vantage!"}

            with pytest.raises(APIRateLimitError):
                await provider.get_quote("MSFT")

    @pytest.mark.asyncio
    async def test_error_message_is_value_error(self, provider):
        with patch.object(provider.api_client, "get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = {"Error Message": "Invalid API call."}

            with pytest.raises(ValueError):
                await provider.get_quote("MSFT")

    @pytest.mark.asyncio
    async def test_quota_exhausted_skips_request(self, provider):
        provider.quota_tracker.daily_count = 2

        with patch.object(provider.api_client, "get", new_callable=AsyncMock) as mock_get:
            with pytest.raises(APIRateLimitError):
                await provider.get_quote("MSFT")

        mock_get.assert_not_awaited()

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)

        with pytest.raises(MissingAPIKeyError):
            AlphaVantageQuoteProvider()

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "env-key")
        monkeypatch.delenv("ALPHA_VANTAGE_DAILY_LIMIT", raising=False)

        provider = AlphaVantageQuoteProvider()

        assert provider.api_key == "env-key"
        assert provider.quota_tracker is None

    def test_invalid_daily_limit(self, monkeypatch):
        monkeypatch.setenv("ALPHA_VANTAGE_DAILY_LIMIT", "lots")

        with pytest.raises(ConfigurationError):
            AlphaVantageQuoteProvider(api_key="k")


@pytest.mark.unit
class TestYahooFinanceQuoteProvider:
    """Test suite for YahooFinanceQuoteProvider."""

    @pytest.mark.asyncio
    async def test_get_quote(self):
        ticker = MagicMock()
        ticker.fast_info.last_price = 190.12
        ticker.fast_info.currency = "USD"

        with patch("fintrack.services.quote_providers.yf.Ticker", return_value=ticker):
            quote = await YahooFinanceQuoteProvider().get_quote("AAPL")

        assert quote.price == 190.12
        assert quote.source == "yahoo_finance"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [None, 0.0, math.nan])
    async def test_unusable_price_returns_none(self, price):
        ticker = MagicMock()
        ticker.fast_info.last_price = price

        with patch("fintrack.services.quote_providers.yf.Ticker", return_value=ticker):
            assert await YahooFinanceQuoteProvider().get_quote("ZZZZ") is None

    @pytest.mark.asyncio
    async def test_network_failure(self):
        with patch(
            "fintrack.services.quote_providers.yf.Ticker", side_effect=RuntimeError("offline")
        ):
            with pytest.raises(APIConnectionError):
                await YahooFinanceQuoteProvider().get_quote("AAPL")


@pytest.mark.unit
class TestGetQuoteProvider:
    def test_by_name(self):
        assert isinstance(get_quote_provider("yahoo_finance"), YahooFinanceQuoteProvider)
        assert isinstance(
            get_quote_provider(" Yahoo_Finance "), YahooFinanceQuoteProvider
        )

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("FINTRACK_QUOTE_PROVIDER", "yahoo_finance")

        assert isinstance(get_quote_provider(), YahooFinanceQuoteProvider)

    def test_default_is_alpha_vantage(self, monkeypatch):
        monkeypatch.delenv("FINTRACK_QUOTE_PROVIDER", raising=False)
        monkeypatch.delenv("ALPHA_VANTAGE_DAILY_LIMIT", raising=False)
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "k")

        assert isinstance(get_quote_provider(), AlphaVantageQuoteProvider)

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            get_quote_provider("bloomberg")
