"""External price providers.

A provider answers one symbol per call. It returns a ``PriceQuote``, returns
None when it has no quote for the symbol, or raises ``APIError`` on transport
and throttling failures. The quote fetcher turns all of those into
"unavailable" for the symbol.
"""

import asyncio
import logging
import math
import os
from datetime import datetime, timezone
from typing import Optional, Protocol

import yfinance as yf

from fintrack.lib.api_client import APIClient
from fintrack.lib.api_models import PriceQuote, RateLimitNotice, validate_global_quote_response
from fintrack.lib.config import (
    DEFAULT_CURRENCY,
    DEFAULT_QUOTE_PROVIDER,
    ENV_ALPHA_VANTAGE_DAILY_LIMIT,
    ENV_ALPHA_VANTAGE_KEY,
    ENV_QUOTE_PROVIDER,
    QUOTE_CALL_TIMEOUT,
)
from fintrack.lib.errors import (
    APIConnectionError,
    APIRateLimitError,
    ConfigurationError,
    MissingAPIKeyError,
)
from fintrack.lib.quota_tracker import QuotaTracker

logger = logging.getLogger(__name__)


class QuoteProvider(Protocol):
    """One-symbol-per-call price source."""

    name: str

    async def get_quote(self, symbol: str) -> Optional[PriceQuote]: ...


class AlphaVantageQuoteProvider:
    """Alpha Vantage GLOBAL_QUOTE endpoint."""

    name = "alpha_vantage"
    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(
        self,
        api_key: Optional[str] = None,
        quota_tracker: Optional[QuotaTracker] = None,
        timeout: float = QUOTE_CALL_TIMEOUT,
    ):
        """
        Initialize provider.

        Args:
            api_key: API key (defaults to ALPHA_VANTAGE_API_KEY)
            quota_tracker: Optional daily request budget
            timeout: HTTP timeout per request in seconds

        Raises:
            MissingAPIKeyError: If no API key is configured
        """
        self.api_key = api_key or os.getenv(ENV_ALPHA_VANTAGE_KEY, "")
        if not self.api_key:
            raise MissingAPIKeyError("Alpha Vantage", ENV_ALPHA_VANTAGE_KEY)

        if quota_tracker is None:
            daily_limit = os.getenv(ENV_ALPHA_VANTAGE_DAILY_LIMIT, "").strip()
            if daily_limit:
                try:
                    quota_tracker = QuotaTracker(self.name, int(daily_limit))
                except ValueError as e:
                    raise ConfigurationError(
                        f"{ENV_ALPHA_VANTAGE_DAILY_LIMIT} must be an integer, got {daily_limit!r}"
                    ) from e

        self.quota_tracker = quota_tracker
        self.api_client = APIClient(api_name="Alpha Vantage", default_timeout=timeout)

    async def get_quote(self, symbol: str) -> Optional[PriceQuote]:
        """
        Fetch the latest quote for a symbol.

        Returns:
            The quote, or None when Alpha Vantage has no data for the symbol

        Raises:
            APIRateLimitError: Daily quota used up or provider throttled us
            APIConnectionError: Network failure
            ValueError: Error body or malformed payload
        """
        if self.quota_tracker and not self.quota_tracker.can_make_request():
            raise APIRateLimitError("Alpha Vantage", "tomorrow")

        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key}

        async with self.api_client as client:
            data = await client.get(self.BASE_URL, params=params)

        if self.quota_tracker:
            self.quota_tracker.record_request()

        try:
            quote = validate_global_quote_response(data)
        except RateLimitNotice as e:
            raise APIRateLimitError("Alpha Vantage", "in a minute") from e

        if quote is None:
            logger.debug(f"Alpha Vantage has no quote for {symbol}")
            return None

        return PriceQuote(
            symbol=symbol,
            price=quote.price,
            currency=DEFAULT_CURRENCY,
            asof=datetime.now(timezone.utc),
            source=self.name,
        )


class YahooFinanceQuoteProvider:
    """Yahoo Finance via yfinance (no API key needed)."""

    name = "yahoo_finance"

    async def get_quote(self, symbol: str) -> Optional[PriceQuote]:
        """Fetch the last price; yfinance is blocking, so run it in a thread."""
        return await asyncio.to_thread(self._fetch, symbol)

    def _fetch(self, symbol: str) -> Optional[PriceQuote]:
        try:
            info = yf.Ticker(symbol).fast_info
            price = info.last_price
            currency = info.currency
        except KeyError:
            # fast_info raises KeyError for symbols Yahoo does not know
            return None
        except Exception as e:
            raise APIConnectionError("Yahoo Finance", str(e)) from e

        if price is None or not math.isfinite(price) or price <= 0:
            return None

        return PriceQuote(
            symbol=symbol,
            price=float(price),
            currency=currency or DEFAULT_CURRENCY,
            asof=datetime.now(timezone.utc),
            source=self.name,
        )


def get_quote_provider(name: Optional[str] = None) -> QuoteProvider:
    """
    Build the configured provider.

    Args:
        name: Provider name; defaults to FINTRACK_QUOTE_PROVIDER, then alpha_vantage

    Raises:
        ConfigurationError: Unknown provider name
        MissingAPIKeyError: Alpha Vantage selected without a key
    """
    name = (name or os.getenv(ENV_QUOTE_PROVIDER) or DEFAULT_QUOTE_PROVIDER).strip().lower()

    if name == AlphaVantageQuoteProvider.name:
        return AlphaVantageQuoteProvider()
    if name == YahooFinanceQuoteProvider.name:
        return YahooFinanceQuoteProvider()

    raise ConfigurationError(
        f"Unknown quote provider {name!r}. "
        f"Choose {AlphaVantageQuoteProvider.name} or {YahooFinanceQuoteProvider.name}."
    )
