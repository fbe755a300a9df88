"""Quote fetcher: rate-limited, failure-tolerant calls to a price provider."""

import asyncio
import logging
import time
from typing import Optional, Sequence

from pydantic import ValidationError

from fintrack.lib.api_models import PriceQuote
from fintrack.lib.config import QUOTE_CALL_TIMEOUT, QUOTE_REQUEST_DELAY
from fintrack.lib.errors import APIError
from fintrack.services.quote_providers import QuoteProvider

logger = logging.getLogger(__name__)


class QuoteFetcher:
    """Fetch quotes one symbol at a time.

    Calls are strictly serial with ``delay`` seconds between successive calls
    so a batch of N symbols takes at least (N - 1) * delay. A symbol whose call
    fails for any reason is reported unavailable; it never fails the batch.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        delay: float = QUOTE_REQUEST_DELAY,
        call_timeout: float = QUOTE_CALL_TIMEOUT,
    ):
        self.provider = provider
        self.delay = delay
        self.call_timeout = call_timeout

    async def fetch(self, symbol: str, timeout: Optional[float] = None) -> Optional[PriceQuote]:
        """
        Fetch one quote.

        Args:
            symbol: Normalized symbol
            timeout: Per-call deadline in seconds (defaults to ``call_timeout``)

        Returns:
            The quote, or None if the symbol is unavailable
        """
        timeout = self.call_timeout if timeout is None else timeout
        try:
            quote = await asyncio.wait_for(self.provider.get_quote(symbol), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.provider.name}: {symbol} timed out after {timeout}s")
            return None
        except APIError as e:
            logger.warning(f"{self.provider.name}: {symbol} unavailable: {e.message}")
            return None
        except (ValidationError, ValueError) as e:
            logger.warning(f"{self.provider.name}: invalid payload for {symbol}: {e}")
            return None

        if quote is None:
            logger.info(f"{self.provider.name}: no quote for {symbol}")
        return quote

    async def fetch_many(
        self, symbols: Sequence[str], deadline: Optional[float] = None
    ) -> dict[str, PriceQuote]:
        """
        Fetch quotes serially with the configured delay between calls.

        Args:
            symbols: Normalized symbols, fetched in order
            deadline: Seconds allowed for the whole batch; symbols not reached
                      in time are left unavailable

        Returns:
            Symbol -> quote for the symbols that succeeded
        """
        fetched: dict[str, PriceQuote] = {}
        started = time.monotonic()

        for i, symbol in enumerate(symbols):
            timeout = self.call_timeout
            if deadline is not None:
                remaining = deadline - (time.monotonic() - started)
                if remaining <= 0:
                    logger.warning(
                        f"Quote deadline of {deadline}s reached; "
                        f"{len(symbols) - i} symbol(s) left unavailable"
                    )
                    break
                timeout = min(timeout, remaining)

            logger.debug(f"Fetching {symbol} ({i + 1}/{len(symbols)})")
            quote = await self.fetch(symbol, timeout=timeout)
            if quote is not None:
                fetched[symbol] = quote

            # Rate limiting: wait between requests
            if i < len(symbols) - 1:
                await asyncio.sleep(self.delay)

        return fetched
