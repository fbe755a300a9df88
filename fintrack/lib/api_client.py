"""Async HTTP client with retry, backoff, and timeout handling."""

import asyncio
from typing import Any, Dict, Optional, cast

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.lib.config import API_DEFAULT_TIMEOUT, API_MAX_RETRIES
from fintrack.lib.errors import APIConnectionError, APIError, APIRateLimitError
from fintrack.lib.logging_config import get_logger

logger = get_logger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    """HTTP 429 and timeouts are retried; everything else fails fast."""
    if isinstance(exc, aiohttp.ClientResponseError):
        return exc.status == 429
    return isinstance(exc, asyncio.TimeoutError)


class APIClient:
    """Async HTTP client with built-in retry and rate limit handling.

    Features:
    - Exponential backoff retry via tenacity (max 3 attempts)
    - Rate limit detection (429 status)
    - Configurable timeout (default 10s)
    - Context manager support

    Example:
        async with APIClient("https://api.example.com") as client:
            data = await client.get("/query", params={"symbol": "AAPL"})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_name: str = "HTTP",
        default_timeout: float = API_DEFAULT_TIMEOUT,
        max_retries: int = API_MAX_RETRIES,
        backoff_base: float = 1.0,
    ):
        """Initialize API client.

        Args:
            base_url: Base URL for all API requests (optional, can use full URLs instead)
            api_name: Name used in error messages
            default_timeout: Default request timeout in seconds
            max_retries: Maximum number of attempts
            backoff_base: Multiplier for exponential backoff (0 disables waiting)
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_name = api_name
        self.default_timeout = default_timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "APIClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager and cleanup session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Make GET request with retry logic.

        Args:
            endpoint: API endpoint (appended to base_url) or full URL
            params: Query parameters
            headers: Request headers
            timeout: Request timeout in seconds (uses default_timeout if None)

        Returns:
            JSON response as dictionary

        Raises:
            APIRateLimitError: Rate limit exceeded after all retries
            APIConnectionError: Network failure or timeout after all retries
            APIError: Any other non-success response
        """
        if not self.session:
            raise RuntimeError("APIClient must be used as context manager")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_base, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._make_request(
                        endpoint, params, headers, timeout or self.default_timeout
                    )
        except aiohttp.ClientResponseError as e:
            if e.status == 429:
                raise APIRateLimitError(self.api_name) from e
            raise APIError(f"{self.api_name} request failed: {e.status} {e.message}") from e
        except asyncio.TimeoutError as e:
            raise APIConnectionError(
                self.api_name, f"timed out after {self.max_retries} attempts"
            ) from e
        except aiohttp.ClientError as e:
            raise APIConnectionError(self.api_name, str(e)) from e

        raise APIError("Max retries exceeded")

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        timeout: float,
    ) -> Dict[str, Any]:
        """Make single HTTP request.

        Raises:
            aiohttp.ClientResponseError: HTTP error
            asyncio.TimeoutError: Request timeout
            aiohttp.ClientError: Network error
        """
        url = f"{self.base_url}{endpoint}" if self.base_url else endpoint

        if self.session is None:
            raise RuntimeError("APIClient session not initialized. Use async with context manager.")

        logger.debug(f"GET {url} params={params}")

        async with self.session.get(
            url, params=params, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)
            return cast(Dict[str, Any], data)
