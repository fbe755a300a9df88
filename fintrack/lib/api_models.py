"""Pydantic models for price provider responses and the price wire format."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from fintrack.lib.config import DEFAULT_CURRENCY


class PriceQuote(BaseModel):
    """A price known to be accurate as of ``asof``.

    Wire shape is ``{symbol: {price, currency, asof}}``; see ``to_wire``.
    """

    symbol: str
    price: float
    currency: str = DEFAULT_CURRENCY
    asof: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Symbols are stored uppercase."""
        v = v.strip().upper()
        if not v:
            raise ValueError("Symbol cannot be empty")
        return v

    @field_validator("price")
    @classmethod
    def validate_price_positive(cls, v: float) -> float:
        """Ensure price is a positive finite number."""
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"Price must be positive and finite, got {v}")
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, v: Any) -> Any:
        """Blank currency falls back to USD."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_CURRENCY
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("asof")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """SQLite drops tzinfo; treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_wire(self) -> dict[str, Any]:
        return {"price": self.price, "currency": self.currency, "asof": self.asof.isoformat()}


class RateLimitNotice(ValueError):
    """Alpha Vantage answers throttled requests with HTTP 200 and a Note."""


class AlphaVantageGlobalQuote(BaseModel):
    """Alpha Vantage GLOBAL_QUOTE payload (the subset we use)."""

    symbol: str = Field(alias="01. symbol")
    price: float = Field(alias="05. price")
    latest_trading_day: Optional[str] = Field(None, alias="07. latest trading day")

    model_config = {"populate_by_name": True}

    @field_validator("price")
    @classmethod
    def validate_price_positive(cls, v: float) -> float:
        """Ensure price is a positive finite number."""
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"Price must be positive and finite, got {v}")
        return v


class AlphaVantageGlobalQuoteResponse(BaseModel):
    """Alpha Vantage GLOBAL_QUOTE response envelope."""

    global_quote: Optional[dict[str, str]] = Field(None, alias="Global Quote")
    error_message: Optional[str] = Field(None, alias="Error Message")
    note: Optional[str] = Field(None, alias="Note")
    information: Optional[str] = Field(None, alias="Information")

    model_config = {"populate_by_name": True}


def validate_global_quote_response(data: dict[str, Any]) -> Optional[AlphaVantageGlobalQuote]:
    """
    Validate an Alpha Vantage GLOBAL_QUOTE response.

    Args:
        data: Raw API response

    Returns:
        Validated quote, or None when the provider has no quote for the symbol
        (it answers unknown symbols with an empty ``Global Quote`` object)

    Raises:
        ValueError: If the response is an API error or unparsable
        RateLimitNotice: If the provider answered with a throttling notice
    """
    response = AlphaVantageGlobalQuoteResponse.model_validate(data)

    if response.note or response.information:
        raise RateLimitNotice(response.note or response.information or "")

    if response.error_message:
        raise ValueError(f"Alpha Vantage API error: {response.error_message}")

    if not response.global_quote:
        return None

    return AlphaVantageGlobalQuote.model_validate(response.global_quote)
