"""
Input validation utilities.

Cell-level parsers used by the column mapper (dates, amounts) and normalizers
for symbols and currency codes used by the price service.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from fintrack.lib.config import AMOUNT_MAX_ABS, AMOUNT_MAX_DECIMALS, THOUSANDS_SEPARATOR
from fintrack.lib.errors import (
    InvalidAmountError,
    InvalidCurrencyError,
    InvalidDateError,
    ValidationError,
)

_DIGITS_ONLY = re.compile(r"^\d+$")
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def parse_posted_date(value: str | None, dayfirst: bool = False) -> date:
    """
    Parse a date cell into a calendar date.

    ISO dates take the fast path; anything else goes through dateutil so bank
    exports like ``01/05/2024`` or ``Jan 5, 2024`` are accepted. Time components
    are discarded. The cell must name a year, month and day: partial values
    such as ``"March"``, ``"5th"`` or ``"10:30"`` are rejected instead of being
    completed from today. Bare digit strings are only accepted as ``YYYYMMDD``.

    Args:
        value: Raw cell text
        dayfirst: Interpret ambiguous ``01/05/2024`` as 1 May instead of 5 Jan

    Returns:
        Parsed date

    Raises:
        InvalidDateError: If the cell is missing or not a date

    Examples:
        >>> parse_posted_date("2024-01-05")
        datetime.date(2024, 1, 5)
        >>> parse_posted_date("01/05/2024", dayfirst=True)
        datetime.date(2024, 5, 1)
    """
    if value is None:
        raise InvalidDateError("")

    text = value.strip()
    if not text:
        raise InvalidDateError(value)

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    if _DIGITS_ONLY.match(text) and len(text) != 8:
        raise InvalidDateError(value)

    # dateutil fills missing parts from its default; parsing against two
    # defaults that differ in year, month and day exposes partial cells
    try:
        first: datetime = date_parser.parse(text, dayfirst=dayfirst, default=_DEFAULT_A)
        second: datetime = date_parser.parse(text, dayfirst=dayfirst, default=_DEFAULT_B)
    except (ValueError, OverflowError) as e:
        raise InvalidDateError(value) from e

    if first.date() != second.date():
        raise InvalidDateError(value)

    return first.date()


def parse_amount(value: str | None) -> Decimal:
    """
    Parse a signed decimal amount, stripping thousands separators.

    Args:
        value: Raw cell text such as ``"-1,234.50"``

    Returns:
        Signed Decimal (positive = inflow, negative = outflow)

    Raises:
        InvalidAmountError: If the cell is missing or unparsable, or the value is
                            non-finite or does not fit the amount column

    Examples:
        >>> parse_amount("-4.50")
        Decimal('-4.50')
        >>> parse_amount("1,234.5")
        Decimal('1234.5')
    """
    if value is None:
        raise InvalidAmountError("", "missing")

    text = value.replace(THOUSANDS_SEPARATOR, "").strip()
    if not text:
        raise InvalidAmountError(value, "empty")
    if "_" in text:
        # Decimal() would accept "1_000" as a digit grouping
        raise InvalidAmountError(value, "not a number")

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise InvalidAmountError(value, "not a number") from e

    if not amount.is_finite():
        raise InvalidAmountError(value, "not finite")
    if abs(amount) >= AMOUNT_MAX_ABS:
        raise InvalidAmountError(value, "too large")
    if amount.normalize().as_tuple().exponent < -AMOUNT_MAX_DECIMALS:
        raise InvalidAmountError(value, f"more than {AMOUNT_MAX_DECIMALS} decimal places")

    return amount


def normalize_symbol(symbol: str) -> str:
    """
    Normalize a ticker symbol for cache keys (trimmed, uppercase).

    Raises:
        ValidationError: If the symbol is blank
    """
    normalized = symbol.strip().upper()
    if not normalized:
        raise ValidationError("Symbol cannot be empty", field="symbol")
    return normalized


def validate_currency(currency: str | None, default: str | None = None) -> str:
    """
    Validate an ISO 4217 currency code.

    Args:
        currency: Code to validate; blank falls back to ``default``
        default: Code to use when ``currency`` is blank

    Returns:
        Normalized currency code (uppercase, trimmed)

    Raises:
        InvalidCurrencyError: If the code is not three letters

    Examples:
        >>> validate_currency("usd")
        'USD'
        >>> validate_currency("", default="USD")
        'USD'
    """
    code = (currency or "").strip().upper()
    if not code and default:
        code = default
    if not _CURRENCY_CODE.match(code):
        raise InvalidCurrencyError(currency or "")
    return code
