"""Application configuration constants."""

from pathlib import Path

# Storage
APP_DIR = Path.home() / ".fintrack"

# Transaction import
CSV_DELIMITER = ","
IMPORT_CHUNK_SIZE = 300  # rows per bulk insert
THOUSANDS_SEPARATOR = ","
AMOUNT_MAX_DECIMALS = 8  # transactions.amount is Numeric(20, 8)
AMOUNT_MAX_ABS = 10**12  # amounts must stay below this in absolute value

# Quote fetching
QUOTE_REQUEST_DELAY = 0.25  # seconds between provider calls
QUOTE_CALL_TIMEOUT = 10  # seconds per provider call
RESOLVE_DEADLINE = 60  # seconds for the whole fetch phase of one resolve
MAX_SYMBOLS_PER_REQUEST = 50  # excess symbols are dropped, not rejected
DEFAULT_CURRENCY = "USD"
DEFAULT_QUOTE_PROVIDER = "alpha_vantage"

# HTTP client
API_DEFAULT_TIMEOUT = 10  # seconds
API_MAX_RETRIES = 3

# Environment variables
ENV_DB_PATH = "FINTRACK_DB_PATH"
ENV_USER_ID = "FINTRACK_USER_ID"
ENV_QUOTE_PROVIDER = "FINTRACK_QUOTE_PROVIDER"
ENV_ALPHA_VANTAGE_KEY = "ALPHA_VANTAGE_API_KEY"
ENV_ALPHA_VANTAGE_DAILY_LIMIT = "ALPHA_VANTAGE_DAILY_LIMIT"
