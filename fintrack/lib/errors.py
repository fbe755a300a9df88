"""Custom exception classes for fintrack."""


class FinTrackError(Exception):
    """Base exception for all fintrack errors."""

    def __init__(self, message: str):
        """Initialize with error message."""
        self.message = message
        super().__init__(message)


class UnauthenticatedError(FinTrackError):
    """No resolvable user identity for the operation."""

    def __init__(self, details: str = ""):
        """
        Initialize unauthenticated error.

        Args:
            details: Optional hint on how to authenticate
        """
        message = "Not authenticated"
        if details:
            message += f": {details}"
        super().__init__(message)


class APIError(FinTrackError):
    """Price provider errors."""

    pass


class APIRateLimitError(APIError):
    """API rate limit exceeded."""

    def __init__(self, api_name: str, retry_after: str = "later"):
        """
        Initialize rate limit error.

        Args:
            api_name: Name of the API that hit rate limit
            retry_after: When to retry (e.g., "in a minute", "tomorrow")
        """
        message = f"{api_name} API rate limit exceeded. Try again {retry_after}."
        super().__init__(message)


class APIConnectionError(APIError):
    """Failed to connect to API."""

    def __init__(self, api_name: str, details: str = ""):
        """
        Initialize connection error.

        Args:
            api_name: Name of the API
            details: Additional error details
        """
        message = f"Failed to connect to {api_name} API"
        if details:
            message += f": {details}"
        super().__init__(message)


class DataError(FinTrackError):
    """Data validation or processing errors."""

    pass


class ValidationError(DataError):
    """Input validation errors."""

    def __init__(self, message: str, field: str | None = None):
        """
        Initialize with the offending field.

        Args:
            message: Human-readable reason
            field: Semantic field that failed validation (date, amount, ...)
        """
        self.field = field
        super().__init__(message)


class InvalidDateError(ValidationError):
    """Invalid date format or value."""

    def __init__(self, date_str: str):
        """
        Initialize with date details.

        Args:
            date_str: The invalid date string
        """
        message = f"Invalid date: '{date_str}'"
        super().__init__(message, field="date")


class InvalidAmountError(ValidationError):
    """Invalid or non-finite amount."""

    def __init__(self, amount_str: str, reason: str = ""):
        """
        Initialize with amount details.

        Args:
            amount_str: The raw amount cell
            reason: Why the amount was rejected
        """
        message = f"Invalid amount: '{amount_str}'"
        if reason:
            message += f" ({reason})"
        super().__init__(message, field="amount")


class InvalidCurrencyError(ValidationError):
    """Invalid currency code."""

    def __init__(self, currency: str):
        """
        Initialize with invalid currency.

        Args:
            currency: The invalid currency code
        """
        message = (
            f"Invalid currency code: '{currency}'. "
            f"Must be a 3-letter ISO 4217 code (e.g., USD, EUR, GBP)."
        )
        super().__init__(message, field="currency")


class MappingError(DataError):
    """A required field has no resolvable column; the whole import is rejected."""

    def __init__(self, missing: list[str], available: list[str] | None = None):
        """
        Initialize with the unmapped fields.

        Args:
            missing: Semantic fields without a resolved column
            available: Header names present in the file
        """
        self.missing = missing
        message = f"Missing column mapping for: {', '.join(missing)}"
        if available:
            message += f". Available columns: {', '.join(available)}"
        super().__init__(message)


class DatabaseError(FinTrackError):
    """Database operation errors."""

    pass


class ChunkCommitError(DatabaseError):
    """A bulk insert chunk failed. Earlier chunks stay committed."""

    def __init__(self, chunk_index: int, committed_rows: int, details: str = ""):
        """
        Initialize with chunk progress.

        Args:
            chunk_index: Zero-based index of the failing chunk
            committed_rows: Rows durably committed before the failure
            details: Underlying database error text
        """
        self.chunk_index = chunk_index
        self.committed_rows = committed_rows
        message = (
            f"Commit failed at chunk {chunk_index + 1}; "
            f"{committed_rows} row(s) already committed"
        )
        if details:
            message += f": {details}"
        super().__init__(message)


class DuplicateTransactionError(ChunkCommitError):
    """A record collided with an existing external id under the reject policy."""

    pass


class CommitDeadlineExceededError(ChunkCommitError):
    """The overall commit deadline passed before all chunks were written."""

    pass


class ImportJobNotFoundError(DatabaseError):
    """Import job not found for this user."""

    def __init__(self, job_id: str):
        """
        Initialize with job ID.

        Args:
            job_id: The job ID that wasn't found
        """
        message = f"Import job not found: {job_id}"
        super().__init__(message)


class InvalidJobTransitionError(DatabaseError):
    """Import job is already in a terminal state."""

    def __init__(self, job_id: str, status: str):
        """
        Initialize with job status.

        Args:
            job_id: The import job ID
            status: Current (terminal) status
        """
        message = f"Import job {job_id} is already {status}"
        super().__init__(message)


class AccountNotFoundError(DatabaseError):
    """Account not found for this user."""

    def __init__(self, account_id: str):
        """
        Initialize with account ID.

        Args:
            account_id: The account ID that wasn't found
        """
        message = (
            f"Account not found: {account_id}. Create one first with: "
            f"fintrack account add --name <name>"
        )
        super().__init__(message)


class ConfigurationError(FinTrackError):
    """Configuration errors."""

    pass


class MissingAPIKeyError(ConfigurationError):
    """Required API key not configured."""

    def __init__(self, api_name: str, env_var: str):
        """
        Initialize with API details.

        Args:
            api_name: Name of the API
            env_var: Environment variable name
        """
        message = (
            f"{api_name} API key not configured. "
            f"Set environment variable: export {env_var}=your-key-here"
        )
        super().__init__(message)


# Error message helpers


def format_error_message(error: Exception) -> str:
    """
    Format exception into user-friendly error message.

    Args:
        error: The exception to format

    Returns:
        Formatted error message
    """
    if isinstance(error, FinTrackError):
        return error.message

    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"


def get_error_color(error: Exception) -> str:
    """
    Get Rich color for error type.

    Args:
        error: The exception

    Returns:
        Rich color name
    """
    if isinstance(error, APIRateLimitError):
        return "yellow"
    elif isinstance(error, UnauthenticatedError):
        return "orange3"
    elif isinstance(error, (ValidationError, DataError)):
        return "red"
    elif isinstance(error, ConfigurationError):
        return "orange3"
    elif isinstance(error, DatabaseError):
        return "magenta"
    else:
        return "red"
