"""Logging setup for fintrack.

Provider URLs carry the Alpha Vantage key as an ``apikey`` query parameter
and the HTTP client logs request params at DEBUG, so every handler gets an
``APIKeyFilter`` that masks credentials before a record is written.
"""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Any

from fintrack.lib.config import APP_DIR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

REDACTED = "[REDACTED]"


class APIKeyFilter(logging.Filter):
    """Mask API keys and tokens in log messages and their arguments."""

    SENSITIVE_KEYS = {"apikey", "api_key", "token", "password", "secret", "authorization"}

    SENSITIVE_PATTERNS = [
        # apikey=... in query strings
        (
            re.compile(r"(apikey|api_key|token|password|secret)=([^&\s]+)", re.IGNORECASE),
            rf"\1={REDACTED}",
        ),
        # params dicts rendered with either quote style
        (
            re.compile(r"""(["']apikey["']\s*:\s*)(["'])[^"']+\2""", re.IGNORECASE),
            rf"\1\2{REDACTED}\2",
        ),
        (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), f"Bearer {REDACTED}"),
        (re.compile(r"Authorization:\s*[^\s]+", re.IGNORECASE), f"Authorization: {REDACTED}"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite ``record`` in place; records are never dropped."""
        if isinstance(record.msg, str):
            record.msg = self._redact(record.msg)

        if isinstance(record.args, dict):
            record.args = self._redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(self._redact(arg) for arg in record.args)

        return True

    def _redact(self, value: Any) -> Any:
        if isinstance(value, str):
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                value = pattern.sub(replacement, value)
            return value
        if isinstance(value, dict):
            return {
                k: REDACTED if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self._redact(item) for item in value)
        return value


def _file_handler(log_file: str) -> RotatingFileHandler:
    log_path = os.path.abspath(log_file)
    os.makedirs(os.path.dirname(log_path), exist_ok=True)
    return RotatingFileHandler(
        log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Root and handler level
        log_file: Rotating log file. Defaults to $LOG_FILE, then
                  ~/.fintrack/fintrack.log; an empty string disables it.

    If handlers already exist (pytest, an embedding application) they are kept
    and only given the redaction filter.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    api_key_filter = APIKeyFilter()

    if root_logger.handlers:
        for handler in root_logger.handlers:
            if not any(isinstance(f, APIKeyFilter) for f in handler.filters):
                handler.addFilter(api_key_filter)
        return

    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(APP_DIR / "fintrack.log"))

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(_file_handler(log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(api_key_filter)
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Module logger that redacts even when no handler filter is installed."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, APIKeyFilter) for f in logger.filters):
        logger.addFilter(APIKeyFilter())
    return logger
