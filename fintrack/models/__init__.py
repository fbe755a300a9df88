"""
SQLAlchemy models for the fintrack application.

All models inherit from the Base declarative class defined in fintrack.lib.db.
"""

from fintrack.models.account import Account
from fintrack.models.category import Category
from fintrack.models.import_job import ImportJob, ImportJobStatus
from fintrack.models.import_row_error import ImportRowError
from fintrack.models.price import Price
from fintrack.models.transaction import Transaction

__all__ = [
    # User-scoped
    "Account",
    "Category",
    "Transaction",
    # Import tracking
    "ImportJob",
    "ImportRowError",
    # Shared cache
    "Price",
    # Enums
    "ImportJobStatus",
]
