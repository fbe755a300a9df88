"""Queries over the caller's transactions: listing, deletion and CSV export."""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select

from fintrack.lib.db import db_session
from fintrack.lib.errors import DatabaseError
from fintrack.lib.identity import IdentityProvider, require_user
from fintrack.models import Account, Transaction

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["date", "description", "amount", "account", "external_id", "import_job_id"]


def format_amount(amount: Decimal) -> str:
    """Render an amount with at least two decimals and no trailing zeros beyond that."""
    normalized = amount.normalize()
    if normalized.as_tuple().exponent > -2:
        return f"{amount:.2f}"
    return f"{normalized:f}"


@dataclass
class TransactionFilter:
    """Optional constraints for listing transactions; unset fields match all."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    account_id: Optional[str] = None
    import_job_id: Optional[str] = None


@dataclass
class TransactionInfo:
    transaction_id: str
    account_id: str
    account_name: str
    posted_at: date
    description: str
    amount: Decimal
    external_id: Optional[str]
    import_job_id: Optional[str]


class TransactionService:
    """Read and remove the caller's transactions."""

    def __init__(self, identity: Optional[IdentityProvider]):
        self.identity = identity

    def list_transactions(
        self, filters: Optional[TransactionFilter] = None, limit: Optional[int] = None
    ) -> list[TransactionInfo]:
        """
        List transactions, newest first.

        Args:
            filters: Date range, amount range, account or import job constraints
            limit: Maximum rows to return

        Returns:
            Matching transactions ordered by posted date descending
        """
        user_id = require_user(self.identity)
        filters = filters or TransactionFilter()

        stmt = (
            select(Transaction, Account.name)
            .join(Account, Transaction.account_id == Account.id)
            .where(Transaction.user_id == user_id)
        )
        if filters.start_date:
            stmt = stmt.where(Transaction.posted_at >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(Transaction.posted_at <= filters.end_date)
        if filters.min_amount is not None:
            stmt = stmt.where(Transaction.amount >= filters.min_amount)
        if filters.max_amount is not None:
            stmt = stmt.where(Transaction.amount <= filters.max_amount)
        if filters.account_id:
            stmt = stmt.where(Transaction.account_id == filters.account_id)
        if filters.import_job_id:
            stmt = stmt.where(Transaction.import_job_id == filters.import_job_id)

        stmt = stmt.order_by(Transaction.posted_at.desc(), Transaction.created_at)
        if limit:
            stmt = stmt.limit(limit)

        with db_session() as session:
            return [
                TransactionInfo(
                    transaction_id=txn.id,
                    account_id=txn.account_id,
                    account_name=account_name,
                    posted_at=txn.posted_at,
                    description=txn.description,
                    amount=txn.amount,
                    external_id=txn.external_id,
                    import_job_id=txn.import_job_id,
                )
                for txn, account_name in session.execute(stmt).all()
            ]

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete one of the caller's transactions.

        Raises:
            DatabaseError: No such transaction for this user
        """
        user_id = require_user(self.identity)
        with db_session() as session:
            result = session.execute(
                delete(Transaction).where(
                    Transaction.id == transaction_id, Transaction.user_id == user_id
                )
            )
            if result.rowcount == 0:
                raise DatabaseError(f"Transaction not found: {transaction_id}")

        logger.info(f"Deleted transaction {transaction_id}")

    def export_csv(self, filters: Optional[TransactionFilter] = None) -> str:
        """
        Export transactions as CSV text.

        Values containing commas, quotes or newlines are quoted, so the output
        round-trips through any standard CSV reader.
        """
        transactions = self.list_transactions(filters)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_COLUMNS)
        for txn in transactions:
            writer.writerow(
                [
                    txn.posted_at.isoformat(),
                    txn.description,
                    format_amount(txn.amount),
                    txn.account_name,
                    txn.external_id or "",
                    txn.import_job_id or "",
                ]
            )

        logger.debug(f"Exported {len(transactions)} transaction(s)")
        return buffer.getvalue()
