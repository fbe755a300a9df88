"""Account and category management for the current user."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.lib.db import db_session
from fintrack.lib.errors import AccountNotFoundError, ValidationError
from fintrack.lib.identity import IdentityProvider, require_user
from fintrack.lib.validators import validate_currency
from fintrack.models import Account, Category, Transaction

logger = logging.getLogger(__name__)

CATEGORY_KINDS = ("expense", "income", "transfer")


@dataclass
class AccountInfo:
    """Account as shown to the user."""

    account_id: str
    name: str
    type: str
    currency: str
    created_at: datetime
    transaction_count: int = 0


@dataclass
class CategoryInfo:
    category_id: str
    name: str
    kind: str


class AccountService:
    """Create and list the caller's accounts and categories."""

    def __init__(self, identity: Optional[IdentityProvider]):
        self.identity = identity

    def create_account(
        self, name: str, account_type: str = "checking", currency: str = "USD"
    ) -> AccountInfo:
        """
        Create an account.

        Args:
            name: Display name, unique per user
            account_type: Free-form type such as checking or credit
            currency: ISO 4217 code

        Raises:
            ValidationError: Blank or duplicate name
            InvalidCurrencyError: Currency is not a 3-letter code
        """
        user_id = require_user(self.identity)
        name = name.strip()
        if not name:
            raise ValidationError("Account name cannot be empty", field="name")
        currency = validate_currency(currency)

        try:
            with db_session() as session:
                account = Account(
                    user_id=user_id,
                    name=name,
                    type=account_type.strip().lower() or "checking",
                    currency=currency,
                )
                session.add(account)
                session.flush()
                info = self._to_info(account)
        except IntegrityError as e:
            raise ValidationError(f"Account '{name}' already exists", field="name") from e

        logger.info(f"Created account {info.account_id} ({name})")
        return info

    def list_accounts(self) -> list[AccountInfo]:
        """List the caller's accounts by name."""
        user_id = require_user(self.identity)
        with db_session() as session:
            accounts = (
                session.execute(
                    select(Account).where(Account.user_id == user_id).order_by(Account.name)
                )
                .scalars()
                .all()
            )
            counts = self._transaction_counts(session, user_id)
            return [self._to_info(a, transaction_count=counts.get(a.id, 0)) for a in accounts]

    def get_account(self, account_id: str) -> AccountInfo:
        """
        Load one of the caller's accounts.

        Raises:
            AccountNotFoundError: Unknown id or another user's account
        """
        user_id = require_user(self.identity)
        with db_session() as session:
            account = session.execute(
                select(Account).where(Account.id == account_id, Account.user_id == user_id)
            ).scalar_one_or_none()
            if account is None:
                raise AccountNotFoundError(account_id)
            counts = self._transaction_counts(session, user_id)
            return self._to_info(account, transaction_count=counts.get(account.id, 0))

    def find_account(self, name_or_id: str) -> AccountInfo:
        """Resolve an account by id or, failing that, by exact name."""
        user_id = require_user(self.identity)
        with db_session() as session:
            account = session.execute(
                select(Account).where(
                    Account.user_id == user_id,
                    (Account.id == name_or_id) | (Account.name == name_or_id),
                )
            ).scalars().first()
            if account is None:
                raise AccountNotFoundError(name_or_id)
            return self._to_info(account)

    def create_category(self, name: str, kind: str = "expense") -> CategoryInfo:
        """
        Create a category.

        Raises:
            ValidationError: Blank or duplicate name, or unknown kind
        """
        user_id = require_user(self.identity)
        name = name.strip()
        if not name:
            raise ValidationError("Category name cannot be empty", field="name")
        kind = kind.strip().lower()
        if kind not in CATEGORY_KINDS:
            raise ValidationError(
                f"Category kind must be one of {', '.join(CATEGORY_KINDS)}", field="kind"
            )

        try:
            with db_session() as session:
                category = Category(user_id=user_id, name=name, kind=kind)
                session.add(category)
                session.flush()
                info = CategoryInfo(category_id=category.id, name=category.name, kind=category.kind)
        except IntegrityError as e:
            raise ValidationError(f"Category '{name}' already exists", field="name") from e

        return info

    def list_categories(self) -> list[CategoryInfo]:
        user_id = require_user(self.identity)
        with db_session() as session:
            categories = (
                session.execute(
                    select(Category).where(Category.user_id == user_id).order_by(Category.name)
                )
                .scalars()
                .all()
            )
            return [
                CategoryInfo(category_id=c.id, name=c.name, kind=c.kind) for c in categories
            ]

    @staticmethod
    def _transaction_counts(session: Session, user_id: str) -> dict[str, int]:
        rows = session.execute(
            select(Transaction.account_id, func.count())
            .where(Transaction.user_id == user_id)
            .group_by(Transaction.account_id)
        ).all()
        return {account_id: count for account_id, count in rows}

    @staticmethod
    def _to_info(account: Account, transaction_count: int = 0) -> AccountInfo:
        return AccountInfo(
            account_id=account.id,
            name=account.name,
            type=account.type,
            currency=account.currency,
            created_at=account.created_at,
            transaction_count=transaction_count,
        )
