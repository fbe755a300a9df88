"""
Account model for user-owned bank and brokerage accounts.

Every imported transaction targets exactly one account the importing user owns.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import TIMESTAMP, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.lib.db import Base

if TYPE_CHECKING:
    from fintrack.models.transaction import Transaction


class Account(Base):  # type: ignore[misc,valid-type]
    """
    Represents a user's account (checking, savings, credit card, brokerage).

    Attributes:
        id: Unique identifier
        user_id: Owning user
        name: User-friendly account name (e.g., "Checking")
        type: Free-form account type (e.g., "checking", "credit")
        currency: ISO currency code of the account
        created_at: When the account was created
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="checking",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="account",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("user_id", "name", name="unique_user_account_name"),)

    def __repr__(self) -> str:
        """Return string representation of account."""
        return f"<Account(id={self.id!r}, name={self.name!r}, user_id={self.user_id!r})>"
