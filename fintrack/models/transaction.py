"""
Transaction model for posted account activity.

Amounts are signed: positive is an inflow, negative an outflow. Rows created by
an import carry the owning import job id and, optionally, the provider's
external id.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import (
    TIMESTAMP,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fintrack.lib.db import Base

if TYPE_CHECKING:
    from fintrack.models.account import Account
    from fintrack.models.import_job import ImportJob


class Transaction(Base):  # type: ignore[misc,valid-type]
    """
    Represents one posted transaction in a user's account.

    Attributes:
        id: Unique identifier
        user_id: Owning user
        account_id: Reference to the account (required)
        category_id: Optional category
        posted_at: Calendar date the transaction posted
        description: Non-empty description text
        amount: Signed amount (positive = inflow)
        external_id: Opaque provider-assigned id, carried verbatim
        dedup_key: Copy of external_id when the import enforces uniqueness;
                   NULL rows never collide
        import_job_id: Import job that created the row
        created_at: When the row was written
    """

    __tablename__ = "transactions"

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

    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    posted_at: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(20, 8),
        nullable=False,
    )

    external_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    dedup_key: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    import_job_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("import_jobs.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="transactions",
    )

    import_job: Mapped["ImportJob"] = relationship(
        "ImportJob",
        back_populates="transactions",
    )

    __table_args__ = (
        CheckConstraint("length(description) > 0", name="ck_transactions_description_not_empty"),
        # NULL dedup keys are distinct in SQLite, so only policy-tagged rows collide
        UniqueConstraint("user_id", "dedup_key", name="unique_user_dedup_key"),
        Index("ix_transactions_user_posted_at", "user_id", "posted_at"),
    )

    def __repr__(self) -> str:
        """Return string representation of transaction."""
        return (
            f"<Transaction(id={self.id!r}, "
            f"posted_at={self.posted_at}, "
            f"amount={self.amount}, "
            f"description={self.description!r})>"
        )
