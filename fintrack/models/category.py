"""Category model for user-defined transaction categories."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import TIMESTAMP, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fintrack.lib.db import Base


class Category(Base):  # type: ignore[misc,valid-type]
    """A user's spending or income category."""

    __tablename__ = "categories"

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

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="expense",  # expense | income
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (UniqueConstraint("user_id", "name", name="unique_user_category_name"),)

    def __repr__(self) -> str:
        return f"<Category(id={self.id!r}, name={self.name!r}, kind={self.kind!r})>"
