"""Price model: the shared, application-wide quote cache.

One row per symbol. Rows are written only through an upsert so a later fetch
replaces the earlier quote instead of adding a second row.
"""

from datetime import datetime

from sqlalchemy import TIMESTAMP, CheckConstraint, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack.lib.db import Base


class Price(Base):  # type: ignore[misc,valid-type]
    """
    Last known price for a symbol, shared across all users.

    Attributes:
        symbol: Uppercase ticker symbol (primary key)
        price: Positive price
        currency: ISO currency code
        asof: When the price was known to be accurate (UTC)
        source: Provider that supplied the quote
    """

    __tablename__ = "prices"

    symbol: Mapped[str] = mapped_column(
        String(20),
        primary_key=True,
    )

    price: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
    )

    asof: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        nullable=False,
    )

    source: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    __table_args__ = (CheckConstraint("price > 0", name="ck_prices_price_positive"),)

    def __repr__(self) -> str:
        """String representation of Price."""
        return (
            f"Price(symbol={self.symbol!r}, price={self.price}, "
            f"currency={self.currency!r}, asof={self.asof.isoformat()!r})"
        )
