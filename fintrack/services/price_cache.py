"""Persistent price cache backed by the ``prices`` table."""

import logging
from datetime import timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from fintrack.lib.api_models import PriceQuote
from fintrack.lib.db import db_session
from fintrack.models import Price

logger = logging.getLogger(__name__)


class PriceCache:
    """Application-wide symbol -> last known quote store.

    Entries never expire here; freshness policy belongs to the resolver.
    """

    def get(self, symbols: Iterable[str]) -> dict[str, PriceQuote]:
        """
        Look up cached quotes in one query.

        Args:
            symbols: Normalized (uppercase) symbols

        Returns:
            Quotes for the symbols that have a row; absent symbols are omitted
        """
        wanted = list(dict.fromkeys(symbols))
        if not wanted:
            return {}

        with db_session() as session:
            rows = session.execute(select(Price).where(Price.symbol.in_(wanted))).scalars().all()
            found = {
                row.symbol: PriceQuote(
                    symbol=row.symbol,
                    price=row.price,
                    currency=row.currency,
                    asof=row.asof,
                    source=row.source,
                )
                for row in rows
            }

        logger.debug(f"Price cache: {len(found)}/{len(wanted)} hit(s)")
        return found

    def put(self, quotes: Iterable[PriceQuote]) -> int:
        """
        Upsert quotes by symbol; a later write replaces an earlier one.

        Args:
            quotes: Quotes to store

        Returns:
            Number of quotes written
        """
        # One row per symbol within the statement; the last quote given wins
        latest = {quote.symbol: quote for quote in quotes}
        if not latest:
            return 0

        rows = [
            {
                "symbol": quote.symbol,
                "price": quote.price,
                "currency": quote.currency,
                # SQLite stores naive timestamps; keep them in UTC
                "asof": quote.asof.astimezone(timezone.utc).replace(tzinfo=None),
                "source": quote.source,
            }
            for quote in latest.values()
        ]

        stmt = sqlite_insert(Price.__table__).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["symbol"],
            set_={
                "price": stmt.excluded.price,
                "currency": stmt.excluded.currency,
                "asof": stmt.excluded.asof,
                "source": stmt.excluded.source,
            },
        )

        with db_session() as session:
            session.execute(stmt)

        logger.debug(f"Price cache: upserted {len(rows)} quote(s)")
        return len(rows)
