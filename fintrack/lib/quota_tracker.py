"""Daily request quota for metered price providers.

Alpha Vantage's free tier allows a fixed number of requests per day. The
inter-call delay in the quote fetcher keeps bursts polite; this tracker keeps
the daily total under the plan limit across process restarts.
"""

import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from fintrack.lib.config import APP_DIR

logger = logging.getLogger(__name__)


class QuotaTracker:
    """Persisted per-day request counter for one provider."""

    def __init__(
        self,
        api_name: str,
        daily_limit: int,
        storage_dir: Optional[Path] = None,
    ):
        """Initialize quota tracker.

        Args:
            api_name: Name of the API (used for storage file)
            daily_limit: Maximum requests allowed per day
            storage_dir: Directory for quota storage (default: ~/.fintrack/quota)
        """
        self.api_name = api_name
        self.daily_limit = daily_limit
        self.storage_dir = storage_dir or (APP_DIR / "quota")
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.storage_file = self.storage_dir / f"{api_name}_quota.json"

        self.current_date = date.today()
        self.daily_count = 0
        self._load()

    def _load(self) -> None:
        if not self.storage_file.exists():
            return

        try:
            with open(self.storage_file) as f:
                data = json.load(f)
            stored_date = date.fromisoformat(data.get("date", ""))
            if stored_date == date.today():
                self.daily_count = int(data.get("daily_count", 0))
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            logger.warning(f"Failed to load quota data for {self.api_name}: {e}")

    def _save(self) -> None:
        try:
            with open(self.storage_file, "w") as f:
                json.dump(
                    {"date": self.current_date.isoformat(), "daily_count": self.daily_count},
                    f,
                    indent=2,
                )
        except OSError as e:
            logger.error(f"Failed to save quota data for {self.api_name}: {e}")

    def _roll_day(self) -> None:
        if self.current_date < date.today():
            self.current_date = date.today()
            self.daily_count = 0

    def can_make_request(self) -> bool:
        """Check whether another request fits in today's quota."""
        if self.remaining() == 0:
            logger.warning(
                f"{self.api_name} daily quota exceeded: {self.daily_count}/{self.daily_limit}"
            )
            return False
        return True

    def record_request(self) -> None:
        """Record that a request was made."""
        self._roll_day()
        self.daily_count += 1
        self._save()
        logger.debug(
            f"{self.api_name} request recorded: {self.daily_count}/{self.daily_limit} daily"
        )

    def remaining(self) -> int:
        self._roll_day()
        return max(self.daily_limit - self.daily_count, 0)

