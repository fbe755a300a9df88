"""Unit tests for QuotaTracker."""

import json
from datetime import date

import pytest
from freezegun import freeze_time

from fintrack.lib.quota_tracker import QuotaTracker


@pytest.mark.unit
class TestQuotaTracker:
    """Test suite for QuotaTracker."""

    def test_counts_until_limit(self, tmp_path):
        tracker = QuotaTracker("alpha_vantage", 2, storage_dir=tmp_path)

        assert tracker.can_make_request()
        tracker.record_request()
        tracker.record_request()

        assert not tracker.can_make_request()
        assert tracker.remaining() == 0

    def test_count_persists_across_instances(self, tmp_path):
        QuotaTracker("alpha_vantage", 5, storage_dir=tmp_path).record_request()

        tracker = QuotaTracker("alpha_vantage", 5, storage_dir=tmp_path)

        assert tracker.daily_count == 1
        assert tracker.remaining() == 4

    def test_new_day_resets(self, tmp_path):
        with freeze_time("2024-01-05"):
            tracker = QuotaTracker("alpha_vantage", 1, storage_dir=tmp_path)
            tracker.record_request()
            assert not tracker.can_make_request()

        with freeze_time("2024-01-06"):
            assert tracker.can_make_request()
            assert QuotaTracker("alpha_vantage", 1, storage_dir=tmp_path).daily_count == 0

    def test_corrupt_file_ignored(self, tmp_path):
        (tmp_path / "alpha_vantage_quota.json").write_text("{not json")

        assert QuotaTracker("alpha_vantage", 1, storage_dir=tmp_path).daily_count == 0


    def test_state_file_contents(self, tmp_path):
        QuotaTracker("alpha_vantage", 3, storage_dir=tmp_path).record_request()

        stored = json.loads((tmp_path / "alpha_vantage_quota.json").read_text())

        assert stored == {"date": date.today().isoformat(), "daily_count": 1}
