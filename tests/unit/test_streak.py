"""Daily streak rules and study-day boundaries."""
from datetime import date, datetime, timezone

import pytest

from progression.streak import local_day, study_timezone, touch_streak, visible_streak


@pytest.mark.unit
class TestTouchStreak:
    def test_first_activity_starts_at_one(self):
        update = touch_streak(0, 0, None, date(2026, 3, 10))
        assert (update.current_streak, update.longest_streak, update.changed) == (1, 1, True)
        assert update.last_activity_date == date(2026, 3, 10)

    def test_same_day_is_unchanged(self):
        update = touch_streak(4, 6, date(2026, 3, 10), date(2026, 3, 10))
        assert update.current_streak == 4
        assert update.longest_streak == 6
        assert update.changed is False

    def test_next_day_extends(self):
        update = touch_streak(4, 4, date(2026, 3, 10), date(2026, 3, 11))
        assert update.current_streak == 5
        assert update.longest_streak == 5

    def test_gap_resets_but_keeps_longest(self):
        update = touch_streak(9, 12, date(2026, 3, 10), date(2026, 3, 13))
        assert update.current_streak == 1
        assert update.longest_streak == 12

    def test_out_of_order_activity_is_ignored(self):
        update = touch_streak(3, 3, date(2026, 3, 10), date(2026, 3, 8))
        assert update.current_streak == 3
        assert update.last_activity_date == date(2026, 3, 10)


@pytest.mark.unit
class TestStudyDay:
    def test_utc_default(self):
        assert study_timezone("UTC") is timezone.utc
        assert study_timezone("") is timezone.utc

    def test_naive_is_utc(self):
        assert local_day(datetime(2026, 3, 10, 23, 30), timezone.utc) == date(2026, 3, 10)

    def test_named_zone_shifts_day(self):
        # 01:30 UTC is still the previous evening in Sao Paulo (UTC-3)
        tz = study_timezone("America/Sao_Paulo")
        assert local_day(datetime(2026, 3, 11, 1, 30), tz) == date(2026, 3, 10)


@pytest.mark.unit
class TestVisibleStreak:
    def test_kept_through_yesterday(self):
        assert visible_streak(5, date(2026, 3, 10), date(2026, 3, 10)) == 5
        assert visible_streak(5, date(2026, 3, 9), date(2026, 3, 10)) == 5

    def test_lapsed_after_a_missed_day(self):
        assert visible_streak(5, date(2026, 3, 8), date(2026, 3, 10)) == 0

    def test_never_studied(self):
        assert visible_streak(0, None, date(2026, 3, 10)) == 0
