"""Leaderboard period windows and ranking."""
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from progression.errors import InvalidSubmission
from progression.leaderboard import (
    PeriodType,
    Standing,
    annual_window,
    rank,
    season_window,
    weekly_window,
)


@pytest.mark.unit
class TestPeriodType:
    def test_parse(self):
        assert PeriodType.parse(None) == PeriodType.WEEKLY
        assert PeriodType.parse("geral") == PeriodType.WEEKLY
        assert PeriodType.parse("Annual") == PeriodType.ANNUAL
        assert PeriodType.parse("seasonal") == PeriodType.SEASONAL

    def test_unknown(self):
        with pytest.raises(InvalidSubmission):
            PeriodType.parse("monthly")


@pytest.mark.unit
class TestWindows:
    def test_weekly_from_today(self):
        window = weekly_window(today=date(2026, 3, 12))  # a Thursday
        assert window.key == "2026-W11"
        assert window.start == datetime(2026, 3, 9)
        assert window.end == datetime(2026, 3, 16)

    def test_weekly_from_key(self):
        window = weekly_window("2026-w01")
        assert window.start == datetime(2025, 12, 29)
        assert window.key == "2026-W01"

    def test_weekly_invalid_key(self):
        with pytest.raises(InvalidSubmission):
            weekly_window("2026-W60")

    def test_annual_is_half_open(self):
        window = annual_window(2025)
        assert window.contains(datetime(2025, 1, 1))
        assert window.contains(datetime(2025, 12, 31, 23, 59, 59, 999999))
        assert not window.contains(datetime(2024, 12, 31, 23, 59, 59))
        assert not window.contains(datetime(2026, 1, 1))

    def test_annual_in_study_timezone(self):
        # Sao Paulo is UTC-3: the local year starts at 03:00 UTC
        window = annual_window(2025, tz=ZoneInfo("America/Sao_Paulo"))
        assert window.start == datetime(2025, 1, 1, 3)
        assert window.end == datetime(2026, 1, 1, 3)
        assert window.contains(datetime(2026, 1, 1, 2, 30))

    def test_weekly_in_study_timezone(self):
        window = weekly_window("2026-W11", tz=ZoneInfo("America/Sao_Paulo"))
        assert (window.start, window.end) == (datetime(2026, 3, 9, 3), datetime(2026, 3, 16, 3))

    def test_season_end_inclusive(self):
        window = season_window(4, datetime(2026, 1, 1), datetime(2026, 3, 31, 23, 59, 59))
        assert window.key == "4"
        assert window.contains(datetime(2026, 3, 31, 23, 59, 59))
        assert not window.contains(datetime(2026, 4, 1))

    def test_open_season(self):
        window = season_window(1, datetime(2026, 1, 1), None)
        assert window.contains(datetime(2099, 1, 1))


@pytest.mark.unit
class TestRank:
    def test_xp_descending(self):
        ranked = rank([Standing(1, 50, datetime(2026, 1, 2)), Standing(2, 80, datetime(2026, 1, 3))])
        assert [(s.user_id, s.rank) for s in ranked] == [(2, 1), (1, 2)]

    def test_tie_first_to_reach_wins(self):
        ranked = rank(
            [
                Standing(7, 100, datetime(2026, 1, 5)),
                Standing(3, 100, datetime(2026, 1, 4)),
                Standing(5, 100, datetime(2026, 1, 4)),
            ]
        )
        assert [s.user_id for s in ranked] == [3, 5, 7]
        assert [s.rank for s in ranked] == [1, 2, 3]

    def test_zero_xp_excluded_and_limit(self):
        standings = [Standing(i, i * 10, datetime(2026, 1, 1)) for i in range(0, 6)]
        ranked = rank(standings, limit=3)
        assert [s.user_id for s in ranked] == [5, 4, 3]
