"""
Leaderboard periods and ranking.

Standings are never stored: the service sums the XP ledger per user inside a
period window and they are ranked here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from progression.errors import InvalidSubmission


class PeriodType(str, Enum):
    WEEKLY = "weekly"
    ANNUAL = "annual"
    SEASONAL = "seasonal"

    @classmethod
    def parse(cls, value: Optional[str]) -> "PeriodType":
        raw = (value or "weekly").strip().lower()
        if raw == "geral":
            return cls.WEEKLY
        try:
            return cls(raw)
        except ValueError:
            raise InvalidSubmission(f"Unknown leaderboard period: {value}")


@dataclass(frozen=True)
class PeriodWindow:
    """
    Half-open `[start, end)` window of naive UTC datetimes. Weekly and annual
    bounds are local midnights in the study timezone.
    """

    period_type: PeriodType
    key: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def utc_midnight(day: date, tz: tzinfo = timezone.utc) -> datetime:
    """Start of `day` in `tz` as a naive UTC datetime, the way the ledger stores time."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def weekly_window(key: Optional[str] = None, today: Optional[date] = None, tz: tzinfo = timezone.utc) -> PeriodWindow:
    """ISO week window; `key` looks like `2026-W42`, default is the week of `today`."""
    if key:
        try:
            year_part, week_part = key.upper().split("-W")
            monday = date.fromisocalendar(int(year_part), int(week_part), 1)
        except ValueError:
            raise InvalidSubmission(f"Invalid ISO week: {key}")
    else:
        today = today or datetime.utcnow().date()
        monday = today - timedelta(days=today.isoweekday() - 1)
    iso_year, iso_week, _ = monday.isocalendar()
    key = f"{iso_year}-W{iso_week:02d}"
    return PeriodWindow(PeriodType.WEEKLY, key, utc_midnight(monday, tz), utc_midnight(monday + timedelta(days=7), tz))


def annual_window(year: Optional[int] = None, today: Optional[date] = None, tz: tzinfo = timezone.utc) -> PeriodWindow:
    year = year or (today or datetime.utcnow().date()).year
    if not 2 <= year <= 9998:
        raise InvalidSubmission(f"Invalid year: {year}")
    return PeriodWindow(PeriodType.ANNUAL, str(year), utc_midnight(date(year, 1, 1), tz), utc_midnight(date(year + 1, 1, 1), tz))


def season_window(season_id: int, starts_at: datetime, ends_at: Optional[datetime]) -> PeriodWindow:
    """Seasons are inclusive of their end instant; an open season runs to the far future."""
    end = ends_at + timedelta(microseconds=1) if ends_at else datetime.max
    return PeriodWindow(PeriodType.SEASONAL, str(season_id), starts_at, end)


@dataclass
class Standing:
    user_id: int
    period_xp: int
    reached_at: datetime
    rank: int = 0


def sort_key(s: Standing) -> Tuple[int, datetime, int]:
    return (-s.period_xp, s.reached_at, s.user_id)


def rank(standings: Iterable[Standing], limit: Optional[int] = None) -> List[Standing]:
    """
    XP descending; on equal XP whoever reached the score first ranks higher,
    then lower user id. Users without positive XP are left out.
    """
    ordered = sorted((s for s in standings if s.period_xp > 0), key=sort_key)
    if limit is not None:
        ordered = ordered[:limit]
    for position, s in enumerate(ordered, start=1):
        s.rank = position
    return ordered
