from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StreakUpdate:
    current_streak: int
    longest_streak: int
    last_activity_date: date
    changed: bool


def study_timezone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_time(moment: datetime, tz: tzinfo) -> datetime:
    """`moment` in `tz`. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz)


def local_day(moment: datetime, tz: tzinfo) -> date:
    return local_time(moment, tz).date()


def touch_streak(
    current_streak: int,
    longest_streak: int,
    last_activity_date: Optional[date],
    today: date,
) -> StreakUpdate:
    """
    Apply one completion on `today` to a streak.

    Same day leaves the streak unchanged, the next day extends it, any gap
    (or a first activity) restarts it at 1. Activity dated before the last
    recorded day is ignored.
    """
    if last_activity_date is not None and today <= last_activity_date:
        streak = max(1, current_streak)
        return StreakUpdate(streak, max(longest_streak, streak), last_activity_date, False)

    if last_activity_date is not None and (today - last_activity_date).days == 1:
        streak = current_streak + 1
    else:
        streak = 1
    return StreakUpdate(streak, max(longest_streak, streak), today, True)


def visible_streak(current_streak: int, last_activity_date: Optional[date], today: date) -> int:
    """Stored streak as of `today`: it lapses once a whole study day passes without activity."""
    if last_activity_date is None or (today - last_activity_date).days > 1:
        return 0
    return current_streak
