"""
Leaderboards summed from the XP ledger.

Standings for a `(period, key)` are cached for LEADERBOARD_REFRESH_SECONDS;
clients poll on the same interval, so a rank change shows up within one
refresh. `isCurrentUser` is decided per request on top of the cached rows.
"""

import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from api.config import settings
from api.models.models import Season, StudyProfile, User, XpTransaction
from api.utils.common import display_name
from api.utils.logger import configure_logging
from progression.errors import LeaderboardUnavailable, NotFound
from progression.leaderboard import (
    PeriodType,
    PeriodWindow,
    Standing,
    annual_window,
    rank,
    season_window,
    weekly_window,
)
from progression.streak import local_day, study_timezone, visible_streak

logger = configure_logging()


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    username: str
    total_xp: int
    level: int
    current_streak: int
    daily_xp: int
    is_current_user: bool = False


@dataclass
class Leaderboard:
    period_type: str
    period_key: str
    refresh_interval_seconds: float
    entries: List[LeaderboardEntry]


class StandingsCache:
    """Small TTL cache keyed by (period type, period key)."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Dict[Tuple[str, str], Tuple[float, List[LeaderboardEntry]]] = {}
        self._lock = threading.Lock()

    def get(self, key: Tuple[str, str]) -> Optional[List[LeaderboardEntry]]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            stored_at, entries = item
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._items[key]
                return None
            return entries

    def put(self, key: Tuple[str, str], entries: List[LeaderboardEntry]) -> None:
        with self._lock:
            self._items[key] = (self._clock(), entries)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


standings_cache = StandingsCache(settings.LEADERBOARD_REFRESH_SECONDS)


class LeaderboardService:
    def __init__(
        self,
        db: DBSession,
        clock: Callable[[], datetime] = datetime.utcnow,
        cache: Optional[StandingsCache] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.db = db
        self.clock = clock
        self.cache = standings_cache if cache is None else cache
        self.tz = study_timezone(settings.STUDY_TIMEZONE) if tz is None else tz

    def seasons(self) -> List[Season]:
        return self.db.query(Season).order_by(Season.starts_at.desc(), Season.id.desc()).all()

    def window(
        self,
        period_type: PeriodType,
        year: Optional[int] = None,
        week: Optional[str] = None,
        season_id: Optional[int] = None,
    ) -> PeriodWindow:
        today = local_day(self.clock(), self.tz)
        if period_type == PeriodType.WEEKLY:
            key = week
            if week and week.isdigit():
                key = f"{year or today.isocalendar()[0]}-W{int(week):02d}"
            return weekly_window(key, today=today, tz=self.tz)
        if period_type == PeriodType.ANNUAL:
            return annual_window(year, today=today, tz=self.tz)

        if season_id is not None:
            season = self.db.get(Season, season_id)
        else:
            season = (
                self.db.query(Season)
                .filter(Season.starts_at.isnot(None), Season.starts_at <= self.clock())
                .order_by(Season.starts_at.desc(), Season.id.desc())
                .first()
            )
        if season is None or season.starts_at is None:
            raise NotFound("Season not found" if season_id is not None else "No season has started yet")
        return season_window(int(season.id), season.starts_at, season.ends_at)

    def _standings(self, window: PeriodWindow) -> List[LeaderboardEntry]:
        sums = (
            self.db.query(
                XpTransaction.user_id,
                func.sum(XpTransaction.amount),
                func.max(XpTransaction.created_at),
            )
            .filter(XpTransaction.created_at >= window.start, XpTransaction.created_at < window.end)
            .group_by(XpTransaction.user_id)
            .all()
        )
        ranked = rank(
            [Standing(user_id=int(uid), period_xp=int(total or 0), reached_at=reached) for uid, total, reached in sums],
            limit=settings.LEADERBOARD_LIMIT,
        )
        if not ranked:
            return []

        user_ids = [s.user_id for s in ranked]
        users = {u.id: u for u in self.db.query(User).filter(User.id.in_(user_ids)).all()}
        profiles = {p.user_id: p for p in self.db.query(StudyProfile).filter(StudyProfile.user_id.in_(user_ids)).all()}
        now = self.clock()
        today = local_day(now, self.tz)
        daily = dict(
            self.db.query(XpTransaction.user_id, func.sum(XpTransaction.amount))
            .filter(
                XpTransaction.user_id.in_(user_ids),
                XpTransaction.created_at >= now - timedelta(hours=24),
                XpTransaction.created_at <= now,
            )
            .group_by(XpTransaction.user_id)
            .all()
        )

        entries: List[LeaderboardEntry] = []
        for s in ranked:
            user = users.get(s.user_id)
            profile = profiles.get(s.user_id)
            entries.append(
                LeaderboardEntry(
                    rank=s.rank,
                    user_id=s.user_id,
                    username=display_name(user.email, user.preferences) if user else f"user-{s.user_id}",
                    total_xp=s.period_xp,
                    level=int(profile.current_level) if profile else 1,
                    current_streak=visible_streak(int(profile.current_streak or 0), profile.last_activity_date, today) if profile else 0,
                    daily_xp=int(daily.get(s.user_id) or 0),
                )
            )
        return entries

    def query(
        self,
        period: Optional[str] = None,
        year: Optional[int] = None,
        week: Optional[str] = None,
        season_id: Optional[int] = None,
        current_user_id: Optional[int] = None,
    ) -> Leaderboard:
        period_type = PeriodType.parse(period)
        try:
            window = self.window(period_type, year=year, week=week, season_id=season_id)
            key = (window.period_type.value, window.key)
            entries = self.cache.get(key)
            if entries is None:
                entries = self._standings(window)
                self.cache.put(key, entries)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("leaderboard query failed period=%s", period_type.value)
            raise LeaderboardUnavailable("Leaderboard is temporarily unavailable") from e

        return Leaderboard(
            period_type=window.period_type.value,
            period_key=window.key,
            refresh_interval_seconds=settings.LEADERBOARD_REFRESH_SECONDS,
            entries=[replace(e, is_current_user=e.user_id == current_user_id) for e in entries],
        )
