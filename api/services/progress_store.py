"""
ProgressStore: the single writer of XP, level and streak.

Every XP-bearing event goes through `record_activity`, which appends a ledger
row and bumps the profile with one atomic UPDATE, so concurrent requests from
the same user (two tabs) cannot lose increments. The caller owns the
transaction and commits.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Set

from sqlalchemy import update
from sqlalchemy.orm import Session as DBSession

from api.config import settings
from api.models.models import StudyProfile, UserUnitProgress, WeeklyPractice, XpTransaction
from api.utils.common import get_or_create_profile
from api.utils.logger import configure_logging
from progression.levels import level_for_xp
from progression.streak import local_day, study_timezone, touch_streak

logger = configure_logging()

SOURCE_UNIT = "unit"
SOURCE_LESSON = "lesson"
SOURCE_PRACTICE = "practice"
SOURCE_PRACTICE_MASTERY = "practice_mastery"
SOURCE_ACHIEVEMENT = "achievement"


@dataclass
class ActivityDelta:
    xp_awarded: int
    total_xp: int
    level: int
    leveled_up: bool
    current_streak: int
    streak_increased: bool


class ProgressStore:
    def __init__(self, db: DBSession, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.tz = study_timezone(settings.STUDY_TIMEZONE)

    def profile(self, user_id: int) -> StudyProfile:
        return get_or_create_profile(user_id, self.db)

    def completed_units(self, user_id: int) -> Dict[int, Optional[bool]]:
        """unit_id -> is_correct (None for units without a question)."""
        rows = (
            self.db.query(UserUnitProgress.unit_id, UserUnitProgress.is_correct)
            .filter(UserUnitProgress.user_id == user_id)
            .all()
        )
        return {int(unit_id): is_correct for unit_id, is_correct in rows}

    def mastered_week_ids(self, user_id: int) -> Set[int]:
        rows = (
            self.db.query(WeeklyPractice.week_id)
            .filter(WeeklyPractice.user_id == user_id, WeeklyPractice.is_mastered.is_(True))
            .all()
        )
        return {int(week_id) for (week_id,) in rows}

    def record_activity(
        self,
        user_id: int,
        amount: int,
        source: str,
        source_id: Optional[str] = None,
        description: Optional[str] = None,
        at: Optional[datetime] = None,
        streak: bool = True,
    ) -> ActivityDelta:
        """
        Apply one progression event: ledger row (when amount > 0), atomic XP
        increment, level recompute and, unless `streak` is False, a streak touch.
        Marks the profile for achievement evaluation.
        """
        at = at or self.clock()
        amount = max(0, int(amount))
        profile = self.profile(user_id)
        level_before = int(profile.current_level or 1)

        if amount:
            self.db.add(
                XpTransaction(
                    user_id=user_id,
                    amount=amount,
                    source=source,
                    source_id=source_id,
                    description=description,
                    created_at=at,
                )
            )
        # Row-level write lock from here to commit; the read below sees the latest totals.
        self.db.execute(
            update(StudyProfile)
            .where(StudyProfile.user_id == user_id)
            .values(
                total_xp=StudyProfile.total_xp + amount,
                achievements_dirty=True,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(profile)

        total = int(profile.total_xp)
        level = max(level_before, level_for_xp(total))
        profile.current_level = level

        streak_increased = False
        if streak:
            update_ = touch_streak(
                int(profile.current_streak or 0),
                int(profile.longest_streak or 0),
                profile.last_activity_date,
                local_day(at, self.tz),
            )
            streak_increased = update_.changed and update_.current_streak > int(profile.current_streak or 0)
            profile.current_streak = update_.current_streak
            profile.longest_streak = update_.longest_streak
            profile.last_activity_date = update_.last_activity_date
            profile.last_activity_at = at
        self.db.flush()

        if level > level_before:
            logger.info("level up user_id=%s level=%s total_xp=%s", user_id, level, total)
        logger.debug("activity user_id=%s source=%s source_id=%s amount=%s total_xp=%s", user_id, source, source_id, amount, total)
        return ActivityDelta(
            xp_awarded=amount,
            total_xp=total,
            level=level,
            leveled_up=level > level_before,
            current_streak=int(profile.current_streak or 0),
            streak_increased=streak_increased,
        )

    def lock_profile(self, user_id: int) -> None:
        """Take the profile row write lock for the rest of the transaction."""
        self.profile(user_id)
        self.db.execute(
            update(StudyProfile)
            .where(StudyProfile.user_id == user_id)
            .values(updated_at=StudyProfile.updated_at)
            .execution_options(synchronize_session=False)
        )

    def has_reward(self, user_id: int, source: str, source_id: str) -> bool:
        return (
            self.db.query(XpTransaction.id)
            .filter(
                XpTransaction.user_id == user_id,
                XpTransaction.source == source,
                XpTransaction.source_id == source_id,
            )
            .first()
            is not None
        )

    def clear_dirty(self, user_id: int) -> None:
        self.db.execute(
            update(StudyProfile)
            .where(StudyProfile.user_id == user_id)
            .values(achievements_dirty=False)
            .execution_options(synchronize_session=False)
        )
