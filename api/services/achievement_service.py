"""
Achievement catalog storage and per-user evaluation.

Evaluation always runs after the triggering progression was committed. If it
fails, the profile keeps `achievements_dirty` set and `retry_dirty` picks it
up later.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from api.models.models import Achievement, StudyProfile, UserAchievement, WeeklyPractice, XpTransaction
from api.services.lesson_service import LessonService
from api.services.progress_store import ProgressStore, SOURCE_ACHIEVEMENT
from api.utils.logger import configure_logging
from progression.achievements import DEFAULT_CATALOG, AchievementDefinition, ProgressStats, evaluate
from progression.streak import local_time

logger = configure_logging()

# Local hour from which study counts for the night owl achievement.
NIGHT_STUDY_HOUR = 22


def _definition(row: Achievement) -> AchievementDefinition:
    return AchievementDefinition(
        code=row.code,
        name=row.name,
        category=row.category,
        requirement=row.requirement or {},
        xp_reward=int(row.xp_reward or 0),
        description=row.description or "",
        icon=row.icon or "award",
        is_secret=bool(row.is_secret),
    )


class AchievementService:
    def __init__(self, db: DBSession, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.store = ProgressStore(db, clock=clock)

    def seed_catalog(self, catalog: Iterable[AchievementDefinition] = DEFAULT_CATALOG) -> int:
        """Insert missing catalog entries and refresh existing ones by code. Returns inserts."""
        existing = {row.code: row for row in self.db.query(Achievement).all()}
        inserted = 0
        for d in catalog:
            row = existing.get(d.code)
            if row is None:
                row = Achievement(code=d.code)
                self.db.add(row)
                inserted += 1
            row.name = d.name
            row.description = d.description
            row.icon = d.icon
            row.category = d.category
            row.requirement = dict(d.requirement)
            row.xp_reward = d.xp_reward
            row.is_secret = d.is_secret
        self.db.commit()
        if inserted:
            logger.info("achievement catalog seeded inserted=%s", inserted)
        return inserted

    def catalog(self) -> List[Achievement]:
        return self.db.query(Achievement).order_by(Achievement.category.asc(), Achievement.id.asc()).all()

    def stats(self, user_id: int) -> ProgressStats:
        profile = self.store.profile(user_id)
        lessons, perfect = LessonService(self.db, clock=self.clock).lesson_counts(user_id)
        mastered, stars = (
            self.db.query(
                func.coalesce(func.sum(case((WeeklyPractice.is_mastered.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(WeeklyPractice.stars_earned), 0),
            )
            .filter(WeeklyPractice.user_id == user_id)
            .one()
        )
        return ProgressStats(
            current_streak=int(profile.current_streak or 0),
            longest_streak=int(profile.longest_streak or 0),
            lessons_completed=lessons,
            perfect_lessons=perfect,
            total_xp=int(profile.total_xp or 0),
            level=int(profile.current_level or 1),
            mastered_weeks=int(mastered or 0),
            practice_stars=int(stars or 0),
            night_study=self._night_study(user_id),
        )

    def _night_study(self, user_id: int) -> int:
        """Study events (not achievement rewards) at or after NIGHT_STUDY_HOUR, study timezone."""
        moments = (
            self.db.query(XpTransaction.created_at)
            .filter(XpTransaction.user_id == user_id, XpTransaction.source != SOURCE_ACHIEVEMENT)
            .all()
        )
        return sum(1 for (at,) in moments if at is not None and local_time(at, self.store.tz).hour >= NIGHT_STUDY_HOUR)

    def evaluate(self, user_id: int) -> List[AchievementDefinition]:
        """Unlock every satisfied achievement. Safe to call any number of times."""
        try:
            return self._evaluate_once(user_id)
        except IntegrityError:
            # A concurrent evaluation granted some of them first; re-read and retry.
            self.db.rollback()
            return self._evaluate_once(user_id)

    def _evaluate_once(self, user_id: int) -> List[AchievementDefinition]:
        rows = {row.code: row for row in self.catalog()}
        unlocked_codes = {
            code
            for (code,) in self.db.query(Achievement.code)
            .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
            .filter(UserAchievement.user_id == user_id)
            .all()
        }
        result = evaluate([_definition(r) for r in rows.values()], self.stats(user_id), unlocked_codes)

        now = self.clock()
        for d in result.unlocked:
            self.db.add(UserAchievement(user_id=user_id, achievement_id=rows[d.code].id, unlocked_at=now))
        self.db.flush()
        for d in result.unlocked:
            if d.xp_reward:
                self.store.record_activity(user_id, d.xp_reward, SOURCE_ACHIEVEMENT, d.code, description=d.name, at=now, streak=False)
            logger.info("achievement unlocked user_id=%s code=%s xp=%s", user_id, d.code, d.xp_reward)
        self.store.clear_dirty(user_id)
        self.db.commit()
        return list(result.unlocked)

    def evaluate_safely(self, user_id: int) -> List[AchievementDefinition]:
        """
        Evaluate after a committed progression event. Failures are logged and
        the profile stays dirty for the background retry.
        """
        try:
            return self.evaluate(user_id)
        except Exception:
            self.db.rollback()
            logger.exception("achievement evaluation failed user_id=%s; left dirty for retry", user_id)
            return []

    def retry_dirty(self, limit: int = 20) -> int:
        """Re-evaluate profiles whose last evaluation did not finish. Returns how many succeeded."""
        query = self.db.query(StudyProfile.user_id).filter(StudyProfile.achievements_dirty.is_(True))
        user_ids = [int(uid) for (uid,) in query.order_by(StudyProfile.updated_at.asc()).limit(limit).all()]
        done = 0
        for uid in user_ids:
            try:
                self.evaluate(uid)
                done += 1
            except Exception:
                self.db.rollback()
                logger.exception("achievement retry failed user_id=%s", uid)
        if user_ids:
            logger.info("achievement retry dirty=%s ok=%s", len(user_ids), done)
        return done

    def unlocked_count(self, user_id: int) -> int:
        return int(self.db.query(func.count(UserAchievement.id)).filter(UserAchievement.user_id == user_id).scalar() or 0)

    def list_for_user(self, user_id: int, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Catalog with unlock state. Secret achievements keep their name and
        description hidden until unlocked. With `limit`, only the most recent
        unlocks, newest first.
        """
        unlocked_at = {
            int(achievement_id): at
            for achievement_id, at in self.db.query(UserAchievement.achievement_id, UserAchievement.unlocked_at)
            .filter(UserAchievement.user_id == user_id)
            .all()
        }
        rows = self.catalog()
        if limit is not None:
            rows = [r for r in rows if r.id in unlocked_at]
            rows.sort(key=lambda r: (unlocked_at[r.id], r.id), reverse=True)
            rows = rows[: max(0, limit)]

        items: List[Dict[str, Any]] = []
        for row in rows:
            unlocked = row.id in unlocked_at
            hidden = bool(row.is_secret) and not unlocked
            items.append(
                {
                    "code": row.code,
                    "name": "???" if hidden else row.name,
                    "description": None if hidden else row.description,
                    "icon": "lock" if hidden else row.icon,
                    "category": row.category,
                    "xp_reward": int(row.xp_reward or 0),
                    "is_secret": bool(row.is_secret),
                    "unlocked": unlocked,
                    "unlocked_at": unlocked_at.get(row.id),
                }
            )
        return items


def after_progress(db: DBSession, user_id: int, clock: Callable[[], datetime] = datetime.utcnow) -> List[AchievementDefinition]:
    """Progression event hook: run once the lesson or practice change is committed."""
    return AchievementService(db, clock=clock).evaluate_safely(user_id)
