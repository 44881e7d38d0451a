"""
Process-wide singletons and startup work for the study API.
"""

from api.config import SessionLocal, create_db, settings
from api.services.achievement_service import AchievementService
from api.utils.logger import configure_logging
from progression.presence import PresenceTracker

logger = configure_logging()

presence_tracker = PresenceTracker(
    timeout_seconds=settings.PRESENCE_TIMEOUT_SECONDS,
    max_entries=settings.PRESENCE_MAX_ENTRIES,
)


def retry_dirty_achievements(limit: int = 20) -> int:
    """Re-run achievement evaluations left unfinished by failed requests."""
    db = SessionLocal()
    try:
        return AchievementService(db).retry_dirty(limit=limit)
    finally:
        db.close()


def bootstrap_study() -> None:
    """Create tables, seed the achievement catalog and retry unfinished evaluations."""
    create_db()
    db = SessionLocal()
    try:
        AchievementService(db).seed_catalog()
    finally:
        db.close()
    retry_dirty_achievements(limit=500)
    logger.info("study bootstrap done")
