"""
AchievementService: catalog seeding, idempotent evaluation, reward XP and
the dirty-flag retry path.
"""
from datetime import datetime

import pytest
from sqlalchemy.orm import sessionmaker

import api.bootstrap as bootstrap
from api.config import settings
from api.models.models import Achievement, StudyProfile, UserAchievement, XpTransaction
from api.services.achievement_service import AchievementService, after_progress
from api.services.lesson_service import LessonService
from api.services.progress_store import SOURCE_ACHIEVEMENT
from progression.achievements import DEFAULT_CATALOG, AchievementDefinition
from tests.builders import complete_lesson


@pytest.mark.integration
class TestCatalog:
    def test_seed_is_idempotent(self, db_session):
        service = AchievementService(db_session)
        assert service.seed_catalog() == len(DEFAULT_CATALOG)
        assert service.seed_catalog() == 0
        assert db_session.query(Achievement).count() == len(DEFAULT_CATALOG)

    def test_seed_updates_existing_rows(self, db_session, catalog):
        service = AchievementService(db_session)
        renamed = AchievementDefinition("first_lesson", "Novo Nome", "lessons", {"lessons": 1}, xp_reward=7)
        assert service.seed_catalog([renamed]) == 0
        row = db_session.query(Achievement).filter_by(code="first_lesson").one()
        assert (row.name, row.xp_reward) == ("Novo Nome", 7)


@pytest.mark.integration
class TestEvaluate:
    def test_first_lesson_unlocks_once(self, db_session, make_user, study_week, catalog, clock):
        user = make_user()
        complete_lesson(LessonService(db_session, clock=clock), user.id, study_week.lessons[0])
        unlocked = after_progress(db_session, user.id, clock=clock)
        codes = {a.code for a in unlocked}
        assert {"first_lesson", "perfect_lesson"} <= codes
        assert after_progress(db_session, user.id, clock=clock) == []
        assert db_session.query(UserAchievement).filter_by(user_id=user.id).count() == len(unlocked)

    def test_reward_xp_is_ledgered_without_touching_streak(self, db_session, make_user, study_week, catalog, clock):
        user = make_user()
        complete_lesson(LessonService(db_session, clock=clock), user.id, study_week.lessons[0])
        profile = db_session.query(StudyProfile).filter_by(user_id=user.id).one()
        streak_before, xp_before = profile.current_streak, profile.total_xp
        clock.advance(days=1)
        unlocked = AchievementService(db_session, clock=clock).evaluate(user.id)
        rewards = db_session.query(XpTransaction).filter_by(user_id=user.id, source=SOURCE_ACHIEVEMENT).all()
        assert sum(r.amount for r in rewards) == sum(a.xp_reward for a in unlocked)
        db_session.refresh(profile)
        assert profile.total_xp == xp_before + sum(a.xp_reward for a in unlocked)
        assert profile.current_streak == streak_before
        assert profile.achievements_dirty is False

    def test_listing_masks_locked_secrets(self, db_session, make_user, catalog):
        user = make_user()
        service = AchievementService(db_session)
        service.seed_catalog([AchievementDefinition("hidden", "Segredo", "special", {"masteredWeeks": 99}, is_secret=True, description="x")])
        items = {i["code"]: i for i in service.list_for_user(user.id)}
        assert items["hidden"]["name"] == "???"
        assert items["hidden"]["description"] is None
        assert items["first_lesson"]["unlocked"] is False

    def test_recent_unlocks_only_with_limit(self, db_session, make_user, study_week, catalog, clock):
        user = make_user()
        complete_lesson(LessonService(db_session, clock=clock), user.id, study_week.lessons[0])
        after_progress(db_session, user.id, clock=clock)
        service = AchievementService(db_session)
        recent = service.list_for_user(user.id, limit=1)
        assert len(recent) == 1
        assert recent[0]["unlocked"] is True
        assert service.unlocked_count(user.id) >= 2

    def test_night_owl_follows_study_timezone(self, db_session, make_user, study_week, catalog, clock, monkeypatch):
        monkeypatch.setattr(settings, "STUDY_TIMEZONE", "America/Sao_Paulo")
        early, late = make_user("early@example.com"), make_user("late@example.com")
        # 22:30 UTC is 19:30 in Sao Paulo; 01:30 UTC is 22:30 the day before
        clock.now = datetime(2026, 3, 10, 22, 30)
        complete_lesson(LessonService(db_session, clock=clock), early.id, study_week.lessons[0])
        clock.now = datetime(2026, 3, 11, 1, 30)
        complete_lesson(LessonService(db_session, clock=clock), late.id, study_week.lessons[0])

        service = AchievementService(db_session, clock=clock)
        assert service.stats(early.id).night_study == 0
        assert service.stats(late.id).night_study > 0
        assert "night_owl" not in {a.code for a in service.evaluate(early.id)}
        assert "night_owl" in {a.code for a in service.evaluate(late.id)}


@pytest.mark.integration
class TestRetry:
    def test_failed_evaluation_stays_dirty_and_retries(self, db_session, make_user, study_week, catalog, clock, monkeypatch):
        user = make_user()
        complete_lesson(LessonService(db_session, clock=clock), user.id, study_week.lessons[0])

        def boom(self, user_id):
            raise RuntimeError("evaluation failed")

        monkeypatch.setattr(AchievementService, "_evaluate_once", boom)
        assert after_progress(db_session, user.id, clock=clock) == []
        profile = db_session.query(StudyProfile).filter_by(user_id=user.id).one()
        assert profile.achievements_dirty is True

        monkeypatch.undo()
        assert AchievementService(db_session, clock=clock).retry_dirty() == 1
        db_session.refresh(profile)
        assert profile.achievements_dirty is False
        assert db_session.query(UserAchievement).filter_by(user_id=user.id).count() > 0

    def test_progress_requests_leave_other_dirty_profiles_alone(
        self, db_session, make_user, study_week, catalog, clock, monkeypatch
    ):
        stuck, active = make_user("stuck@example.com"), make_user("active@example.com")
        service = LessonService(db_session, clock=clock)
        complete_lesson(service, stuck.id, study_week.lessons[0])
        complete_lesson(service, active.id, study_week.lessons[0])

        evaluated = []
        original = AchievementService._evaluate_once

        def tracking(self, user_id):
            evaluated.append(user_id)
            return original(self, user_id)

        monkeypatch.setattr(AchievementService, "_evaluate_once", tracking)
        after_progress(db_session, active.id, clock=clock)
        assert evaluated == [active.id]
        stuck_profile = db_session.query(StudyProfile).filter_by(user_id=stuck.id).one()
        assert stuck_profile.achievements_dirty is True

    def test_background_retry_uses_its_own_session(self, db_session, in_memory_engine, make_user, study_week, catalog, clock, monkeypatch):
        user = make_user()
        complete_lesson(LessonService(db_session, clock=clock), user.id, study_week.lessons[0])
        monkeypatch.setattr(bootstrap, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine))

        assert bootstrap.retry_dirty_achievements() == 1
        db_session.expire_all()
        assert db_session.query(StudyProfile).filter_by(user_id=user.id).one().achievements_dirty is False
        assert db_session.query(UserAchievement).filter_by(user_id=user.id).count() > 0
