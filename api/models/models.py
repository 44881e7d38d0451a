from api.config import Base
from sqlalchemy import (
    Column,
    Integer,
    String,
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Boolean,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    preferences = Column(JSON)


class StudyProfile(Base):
    """Per-user progress row. Only ProgressStore writes XP, level and streak."""
    __tablename__ = "study_profiles"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True, nullable=False)
    total_xp = Column(Integer, default=0, nullable=False)
    current_level = Column(Integer, default=1, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(Date, nullable=True)  # calendar day in the study timezone
    last_activity_at = Column(DateTime, nullable=True)
    achievements_dirty = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", backref="study_profile", foreign_keys=[user_id])


class Season(Base):
    __tablename__ = "seasons"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="draft")  # draft|published|archived
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)
    is_ended = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class StudyWeek(Base):
    __tablename__ = "study_weeks"
    __table_args__ = (UniqueConstraint("week_number", "year", name="uq_study_week"),)
    id = Column(Integer, primary_key=True, index=True)
    week_number = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    season = relationship("Season", backref="weeks")
    lessons = relationship("StudyLesson", backref="week", cascade="all, delete-orphan", order_by="StudyLesson.order_index")
    practice_questions = relationship("PracticeQuestion", backref="week", cascade="all, delete-orphan")


class StudyLesson(Base):
    __tablename__ = "study_lessons"
    id = Column(Integer, primary_key=True, index=True)
    week_id = Column(Integer, ForeignKey("study_weeks.id"), index=True, nullable=False)
    order_index = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    xp_reward = Column(Integer, default=10, nullable=False)

    units = relationship("StudyUnit", backref="lesson", cascade="all, delete-orphan", order_by="StudyUnit.order_index")


class StudyUnit(Base):
    __tablename__ = "study_units"
    id = Column(Integer, primary_key=True, index=True)
    lesson_id = Column(Integer, ForeignKey("study_lessons.id"), index=True, nullable=False)
    stage = Column(String, nullable=False, default="estude")  # estude|medite|responda
    order_index = Column(Integer, nullable=False)
    type = Column(String, nullable=False)  # text|verse|reflection|multiple_choice|true_false|fill_blank
    content = Column(JSON, nullable=False)
    xp_value = Column(Integer, default=2, nullable=False)


class UserUnitProgress(Base):
    __tablename__ = "user_unit_progress"
    __table_args__ = (UniqueConstraint("user_id", "unit_id", name="uq_user_unit"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    unit_id = Column(Integer, ForeignKey("study_units.id"), index=True, nullable=False)
    answer_given = Column(JSON, nullable=True)
    is_correct = Column(Boolean, nullable=True)  # null for non-question units
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class XpTransaction(Base):
    """Append-only XP ledger. Leaderboards are summed from here."""
    __tablename__ = "xp_transactions"
    __table_args__ = (Index("ix_xp_transactions_created_at_user", "created_at", "user_id"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    amount = Column(Integer, nullable=False)
    source = Column(String, nullable=False)  # unit|lesson|practice|practice_mastery|achievement
    source_id = Column(String, nullable=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Achievement(Base):
    __tablename__ = "achievements"
    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    category = Column(String, nullable=False)
    requirement = Column(JSON, nullable=True)
    xp_reward = Column(Integer, default=0, nullable=False)
    is_secret = Column(Boolean, default=False, nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    achievement_id = Column(Integer, ForeignKey("achievements.id"), index=True, nullable=False)
    unlocked_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    achievement = relationship("Achievement")


class PracticeQuestion(Base):
    __tablename__ = "practice_questions"
    id = Column(Integer, primary_key=True, index=True)
    week_id = Column(Integer, ForeignKey("study_weeks.id"), index=True, nullable=False)
    type = Column(String, nullable=False)  # multiple_choice|true_false|fill_blank
    content = Column(JSON, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)


class WeeklyPractice(Base):
    """Best practice outcome per (user, week). Mastery is never cleared."""
    __tablename__ = "weekly_practice"
    __table_args__ = (UniqueConstraint("user_id", "week_id", name="uq_weekly_practice"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    week_id = Column(Integer, ForeignKey("study_weeks.id"), index=True, nullable=False)
    stars_earned = Column(Integer, default=0, nullable=False)
    attempts_count = Column(Integer, default=0, nullable=False)
    is_mastered = Column(Boolean, default=False, nullable=False)
    mastered_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
