"""
API data models. Single import surface for DB entities and session types.

DB entities (api.models.models):
- User, StudyProfile, Season, StudyWeek, StudyLesson, StudyUnit, UserUnitProgress,
  XpTransaction, Achievement, UserAchievement, PracticeQuestion, WeeklyPractice

Practice attempts (api.models.session):
- PracticeSession
"""

from api.models.models import (
    User,
    StudyProfile,
    Season,
    StudyWeek,
    StudyLesson,
    StudyUnit,
    UserUnitProgress,
    XpTransaction,
    Achievement,
    UserAchievement,
    PracticeQuestion,
    WeeklyPractice,
)
from api.models.session import PracticeSession

__all__ = [
    "User",
    "StudyProfile",
    "Season",
    "StudyWeek",
    "StudyLesson",
    "StudyUnit",
    "UserUnitProgress",
    "XpTransaction",
    "Achievement",
    "UserAchievement",
    "PracticeQuestion",
    "WeeklyPractice",
    "PracticeSession",
]
