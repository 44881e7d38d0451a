"""
Study progression engine: pure rules for stages, practice scoring,
achievements, leaderboards and presence. Persistence lives in `api.services`.
"""

from progression.achievements import (
    DEFAULT_CATALOG,
    AchievementDefinition,
    ProgressStats,
    evaluate,
    requirement_met,
)
from progression.errors import (
    AlreadyMastered,
    InvalidSubmission,
    LeaderboardUnavailable,
    NotFound,
    NotUnlocked,
    ProgressionError,
    SessionAlreadyClosed,
    SessionExpired,
    Unauthenticated,
)
from progression.leaderboard import PeriodType, PeriodWindow
from progression.levels import level_for_xp, level_progress
from progression.practice import PracticeAttempt, PracticeResult, PracticeStatus
from progression.presence import PresenceTracker
from progression.questions import Question, parse_question
from progression.scoring import StarPolicy, compute_stars
from progression.stages import NodeStatus, QuestionResult, StageStateMachine, StageType
from progression.streak import touch_streak

__all__ = [
    "DEFAULT_CATALOG",
    "AchievementDefinition",
    "ProgressStats",
    "evaluate",
    "requirement_met",
    "AlreadyMastered",
    "InvalidSubmission",
    "LeaderboardUnavailable",
    "NotFound",
    "NotUnlocked",
    "ProgressionError",
    "SessionAlreadyClosed",
    "SessionExpired",
    "Unauthenticated",
    "PeriodType",
    "PeriodWindow",
    "level_for_xp",
    "level_progress",
    "PracticeAttempt",
    "PracticeResult",
    "PracticeStatus",
    "PresenceTracker",
    "Question",
    "parse_question",
    "StarPolicy",
    "compute_stars",
    "NodeStatus",
    "QuestionResult",
    "StageStateMachine",
    "StageType",
    "touch_streak",
]
