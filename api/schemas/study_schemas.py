"""
Study area schemas. JSON bodies use camelCase keys; Python code uses the
snake_case field names.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Profile


class ProfileResponse(CamelModel):
    user_id: int
    username: str
    total_xp: int
    level: int
    xp_into_level: int
    xp_for_next_level: int
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date] = None
    last_activity_at: Optional[datetime] = None


# Path: weeks, lessons, units


class StageResponse(CamelModel):
    type: str
    status: str
    completed_units: int
    total_units: int
    question_results: list[str] = []


class UnitResponse(CamelModel):
    id: int
    stage: str
    order_index: int
    type: str
    content: dict[str, Any]
    xp_value: int
    is_completed: bool
    is_correct: Optional[bool] = None


class LessonSummary(CamelModel):
    id: int
    week_id: int
    order_index: int
    title: str
    description: Optional[str] = None
    xp_reward: int
    status: str
    is_mastered: bool
    stages: list[StageResponse]


class LessonDetailResponse(LessonSummary):
    units: list[UnitResponse]


class WeekSummary(CamelModel):
    id: int
    week_number: int
    year: int
    title: str
    description: Optional[str] = None
    season_id: Optional[int] = None
    lessons_completed: int
    total_lessons: int
    is_unlocked: bool
    is_completed: bool
    is_mastered: bool


class WeekListResponse(CamelModel):
    weeks: list[WeekSummary]


class WeekLessonsResponse(CamelModel):
    week: WeekSummary
    lessons: list[LessonSummary]


class AchievementUnlock(CamelModel):
    code: str
    name: str
    xp_reward: int


class CompleteUnitRequest(CamelModel):
    answer: Optional[Any] = None


class CompleteUnitResponse(CamelModel):
    unit_id: int
    already_completed: bool
    is_correct: Optional[bool] = None
    xp_awarded: int
    total_xp: int
    level: int
    leveled_up: bool
    current_streak: int
    lesson_status: str
    lesson_completed: bool
    perfect_lesson: bool
    unlocked_achievements: list[AchievementUnlock] = []


# Practice


class PracticeQuestionPublic(CamelModel):
    id: int
    type: str
    content: dict[str, Any]


class StartPracticeResponse(CamelModel):
    session_id: str
    week_id: int
    questions: list[PracticeQuestionPublic]
    time_limit: int
    total_questions: int
    started_at: datetime
    resumed: bool


class PracticeAnswerRequest(CamelModel):
    question_id: int
    answer: Any = None


class CompletePracticeRequest(CamelModel):
    correct_answers: Optional[int] = None
    time_spent_seconds: Optional[float] = Field(default=None, ge=0)


class PracticeResultResponse(CamelModel):
    session_id: str
    week_id: int
    status: str
    stars_earned: int
    correct_answers: int
    total_questions: int
    time_spent_seconds: int
    completed_within_time: bool
    is_mastered: bool
    xp_awarded: int = 0
    started_at: datetime
    ended_at: Optional[datetime] = None
    unlocked_achievements: list[AchievementUnlock] = []


class PracticeAnswerResponse(CamelModel):
    question_id: int
    is_correct: bool
    correct_answers: int
    answered_count: int
    total_questions: int
    result: Optional[PracticeResultResponse] = None


class PracticeStatusResponse(CamelModel):
    week_id: int
    is_unlocked: bool
    is_mastered: bool
    stars_earned: int
    lessons_completed: int
    total_lessons: int
    has_active_session: bool
    attempts_count: int = 0


class PracticeHistoryResponse(CamelModel):
    week_id: int
    results: list[PracticeResultResponse]


# Achievements


class AchievementResponse(CamelModel):
    code: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    category: str
    xp_reward: int
    is_secret: bool
    unlocked: bool
    unlocked_at: Optional[datetime] = None


class AchievementListResponse(CamelModel):
    achievements: list[AchievementResponse]
    unlocked_count: int
    total_count: int


# Leaderboard, seasons, presence


class LeaderboardEntryResponse(CamelModel):
    rank: int
    user_id: int
    username: str
    total_xp: int
    level: int
    current_streak: int
    daily_xp: int
    is_current_user: bool


class LeaderboardResponse(CamelModel):
    period_type: str
    period_key: str
    refresh_interval_seconds: float
    entries: list[LeaderboardEntryResponse]


class SeasonResponse(CamelModel):
    id: int
    title: str
    status: str
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_ended: bool


class SeasonListResponse(CamelModel):
    seasons: list[SeasonResponse]


class PresenceResponse(CamelModel):
    online_user_ids: list[int]
    count: int
    timestamp: datetime
