"""
API schemas package. Import from submodules or from this package.

Example:
    from api.schemas import LeaderboardResponse, StartPracticeResponse
    from api.schemas.study_schemas import LeaderboardResponse
"""

from api.schemas.auth_schemas import (
    AuthTokenPayload,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
)
from api.schemas.user_schemas import User, MeResponse
from api.schemas.study_schemas import (
    CamelModel,
    ProfileResponse,
    StageResponse,
    UnitResponse,
    LessonSummary,
    LessonDetailResponse,
    WeekSummary,
    WeekListResponse,
    WeekLessonsResponse,
    AchievementUnlock,
    CompleteUnitRequest,
    CompleteUnitResponse,
    PracticeQuestionPublic,
    StartPracticeResponse,
    PracticeAnswerRequest,
    CompletePracticeRequest,
    PracticeResultResponse,
    PracticeAnswerResponse,
    PracticeStatusResponse,
    PracticeHistoryResponse,
    AchievementResponse,
    AchievementListResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    SeasonResponse,
    SeasonListResponse,
    PresenceResponse,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    "RegisterRequest",
    "RegisterResponse",
    # user
    "User",
    "MeResponse",
    # study path
    "CamelModel",
    "ProfileResponse",
    "StageResponse",
    "UnitResponse",
    "LessonSummary",
    "LessonDetailResponse",
    "WeekSummary",
    "WeekListResponse",
    "WeekLessonsResponse",
    "AchievementUnlock",
    "CompleteUnitRequest",
    "CompleteUnitResponse",
    # practice
    "PracticeQuestionPublic",
    "StartPracticeResponse",
    "PracticeAnswerRequest",
    "CompletePracticeRequest",
    "PracticeResultResponse",
    "PracticeAnswerResponse",
    "PracticeStatusResponse",
    "PracticeHistoryResponse",
    # achievements
    "AchievementResponse",
    "AchievementListResponse",
    # leaderboard, seasons, presence
    "LeaderboardEntryResponse",
    "LeaderboardResponse",
    "SeasonResponse",
    "SeasonListResponse",
    "PresenceResponse",
]
