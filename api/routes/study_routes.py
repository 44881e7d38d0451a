"""
Study path endpoints: profile, weeks, lessons and unit completion.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from api.config import get_db
from api.models.models import StudyLesson, StudyWeek
from api.schemas.study_schemas import (
    AchievementUnlock,
    CompleteUnitRequest,
    CompleteUnitResponse,
    LessonDetailResponse,
    LessonSummary,
    ProfileResponse,
    StageResponse,
    UnitResponse,
    WeekLessonsResponse,
    WeekListResponse,
    WeekSummary,
)
from api.schemas.user_schemas import User
from api.services.achievement_service import after_progress
from api.services.lesson_service import LessonService
from api.services.progress_store import ProgressStore
from api.utils.auth import get_current_user
from api.utils.common import display_name
from api.utils.logger import configure_logging
from progression.levels import level_progress
from progression.questions import is_question_type, parse_question
from progression.stages import STAGE_ORDER, LessonView, NodeStatus, WeekView
from progression.streak import local_day, visible_streak

study_routes = APIRouter()
logger = configure_logging()

_STAGE_RANK = {stage.value: i for i, stage in enumerate(STAGE_ORDER)}


def _lesson_summary(lesson: StudyLesson, view: LessonView) -> dict:
    return dict(
        id=int(lesson.id),
        week_id=int(lesson.week_id),
        order_index=int(lesson.order_index),
        title=lesson.title,
        description=lesson.description,
        xp_reward=int(lesson.xp_reward or 0),
        status=view.status.value,
        is_mastered=view.is_mastered,
        stages=[
            StageResponse(
                type=s.type.value,
                status=s.status.value,
                completed_units=s.completed_units,
                total_units=s.total_units,
                question_results=[r.value for r in s.question_results],
            )
            for s in view.stages
        ],
    )


def _week_summary(week: StudyWeek, view: WeekView) -> WeekSummary:
    return WeekSummary(
        id=int(week.id),
        week_number=int(week.week_number),
        year=int(week.year),
        title=week.title,
        description=week.description,
        season_id=week.season_id,
        lessons_completed=view.lessons_completed,
        total_lessons=len(view.lessons),
        is_unlocked=any(lesson.status != NodeStatus.LOCKED for lesson in view.lessons),
        is_completed=view.is_complete,
        is_mastered=view.is_mastered,
    )


@study_routes.get("/profile")
def get_profile(
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> ProfileResponse:
    store = ProgressStore(db)
    profile = store.profile(current_user.id)
    db.commit()
    today = local_day(store.clock(), store.tz)
    progress = level_progress(int(profile.total_xp))
    return ProfileResponse(
        user_id=current_user.id,
        username=display_name(current_user.email, current_user.preferences),
        total_xp=int(profile.total_xp),
        level=int(profile.current_level),
        xp_into_level=progress["xp_into_level"],
        xp_for_next_level=progress["xp_for_next_level"],
        current_streak=visible_streak(int(profile.current_streak), profile.last_activity_date, today),
        longest_streak=int(profile.longest_streak),
        last_activity_date=profile.last_activity_date,
        last_activity_at=profile.last_activity_at,
    )


@study_routes.get("/weeks")
def list_weeks(
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> WeekListResponse:
    """The study path in order, with per-week progress."""
    overview = LessonService(db).overview(current_user.id)
    return WeekListResponse(weeks=[_week_summary(week, view) for week, view in overview])


@study_routes.get("/weeks/{week_id}/lessons")
def list_week_lessons(
    week_id: int,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> WeekLessonsResponse:
    week, view = LessonService(db).week(current_user.id, week_id)
    lessons = {lesson.id: lesson for lesson in week.lessons}
    return WeekLessonsResponse(
        week=_week_summary(week, view),
        lessons=[LessonSummary(**_lesson_summary(lessons[lv.lesson_id], lv)) for lv in view.lessons],
    )


@study_routes.get("/lessons/{lesson_id}")
def get_lesson(
    lesson_id: int,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> LessonDetailResponse:
    """Lesson with its units. Answer keys are stripped from question units."""
    lesson, view, results = LessonService(db).lesson(current_user.id, lesson_id)
    units = []
    for unit in sorted(lesson.units, key=lambda u: (_STAGE_RANK.get(u.stage, 0), u.order_index, u.id)):
        content = unit.content or {}
        if is_question_type(unit.type):
            content = parse_question(unit.type, content).public_content()
        units.append(
            UnitResponse(
                id=int(unit.id),
                stage=unit.stage,
                order_index=int(unit.order_index),
                type=unit.type,
                content=content,
                xp_value=int(unit.xp_value or 0),
                is_completed=unit.id in results,
                is_correct=results.get(unit.id),
            )
        )
    return LessonDetailResponse(**_lesson_summary(lesson, view), units=units)


@study_routes.post("/units/{unit_id}/complete")
def complete_unit(
    unit_id: int,
    request: CompleteUnitRequest,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> CompleteUnitResponse:
    completion = LessonService(db).complete_unit(current_user.id, unit_id, request.answer)
    progressed = not completion.already_completed or completion.lesson_completed
    unlocked = after_progress(db, current_user.id) if progressed else []
    return CompleteUnitResponse(
        unit_id=completion.unit_id,
        already_completed=completion.already_completed,
        is_correct=completion.is_correct,
        xp_awarded=completion.delta.xp_awarded,
        total_xp=completion.delta.total_xp,
        level=completion.delta.level,
        leveled_up=completion.delta.leveled_up,
        current_streak=completion.delta.current_streak,
        lesson_status=completion.lesson.status.value,
        lesson_completed=completion.lesson_completed,
        perfect_lesson=completion.perfect_lesson,
        unlocked_achievements=[AchievementUnlock(code=a.code, name=a.name, xp_reward=a.xp_reward) for a in unlocked],
    )
