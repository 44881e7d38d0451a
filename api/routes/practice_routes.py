"""
Weekly practice ("Pratique") endpoints.
"""

from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from api.config import get_db
from api.models.session import PracticeSession
from api.schemas.study_schemas import (
    AchievementUnlock,
    CompletePracticeRequest,
    PracticeAnswerRequest,
    PracticeAnswerResponse,
    PracticeHistoryResponse,
    PracticeQuestionPublic,
    PracticeResultResponse,
    PracticeStatusResponse,
    StartPracticeResponse,
)
from api.schemas.user_schemas import User
from api.services.achievement_service import after_progress
from api.services.practice_service import PracticeService, public_question
from api.utils.auth import get_current_user
from api.utils.logger import configure_logging
from progression.achievements import AchievementDefinition

practice_routes = APIRouter()
logger = configure_logging()


def _result_response(session: PracticeSession, unlocked: List[AchievementDefinition] = ()) -> PracticeResultResponse:
    return PracticeResultResponse(
        session_id=session.id,
        week_id=int(session.week_id),
        status=session.status.value,
        stars_earned=int(session.stars_earned or 0),
        correct_answers=int(session.correct_answers or 0),
        total_questions=len(session.question_ids or []),
        time_spent_seconds=int(session.time_spent_seconds or 0),
        completed_within_time=bool(session.completed_within_time),
        is_mastered=bool(session.is_mastered),
        xp_awarded=int(session.xp_awarded or 0),
        started_at=session.started_at,
        ended_at=session.ended_at,
        unlocked_achievements=[AchievementUnlock(code=a.code, name=a.name, xp_reward=a.xp_reward) for a in unlocked],
    )


@practice_routes.post("/practice/{week_id}/start")
def start_practice(
    week_id: int,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> StartPracticeResponse:
    """
    Start the week's practice, or resume the running one with the same
    questions and start time. Questions come without their answer keys.
    """
    started = PracticeService(db).start(current_user.id, week_id)
    if started.closed is not None:
        after_progress(db, current_user.id)
    session = started.session
    return StartPracticeResponse(
        session_id=session.id,
        week_id=week_id,
        questions=[PracticeQuestionPublic(**public_question(q)) for q in started.questions],
        time_limit=int(session.time_limit_seconds),
        total_questions=len(started.questions),
        started_at=session.started_at,
        resumed=started.resumed,
    )


@practice_routes.get("/practice/{week_id}/status")
def practice_status(
    week_id: int,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> PracticeStatusResponse:
    state = PracticeService(db).status(current_user.id, week_id)
    return PracticeStatusResponse(**asdict(state))


@practice_routes.post("/practice/{week_id}/answer")
def answer_question(
    week_id: int,
    request: PracticeAnswerRequest,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> PracticeAnswerResponse:
    outcome = PracticeService(db).answer(current_user.id, week_id, request.question_id, request.answer)
    result = None
    if outcome.closed is not None:
        unlocked = after_progress(db, current_user.id)
        result = _result_response(outcome.closed.session, unlocked)
    return PracticeAnswerResponse(
        question_id=outcome.question_id,
        is_correct=outcome.is_correct,
        correct_answers=outcome.correct_answers,
        answered_count=outcome.answered_count,
        total_questions=outcome.total_questions,
        result=result,
    )


@practice_routes.post("/practice/{week_id}/complete")
def complete_practice(
    week_id: int,
    request: CompletePracticeRequest,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> PracticeResultResponse:
    outcome = PracticeService(db).complete(
        current_user.id,
        week_id,
        correct_answers=request.correct_answers,
        time_spent_seconds=request.time_spent_seconds,
    )
    unlocked = after_progress(db, current_user.id)
    return _result_response(outcome.session, unlocked)


@practice_routes.get("/practice/{week_id}/history")
def practice_history(
    week_id: int,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> PracticeHistoryResponse:
    sessions = PracticeService(db).history(current_user.id, week_id)
    return PracticeHistoryResponse(week_id=week_id, results=[_result_response(s) for s in sessions])
