"""
Weekly practice ("Pratique") sessions.

A session row is created on start with a snapshot of the week's questions and
a server-side start time. Every write to a running session first claims it
with a conditional UPDATE (`WHERE status = 'RUNNING'`): the claim holds the
row lock until commit, and a claim that matches no row means another request
already closed the session.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Optional
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from api.config import settings
from api.models.models import PracticeQuestion, StudyWeek, WeeklyPractice
from api.models.session import PracticeSession
from api.services.lesson_service import LessonService
from api.services.progress_store import ProgressStore, SOURCE_PRACTICE, SOURCE_PRACTICE_MASTERY
from api.utils.logger import configure_logging, log_request
from progression.errors import (
    AlreadyMastered,
    InvalidSubmission,
    NotFound,
    NotUnlocked,
    ProgressionError,
    SessionAlreadyClosed,
)
from progression.practice import PracticeAttempt, PracticeResult, PracticeStatus
from progression.questions import parse_question
from progression.scoring import StarPolicy, practice_xp

logger = configure_logging()


@dataclass
class PracticeOutcome:
    session: PracticeSession
    result: PracticeResult


@dataclass
class StartedPractice:
    session: PracticeSession
    questions: List[PracticeQuestion]
    resumed: bool
    # set when an expired session had to be closed before starting a new one
    closed: Optional[PracticeOutcome] = None


@dataclass
class AnswerOutcome:
    question_id: int
    is_correct: bool
    correct_answers: int
    answered_count: int
    total_questions: int
    closed: Optional[PracticeOutcome] = None


@dataclass
class PracticeState:
    week_id: int
    is_unlocked: bool
    is_mastered: bool
    stars_earned: int
    lessons_completed: int
    total_lessons: int
    has_active_session: bool
    attempts_count: int


def public_question(question: PracticeQuestion) -> dict:
    """Question as sent to the client, answer key stripped."""
    return {
        "id": int(question.id),
        "type": question.type,
        "content": parse_question(question.type, question.content).public_content(),
    }


class PracticeService:
    def __init__(
        self,
        db: DBSession,
        clock: Callable[[], datetime] = datetime.utcnow,
        policy: Optional[StarPolicy] = None,
    ):
        self.db = db
        self.clock = clock
        self.policy = policy or settings.star_policy()
        self.store = ProgressStore(db, clock=clock)

    # Lookups

    def _week(self, week_id: int) -> StudyWeek:
        week = self.db.get(StudyWeek, week_id)
        if week is None:
            raise NotFound(f"Week {week_id} not found")
        return week

    def _summary(self, user_id: int, week_id: int) -> Optional[WeeklyPractice]:
        return (
            self.db.query(WeeklyPractice)
            .filter(WeeklyPractice.user_id == user_id, WeeklyPractice.week_id == week_id)
            .first()
        )

    def _running(self, user_id: int, week_id: int) -> Optional[PracticeSession]:
        return (
            self.db.query(PracticeSession)
            .filter(
                PracticeSession.user_id == user_id,
                PracticeSession.week_id == week_id,
                PracticeSession.status == PracticeStatus.RUNNING,
            )
            .first()
        )

    def _questions(self, week_id: int) -> List[PracticeQuestion]:
        return (
            self.db.query(PracticeQuestion)
            .filter(PracticeQuestion.week_id == week_id)
            .order_by(PracticeQuestion.order_index.asc(), PracticeQuestion.id.asc())
            .limit(self.policy.question_count)
            .all()
        )

    def _snapshot(self, session: PracticeSession) -> List[PracticeQuestion]:
        ids = [int(q) for q in session.question_ids or []]
        by_id = {q.id: q for q in self.db.query(PracticeQuestion).filter(PracticeQuestion.id.in_(ids)).all()}
        return [by_id[i] for i in ids if i in by_id]

    def _open_session(self, user_id: int, week_id: int) -> PracticeSession:
        session = self._running(user_id, week_id)
        if session is not None:
            return session
        self._week(week_id)
        closed = (
            self.db.query(PracticeSession.id)
            .filter(PracticeSession.user_id == user_id, PracticeSession.week_id == week_id)
            .first()
        )
        if closed is not None:
            raise SessionAlreadyClosed("Practice session is already closed")
        raise NotFound("No practice session for this week; start one first")

    @staticmethod
    def _attempt(session: PracticeSession) -> PracticeAttempt:
        return PracticeAttempt(
            question_ids=[int(q) for q in session.question_ids or []],
            started_at=session.started_at,
            time_limit_seconds=int(session.time_limit_seconds),
            status=session.status,
            answers=dict(session.answers or {}),
        )

    def _claim(self, session: PracticeSession) -> None:
        claimed = self.db.execute(
            update(PracticeSession)
            .where(PracticeSession.id == session.id, PracticeSession.status == PracticeStatus.RUNNING)
            .values(status=PracticeStatus.RUNNING)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            self.db.rollback()
            raise SessionAlreadyClosed("Practice session is already closed", details={"sessionId": session.id})
        self.db.refresh(session)

    def _close(
        self,
        user_id: int,
        session: PracticeSession,
        attempt: PracticeAttempt,
        correct_answers: Optional[int] = None,
        time_spent_seconds: Optional[float] = None,
    ) -> PracticeOutcome:
        """Finalize a claimed session, pay XP for new stars and commit."""
        now = self.clock()
        result = attempt.finalize(self.policy, now, correct_answers, time_spent_seconds)
        week_id = int(session.week_id)

        session.status = result.status
        session.ended_at = now
        session.answers = dict(attempt.answers)
        session.correct_answers = result.correct_answers
        session.stars_earned = result.stars_earned
        session.time_spent_seconds = result.time_spent_seconds
        session.completed_within_time = result.completed_within_time
        session.is_mastered = result.is_mastered

        summary = self._summary(user_id, week_id)
        if summary is None:
            summary = WeeklyPractice(user_id=user_id, week_id=week_id, stars_earned=0, attempts_count=0, is_mastered=False)
            self.db.add(summary)
        previous_best = int(summary.stars_earned or 0)
        xp = practice_xp(self.policy, result.stars_earned, previous_best)
        bonus = self.policy.mastery_bonus_xp if result.is_mastered and not summary.is_mastered else 0

        summary.attempts_count = int(summary.attempts_count or 0) + 1
        summary.stars_earned = max(previous_best, result.stars_earned)
        summary.updated_at = now
        if result.is_mastered and not summary.is_mastered:
            summary.is_mastered = True
            summary.mastered_at = now
        self.db.flush()

        self.store.record_activity(user_id, xp, SOURCE_PRACTICE, session.id, description=f"Pratique semana {week_id}", at=now)
        if bonus:
            self.store.record_activity(user_id, bonus, SOURCE_PRACTICE_MASTERY, str(week_id), description="Semana dominada", at=now)
        session.xp_awarded = xp + bonus
        self.db.commit()

        logger.info(
            "practice closed user_id=%s week_id=%s session_id=%s status=%s stars=%s correct=%s/%s time=%s xp=%s",
            user_id, week_id, session.id, result.status.value, result.stars_earned,
            result.correct_answers, result.total_questions, result.time_spent_seconds, xp + bonus,
        )
        return PracticeOutcome(session=session, result=result)

    # Operations

    def start(self, user_id: int, week_id: int) -> StartedPractice:
        """Open (or resume) the practice session of a fully completed week."""
        with log_request(logger, f"practice.start user_id={user_id} week_id={week_id}"):
            self._week(week_id)
            _, view = LessonService(self.db, clock=self.clock).week(user_id, week_id)
            if not view.is_complete:
                raise NotUnlocked(
                    "Complete every lesson of the week to unlock practice",
                    details={"lessonsCompleted": view.lessons_completed, "totalLessons": len(view.lessons)},
                )
            summary = self._summary(user_id, week_id)
            if summary is not None and summary.is_mastered:
                raise AlreadyMastered("This week is already mastered", details={"weekId": week_id})
            questions = self._questions(week_id)
            if not questions:
                raise NotFound(f"Week {week_id} has no practice questions")

            closed: Optional[PracticeOutcome] = None
            running = self._running(user_id, week_id)
            if running is not None:
                if not self._attempt(running).is_expired(self.policy, self.clock()):
                    logger.info("practice resumed user_id=%s week_id=%s session_id=%s", user_id, week_id, running.id)
                    return StartedPractice(session=running, questions=self._snapshot(running), resumed=True)
                try:
                    self._claim(running)
                    closed = self._close(user_id, running, self._attempt(running))
                except SessionAlreadyClosed:
                    # closed by a concurrent request
                    pass

            session = PracticeSession(
                id=str(uuid4()),
                user_id=user_id,
                week_id=week_id,
                status=PracticeStatus.RUNNING,
                question_ids=[int(q.id) for q in questions],
                time_limit_seconds=self.policy.time_limit_seconds,
                started_at=self.clock(),
                answers={},
                xp_awarded=0,
                is_mastered=False,
            )
            self.db.add(session)
            try:
                self.db.commit()
            except IntegrityError:
                # A concurrent start won the single running slot; resume it.
                self.db.rollback()
                running = self._running(user_id, week_id)
                if running is None:
                    raise
                return StartedPractice(session=running, questions=self._snapshot(running), resumed=True, closed=closed)
            logger.info("practice started user_id=%s week_id=%s session_id=%s questions=%s", user_id, week_id, session.id, len(questions))
            return StartedPractice(session=session, questions=questions, resumed=False, closed=closed)

    def answer(self, user_id: int, week_id: int, question_id: int, answer: Any) -> AnswerOutcome:
        """Grade one answer on the running session. The first answer per question counts."""
        session = self._open_session(user_id, week_id)
        self._claim(session)
        try:
            attempt = self._attempt(session)
            if attempt.is_expired(self.policy, self.clock()):
                outcome = self._close(user_id, session, attempt)
                return AnswerOutcome(
                    question_id=question_id,
                    is_correct=False,
                    correct_answers=outcome.result.correct_answers,
                    answered_count=len(attempt.answers),
                    total_questions=attempt.total_questions,
                    closed=outcome,
                )
            if question_id not in attempt.question_ids:
                raise InvalidSubmission(f"Question {question_id} is not part of this session")
            question = self.db.get(PracticeQuestion, question_id)
            if question is None:
                raise InvalidSubmission(f"Question {question_id} no longer exists")
            is_correct = attempt.record_answer(question_id, parse_question(question.type, question.content), answer)
            session.answers = dict(attempt.answers)
            self.db.commit()
        except ProgressionError:
            self.db.rollback()
            raise
        return AnswerOutcome(
            question_id=question_id,
            is_correct=is_correct,
            correct_answers=attempt.graded_correct,
            answered_count=len(attempt.answers),
            total_questions=attempt.total_questions,
        )

    def complete(
        self,
        user_id: int,
        week_id: int,
        correct_answers: Optional[int] = None,
        time_spent_seconds: Optional[float] = None,
    ) -> PracticeOutcome:
        """
        Finalize the running session. Exactly one caller can close a session;
        any other gets SessionAlreadyClosed.
        """
        with log_request(logger, f"practice.complete user_id={user_id} week_id={week_id}"):
            session = self._open_session(user_id, week_id)
            self._claim(session)
            try:
                return self._close(user_id, session, self._attempt(session), correct_answers, time_spent_seconds)
            except ProgressionError:
                self.db.rollback()
                raise

    def status(self, user_id: int, week_id: int) -> PracticeState:
        self._week(week_id)
        _, view = LessonService(self.db, clock=self.clock).week(user_id, week_id)
        summary = self._summary(user_id, week_id)
        running = self._running(user_id, week_id)
        active = running is not None and not self._attempt(running).is_expired(self.policy, self.clock())
        return PracticeState(
            week_id=week_id,
            is_unlocked=view.is_complete,
            is_mastered=bool(summary and summary.is_mastered),
            stars_earned=int(summary.stars_earned) if summary else 0,
            lessons_completed=view.lessons_completed,
            total_lessons=len(view.lessons),
            has_active_session=active,
            attempts_count=int(summary.attempts_count) if summary else 0,
        )

    def history(self, user_id: int, week_id: int) -> List[PracticeSession]:
        """Closed attempts, newest first."""
        self._week(week_id)
        return (
            self.db.query(PracticeSession)
            .filter(
                PracticeSession.user_id == user_id,
                PracticeSession.week_id == week_id,
                PracticeSession.status.in_([PracticeStatus.COMPLETED, PracticeStatus.TIMED_OUT]),
            )
            .order_by(PracticeSession.ended_at.desc(), PracticeSession.started_at.desc())
            .all()
        )
