"""
Study path reads and unit completion.

Lesson and stage statuses are projected on every read by StageStateMachine
from the path (weeks -> lessons -> units) and the user's completed units.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession, selectinload

from api.config import settings
from api.models.models import StudyLesson, StudyUnit, StudyWeek, UserUnitProgress
from api.services.progress_store import ActivityDelta, ProgressStore, SOURCE_LESSON, SOURCE_UNIT
from api.utils.logger import configure_logging, log_request
from progression.errors import InvalidSubmission, NotFound, NotUnlocked
from progression.questions import is_question_type, parse_question
from progression.stages import (
    LessonRef,
    LessonView,
    NodeStatus,
    StageStateMachine,
    StageType,
    UnitRef,
    WeekRef,
    WeekView,
)

logger = configure_logging()


@dataclass
class UnitCompletion:
    unit_id: int
    already_completed: bool
    is_correct: Optional[bool]
    delta: ActivityDelta
    lesson: LessonView
    lesson_completed: bool = False
    perfect_lesson: bool = False


def _unit_ref(unit: StudyUnit) -> UnitRef:
    try:
        stage = StageType(unit.stage)
    except ValueError:
        stage = StageType.ESTUDE
        logger.warning("unit has unknown stage unit_id=%s stage=%s", unit.id, unit.stage)
    return UnitRef(
        unit_id=int(unit.id),
        stage=stage,
        order_index=int(unit.order_index or 0),
        is_question=is_question_type(unit.type),
    )


def has_questions(view: LessonView) -> bool:
    return bool(view.stage(StageType.RESPONDA).question_results)


def _lesson_xp(lesson: StudyLesson, view: LessonView) -> int:
    xp = int(lesson.xp_reward or 0)
    if has_questions(view) and view.is_perfect:
        xp += settings.PERFECT_LESSON_BONUS_XP
    return xp


class LessonService:
    def __init__(self, db: DBSession, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock
        self.store = ProgressStore(db, clock=clock)

    # Path

    def weeks(self) -> List[StudyWeek]:
        return (
            self.db.query(StudyWeek)
            .options(selectinload(StudyWeek.lessons).selectinload(StudyLesson.units))
            .order_by(StudyWeek.year.asc(), StudyWeek.week_number.asc(), StudyWeek.id.asc())
            .all()
        )

    def machine(self, weeks: Optional[List[StudyWeek]] = None) -> StageStateMachine:
        weeks = self.weeks() if weeks is None else weeks
        refs = []
        for week in weeks:
            lessons = tuple(
                LessonRef(
                    lesson_id=int(lesson.id),
                    week_id=int(week.id),
                    order_index=int(lesson.order_index or 0),
                    units=tuple(_unit_ref(u) for u in lesson.units),
                )
                for lesson in week.lessons
            )
            refs.append(WeekRef(week_id=int(week.id), lessons=lessons))
        return StageStateMachine(refs)

    def overview(self, user_id: int) -> List[Tuple[StudyWeek, WeekView]]:
        weeks = self.weeks()
        views = self.machine(weeks).project(self.store.completed_units(user_id), self.store.mastered_week_ids(user_id))
        return list(zip(weeks, views))

    def week(self, user_id: int, week_id: int) -> Tuple[StudyWeek, WeekView]:
        for week, view in self.overview(user_id):
            if week.id == week_id:
                return week, view
        raise NotFound(f"Week {week_id} not found")

    def lesson(self, user_id: int, lesson_id: int) -> Tuple[StudyLesson, LessonView, Dict[int, Optional[bool]]]:
        lesson = self.db.get(StudyLesson, lesson_id)
        if lesson is None:
            raise NotFound(f"Lesson {lesson_id} not found")
        results = self.store.completed_units(user_id)
        view = self.machine().lesson(lesson_id, results, self.store.mastered_week_ids(user_id))
        return lesson, view, results

    def lesson_counts(self, user_id: int) -> Tuple[int, int]:
        """(completed lessons, perfect lessons) across the whole path."""
        completed = perfect = 0
        for _, view in self.overview(user_id):
            for lesson in view.lessons:
                if lesson.status != NodeStatus.COMPLETED:
                    continue
                completed += 1
                if has_questions(lesson) and lesson.is_perfect:
                    perfect += 1
        return completed, perfect

    # Completion

    def complete_unit(self, user_id: int, unit_id: int, answer: Any = None) -> UnitCompletion:
        """
        Mark a unit done. Units of the current stage only; completing an
        already completed unit is a no-op. The lesson XP (and the perfect bonus)
        is paid when the lesson flips to completed.
        """
        with log_request(logger, f"unit.complete user_id={user_id} unit_id={unit_id}"):
            unit = self.db.get(StudyUnit, unit_id)
            if unit is None:
                raise NotFound(f"Unit {unit_id} not found")

            machine = self.machine()
            results = self.store.completed_units(user_id)
            if unit_id in results:
                return self._already_completed(user_id, unit, machine, results)
            if not machine.unit_is_available(unit_id, results):
                raise NotUnlocked("Complete the previous stages first", details={"unitId": unit_id})

            is_correct: Optional[bool] = None
            if is_question_type(unit.type):
                if answer is None:
                    raise InvalidSubmission("An answer is required for this unit", details={"unitId": unit_id})
                is_correct = parse_question(unit.type, unit.content).evaluate(answer)

            now = self.clock()
            self.db.add(
                UserUnitProgress(
                    user_id=user_id,
                    unit_id=unit_id,
                    answer_given=answer,
                    is_correct=is_correct,
                    completed_at=now,
                )
            )
            try:
                self.db.flush()
            except IntegrityError:
                # Completed by a concurrent request in the meantime.
                self.db.rollback()
                return self._already_completed(user_id, unit, machine, self.store.completed_units(user_id))

            delta = self.store.record_activity(user_id, unit.xp_value or 0, SOURCE_UNIT, str(unit_id), at=now)

            # The profile row is locked now; units finished by concurrent requests are visible.
            view = machine.lesson(int(unit.lesson_id), self.store.completed_units(user_id), self.store.mastered_week_ids(user_id))
            completion = UnitCompletion(unit_id=unit_id, already_completed=False, is_correct=is_correct, delta=delta, lesson=view)
            lesson_delta = self._pay_lesson_reward(user_id, unit.lesson, view, now)
            if lesson_delta is not None:
                completion.lesson_completed = True
                completion.perfect_lesson = has_questions(view) and view.is_perfect
                completion.delta = ActivityDelta(
                    xp_awarded=delta.xp_awarded + lesson_delta.xp_awarded,
                    total_xp=lesson_delta.total_xp,
                    level=lesson_delta.level,
                    leveled_up=delta.leveled_up or lesson_delta.leveled_up,
                    current_streak=lesson_delta.current_streak,
                    streak_increased=delta.streak_increased or lesson_delta.streak_increased,
                )
            self.db.commit()
            return completion

    def _pay_lesson_reward(self, user_id: int, lesson: StudyLesson, view: LessonView, now: datetime) -> Optional[ActivityDelta]:
        """
        Lesson XP (plus the perfect bonus) once per user and lesson, when the
        lesson is completed. The caller holds the profile row lock.
        """
        if view.status != NodeStatus.COMPLETED or self.store.has_reward(user_id, SOURCE_LESSON, str(lesson.id)):
            return None
        perfect = has_questions(view) and view.is_perfect
        lesson_xp = _lesson_xp(lesson, view)
        lesson_delta = self.store.record_activity(user_id, lesson_xp, SOURCE_LESSON, str(lesson.id), description=lesson.title, at=now)
        logger.info("lesson completed user_id=%s lesson_id=%s perfect=%s xp=%s", user_id, lesson.id, perfect, lesson_xp)
        return lesson_delta

    def _already_completed(self, user_id: int, unit: StudyUnit, machine: StageStateMachine, results) -> UnitCompletion:
        view = machine.lesson(int(unit.lesson_id), results, self.store.mastered_week_ids(user_id))
        lesson = unit.lesson
        lesson_delta = None
        if (
            view.status == NodeStatus.COMPLETED
            and _lesson_xp(lesson, view) > 0
            and not self.store.has_reward(user_id, SOURCE_LESSON, str(lesson.id))
        ):
            logger.warning("lesson reward missing, paying now user_id=%s lesson_id=%s", user_id, lesson.id)
            self.store.lock_profile(user_id)
            lesson_delta = self._pay_lesson_reward(user_id, lesson, view, self.clock())
            self.db.commit()

        profile = self.store.profile(user_id)
        return UnitCompletion(
            unit_id=int(unit.id),
            already_completed=True,
            is_correct=results.get(int(unit.id)),
            lesson_completed=lesson_delta is not None,
            perfect_lesson=lesson_delta is not None and has_questions(view) and view.is_perfect,
            delta=ActivityDelta(
                xp_awarded=lesson_delta.xp_awarded if lesson_delta else 0,
                total_xp=int(profile.total_xp),
                level=int(profile.current_level),
                leveled_up=False,
                current_streak=int(profile.current_streak),
                streak_increased=False,
            ),
            lesson=view,
        )
