"""
Lesson and stage availability as a pure projection.

Nothing here is stored: statuses are recomputed from the study path (weeks ->
lessons -> stages -> units) and the user's completed units every time they are
read, so they cannot drift from the underlying progress rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set


class StageType(str, Enum):
    ESTUDE = "estude"
    MEDITE = "medite"
    RESPONDA = "responda"


STAGE_ORDER = (StageType.ESTUDE, StageType.MEDITE, StageType.RESPONDA)


class NodeStatus(str, Enum):
    LOCKED = "locked"
    CURRENT = "current"
    COMPLETED = "completed"


class QuestionResult(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"


@dataclass(frozen=True)
class UnitRef:
    unit_id: int
    stage: StageType
    order_index: int
    is_question: bool = False


@dataclass(frozen=True)
class LessonRef:
    lesson_id: int
    week_id: int
    order_index: int
    units: tuple = ()


@dataclass(frozen=True)
class WeekRef:
    week_id: int
    lessons: tuple = ()


@dataclass
class StageView:
    type: StageType
    status: NodeStatus
    completed_units: int
    total_units: int
    unit_ids: List[int] = field(default_factory=list)
    question_results: List[QuestionResult] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.completed_units == self.total_units


@dataclass
class LessonView:
    lesson_id: int
    week_id: int
    order_index: int
    status: NodeStatus
    stages: List[StageView]
    is_mastered: bool = False

    def stage(self, stage_type: StageType) -> StageView:
        for s in self.stages:
            if s.type == stage_type:
                return s
        raise KeyError(stage_type)

    @property
    def is_perfect(self) -> bool:
        """Every question answered correctly (lessons without questions count as perfect)."""
        results = self.stage(StageType.RESPONDA).question_results
        return all(r == QuestionResult.CORRECT for r in results)


@dataclass
class WeekView:
    week_id: int
    lessons: List[LessonView]
    is_mastered: bool = False

    @property
    def lessons_completed(self) -> int:
        return sum(1 for lesson in self.lessons if lesson.status == NodeStatus.COMPLETED)

    @property
    def is_complete(self) -> bool:
        return bool(self.lessons) and self.lessons_completed == len(self.lessons)


def _stage_views(lesson: LessonRef, results: Dict[int, Optional[bool]]) -> List[StageView]:
    views: List[StageView] = []
    for stage_type in STAGE_ORDER:
        units = sorted((u for u in lesson.units if u.stage == stage_type), key=lambda u: (u.order_index, u.unit_id))
        done = [u for u in units if u.unit_id in results]
        view = StageView(
            type=stage_type,
            status=NodeStatus.LOCKED,
            completed_units=len(done),
            total_units=len(units),
            unit_ids=[u.unit_id for u in units],
        )
        if stage_type == StageType.RESPONDA:
            for u in units:
                if not u.is_question:
                    continue
                if u.unit_id not in results:
                    view.question_results.append(QuestionResult.UNANSWERED)
                elif results[u.unit_id]:
                    view.question_results.append(QuestionResult.CORRECT)
                else:
                    view.question_results.append(QuestionResult.INCORRECT)
        views.append(view)
    return views


def project_lesson(lesson: LessonRef, unlocked: bool, results: Dict[int, Optional[bool]]) -> LessonView:
    stages = _stage_views(lesson, results)
    all_complete = all(s.is_complete for s in stages)
    has_units = any(s.total_units for s in stages)

    if all_complete and (has_units or unlocked):
        status = NodeStatus.COMPLETED
    elif unlocked:
        status = NodeStatus.CURRENT
    else:
        status = NodeStatus.LOCKED

    reached_current = False
    for s in stages:
        if s.is_complete and (has_units or unlocked):
            s.status = NodeStatus.COMPLETED
        elif unlocked and not reached_current:
            s.status = NodeStatus.CURRENT
            reached_current = True
        else:
            s.status = NodeStatus.LOCKED
    return LessonView(
        lesson_id=lesson.lesson_id,
        week_id=lesson.week_id,
        order_index=lesson.order_index,
        status=status,
        stages=stages,
    )


class StageStateMachine:
    """
    Derives availability for a whole study path.

    Rules:
    - the first lesson of the first week is always unlocked;
    - a lesson is unlocked when the previous lesson of its week is completed;
    - the first lesson of a later week is unlocked when the last lesson of the
      previous week that has lessons is completed;
    - inside an unlocked lesson the first incomplete stage is `current`.
    """

    def __init__(self, weeks: Iterable[WeekRef]):
        self.weeks = list(weeks)

    def project(
        self,
        results: Dict[int, Optional[bool]],
        mastered_week_ids: Optional[Set[int]] = None,
    ) -> List[WeekView]:
        """
        `results` maps completed unit ids to their correctness (None for
        units that are not questions).
        """
        mastered = mastered_week_ids or set()
        views: List[WeekView] = []
        previous_completed = True
        for week in self.weeks:
            lessons = sorted(week.lessons, key=lambda l: (l.order_index, l.lesson_id))
            lesson_views: List[LessonView] = []
            for lesson in lessons:
                view = project_lesson(lesson, previous_completed, results)
                view.is_mastered = week.week_id in mastered
                lesson_views.append(view)
                previous_completed = view.status == NodeStatus.COMPLETED
            views.append(WeekView(week_id=week.week_id, lessons=lesson_views, is_mastered=week.week_id in mastered))
        return views

    def week(self, week_id: int, results: Dict[int, Optional[bool]], mastered_week_ids: Optional[Set[int]] = None) -> WeekView:
        for view in self.project(results, mastered_week_ids):
            if view.week_id == week_id:
                return view
        raise KeyError(week_id)

    def lesson(self, lesson_id: int, results: Dict[int, Optional[bool]], mastered_week_ids: Optional[Set[int]] = None) -> LessonView:
        for week in self.project(results, mastered_week_ids):
            for lesson in week.lessons:
                if lesson.lesson_id == lesson_id:
                    return lesson
        raise KeyError(lesson_id)

    def unit_is_available(self, unit_id: int, results: Dict[int, Optional[bool]]) -> bool:
        """A unit may be completed when its stage is `current`."""
        for week in self.project(results):
            for lesson in week.lessons:
                for stage in lesson.stages:
                    if unit_id in stage.unit_ids:
                        return stage.status == NodeStatus.CURRENT
        return False
