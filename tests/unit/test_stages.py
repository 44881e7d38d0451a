"""Lesson and stage availability projection."""
import pytest

from progression.stages import (
    LessonRef,
    NodeStatus,
    QuestionResult,
    StageStateMachine,
    StageType,
    UnitRef,
    WeekRef,
)


def lesson(lesson_id, week_id, order, base):
    """Units base+0 (estude), base+1 (medite), base+2 (responda question)."""
    return LessonRef(
        lesson_id=lesson_id,
        week_id=week_id,
        order_index=order,
        units=(
            UnitRef(base, StageType.ESTUDE, 1),
            UnitRef(base + 1, StageType.MEDITE, 1),
            UnitRef(base + 2, StageType.RESPONDA, 1, is_question=True),
        ),
    )


@pytest.fixture
def machine():
    return StageStateMachine(
        [
            WeekRef(1, (lesson(10, 1, 0, 100), lesson(11, 1, 1, 110))),
            WeekRef(2, ()),
            WeekRef(3, (lesson(30, 3, 0, 300),)),
        ]
    )


@pytest.mark.unit
class TestProjection:
    def test_first_lesson_unlocked_rest_locked(self, machine):
        weeks = machine.project({})
        first, second = weeks[0].lessons
        assert first.status == NodeStatus.CURRENT
        assert [s.status for s in first.stages] == [NodeStatus.CURRENT, NodeStatus.LOCKED, NodeStatus.LOCKED]
        assert second.status == NodeStatus.LOCKED
        assert weeks[2].lessons[0].status == NodeStatus.LOCKED

    def test_stage_advances_with_completed_units(self, machine):
        view = machine.lesson(10, {100: None})
        assert [s.status for s in view.stages] == [NodeStatus.COMPLETED, NodeStatus.CURRENT, NodeStatus.LOCKED]

    def test_completed_lesson_unlocks_next(self, machine):
        weeks = machine.project({100: None, 101: None, 102: True})
        assert weeks[0].lessons[0].status == NodeStatus.COMPLETED
        assert weeks[0].lessons[1].status == NodeStatus.CURRENT
        assert weeks[0].is_complete is False

    def test_next_week_skips_empty_week(self, machine):
        results = {u: True for u in (100, 101, 102, 110, 111, 112)}
        weeks = machine.project(results)
        assert weeks[0].is_complete is True
        assert weeks[1].is_complete is False
        assert weeks[2].lessons[0].status == NodeStatus.CURRENT

    def test_question_results(self, machine):
        view = machine.lesson(10, {100: None, 101: None, 102: False})
        assert view.stage(StageType.RESPONDA).question_results == [QuestionResult.INCORRECT]
        assert view.is_perfect is False

    def test_projection_is_pure(self, machine):
        results = {100: None}
        first = machine.project(results)
        second = machine.project(results)
        assert [l.status for w in first for l in w.lessons] == [l.status for w in second for l in w.lessons]
        assert results == {100: None}

    def test_mastered_weeks_flagged(self, machine):
        weeks = machine.project({}, mastered_week_ids={1})
        assert weeks[0].is_mastered is True
        assert weeks[0].lessons[0].is_mastered is True
        assert weeks[2].is_mastered is False


@pytest.mark.unit
class TestUnitAvailability:
    def test_only_current_stage_units(self, machine):
        assert machine.unit_is_available(100, {}) is True
        assert machine.unit_is_available(101, {}) is False
        assert machine.unit_is_available(110, {}) is False

    def test_unknown_unit(self, machine):
        assert machine.unit_is_available(999, {}) is False

    def test_missing_lesson_raises(self, machine):
        with pytest.raises(KeyError):
            machine.lesson(404, {})
