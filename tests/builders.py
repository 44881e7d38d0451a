"""
Builders for study data used across integration tests.
"""
from datetime import datetime, timedelta


class FakeClock:
    """Callable clock for services; advance it to simulate time passing."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def build_week(db, *, week_number: int = 3, year: int = 2026, lessons: int = 2, practice_questions: int = 10, season_id=None):
    """
    A week whose lessons each hold one `estude` text, one `medite` reflection
    and one `responda` multiple choice question (correct option: 1).
    Practice questions are true/false statements that are all true.
    """
    from api.models.models import PracticeQuestion, StudyLesson, StudyUnit, StudyWeek

    week = StudyWeek(week_number=week_number, year=year, title=f"Semana {week_number}", season_id=season_id)
    db.add(week)
    db.flush()
    for i in range(lessons):
        lesson = StudyLesson(week_id=week.id, order_index=i, title=f"Licao {i + 1}", xp_reward=10)
        db.add(lesson)
        db.flush()
        db.add_all(
            [
                StudyUnit(lesson_id=lesson.id, stage="estude", order_index=1, type="text", content={"text": "Leia"}, xp_value=2),
                StudyUnit(lesson_id=lesson.id, stage="medite", order_index=1, type="reflection", content={"prompt": "Medite"}, xp_value=2),
                StudyUnit(
                    lesson_id=lesson.id,
                    stage="responda",
                    order_index=1,
                    type="multiple_choice",
                    content={"question": "Qual?", "options": ["a", "b", "c"], "correctIndex": 1},
                    xp_value=2,
                ),
            ]
        )
    for i in range(practice_questions):
        db.add(PracticeQuestion(week_id=week.id, type="true_false", content={"statement": f"Afirmacao {i}", "isTrue": True}, order_index=i))
    db.commit()
    db.refresh(week)
    return week


def ordered_units(lesson):
    rank = {"estude": 0, "medite": 1, "responda": 2}
    return sorted(lesson.units, key=lambda u: (rank[u.stage], u.order_index, u.id))


def complete_lesson(service, user_id: int, lesson, correct: bool = True):
    """Complete every unit of `lesson` through a LessonService; returns the last completion."""
    completion = None
    for unit in ordered_units(lesson):
        answer = (1 if correct else 0) if unit.type == "multiple_choice" else None
        completion = service.complete_unit(user_id, unit.id, answer)
    return completion


def complete_week(service, user_id: int, week, correct: bool = True):
    for lesson in sorted(week.lessons, key=lambda l: l.order_index):
        complete_lesson(service, user_id, lesson, correct)
