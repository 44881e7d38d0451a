#!/usr/bin/env python3
"""
Load a demo season and study week: three lessons (estude / medite / responda)
and ten practice questions, plus the achievement catalog.

Run: python scripts/seed_study_data.py
     python scripts/seed_study_data.py --year 2026 --week 42 --title "Semana 42"
     python scripts/seed_study_data.py --reset

Idempotent per (week number, year): an existing week is left untouched.
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
for _p in (_project_root, _project_root / "src"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from api.config import SessionLocal, create_db, reset_db  # noqa: E402
from api.models.models import PracticeQuestion, Season, StudyLesson, StudyUnit, StudyWeek  # noqa: E402
from api.services.achievement_service import AchievementService  # noqa: E402
from progression.questions import parse_question  # noqa: E402

LESSONS = [
    {
        "title": "O amor de Deus",
        "units": [
            ("estude", "text", {"text": "Deus amou o mundo de tal maneira que deu o seu Filho unigenito."}),
            ("estude", "verse", {"reference": "Joao 3:16", "text": "Porque Deus amou o mundo de tal maneira..."}),
            ("medite", "reflection", {"prompt": "Como voce tem experimentado o amor de Deus esta semana?"}),
            ("responda", "multiple_choice", {"question": "Quem Deus deu por amor ao mundo?", "options": ["Moises", "Seu Filho", "Davi"], "correctIndex": 1}),
            ("responda", "true_false", {"statement": "Joao 3:16 fala sobre o amor de Deus.", "isTrue": True}),
        ],
    },
    {
        "title": "Fe e obras",
        "units": [
            ("estude", "text", {"text": "A fe sem obras e morta."}),
            ("medite", "reflection", {"prompt": "Que obra concreta sua fe pode produzir hoje?"}),
            ("responda", "fill_blank", {"sentence": "A fe sem ___ e morta.", "correctAnswer": "obras", "acceptedAnswers": ["as obras"]}),
        ],
    },
    {
        "title": "Oracao",
        "units": [
            ("estude", "verse", {"reference": "1 Tessalonicenses 5:17", "text": "Orai sem cessar."}),
            ("medite", "reflection", {"prompt": "Em que momento do dia voce pode separar tempo para orar?"}),
            ("responda", "true_false", {"statement": "Paulo ensina a orar somente aos domingos.", "isTrue": False}),
        ],
    },
]

PRACTICE = [
    ("multiple_choice", {"question": "Qual livro abre o Novo Testamento?", "options": ["Mateus", "Atos", "Romanos"], "correctIndex": 0}),
    ("true_false", {"statement": "Joao 3:16 esta no Antigo Testamento.", "isTrue": False}),
    ("fill_blank", {"sentence": "A fe sem ___ e morta.", "correctAnswer": "obras"}),
    ("multiple_choice", {"question": "Quantos discipulos Jesus escolheu?", "options": ["7", "10", "12"], "correctIndex": 2}),
    ("true_false", {"statement": "Paulo escreveu a carta aos Romanos.", "isTrue": True}),
    ("fill_blank", {"sentence": "Orai sem ___.", "correctAnswer": "cessar"}),
    ("multiple_choice", {"question": "Quem construiu a arca?", "options": ["Noe", "Abraao", "Jose"], "correctIndex": 0}),
    ("true_false", {"statement": "Davi derrotou Golias.", "isTrue": True}),
    ("fill_blank", {"sentence": "No principio era o ___.", "correctAnswer": "Verbo", "acceptedAnswers": ["verbo"]}),
    ("multiple_choice", {"question": "Onde Jesus nasceu?", "options": ["Nazare", "Belem", "Jerusalem"], "correctIndex": 1}),
]


def seed(year: int, week_number: int, title: str, reset: bool = False) -> None:
    if reset:
        reset_db()
    else:
        create_db()
    db = SessionLocal()
    try:
        AchievementService(db).seed_catalog()

        existing = db.query(StudyWeek).filter(StudyWeek.year == year, StudyWeek.week_number == week_number).first()
        if existing is not None:
            print(f"Week {year}-W{week_number:02d} already exists (id={existing.id}). Skipping.")
            return

        season = db.query(Season).filter(Season.title == f"Temporada {year}").first()
        if season is None:
            season = Season(
                title=f"Temporada {year}",
                status="published",
                starts_at=datetime(year, 1, 1),
                ends_at=datetime(year, 12, 31, 23, 59, 59),
            )
            db.add(season)
            db.flush()

        week = StudyWeek(week_number=week_number, year=year, title=title, season_id=season.id)
        db.add(week)
        db.flush()

        for lesson_index, entry in enumerate(LESSONS):
            lesson = StudyLesson(week_id=week.id, order_index=lesson_index, title=entry["title"], xp_reward=10)
            db.add(lesson)
            db.flush()
            positions: dict[str, int] = {}
            for stage, unit_type, content in entry["units"]:
                if unit_type in ("multiple_choice", "true_false", "fill_blank"):
                    parse_question(unit_type, content)  # reject malformed content early
                positions[stage] = positions.get(stage, 0) + 1
                db.add(
                    StudyUnit(
                        lesson_id=lesson.id,
                        stage=stage,
                        order_index=positions[stage],
                        type=unit_type,
                        content=content,
                        xp_value=2,
                    )
                )

        for order_index, (question_type, content) in enumerate(PRACTICE):
            parse_question(question_type, content)
            db.add(PracticeQuestion(week_id=week.id, type=question_type, content=content, order_index=order_index))

        db.commit()
        print(f"✓ Seeded week {year}-W{week_number:02d} (id={week.id}) with {len(LESSONS)} lessons and {len(PRACTICE)} practice questions")
    finally:
        db.close()


def main() -> int:
    today = datetime.utcnow().date()
    iso_year, iso_week, _ = today.isocalendar()
    parser = argparse.ArgumentParser(description="Seed a demo DeoGlory study week.")
    parser.add_argument("--year", type=int, default=iso_year, help="Year of the week (default: current ISO year)")
    parser.add_argument("--week", type=int, default=iso_week, help="Week number (default: current ISO week)")
    parser.add_argument("--title", default=None, help="Week title")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    seed(args.year, args.week, args.title or f"Semana {args.week}", reset=args.reset)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
