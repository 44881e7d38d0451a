"""
Achievement catalog and requirement evaluation.

Requirements are small JSON mappings of stat name -> minimum value, e.g.
`{"streak": 7}` or `{"lessons": 10}`. Evaluation is pure: it receives the
user's stats and already-unlocked codes and returns what should be unlocked
now. XP rewards feed back into the stats until nothing new qualifies, so the
result does not depend on catalog order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Set

from progression.levels import level_for_xp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    name: str
    category: str
    requirement: Dict[str, Any]
    xp_reward: int = 0
    description: str = ""
    icon: str = "award"
    is_secret: bool = False


@dataclass(frozen=True)
class ProgressStats:
    current_streak: int = 0
    longest_streak: int = 0
    lessons_completed: int = 0
    perfect_lessons: int = 0
    total_xp: int = 0
    level: int = 1
    mastered_weeks: int = 0
    practice_stars: int = 0
    night_study: int = 0

    def value(self, key: str) -> Optional[int]:
        return {
            "streak": self.current_streak,
            "days": self.current_streak,
            "longestStreak": self.longest_streak,
            "lessons": self.lessons_completed,
            "perfectLessons": self.perfect_lessons,
            "xp": self.total_xp,
            "level": self.level,
            "masteredWeeks": self.mastered_weeks,
            "practiceStars": self.practice_stars,
            "nightStudy": self.night_study,
        }.get(key)

    def with_xp(self, extra_xp: int) -> "ProgressStats":
        total = self.total_xp + extra_xp
        return replace(self, total_xp=total, level=max(self.level, level_for_xp(total)))


def requirement_met(requirement: Optional[Dict[str, Any]], stats: ProgressStats) -> bool:
    if not requirement:
        return False
    for key, minimum in requirement.items():
        actual = stats.value(key)
        if actual is None:
            logger.warning("achievement requirement has unknown stat key=%s", key)
            return False
        if isinstance(minimum, bool) or not isinstance(minimum, (int, float)):
            return False
        if actual < minimum:
            return False
    return True


@dataclass
class Evaluation:
    unlocked: List[AchievementDefinition] = field(default_factory=list)
    xp_awarded: int = 0
    stats: ProgressStats = field(default_factory=ProgressStats)


def evaluate(
    catalog: Iterable[AchievementDefinition],
    stats: ProgressStats,
    unlocked_codes: Set[str],
) -> Evaluation:
    """Unlock everything satisfied, re-checking after each round of XP rewards."""
    definitions = sorted(catalog, key=lambda d: d.code)
    already = set(unlocked_codes)
    result = Evaluation(stats=stats)
    while True:
        batch = [d for d in definitions if d.code not in already and requirement_met(d.requirement, result.stats)]
        if not batch:
            return result
        reward = sum(d.xp_reward for d in batch)
        result.unlocked.extend(batch)
        result.xp_awarded += reward
        already.update(d.code for d in batch)
        result.stats = result.stats.with_xp(reward)


def _ach(code: str, name: str, category: str, requirement: Dict[str, Any], xp: int, description: str, icon: str) -> AchievementDefinition:
    return AchievementDefinition(
        code=code,
        name=name,
        category=category,
        requirement=requirement,
        xp_reward=xp,
        description=description,
        icon=icon,
    )


def _lessons(n: int, name: str, xp: int, icon: str) -> AchievementDefinition:
    description = "Complete sua primeira lição" if n == 1 else f"Complete {n} lições"
    return _ach("first_lesson" if n == 1 else f"lessons_{n}", name, "lessons", {"lessons": n}, xp, description, icon)


def _streak(n: int, name: str, xp: int, icon: str = "flame") -> AchievementDefinition:
    return _ach(f"streak_{n}", name, "streak", {"streak": n}, xp, f"Mantenha uma sequência de {n} dias", icon)


def _xp(n: int, name: str, xp: int, icon: str) -> AchievementDefinition:
    return _ach(f"xp_{n}", name, "xp", {"xp": n}, xp, f"Alcance {n} XP", icon)


def _level(n: int, name: str, xp: int, icon: str = "award") -> AchievementDefinition:
    return _ach(f"level_{n}", name, "level", {"level": n}, xp, f"Alcance o nível {n}", icon)


DEFAULT_CATALOG: List[AchievementDefinition] = [
    _lessons(1, "Primeiro Passo", 50, "trophy"),
    _lessons(3, "Começando Bem", 40, "book"),
    _lessons(5, "Estudante Dedicado", 75, "book-open"),
    _lessons(10, "Discípulo Fiel", 150, "book-marked"),
    _lessons(15, "Estudioso", 200, "bookmark"),
    _lessons(25, "Mestre da Palavra", 300, "graduation-cap"),
    _lessons(50, "Erudito Bíblico", 500, "library"),
    _lessons(75, "Teólogo", 750, "scroll"),
    _lessons(100, "Centurião da Palavra", 1000, "shield"),
    _lessons(150, "Apóstolo do Estudo", 1500, "crown"),
    _lessons(200, "Doutor das Escrituras", 2000, "sparkles"),
    _lessons(365, "Um Ano de Estudos", 3650, "calendar"),
    _streak(3, "Constante", 30),
    _streak(5, "Comprometido", 50),
    _streak(7, "Dedicado", 100),
    _streak(14, "Perseverante", 200),
    _streak(21, "Formador de Hábito", 300),
    _streak(30, "Imbatível", 500),
    _streak(45, "Quarentena Espiritual", 700),
    _streak(60, "Lenda Viva", 1000, "crown"),
    _streak(90, "Trimestre de Fé", 1500, "crown"),
    _streak(120, "Fidelidade Inabalável", 2000, "crown"),
    _streak(150, "Semestre de Dedicação", 2500, "crown"),
    _streak(180, "Meio Ano Invicto", 3000, "crown"),
    _streak(270, "Três Quartos do Ano", 4000, "crown"),
    _streak(365, "Um Ano Perfeito", 5000, "crown"),
    _streak(500, "Guerreiro da Fé", 7500, "sword"),
    _xp(100, "Iniciante", 25, "zap"),
    _xp(250, "Em Crescimento", 35, "zap"),
    _xp(500, "Intermediário", 50, "zap"),
    _xp(1000, "Avançado", 100, "trending-up"),
    _xp(2500, "Experiente", 150, "trending-up"),
    _xp(5000, "Expert", 250, "star"),
    _xp(10000, "Mestre XP", 500, "star"),
    _xp(25000, "Grande Mestre", 1000, "crown"),
    _xp(50000, "Lendário", 2000, "crown"),
    _xp(100000, "Mítico", 5000, "sparkles"),
    _level(3, "Noviço", 50),
    _level(5, "Aprendiz", 100),
    _level(10, "Estudante", 200),
    _level(15, "Discípulo", 300),
    _level(20, "Pregador", 400),
    _level(25, "Mestre", 500, "crown"),
    _level(50, "Sábio", 1000, "crown"),
    _level(100, "Patriarca", 2500, "sparkles"),
    _ach("perfect_lesson", "Perfeito!", "special", {"perfectLessons": 1}, 25, "Complete uma lição sem erros", "star"),
    _ach("night_owl", "Coruja Noturna", "special", {"nightStudy": 1}, 30, "Estude após as 22h", "moon"),
    _ach("practice_master_1", "Semana Dourada", "special", {"masteredWeeks": 1}, 25, "Domine o desafio Pratique de uma semana", "trophy"),
    _ach("practice_master_5", "Colecionador de Estrelas", "special", {"masteredWeeks": 5}, 75, "Domine o desafio Pratique de 5 semanas", "stars"),
    _ach("practice_master_10", "Mestre do Pratique", "special", {"masteredWeeks": 10}, 150, "Domine o desafio Pratique de 10 semanas", "crown"),
]
