"""
Star rating and timer validation for weekly practice.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StarPolicy:
    """
    Scoring constants. The two/one star minimums are expressed for a full
    `question_count` quiz and scaled proportionally for shorter snapshots.
    """

    time_limit_seconds: int = 120
    question_count: int = 10
    two_star_min_correct: int = 8
    one_star_min_correct: int = 5
    time_tolerance_seconds: int = 5
    xp_per_star: int = 10
    mastery_bonus_xp: int = 50

    def min_correct(self, threshold: int, total_questions: int) -> int:
        if total_questions <= 0 or self.question_count <= 0:
            return threshold
        if total_questions == self.question_count:
            return threshold
        return max(1, math.ceil(threshold * total_questions / self.question_count))


def compute_stars(policy: StarPolicy, correct_answers: int, total_questions: int, time_spent_seconds: float) -> int:
    """
    3 stars: every answer correct within the time limit.
    2 stars: at least the two-star minimum.
    1 star: at least the one-star minimum.
    """
    if total_questions <= 0:
        return 0
    correct = max(0, min(correct_answers, total_questions))
    if correct == total_questions and time_spent_seconds <= policy.time_limit_seconds:
        return 3
    if correct >= policy.min_correct(policy.two_star_min_correct, total_questions):
        return 2
    if correct >= policy.min_correct(policy.one_star_min_correct, total_questions):
        return 1
    return 0


def effective_time_spent(client_seconds: Optional[float], server_elapsed_seconds: float) -> int:
    """
    The client clock is advisory: a client may report more time than the server
    observed (network latency) but never less.
    """
    server = max(0.0, server_elapsed_seconds)
    client = max(0.0, float(client_seconds)) if client_seconds is not None else 0.0
    return int(math.ceil(max(client, server)))


def is_expired(policy: StarPolicy, elapsed_seconds: float) -> bool:
    return elapsed_seconds > policy.time_limit_seconds + policy.time_tolerance_seconds


def practice_xp(policy: StarPolicy, stars: int, previous_best_stars: int) -> int:
    """XP for an attempt: only stars above the previous best are paid."""
    return policy.xp_per_star * max(0, stars - max(0, previous_best_stars))
