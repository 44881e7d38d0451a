"""
Weekly practice session lifecycle.

NotStarted -> Running -> (Completed | TimedOut). Both end states are terminal;
persistence (and the guarantee that only one caller finalizes a session) is
handled by the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from progression.errors import InvalidSubmission, SessionAlreadyClosed
from progression.questions import Question
from progression.scoring import StarPolicy, compute_stars, effective_time_spent, is_expired


class PracticeStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (PracticeStatus.COMPLETED, PracticeStatus.TIMED_OUT)


@dataclass
class PracticeResult:
    stars_earned: int
    correct_answers: int
    total_questions: int
    time_spent_seconds: int
    completed_within_time: bool
    is_mastered: bool
    status: PracticeStatus = PracticeStatus.COMPLETED


@dataclass
class PracticeAttempt:
    """In-memory view of one attempt, rebuilt from its persisted row."""

    question_ids: List[int]
    started_at: datetime
    time_limit_seconds: int
    status: PracticeStatus = PracticeStatus.RUNNING
    answers: Dict[str, bool] = field(default_factory=dict)

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def graded_correct(self) -> int:
        return sum(1 for ok in self.answers.values() if ok)

    def elapsed_seconds(self, now: datetime) -> float:
        return (now - self.started_at).total_seconds()

    def is_expired(self, policy: StarPolicy, now: datetime) -> bool:
        return is_expired(replace(policy, time_limit_seconds=self.time_limit_seconds), self.elapsed_seconds(now))

    def ensure_running(self) -> None:
        if self.status != PracticeStatus.RUNNING:
            raise SessionAlreadyClosed("Practice session is already closed")

    def record_answer(self, question_id: int, question: Question, answer: Any) -> bool:
        """Grade an answer. The first answer to a question is the one that counts."""
        self.ensure_running()
        if question_id not in self.question_ids:
            raise InvalidSubmission(f"Question {question_id} is not part of this session")
        key = str(question_id)
        if key in self.answers:
            return self.answers[key]
        correct = question.evaluate(answer)
        self.answers[key] = correct
        return correct

    def finalize(
        self,
        policy: StarPolicy,
        now: datetime,
        client_correct: Optional[int] = None,
        client_time_spent: Optional[float] = None,
    ) -> PracticeResult:
        """
        Score the attempt. Graded answers recorded on the server win over the
        client's count; the timer is the later of the client and server clocks.
        """
        self.ensure_running()
        total = self.total_questions
        if client_correct is not None and not 0 <= client_correct <= total:
            raise InvalidSubmission(
                f"correctAnswers must be between 0 and {total}",
                details={"correctAnswers": client_correct, "totalQuestions": total},
            )

        if self.answers:
            correct = self.graded_correct
        elif client_correct is not None:
            correct = client_correct
        else:
            correct = 0

        policy = replace(policy, time_limit_seconds=self.time_limit_seconds)
        elapsed = self.elapsed_seconds(now)
        time_spent = effective_time_spent(client_time_spent, elapsed)
        within_time = time_spent <= self.time_limit_seconds
        stars = compute_stars(policy, correct, total, time_spent)
        self.status = PracticeStatus.COMPLETED if within_time else PracticeStatus.TIMED_OUT
        return PracticeResult(
            stars_earned=stars,
            correct_answers=correct,
            total_questions=total,
            time_spent_seconds=time_spent,
            completed_within_time=within_time,
            is_mastered=stars == 3,
            status=self.status,
        )
