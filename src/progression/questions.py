"""
Question variants used by the `responda` stage and by weekly practice.

Each variant parses its stored JSON content and answers the same contract:
`evaluate(answer) -> bool`. `public_content()` is what a client may see
before answering (answer keys stripped).
"""

from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from progression.errors import InvalidSubmission


class Question(ABC):
    type: str

    @abstractmethod
    def evaluate(self, answer: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def public_content(self) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def correct_answer(self) -> Any:
        raise NotImplementedError


@dataclass
class MultipleChoiceQuestion(Question):
    question: str
    options: List[str]
    correct_index: int
    type: str = field(default="multiple_choice", init=False)

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "MultipleChoiceQuestion":
        options = content.get("options")
        correct = content.get("correctIndex")
        if not isinstance(options, list) or not options:
            raise InvalidSubmission("multiple_choice question needs options")
        if not isinstance(correct, int) or not 0 <= correct < len(options):
            raise InvalidSubmission("multiple_choice question has an invalid correctIndex")
        return cls(question=str(content.get("question") or ""), options=[str(o) for o in options], correct_index=correct)

    def evaluate(self, answer: Any) -> bool:
        # bool is an int subclass; True must not count as index 1
        if isinstance(answer, bool):
            return False
        if isinstance(answer, str) and answer.strip().lstrip("-").isdigit():
            answer = int(answer.strip())
        return isinstance(answer, int) and answer == self.correct_index

    def public_content(self) -> Dict[str, Any]:
        return {"question": self.question, "options": list(self.options)}

    def correct_answer(self) -> int:
        return self.correct_index


@dataclass
class TrueFalseQuestion(Question):
    statement: str
    is_true: bool
    type: str = field(default="true_false", init=False)

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "TrueFalseQuestion":
        is_true = content.get("isTrue")
        if not isinstance(is_true, bool):
            raise InvalidSubmission("true_false question needs a boolean isTrue")
        return cls(statement=str(content.get("statement") or content.get("question") or ""), is_true=is_true)

    def evaluate(self, answer: Any) -> bool:
        if isinstance(answer, str):
            lowered = answer.strip().lower()
            if lowered in ("true", "verdadeiro", "v"):
                answer = True
            elif lowered in ("false", "falso", "f"):
                answer = False
        return isinstance(answer, bool) and answer is self.is_true

    def public_content(self) -> Dict[str, Any]:
        return {"statement": self.statement}

    def correct_answer(self) -> bool:
        return self.is_true


def normalize_text(value: str) -> str:
    """Case, accent and whitespace insensitive form used by fill-in-the-blank."""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.casefold().split())


@dataclass
class FillBlankQuestion(Question):
    sentence: str
    answer: str
    accepted_answers: List[str] = field(default_factory=list)
    type: str = field(default="fill_blank", init=False)

    @classmethod
    def from_content(cls, content: Dict[str, Any]) -> "FillBlankQuestion":
        answer = content.get("correctAnswer")
        if not isinstance(answer, str) or not answer.strip():
            raise InvalidSubmission("fill_blank question needs a correctAnswer")
        accepted = [a for a in content.get("acceptedAnswers") or [] if isinstance(a, str)]
        sentence = content.get("sentence") or content.get("question") or ""
        return cls(sentence=str(sentence), answer=answer, accepted_answers=accepted)

    def evaluate(self, answer: Any) -> bool:
        if not isinstance(answer, str):
            return False
        given = normalize_text(answer)
        return bool(given) and any(given == normalize_text(a) for a in [self.answer, *self.accepted_answers])

    def public_content(self) -> Dict[str, Any]:
        return {"question": self.sentence}

    def correct_answer(self) -> str:
        return self.answer


QUESTION_TYPES: Dict[str, Type[Question]] = {
    "multiple_choice": MultipleChoiceQuestion,
    "true_false": TrueFalseQuestion,
    "fill_blank": FillBlankQuestion,
}


def parse_question(question_type: str, content: Optional[Dict[str, Any]]) -> Question:
    cls = QUESTION_TYPES.get((question_type or "").lower())
    if cls is None:
        raise InvalidSubmission(f"Unknown question type: {question_type}")
    return cls.from_content(content or {})  # type: ignore[attr-defined]


def is_question_type(unit_type: str) -> bool:
    return (unit_type or "").lower() in QUESTION_TYPES
