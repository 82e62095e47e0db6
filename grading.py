"""Answer evaluation for the four question types.

Choice questions (multiple-choice, matching) are graded on the option id,
exactly and case-sensitively. Free-text questions (text, fill-blank) are
trimmed and compared case-insensitively against every accepted answer.
There is no partial credit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from models import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    Question,
    TextQuestion,
)


@dataclass(frozen=True)
class Evaluation:
    normalized_answer: str
    is_correct: bool


def _normalize_text(raw_answer: Any) -> str:
    return str(raw_answer or "").strip()


def _grade_choice(question, raw_answer: Any) -> Evaluation:
    answer = "" if raw_answer is None else str(raw_answer)
    return Evaluation(normalized_answer=answer, is_correct=answer in question.accepted_answers)


def _grade_free_text(question, raw_answer: Any) -> Evaluation:
    answer = _normalize_text(raw_answer)
    folded = answer.lower()
    correct = any(folded == str(a).lower() for a in question.accepted_answers)
    return Evaluation(normalized_answer=answer, is_correct=correct)


_GRADERS: Dict[type, Callable[[Question, Any], Evaluation]] = {
    MultipleChoiceQuestion: _grade_choice,
    MatchingQuestion: _grade_choice,
    TextQuestion: _grade_free_text,
    FillBlankQuestion: _grade_free_text,
}


def evaluate(question: Question, raw_answer: Any) -> Evaluation:
    """Grade `raw_answer` against `question.correct_answer`. Pure; persists nothing."""
    grader = _GRADERS.get(type(question))
    if grader is None:
        raise TypeError(f"No grader for question type {type(question).__name__}")
    return grader(question, raw_answer)


def format_correct_answer(question: Question) -> str:
    return ", ".join(question.accepted_answers)


def option_text(question: Question, option_id: Optional[str]) -> str:
    if not option_id:
        return ""
    finder = getattr(question, "option_by_id", None)
    if finder is None:
        return ""
    opt = finder(option_id)
    return opt.text if opt else ""
