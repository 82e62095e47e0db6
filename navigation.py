from __future__ import annotations

import logging
import math
from typing import Any, Optional, Tuple

from grading import Evaluation, evaluate
from models import Question
from session_store import SessionStore

LOGGER = logging.getLogger("quizwiz")

ANSWERING = "answering"
FINISHED = "finished"


class NoWorksheetLoaded(Exception):
    pass


class FinishNotAllowed(Exception):
    pass


def early_finish_threshold(total: int) -> int:
    return math.ceil(int(total) / 2)


class QuizController:
    """One-pass walk over the flattened question list.

    The pointer only moves forward. Submitting grades and stores the answer
    but leaves the pointer where it is; `advance` moves on, and moving past
    the last question finishes the worksheet.
    """

    def __init__(self, store: SessionStore):
        worksheet = store.get_worksheet()
        if worksheet is None:
            raise NoWorksheetLoaded("No worksheet found. Please upload one first.")
        if not store.all_questions():
            raise NoWorksheetLoaded("This worksheet has no questions.")
        self.store = store
        self._finished = store.is_completed()

    @property
    def state(self) -> str:
        return FINISHED if self._finished else ANSWERING

    @property
    def index(self) -> int:
        total = self.store.total_questions_count()
        return min(self.store.get_current_index(), max(total - 1, 0))

    def current_question(self) -> Optional[Question]:
        if self._finished:
            return None
        questions = self.store.all_questions()
        return questions[self.index]

    def progress(self) -> Tuple[int, int]:
        return self.index + 1, self.store.total_questions_count()

    def submit_answer(self, raw_answer: Any) -> Evaluation:
        question = self.current_question()
        if question is None:
            raise FinishNotAllowed("The worksheet is already finished.")
        result = evaluate(question, raw_answer)
        self.store.update_question_answer(question.id, result.normalized_answer, result.is_correct)
        LOGGER.info(
            "Answer submitted",
            extra={"ctx": {"component": "quiz", "question": question.id, "type": question.type, "correct": result.is_correct}},
        )
        return result

    def advance(self) -> str:
        if self._finished:
            return FINISHED
        total = self.store.total_questions_count()
        idx = self.index
        if idx < total - 1:
            self.store.save_current_index(idx + 1)
            return ANSWERING
        self._finish()
        return FINISHED

    def can_finish_early(self) -> bool:
        total = self.store.total_questions_count()
        return self.store.answered_questions_count() >= early_finish_threshold(total)

    def finish_early(self) -> str:
        if not self._finished and not self.can_finish_early():
            answered = self.store.answered_questions_count()
            needed = early_finish_threshold(self.store.total_questions_count())
            raise FinishNotAllowed(f"Answer at least {needed} questions before finishing ({answered} so far).")
        self._finish()
        return FINISHED

    def _finish(self) -> None:
        self._finished = True
        self.store.mark_completed(True)
        LOGGER.info(
            "Worksheet finished",
            extra={"ctx": {
                "component": "quiz",
                "answered": self.store.answered_questions_count(),
                "total": self.store.total_questions_count(),
            }},
        )
