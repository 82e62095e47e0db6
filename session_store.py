from __future__ import annotations

import logging
from typing import Any, List, MutableMapping, Optional

from models import Answer, Question, StudentInfo, Worksheet

LOGGER = logging.getLogger("quizwiz")

WORKSHEET_KEY = "quiz_wizard_worksheet"
CURRENT_QUESTION_KEY = "quiz_wizard_current_question"
STUDENT_INFO_KEY = "quiz_wizard_student_info"
COMPLETED_KEY = "quiz_wizard_completed"
INGEST_GENERATION_KEY = "quiz_wizard_ingest_generation"

SESSION_KEYS = (WORKSHEET_KEY, CURRENT_QUESTION_KEY, STUDENT_INFO_KEY, COMPLETED_KEY)


class SessionStore:
    """Worksheet, progress and student state for one browser session.

    Wraps any mutable mapping: `st.session_state` in the app, a plain dict in
    tests. Nothing here touches Streamlit directly.
    """

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None):
        self._state: MutableMapping[str, Any] = state if state is not None else {}

    # ------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------
    def save_worksheet(self, worksheet: Worksheet) -> None:
        self._state[WORKSHEET_KEY] = worksheet

    def get_worksheet(self) -> Optional[Worksheet]:
        return self._state.get(WORKSHEET_KEY)

    def save_current_index(self, index: int) -> None:
        self._state[CURRENT_QUESTION_KEY] = max(0, int(index))

    def get_current_index(self) -> int:
        return int(self._state.get(CURRENT_QUESTION_KEY) or 0)

    def save_student_info(self, info: StudentInfo) -> None:
        self._state[STUDENT_INFO_KEY] = info

    def get_student_info(self) -> Optional[StudentInfo]:
        return self._state.get(STUDENT_INFO_KEY)

    def mark_completed(self, completed: bool) -> None:
        self._state[COMPLETED_KEY] = bool(completed)

    def is_completed(self) -> bool:
        return self._state.get(COMPLETED_KEY) is True

    def clear(self, keep_student: bool = False) -> None:
        keys = [k for k in SESSION_KEYS if not (keep_student and k == STUDENT_INFO_KEY)]
        for k in keys:
            self._state.pop(k, None)
        LOGGER.info("Session cleared", extra={"ctx": {"component": "session", "keep_student": keep_student}})

    # ------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------
    def all_questions(self) -> List[Question]:
        ws = self.get_worksheet()
        if ws is None:
            return []
        return list(ws.iter_questions())

    def total_questions_count(self) -> int:
        return len(self.all_questions())

    def answered_questions_count(self) -> int:
        return sum(1 for q in self.all_questions() if q.is_answered)

    def correct_answers_count(self) -> int:
        return sum(1 for q in self.all_questions() if q.is_correct is True)

    def update_question_answer(self, question_id: str, answer: Answer, is_correct: bool) -> None:
        ws = self.get_worksheet()
        if ws is None:
            return
        question = ws.find_question(question_id)
        if question is None:
            LOGGER.warning("Answer for unknown question ignored", extra={"ctx": {"component": "session", "question": question_id}})
            return
        updated = ws.replace_question(question_id, question.with_answer(answer, is_correct))
        if updated is not None:
            self.save_worksheet(updated)

    # ------------------------------------------------------------
    # Ingestion generations (only the latest upload may write)
    # ------------------------------------------------------------
    def begin_ingestion(self) -> int:
        token = int(self._state.get(INGEST_GENERATION_KEY) or 0) + 1
        self._state[INGEST_GENERATION_KEY] = token
        return token

    def is_current_ingestion(self, token: int) -> bool:
        return int(self._state.get(INGEST_GENERATION_KEY) or 0) == int(token)
