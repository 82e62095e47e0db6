import unittest

from demo import demo_worksheet
from models import Worksheet
from navigation import (
    ANSWERING,
    FINISHED,
    FinishNotAllowed,
    NoWorksheetLoaded,
    QuizController,
    early_finish_threshold,
)
from session_store import SessionStore


class QuizControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SessionStore({})
        self.store.save_worksheet(demo_worksheet())
        self.quiz = QuizController(self.store)

    def _answer_and_advance(self, count: int) -> None:
        for _ in range(count):
            self.quiz.submit_answer("x")
            self.quiz.advance()

    def test_threshold_is_half_rounded_up(self) -> None:
        self.assertEqual(early_finish_threshold(10), 5)
        self.assertEqual(early_finish_threshold(7), 4)
        self.assertEqual(early_finish_threshold(1), 1)

    def test_submit_does_not_advance(self) -> None:
        self.quiz.submit_answer("b")
        self.assertEqual(self.quiz.index, 0)
        self.assertTrue(self.quiz.current_question().is_correct)

    def test_early_finish_unlocks_exactly_at_half(self) -> None:
        self._answer_and_advance(4)
        self.assertEqual(self.store.answered_questions_count(), 4)
        self.assertFalse(self.quiz.can_finish_early())
        with self.assertRaises(FinishNotAllowed):
            self.quiz.finish_early()

        self._answer_and_advance(1)
        self.assertEqual(self.store.answered_questions_count(), 5)
        self.assertTrue(self.quiz.can_finish_early())
        self.assertEqual(self.quiz.finish_early(), FINISHED)
        self.assertTrue(self.store.is_completed())
        self.assertIsNone(self.quiz.current_question())

    def test_advancing_past_last_question_finishes(self) -> None:
        for expected_index in range(9):
            self.assertEqual(self.quiz.index, expected_index)
            self.assertEqual(self.quiz.advance(), ANSWERING)
        self.assertEqual(self.quiz.progress(), (10, 10))
        self.assertEqual(self.quiz.advance(), FINISHED)
        self.assertEqual(self.quiz.state, FINISHED)
        self.assertTrue(self.store.is_completed())

    def test_pointer_crosses_section_boundary(self) -> None:
        for _ in range(5):
            self.quiz.advance()
        self.assertEqual(self.quiz.current_question().id, "q6")

    def test_controller_resumes_completed_session(self) -> None:
        self.store.mark_completed(True)
        self.assertEqual(QuizController(self.store).state, FINISHED)

    def test_no_worksheet_raises(self) -> None:
        with self.assertRaises(NoWorksheetLoaded):
            QuizController(SessionStore({}))

    def test_empty_worksheet_raises(self) -> None:
        store = SessionStore({})
        store.save_worksheet(Worksheet(id="w", title="Empty"))
        with self.assertRaises(NoWorksheetLoaded):
            QuizController(store)


if __name__ == "__main__":
    unittest.main()
