import unittest

from demo import demo_worksheet
from models import StudentInfo
from session_store import CURRENT_QUESTION_KEY, WORKSHEET_KEY, SessionStore


class SessionStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.state = {}
        self.store = SessionStore(self.state)
        self.store.save_worksheet(demo_worksheet())

    def test_current_index_defaults_to_zero(self) -> None:
        self.assertEqual(SessionStore({}).get_current_index(), 0)
        self.store.save_current_index(3)
        self.assertEqual(self.store.get_current_index(), 3)

    def test_counts_on_fresh_worksheet(self) -> None:
        self.assertEqual(self.store.total_questions_count(), 10)
        self.assertEqual(self.store.answered_questions_count(), 0)
        self.assertEqual(self.store.correct_answers_count(), 0)

    def test_update_question_answer_is_idempotent(self) -> None:
        self.store.update_question_answer("q6", "Es", True)
        first = self.store.all_questions()
        self.store.update_question_answer("q6", "Es", True)
        self.assertEqual(self.store.all_questions(), first)
        self.assertEqual(self.store.answered_questions_count(), 1)
        self.assertEqual(self.store.correct_answers_count(), 1)

    def test_update_leaves_previous_worksheet_untouched(self) -> None:
        before = self.store.get_worksheet()
        self.store.update_question_answer("q1", "a", False)
        self.assertIsNone(before.find_question("q1").user_answer)
        self.assertEqual(self.store.get_worksheet().find_question("q1").user_answer, "a")

    def test_unknown_question_is_a_no_op(self) -> None:
        before = self.store.get_worksheet()
        self.store.update_question_answer("missing", "x", True)
        self.assertIs(self.store.get_worksheet(), before)

    def test_update_without_worksheet_is_a_no_op(self) -> None:
        store = SessionStore({})
        store.update_question_answer("q1", "b", True)
        self.assertIsNone(store.get_worksheet())
        self.assertEqual(store.all_questions(), [])

    def test_clear_removes_everything(self) -> None:
        self.store.save_student_info(StudentInfo("Ana", "10/17/2026 at 02:15 PM"))
        self.store.save_current_index(4)
        self.store.mark_completed(True)
        self.store.clear()
        self.assertNotIn(WORKSHEET_KEY, self.state)
        self.assertNotIn(CURRENT_QUESTION_KEY, self.state)
        self.assertIsNone(self.store.get_student_info())
        self.assertFalse(self.store.is_completed())

    def test_clear_can_keep_student(self) -> None:
        info = StudentInfo("Ana", "10/17/2026 at 02:15 PM")
        self.store.save_student_info(info)
        self.store.clear(keep_student=True)
        self.assertIsNone(self.store.get_worksheet())
        self.assertEqual(self.store.get_student_info(), info)

    def test_only_latest_ingestion_is_current(self) -> None:
        first = self.store.begin_ingestion()
        second = self.store.begin_ingestion()
        self.assertFalse(self.store.is_current_ingestion(first))
        self.assertTrue(self.store.is_current_ingestion(second))


if __name__ == "__main__":
    unittest.main()
