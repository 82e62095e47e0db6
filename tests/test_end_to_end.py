import unittest

from ingestion import WorksheetIngestor, ingest_into_session
from models import StudentInfo
from navigation import FINISHED, QuizController
from report import build_report_lines, render_report_pdf, summarize
from session_store import SessionStore


def _fixture_response():
    matching = [
        {
            "type": "multiple-choice",
            "text": f"Phrase {n}",
            "options": [{"id": "a", "text": "Uno"}, {"id": "b", "text": "Dos"}, {"id": "c", "text": "Tres"}],
            "correctAnswer": "b",
        }
        for n in range(1, 6)
    ]
    blanks = [
        {"type": "fill-blank", "text": f"Blank {n}: _______ mi turno.", "correctAnswer": "Es"}
        for n in range(1, 6)
    ]
    return {
        "worksheet": {
            "title": "Spanish Game Night Worksheet!",
            "sections": [
                {"title": "Match", "instructions": "Pick the phrase.", "questions": matching},
                {"title": "Fill in the blanks", "instructions": "Type the word.", "questions": blanks},
            ],
        }
    }


class _Transport:
    def parse(self, data_url, mime_type):
        return _fixture_response()


class WorksheetFlowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = SessionStore({})
        self.store.save_student_info(StudentInfo("Ana", "10/17/2026 at 02:15 PM"))
        ingestor = WorksheetIngestor(image_transport=_Transport(), pdf_transport=_Transport())
        result = ingest_into_session(self.store, ingestor, b"\x89PNG fake", "sheet.png", "image/png")
        self.assertTrue(result.ok, msg=result.error)
        self.quiz = QuizController(self.store)

    def _go_to(self, index: int) -> None:
        while self.quiz.index < index:
            self.quiz.advance()

    def test_grading_through_the_session(self) -> None:
        self.assertTrue(self.quiz.submit_answer("b").is_correct)
        self._go_to(5)
        self.assertTrue(self.quiz.submit_answer("ES").is_correct)

    def test_wrong_blank_shows_correct_answer_in_report(self) -> None:
        self._go_to(5)
        self.assertFalse(self.quiz.submit_answer("no").is_correct)

        texts = [line.text for line in build_report_lines(self.store.get_worksheet(), self.store.get_student_info())]
        idx = texts.index("Your answer: no")
        self.assertEqual(texts[idx + 1], "Correct answer: Es")

    def test_early_finish_at_half(self) -> None:
        for _ in range(4):
            self.quiz.submit_answer("b")
            self.quiz.advance()
        self.assertFalse(self.quiz.can_finish_early())

        self.quiz.submit_answer("b")
        self.assertEqual(self.store.answered_questions_count(), 5)
        self.assertTrue(self.quiz.can_finish_early())
        self.assertEqual(self.quiz.finish_early(), FINISHED)

        summary = summarize(self.store.get_worksheet())
        self.assertEqual((summary.correct, summary.total, summary.percent), (5, 10, 50))
        pdf = render_report_pdf(self.store.get_worksheet(), self.store.get_student_info())
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_student_survives_new_upload(self) -> None:
        self.assertEqual(self.store.get_student_info().name, "Ana")


if __name__ == "__main__":
    unittest.main()
