import unittest

from grading import evaluate, format_correct_answer, option_text
from models import FillBlankQuestion, MatchingQuestion, MultipleChoiceQuestion, Option, TextQuestion

OPTIONS = (Option("a", "Red"), Option("b", "Blue"), Option("c", "Green"))


class ChoiceGradingTests(unittest.TestCase):
    def test_option_id_must_match_exactly(self) -> None:
        q = MultipleChoiceQuestion(id="q1", text="Sky colour?", correct_answer="b", options=OPTIONS)
        self.assertTrue(evaluate(q, "b").is_correct)
        self.assertFalse(evaluate(q, "a").is_correct)
        self.assertFalse(evaluate(q, "B").is_correct)
        self.assertFalse(evaluate(q, " b").is_correct)

    def test_matching_uses_same_rule(self) -> None:
        q = MatchingQuestion(id="q1", text="It is my turn.", correct_answer="b", options=OPTIONS)
        result = evaluate(q, "b")
        self.assertTrue(result.is_correct)
        self.assertEqual(result.normalized_answer, "b")

    def test_missing_choice_is_incorrect(self) -> None:
        q = MultipleChoiceQuestion(id="q1", text="?", correct_answer="b", options=OPTIONS)
        result = evaluate(q, None)
        self.assertFalse(result.is_correct)
        self.assertEqual(result.normalized_answer, "")

    def test_option_text_lookup(self) -> None:
        q = MultipleChoiceQuestion(id="q1", text="?", correct_answer="b", options=OPTIONS)
        self.assertEqual(option_text(q, "c"), "Green")
        self.assertEqual(option_text(q, "z"), "")
        self.assertEqual(option_text(TextQuestion(id="t", text="?", correct_answer="x"), "a"), "")


class FreeTextGradingTests(unittest.TestCase):
    def test_case_and_whitespace_are_ignored(self) -> None:
        q = TextQuestion(id="q1", text="Capital of France?", correct_answer="Paris")
        expected = evaluate(q, "Paris").is_correct
        self.assertTrue(expected)
        self.assertEqual(evaluate(q, "  Paris  ").is_correct, expected)
        self.assertEqual(evaluate(q, "paris").is_correct, expected)
        self.assertEqual(evaluate(q, "  Paris  ").normalized_answer, "Paris")

    def test_any_accepted_answer_counts(self) -> None:
        q = FillBlankQuestion(id="q6", text="_______ mi turno.", correct_answer=("Es", "es"))
        self.assertTrue(evaluate(q, "ES").is_correct)

    def test_comparison_is_plain_lowercasing(self) -> None:
        q = TextQuestion(id="q1", text="Street in German?", correct_answer="Straße")
        self.assertTrue(evaluate(q, "STRAßE").is_correct)
        self.assertFalse(evaluate(q, "STRASSE").is_correct)

    def test_blank_submission_is_incorrect(self) -> None:
        q = FillBlankQuestion(id="q6", text="_______ mi turno.", correct_answer="Es")
        result = evaluate(q, "   ")
        self.assertFalse(result.is_correct)
        self.assertEqual(result.normalized_answer, "")

    def test_no_partial_credit_for_close_answers(self) -> None:
        q = FillBlankQuestion(id="q9", text="Subí la _______.", correct_answer="escalera")
        self.assertFalse(evaluate(q, "escaleras").is_correct)
        self.assertFalse(evaluate(q, "escalra").is_correct)

    def test_format_correct_answer_joins_alternatives(self) -> None:
        q = FillBlankQuestion(id="q6", text="?", correct_answer=("Es", "es"))
        self.assertEqual(format_correct_answer(q), "Es, es")
        self.assertEqual(format_correct_answer(TextQuestion(id="t", text="?", correct_answer="Oh")), "Oh")


if __name__ == "__main__":
    unittest.main()
